"""コミットストア。

``git_commits`` テーブルへの insert-if-absent バッチ書き込み、
期間指定の読み出し、リポジトリ単位・経過時間単位の一括削除を提供する。
期間はすべて半開区間 ``[start, end)``。
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import StoreWriteError
from app.models import Commit

logger = logging.getLogger(__name__)


class CommitStore:
    """コミットの永続化を担うサービスクラス。

    レコードは作成後に更新されないため、同一行への同時更新は発生しない。
    """

    def __init__(self, session: AsyncSession) -> None:
        """CommitStoreを初期化する。

        Args:
            session: 非同期データベースセッション。
        """
        self.session = session

    # ------------------------------------------------------------------
    # 書き込み
    # ------------------------------------------------------------------

    async def exists(self, commit_hash: str, repo_id: int) -> bool:
        """同じ (hash, repo_id) の行が存在するか。"""
        stmt = select(Commit.commit_id).where(
            Commit.commit_hash == commit_hash,
            Commit.repo_id == repo_id,
        ).limit(1)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def save_commits(self, commits: Iterable[Commit]) -> int:
        """コミットを insert-if-absent で保存する。

        各レコードの挿入前に (hash, repo_id) の既存行を確認し、存在すれば
        スキップする。挿入は1件ごとにSAVEPOINTを切るため、1件の挿入失敗は
        ログに残してその件だけを飛ばす。既存行の確認に失敗した場合は
        DBが使えない状態とみなし、バッチ全体を中断する。

        Args:
            commits: 未永続化の Commit インスタンス。

        Returns:
            新規に挿入した件数。

        Raises:
            StoreWriteError: 既存行の確認自体に失敗した場合。
        """
        inserted = 0
        skipped = 0
        failed = 0

        for commit in commits:
            try:
                if await self.exists(commit.commit_hash, commit.repo_id):
                    skipped += 1
                    continue
            except SQLAlchemyError as e:
                raise StoreWriteError(f"Failed to check existing commits: {e}") from e

            try:
                async with self.session.begin_nested():
                    self.session.add(commit)
                    await self.session.flush()
                inserted += 1
            except IntegrityError:
                # 確認後に別経路で挿入された
                skipped += 1
            except SQLAlchemyError:
                failed += 1
                logger.exception(
                    "Failed to insert commit %s (repo_id=%s)",
                    commit.commit_hash[:8],
                    commit.repo_id,
                )

        logger.debug(
            "save_commits: inserted=%d, skipped=%d, failed=%d",
            inserted,
            skipped,
            failed,
        )
        return inserted

    # ------------------------------------------------------------------
    # 読み出し
    # ------------------------------------------------------------------

    async def get_commits(
        self,
        repo_id: int,
        start: datetime,
        end: datetime,
    ) -> list[Commit]:
        """リポジトリの期間内コミットを新しい順に返す。

        Args:
            repo_id: リポジトリID。
            start: 期間の開始（含む）。
            end: 期間の終了（含まない）。

        Returns:
            committed_at 降順の Commit のリスト。
        """
        stmt = (
            select(Commit)
            .where(
                Commit.repo_id == repo_id,
                Commit.committed_at >= start,
                Commit.committed_at < end,
            )
            .order_by(Commit.committed_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_commits_for_repositories(
        self,
        repo_ids: Sequence[int],
        start: datetime,
        end: datetime,
    ) -> list[Commit]:
        """複数リポジトリの期間内コミットを新しい順に返す。"""
        if not repo_ids:
            return []
        stmt = (
            select(Commit)
            .where(
                Commit.repo_id.in_(repo_ids),
                Commit.committed_at >= start,
                Commit.committed_at < end,
            )
            .order_by(Commit.committed_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_commits(self, repo_id: int | None = None) -> int:
        """保存済みコミット数を返す。repo_id 指定時はそのリポジトリのみ。"""
        stmt = select(func.count()).select_from(Commit)
        if repo_id is not None:
            stmt = stmt.where(Commit.repo_id == repo_id)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    # ------------------------------------------------------------------
    # 削除
    # ------------------------------------------------------------------

    async def delete_for_repository(self, repo_id: int) -> int:
        """リポジトリの全コミットを削除する。

        Returns:
            削除件数。

        Raises:
            StoreWriteError: 削除に失敗した場合。
        """
        try:
            result = await self.session.execute(
                delete(Commit).where(Commit.repo_id == repo_id),
            )
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Failed to delete commits for repo {repo_id}: {e}") from e

        logger.info("Deleted %d commits for repo_id=%d", result.rowcount, repo_id)
        return result.rowcount

    async def delete_older_than(self, cutoff: datetime) -> int:
        """全リポジトリについて ``cutoff`` より古いコミットを削除する。

        Returns:
            削除件数。

        Raises:
            StoreWriteError: 削除に失敗した場合。
        """
        try:
            result = await self.session.execute(
                delete(Commit).where(Commit.committed_at < cutoff),
            )
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Failed to delete commits before {cutoff}: {e}") from e

        logger.info("Deleted %d commits older than %s", result.rowcount, cutoff.isoformat())
        return result.rowcount
