"""リポジトリ管理サービス。

ディレクトリスキャンによるリポジトリ登録、手動追加、
同期対象フラグの切り替え、削除（コミットのカスケード削除）を提供する。
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidRepositoryError, NotFoundError
from app.external.git_client import GitClient, has_git_metadata
from app.models import Commit, Repository
from app.services.commit_store import CommitStore

logger = logging.getLogger(__name__)


class RepositoryService:
    """リポジトリの登録・更新・削除を行うサービスクラス。"""

    def __init__(self, session: AsyncSession, git_client: GitClient) -> None:
        """RepositoryServiceを初期化する。

        Args:
            session: 非同期データベースセッション。
            git_client: Gitクライアント。
        """
        self.session = session
        self.git_client = git_client

    # ------------------------------------------------------------------
    # 取得
    # ------------------------------------------------------------------

    async def get_repository(self, repo_id: int) -> Repository:
        """リポジトリを取得する。

        Raises:
            NotFoundError: リポジトリが見つからない場合。
        """
        repo = await self.session.get(Repository, repo_id)
        if repo is None:
            raise NotFoundError(detail=f"Repository {repo_id} not found")
        return repo

    async def list_repositories(
        self,
        active_only: bool = False,
        repo_ids: list[int] | None = None,
    ) -> list[Repository]:
        """リポジトリ一覧を名前順で返す。"""
        stmt = select(Repository)
        if active_only:
            stmt = stmt.where(Repository.is_active.is_(True))
        if repo_ids:
            stmt = stmt.where(Repository.repo_id.in_(repo_ids))
        stmt = stmt.order_by(Repository.name)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_with_commit_counts(
        self,
        active_only: bool = False,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[tuple[Repository, int]], int]:
        """コミット数付きのリポジトリ一覧と総件数を返す。"""
        base_filter = []
        if active_only:
            base_filter.append(Repository.is_active.is_(True))

        count_stmt = select(func.count()).select_from(Repository).where(*base_filter)
        total = (await self.session.execute(count_stmt)).scalar_one()

        commit_count_subq = (
            select(
                Commit.repo_id,
                func.count().label("commit_count"),
            )
            .group_by(Commit.repo_id)
            .subquery()
        )
        stmt = (
            select(
                Repository,
                func.coalesce(commit_count_subq.c.commit_count, 0).label("commit_count"),
            )
            .outerjoin(
                commit_count_subq,
                Repository.repo_id == commit_count_subq.c.repo_id,
            )
            .where(*base_filter)
            .order_by(Repository.name)
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        rows = [(repo, int(count)) for repo, count in result.all()]
        return rows, total

    async def get_registered_paths(self) -> set[str]:
        """登録済みリポジトリのパス集合を返す。"""
        result = await self.session.execute(select(Repository.path))
        return set(result.scalars().all())

    # ------------------------------------------------------------------
    # 登録
    # ------------------------------------------------------------------

    async def scan_and_register(self, base_path: str) -> list[Repository]:
        """ディレクトリをスキャンし、未登録のリポジトリを登録する。

        既に登録済みのパスはスキップし、``last_scanned_at`` のみ更新する。

        Args:
            base_path: スキャン対象ディレクトリ。

        Returns:
            新規登録したリポジトリのリスト。
        """
        discovered = await self.git_client.scan_for_repositories(base_path)
        if not discovered:
            return []

        now = datetime.now(timezone.utc)
        existing = {
            repo.path: repo
            for repo in (
                await self.session.execute(
                    select(Repository).where(
                        Repository.path.in_([d.path for d in discovered]),
                    )
                )
            ).scalars()
        }

        registered: list[Repository] = []
        for found in discovered:
            repo = existing.get(found.path)
            if repo is not None:
                repo.last_scanned_at = now
                if found.remote_url and repo.remote_url != found.remote_url:
                    repo.remote_url = found.remote_url
                continue

            repo = Repository(
                name=found.name,
                path=found.path,
                remote_url=found.remote_url,
                is_active=True,
                last_scanned_at=now,
            )
            self.session.add(repo)
            registered.append(repo)

        await self.session.flush()

        logger.info(
            "Scan of %s: %d discovered, %d newly registered",
            base_path,
            len(discovered),
            len(registered),
        )
        return registered

    async def add_repository(self, path: str, name: str | None = None) -> Repository:
        """リポジトリを手動で追加する。

        Args:
            path: リポジトリのパス。
            name: 表示名。省略時はパスの末尾。

        Returns:
            登録されたリポジトリ。

        Raises:
            InvalidRepositoryError: パスがGitリポジトリでない、または登録済みの場合。
        """
        path = os.path.abspath(os.path.expanduser(path))
        if not os.path.isdir(path) or not has_git_metadata(path):
            raise InvalidRepositoryError(detail=f"Not a git repository: {path}")

        if path in await self.get_registered_paths():
            raise InvalidRepositoryError(detail=f"Repository already registered: {path}")

        repo = Repository(
            name=name or os.path.basename(path.rstrip(os.sep)),
            path=path,
            remote_url=await self.git_client.get_remote_url(path),
            is_active=True,
            last_scanned_at=datetime.now(timezone.utc),
        )
        self.session.add(repo)
        await self.session.flush()

        logger.info("Registered repository %s (repo_id=%d)", repo.name, repo.repo_id)
        return repo

    # ------------------------------------------------------------------
    # 更新・削除
    # ------------------------------------------------------------------

    async def set_active(self, repo_id: int, is_active: bool) -> Repository:
        """同期対象フラグを更新する。

        Raises:
            NotFoundError: リポジトリが見つからない場合。
        """
        repo = await self.get_repository(repo_id)
        repo.is_active = is_active
        await self.session.flush()

        logger.info(
            "Repository %s (repo_id=%d) is_active set to %s",
            repo.name,
            repo.repo_id,
            is_active,
        )
        return repo

    async def delete_repository(self, repo_id: int) -> int:
        """リポジトリと、そのリポジトリに属する全コミットを削除する。

        Returns:
            削除したコミット数。

        Raises:
            NotFoundError: リポジトリが見つからない場合。
        """
        repo = await self.get_repository(repo_id)

        deleted = await CommitStore(self.session).delete_for_repository(repo_id)
        await self.session.delete(repo)
        await self.session.flush()

        logger.info(
            "Deleted repository %s (repo_id=%d) and %d commits",
            repo.name,
            repo_id,
            deleted,
        )
        return deleted
