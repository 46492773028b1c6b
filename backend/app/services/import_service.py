"""コミットインポートサービス。

ローカルリポジトリからgit logでコミットを取得してDBに保存する
ビジネスロジックと、バッチインポートの進捗管理を提供する。
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dates import get_local_timezone, trailing_window
from app.core.exceptions import GitCommandTimeoutError, GitError, StoreWriteError
from app.external.git_client import GitClient, has_git_metadata
from app.models import Commit, Repository
from app.services.commit_store import CommitStore
from app.services.repository_service import RepositoryService

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# 進捗状態
# ---------------------------------------------------------------------------

@dataclass
class ImportJob:
    """バッチインポートの進捗。

    インポートを実行するコルーチンだけが更新し、APIは読み取りのみ行う。
    """

    job_id: str
    status: str = "pending"
    repo_ids: list[int] = field(default_factory=list)
    authors: list[str] = field(default_factory=list)
    days: int = 30
    total_repositories: int = 0
    processed_repositories: int = 0
    current_repository: str | None = None
    imported_count: int = 0
    stored_count: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)
    message: str = ""
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_finished(self) -> bool:
        return self.status in ("completed", "failed", "cancelled")

    def fail(self, message: str, status: str = "failed") -> None:
        """ジョブを終了状態にする。"""
        self.status = status
        self.current_repository = None
        self.completed_at = datetime.now(timezone.utc)
        self.message = message

    @property
    def progress_text(self) -> str:
        if self.status == "completed":
            return (
                f"Import completed: {self.imported_count} commits "
                f"({self.stored_count} new)"
            )
        if self.current_repository:
            return (
                f"[{self.processed_repositories + 1}/{self.total_repositories}] "
                f"{self.current_repository}"
            )
        return self.message


class ImportTracker:
    """インポートジョブの台帳。

    アプリケーションの ``app.state`` が所有する。プロセス全体の
    シングルトンではない。
    """

    def __init__(self, max_jobs: int = 50) -> None:
        self._jobs: dict[str, ImportJob] = {}
        self._max_jobs = max_jobs

    def create(
        self,
        repo_ids: list[int],
        authors: list[str],
        days: int,
    ) -> ImportJob:
        """新しいジョブを登録する。古いジョブから破棄する。"""
        job = ImportJob(
            job_id=uuid.uuid4().hex,
            repo_ids=list(repo_ids),
            authors=list(authors),
            days=days,
            total_repositories=len(repo_ids),
        )
        self._jobs[job.job_id] = job
        while len(self._jobs) > self._max_jobs:
            oldest = next(iter(self._jobs))
            del self._jobs[oldest]
        return job

    def get(self, job_id: str) -> ImportJob | None:
        return self._jobs.get(job_id)

    def is_running(self) -> bool:
        return any(job.status in ("pending", "running") for job in self._jobs.values())


# ---------------------------------------------------------------------------
# インポートサービス
# ---------------------------------------------------------------------------

class ImportService:
    """git log からのコミット取り込みを行うサービスクラス。"""

    def __init__(
        self,
        session: AsyncSession,
        git_client: GitClient,
        tz: tzinfo | None = None,
    ) -> None:
        """ImportServiceを初期化する。

        Args:
            session: 非同期データベースセッション。
            git_client: Gitクライアント。
            tz: 取り込み期間の日付境界に使うタイムゾーン。
        """
        self.session = session
        self.git_client = git_client
        self.store = CommitStore(session)
        self.tz = tz or get_local_timezone()

    async def import_commits(
        self,
        repo: Repository,
        start: datetime,
        end: datetime,
        author: str | None = None,
    ) -> list[Commit]:
        """1リポジトリ×1著者分のコミットを取得して保存する。

        既に保存済みの (hash, repo_id) はスキップされる。

        Args:
            repo: 対象リポジトリ。
            start: 期間の開始（含む）。
            end: 期間の終了（含まない）。
            author: 著者名フィルタ。Noneの場合は全著者。

        Returns:
            git から取得したコミットのリスト。

        Raises:
            GitCommandTimeoutError: gitが制限時間内に終了しなかった場合。
            GitCommandFailedError: gitが失敗した場合。
            StoreWriteError: 保存に失敗した場合。
        """
        commits, _ = await self._fetch_and_store(repo, start, end, author)
        return commits

    async def _fetch_and_store(
        self,
        repo: Repository,
        start: datetime,
        end: datetime,
        author: str | None,
    ) -> tuple[list[Commit], int]:
        """取得したコミットと、そのうち新規に保存できた件数を返す。"""
        commits = await self.git_client.get_commits(
            repo_id=repo.repo_id,
            repository_path=repo.path,
            start=start,
            end=end,
            author=author,
        )
        inserted = 0
        if commits:
            inserted = await self.store.save_commits(commits)
            logger.info(
                "Imported %d/%d commits for %s (author=%s)",
                inserted,
                len(commits),
                repo.name,
                author or "*",
            )
        return commits, inserted

    async def run_import(
        self,
        job: ImportJob,
        full_reimport: bool = True,
    ) -> ImportJob:
        """選択されたリポジトリ×著者のインポートを順番に実行する。

        1. full_reimport なら対象リポジトリの既存コミットを全削除
        2. リポジトリごと、著者ごとに git log を実行して保存
        3. 1組の失敗はログに残して次へ進む（バッチ全体は止めない）
        4. ジョブ完了を記録

        Args:
            job: 進捗を書き込むジョブ。
            full_reimport: Trueの場合、取り込み前に既存コミットを削除する。

        Returns:
            完了したジョブ。
        """
        job.status = "running"
        job.started_at = datetime.now(timezone.utc)
        try:
            await self._run_import(job, full_reimport)
        except asyncio.CancelledError:
            job.fail("Import cancelled", status="cancelled")
            logger.warning("Import job %s cancelled", job.job_id)
            raise
        except Exception as e:
            job.fail(str(e))
            logger.exception("Import job %s failed", job.job_id)
            raise
        return job

    async def _run_import(self, job: ImportJob, full_reimport: bool) -> None:
        authors: list[str | None] = [a for a in job.authors if a] or [None]

        repos = await RepositoryService(self.session, self.git_client).list_repositories(
            repo_ids=job.repo_ids or None,
            active_only=not job.repo_ids,
        )
        job.total_repositories = len(repos)

        logger.info(
            "Starting import job %s (%d repositories, authors=%s, days=%d)",
            job.job_id,
            len(repos),
            job.authors or "*",
            job.days,
        )

        # 1. 既存データを削除（全量インポート）
        if full_reimport:
            job.message = "Clearing previous commits"
            for repo in repos:
                try:
                    await self.store.delete_for_repository(repo.repo_id)
                except StoreWriteError as e:
                    logger.error("Failed to clear commits for %s: %s", repo.name, e.detail)
                    job.errors.append(self._error_entry("store_error", e.detail, repo))

        start, end = trailing_window(job.days, self.tz)

        # 2. リポジトリ × 著者
        for repo in repos:
            job.current_repository = repo.name

            if not has_git_metadata(repo.path):
                logger.warning("Skipping %s: %s is not a git repository", repo.name, repo.path)
                job.errors.append(
                    self._error_entry("missing_repository", f"Path not found: {repo.path}", repo)
                )
                job.processed_repositories += 1
                continue

            for author in authors:
                try:
                    commits, inserted = await self._fetch_and_store(repo, start, end, author)
                    job.imported_count += len(commits)
                    job.stored_count += inserted
                except GitCommandTimeoutError as e:
                    logger.warning("git log timed out for %s (author=%s)", repo.name, author or "*")
                    job.errors.append(self._error_entry("timeout", e.detail, repo, author))
                except GitError as e:
                    logger.warning(
                        "git log failed for %s (author=%s): %s",
                        repo.name,
                        author or "*",
                        e.detail,
                    )
                    job.errors.append(self._error_entry("git_error", e.detail, repo, author))
                except StoreWriteError as e:
                    logger.error("Failed to store commits for %s: %s", repo.name, e.detail)
                    job.errors.append(self._error_entry("store_error", e.detail, repo, author))

            job.processed_repositories += 1

        # 3. 完了
        job.current_repository = None
        job.status = "completed"
        job.completed_at = datetime.now(timezone.utc)
        job.message = f"Imported {job.imported_count} commits ({job.stored_count} new)"

        logger.info(
            "Import job %s completed: %d commits, %d new, %d errors",
            job.job_id,
            job.imported_count,
            job.stored_count,
            len(job.errors),
        )

    async def prune_older_than(self, days: int) -> int:
        """``days`` 日より古いコミットを全リポジトリから削除する。"""
        cutoff = datetime.now(timezone.utc) - timedelta(days=days)
        return await self.store.delete_older_than(cutoff)

    @staticmethod
    def _error_entry(
        error_type: str,
        message: str,
        repo: Repository,
        author: str | None = None,
    ) -> dict[str, Any]:
        return {
            "type": error_type,
            "message": message,
            "repo_id": repo.repo_id,
            "repo_name": repo.name,
            "author": author,
        }
