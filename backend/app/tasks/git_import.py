"""Gitコミットのバックグラウンド取り込みタスク。

APSchedulerから呼ばれる定期インポート・古いコミット削除ジョブと、
手動トリガー用のタスク関数を提供する。
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.database import async_session_factory
from app.external.git_client import GitClient
from app.services.import_service import ImportJob, ImportService, ImportTracker
from app.services.repository_service import RepositoryService

logger = logging.getLogger(__name__)


async def scheduled_import_job(
    tracker: ImportTracker | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    git_client: GitClient | None = None,
) -> ImportJob | None:
    """APSchedulerから呼ばれる定期インポートジョブ。

    ``REPOSITORIES_BASE_PATH`` が設定されていれば先にスキャンして
    新しいリポジトリを登録し、その後で全アクティブリポジトリを
    ``IMPORT_AUTHORS`` × ``IMPORT_DAYS`` で取り込む。
    手動インポートが実行中の場合はスキップする。
    """
    tracker = tracker or ImportTracker()
    session_factory = session_factory or async_session_factory
    git_client = git_client or GitClient()

    if tracker.is_running():
        logger.info("Import already running. Skipping scheduled import.")
        return None

    # ジョブはスキャンより前に登録する
    job = tracker.create(
        repo_ids=[],
        authors=settings.import_authors,
        days=settings.IMPORT_DAYS,
    )
    logger.info("Starting scheduled import job %s", job.job_id)

    if settings.REPOSITORIES_BASE_PATH:
        job.message = f"Scanning {settings.REPOSITORIES_BASE_PATH}"
        async with session_factory() as session:
            try:
                registered = await RepositoryService(session, git_client).scan_and_register(
                    settings.REPOSITORIES_BASE_PATH,
                )
                await session.commit()
            except Exception as e:
                await session.rollback()
                job.fail(f"Repository scan failed: {e}")
                logger.exception("Repository scan failed")
                raise
        logger.info("Scheduled scan registered %d repositories", len(registered))

    await manual_import_job(job, session_factory, git_client, full_reimport=False)
    return job


async def manual_import_job(
    job: ImportJob,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    git_client: GitClient | None = None,
    full_reimport: bool = True,
) -> None:
    """手動インポート用タスク。

    BackgroundTasksから呼ばれ、ジョブに記録された条件で取り込みを行う。

    Args:
        job: triggerで作成済みのインポートジョブ。
        session_factory: セッションファクトリ。省略時はアプリケーション既定。
        git_client: Gitクライアント。省略時は設定値から作成。
        full_reimport: Trueの場合、取り込み前に既存コミットを削除する。
    """
    session_factory = session_factory or async_session_factory
    git_client = git_client or GitClient()

    logger.info(
        "Starting import job %s: repo_ids=%s, authors=%s, days=%d",
        job.job_id,
        job.repo_ids or "active",
        job.authors or "*",
        job.days,
    )

    try:
        async with session_factory() as session:
            try:
                service = ImportService(session, git_client)
                await service.run_import(job, full_reimport=full_reimport)
                await session.commit()
            except Exception:
                await session.rollback()
                raise
    except asyncio.CancelledError:
        if not job.is_finished:
            job.fail("Import cancelled", status="cancelled")
        raise
    except Exception as e:
        # run_import より前の失敗でもジョブを pending のまま残さない
        if not job.is_finished:
            job.fail(str(e))
        logger.exception("Import job %s failed", job.job_id)
        raise


async def prune_old_commits_job(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> int:
    """APSchedulerから呼ばれる古いコミット削除ジョブ。

    ``COMMIT_RETENTION_DAYS`` が未設定の場合は何もしない。

    Returns:
        削除件数。
    """
    days = settings.COMMIT_RETENTION_DAYS
    if not days:
        logger.debug("COMMIT_RETENTION_DAYS not set. Skipping prune.")
        return 0

    session_factory = session_factory or async_session_factory
    async with session_factory() as session:
        try:
            deleted = await ImportService(session, GitClient()).prune_older_than(days)
            await session.commit()
        except Exception:
            await session.rollback()
            logger.exception("Prune job failed")
            raise

    logger.info("Pruned %d commits older than %d days", deleted, days)
    return deleted
