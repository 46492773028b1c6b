"""APSchedulerの設定と管理。

定期実行タスクのスケジュール登録を行う。
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from app.config import settings
from app.core.dates import get_local_timezone
from app.services.import_service import ImportTracker

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def setup_jobs(tracker: ImportTracker) -> None:
    """スケジューラにジョブを登録する。

    - scheduled_import_job: AUTO_IMPORT_ENABLED の場合、SYNC_INTERVAL_HOURS ごと
    - prune_old_commits_job: COMMIT_RETENTION_DAYS が設定されている場合、毎日AM3:00

    Args:
        tracker: 手動インポートと共有するジョブ台帳。
    """
    from app.tasks.git_import import prune_old_commits_job, scheduled_import_job

    if settings.AUTO_IMPORT_ENABLED:
        scheduler.add_job(
            scheduled_import_job,
            trigger=IntervalTrigger(hours=settings.SYNC_INTERVAL_HOURS),
            kwargs={"tracker": tracker},
            id="scheduled_import_job",
            name="Git Commit Import",
            replace_existing=True,
            max_instances=1,
        )
        logger.info(
            "Registered scheduled_import_job: every %d hours",
            settings.SYNC_INTERVAL_HOURS,
        )

    if settings.COMMIT_RETENTION_DAYS:
        scheduler.add_job(
            prune_old_commits_job,
            trigger=CronTrigger(hour=3, minute=0, timezone=get_local_timezone()),
            id="prune_old_commits_job",
            name="Prune Old Commits",
            replace_existing=True,
            max_instances=1,
        )
        logger.info(
            "Registered prune_old_commits_job: daily at 03:00 (retention %d days)",
            settings.COMMIT_RETENTION_DAYS,
        )

    logger.info("All scheduled jobs registered")
