"""インポートエンドポイント。

バッチインポートの開始と進捗確認のAPIを提供する。
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.deps import get_git_client, get_import_tracker, get_session_factory
from app.core.exceptions import AppException, NotFoundError
from app.external.git_client import GitClient
from app.schemas.imports import (
    ImportStatusResponse,
    ImportTriggerRequest,
    ImportTriggerResponse,
)
from app.services.import_service import ImportTracker
from app.tasks.git_import import manual_import_job

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=ImportTriggerResponse,
    status_code=202,
    summary="インポート開始",
)
async def trigger_import(
    request: ImportTriggerRequest,
    background_tasks: BackgroundTasks,
    tracker: ImportTracker = Depends(get_import_tracker),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    git_client: GitClient = Depends(get_git_client),
) -> ImportTriggerResponse:
    """インポートジョブをバックグラウンドで開始する。

    実行中のジョブがある場合は409を返す。

    Args:
        request: インポート開始リクエスト。
        background_tasks: FastAPIバックグラウンドタスク。
        tracker: インポートジョブ台帳。
        session_factory: バックグラウンドタスク用のセッションファクトリ。
        git_client: Gitクライアント。

    Returns:
        ジョブIDを含む202レスポンス。
    """
    if tracker.is_running():
        raise AppException(status_code=409, detail="An import is already running")

    job = tracker.create(
        repo_ids=request.repo_ids,
        authors=request.authors,
        days=request.days,
    )

    logger.info(
        "Import trigger: job_id=%s, repos=%s, authors=%s, days=%d",
        job.job_id,
        request.repo_ids or "active",
        request.authors or "*",
        request.days,
    )

    background_tasks.add_task(
        manual_import_job,
        job=job,
        session_factory=session_factory,
        git_client=git_client,
        full_reimport=request.full_reimport,
    )

    return ImportTriggerResponse(
        job_id=job.job_id,
        status=job.status,
        message="Import job started",
    )


@router.get(
    "/{job_id}",
    response_model=ImportStatusResponse,
    summary="インポート進捗確認",
)
async def get_import_status(
    job_id: str,
    tracker: ImportTracker = Depends(get_import_tracker),
) -> ImportStatusResponse:
    """指定したインポートジョブの進捗を取得する。

    Raises:
        NotFoundError: ジョブが見つからない場合。
    """
    job = tracker.get(job_id)
    if job is None:
        raise NotFoundError(detail=f"Import job {job_id} not found")
    return ImportStatusResponse.model_validate(job)
