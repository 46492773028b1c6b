"""メンテナンスエンドポイント。

保存期間を過ぎたコミットの削除APIを提供する。
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_git_client, get_session
from app.external.git_client import GitClient
from app.schemas.imports import PruneRequest, PruneResponse
from app.services.import_service import ImportService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/prune",
    response_model=PruneResponse,
    summary="古いコミットの削除",
)
async def prune_commits(
    request: PruneRequest,
    session: AsyncSession = Depends(get_session),
    git_client: GitClient = Depends(get_git_client),
) -> PruneResponse:
    """指定日数より古いコミットを全リポジトリから削除する。"""
    deleted = await ImportService(session, git_client).prune_older_than(request.days)
    logger.info("Pruned %d commits older than %d days", deleted, request.days)
    return PruneResponse(days=request.days, deleted_commits=deleted)
