"""リポジトリ管理エンドポイント。

リポジトリ一覧取得、手動追加、ディレクトリスキャン、同期対象の切り替え、
削除のAPIを提供する。
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_git_client, get_session
from app.config import settings
from app.core.exceptions import RepositoryScanError
from app.external.git_client import GitClient
from app.schemas.common import PaginationMeta
from app.schemas.repository import (
    RepositoryCreateRequest,
    RepositoryDeleteResponse,
    RepositoryListResponse,
    RepositoryResponse,
    RepositoryUpdateRequest,
    RepositoryWithStatsResponse,
    ScanRequest,
    ScanResponse,
)
from app.services.commit_store import CommitStore
from app.services.repository_service import RepositoryService

router = APIRouter()


@router.get(
    "",
    response_model=RepositoryListResponse,
    summary="リポジトリ一覧",
)
async def list_repositories(
    page: int = Query(default=1, ge=1, description="ページ番号"),
    per_page: int = Query(default=20, ge=1, le=100, description="1ページあたりの件数"),
    active_only: bool = Query(default=False, description="アクティブリポジトリのみ"),
    session: AsyncSession = Depends(get_session),
    git_client: GitClient = Depends(get_git_client),
) -> RepositoryListResponse:
    """リポジトリ一覧をコミット数付きで取得する。

    Args:
        page: ページ番号。
        per_page: 1ページあたりの件数。
        active_only: Trueの場合、アクティブなリポジトリのみ返す。
        session: データベースセッション。
        git_client: Gitクライアント。

    Returns:
        リポジトリ一覧とページネーション情報。
    """
    service = RepositoryService(session, git_client)
    rows, total = await service.list_with_commit_counts(
        active_only=active_only,
        offset=PaginationMeta.offset_for(page, per_page),
        limit=per_page,
    )

    repositories = [
        RepositoryWithStatsResponse.model_validate(repo).model_copy(
            update={"commit_count": commit_count},
        )
        for repo, commit_count in rows
    ]

    return RepositoryListResponse(
        repositories=repositories,
        pagination=PaginationMeta(
            page=page,
            per_page=per_page,
            total=total,
        ),
    )


@router.post(
    "",
    response_model=RepositoryResponse,
    status_code=201,
    summary="リポジトリ手動追加",
)
async def add_repository(
    request: RepositoryCreateRequest,
    session: AsyncSession = Depends(get_session),
    git_client: GitClient = Depends(get_git_client),
) -> RepositoryResponse:
    """パスを指定してリポジトリを登録する。

    Raises:
        InvalidRepositoryError: Gitリポジトリでない、または登録済みの場合。
    """
    service = RepositoryService(session, git_client)
    repo = await service.add_repository(request.path, name=request.name)
    return RepositoryResponse.model_validate(repo)


@router.post(
    "/scan",
    response_model=ScanResponse,
    summary="ディレクトリスキャン",
)
async def scan_repositories(
    request: ScanRequest,
    session: AsyncSession = Depends(get_session),
    git_client: GitClient = Depends(get_git_client),
) -> ScanResponse:
    """ベースディレクトリ直下のGitリポジトリを検出し、未登録のものを登録する。

    Raises:
        RepositoryScanError: スキャン対象が指定も設定もされていない場合。
    """
    base_path = request.base_path or settings.REPOSITORIES_BASE_PATH
    if not base_path:
        raise RepositoryScanError(
            detail="base_path is required when REPOSITORIES_BASE_PATH is not set",
        )

    service = RepositoryService(session, git_client)
    registered = await service.scan_and_register(base_path)

    return ScanResponse(
        base_path=base_path,
        registered=[RepositoryResponse.model_validate(r) for r in registered],
        total_registered=len(registered),
    )


@router.patch(
    "/{repo_id}",
    response_model=RepositoryResponse,
    summary="リポジトリ更新",
)
async def update_repository(
    repo_id: int,
    request: RepositoryUpdateRequest,
    session: AsyncSession = Depends(get_session),
    git_client: GitClient = Depends(get_git_client),
) -> RepositoryResponse:
    """リポジトリの同期対象フラグを更新する。

    Raises:
        NotFoundError: リポジトリが見つからない場合。
    """
    service = RepositoryService(session, git_client)
    repo = await service.set_active(repo_id, request.is_active)
    return RepositoryResponse.model_validate(repo)


@router.delete(
    "/{repo_id}",
    response_model=RepositoryDeleteResponse,
    summary="リポジトリ削除",
)
async def delete_repository(
    repo_id: int,
    session: AsyncSession = Depends(get_session),
    git_client: GitClient = Depends(get_git_client),
) -> RepositoryDeleteResponse:
    """リポジトリと、そのリポジトリの全コミットを削除する。

    Raises:
        NotFoundError: リポジトリが見つからない場合。
    """
    service = RepositoryService(session, git_client)
    deleted = await service.delete_repository(repo_id)
    return RepositoryDeleteResponse(repo_id=repo_id, deleted_commits=deleted)


@router.delete(
    "/{repo_id}/commits",
    response_model=RepositoryDeleteResponse,
    summary="リポジトリのコミット削除",
)
async def delete_repository_commits(
    repo_id: int,
    session: AsyncSession = Depends(get_session),
    git_client: GitClient = Depends(get_git_client),
) -> RepositoryDeleteResponse:
    """リポジトリの保存済みコミットのみを削除する（リポジトリは残す）。

    Raises:
        NotFoundError: リポジトリが見つからない場合。
    """
    await RepositoryService(session, git_client).get_repository(repo_id)
    deleted = await CommitStore(session).delete_for_repository(repo_id)
    return RepositoryDeleteResponse(repo_id=repo_id, deleted_commits=deleted)
