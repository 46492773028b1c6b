"""リポジトリ関連のPydanticスキーマ。

リポジトリ一覧、手動追加、スキャン、更新のAPI用スキーマを定義する。
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.common import PaginationMeta


class RepositoryResponse(BaseModel):
    """リポジトリレスポンス。"""

    model_config = ConfigDict(from_attributes=True)

    repo_id: int
    name: str
    path: str
    is_active: bool = True
    remote_url: str | None = None
    path_exists: bool = False
    is_valid_git_repo: bool = False
    last_scanned_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class RepositoryWithStatsResponse(RepositoryResponse):
    """コミット数付きリポジトリレスポンス。"""

    commit_count: int = 0


class RepositoryListResponse(BaseModel):
    """リポジトリ一覧レスポンス。"""

    repositories: list[RepositoryWithStatsResponse]
    pagination: PaginationMeta


class RepositoryCreateRequest(BaseModel):
    """リポジトリ手動追加リクエスト。"""

    path: str = Field(..., min_length=1, description="リポジトリのパス")
    name: str | None = Field(
        default=None,
        max_length=255,
        description="表示名（未指定時はディレクトリ名）",
    )


class ScanRequest(BaseModel):
    """ディレクトリスキャンリクエスト。"""

    base_path: str | None = Field(
        default=None,
        description="スキャン対象ディレクトリ（未指定時は REPOSITORIES_BASE_PATH）",
    )


class ScanResponse(BaseModel):
    """ディレクトリスキャンレスポンス。"""

    base_path: str
    registered: list[RepositoryResponse]
    total_registered: int


class RepositoryUpdateRequest(BaseModel):
    """リポジトリ更新リクエスト。"""

    is_active: bool = Field(
        description="同期対象フラグ",
    )


class RepositoryDeleteResponse(BaseModel):
    """リポジトリ削除・コミット削除レスポンス。"""

    repo_id: int
    deleted_commits: int
