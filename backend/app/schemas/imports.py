"""インポート関連のPydanticスキーマ。"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ImportTriggerRequest(BaseModel):
    """インポート開始リクエスト。"""

    repo_ids: list[int] = Field(
        default_factory=list,
        description="対象リポジトリID（空の場合は全アクティブリポジトリ）",
    )
    authors: list[str] = Field(
        default_factory=list,
        description="著者フィルタ（空の場合は全著者）",
    )
    days: int = Field(
        default=30,
        ge=1,
        le=3650,
        description="遡る日数",
    )
    full_reimport: bool = Field(
        default=True,
        description="取り込み前に既存コミットを削除するか",
    )


class ImportTriggerResponse(BaseModel):
    """インポート開始レスポンス。"""

    job_id: str
    status: str
    message: str


class ImportStatusResponse(BaseModel):
    """インポート進捗レスポンス。"""

    model_config = ConfigDict(from_attributes=True)

    job_id: str
    status: str
    repo_ids: list[int]
    authors: list[str]
    days: int
    total_repositories: int
    processed_repositories: int
    current_repository: str | None = None
    imported_count: int = Field(..., description="gitから取得したコミット数")
    stored_count: int = Field(..., description="新規に保存したコミット数")
    errors: list[dict[str, Any]] = Field(default_factory=list)
    progress_text: str
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime


class PruneRequest(BaseModel):
    """古いコミット削除リクエスト。"""

    days: int = Field(..., ge=1, description="この日数より古いコミットを削除")


class PruneResponse(BaseModel):
    """古いコミット削除レスポンス。"""

    days: int
    deleted_commits: int
