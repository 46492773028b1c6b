"""コミット関連のPydanticスキーマ。"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class CommitResponse(BaseModel):
    """コミットレスポンス。

    ``repo_name`` と ``web_url`` はリポジトリ情報から補完する。
    """

    commit_id: int
    commit_hash: str
    short_hash: str
    author_name: str
    author_email: str
    committed_at: datetime
    message: str
    short_message: str
    repo_id: int
    repo_name: str | None = None
    lines_added: int
    lines_deleted: int
    total_lines_changed: int
    web_url: str | None = None


class CommitListResponse(BaseModel):
    """コミット一覧レスポンス。"""

    commits: list[CommitResponse]
    total: int
