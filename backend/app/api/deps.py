"""FastAPI依存性注入モジュール。

データベースセッション、セッションファクトリ、Gitクライアント、
インポートジョブ台帳を提供する。テストでは ``dependency_overrides`` で
差し替える。
"""

from __future__ import annotations

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import async_session_factory
from app.database import get_session  # noqa: F401 – re-export for convenience
from app.external.git_client import GitClient
from app.services.import_service import ImportTracker


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """バックグラウンドタスク用のセッションファクトリを返す。

    リクエストのセッションはレスポンス後に閉じられるため、
    バックグラウンドのインポートは自前のセッションを開く。
    """
    return async_session_factory


def get_git_client() -> GitClient:
    """設定値に基づくGitクライアントを返す。"""
    return GitClient()


def get_import_tracker(request: Request) -> ImportTracker:
    """アプリケーションが保持するインポートジョブ台帳を返す。

    lifespan を経由せずに起動された場合はその場で作成する。
    """
    tracker = getattr(request.app.state, "import_tracker", None)
    if tracker is None:
        tracker = ImportTracker()
        request.app.state.import_tracker = tracker
    return tracker
