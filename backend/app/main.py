"""FastAPIアプリケーションのエントリポイント。

アプリケーションのライフサイクル管理、ミドルウェア設定、
ルーティング、例外ハンドラ登録を行う。
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.router import router as api_v1_router
from app.config import settings
from app.core.exceptions import register_exception_handlers
from app.database import init_db
from app.services.import_service import ImportTracker

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """アプリケーションのライフサイクルを管理する。

    起動時にテーブルを作成し、インポートジョブ台帳を用意して
    バックグラウンドタスクスケジューラを開始する。
    シャットダウン時にスケジューラを停止する。

    Args:
        app: FastAPIアプリケーションインスタンス。
    """
    # --- 起動処理 ---
    logger.info("Application startup")

    await init_db()
    app.state.import_tracker = ImportTracker()

    from app.tasks.scheduler import scheduler, setup_jobs

    setup_jobs(app.state.import_tracker)
    scheduler.start()
    logger.info("APScheduler started")

    yield

    # --- シャットダウン処理 ---
    logger.info("Application shutdown")

    scheduler.shutdown(wait=False)
    logger.info("APScheduler stopped")


app = FastAPI(
    title="Git Activity Calendar API",
    description="ローカルGitリポジトリのコミット履歴を取り込み、日別に可視化するAPI",
    version="1.0.0",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# ミドルウェア
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# 例外ハンドラ
# ---------------------------------------------------------------------------
register_exception_handlers(app)

# ---------------------------------------------------------------------------
# ルーティング
# ---------------------------------------------------------------------------
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """ヘルスチェックエンドポイント。"""
    return {"status": "ok"}
