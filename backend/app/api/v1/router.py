"""API v1 ルーター集約モジュール。

各ドメインのルーターを統合し、プレフィックスとタグを設定する。
"""

from __future__ import annotations

from fastapi import APIRouter

from app.api.v1.dashboard import router as dashboard_router
from app.api.v1.imports import router as imports_router
from app.api.v1.maintenance import router as maintenance_router
from app.api.v1.repositories import router as repositories_router

router = APIRouter()

router.include_router(
    dashboard_router,
    prefix="/dashboard",
    tags=["dashboard"],
)

router.include_router(
    repositories_router,
    prefix="/repositories",
    tags=["repositories"],
)

router.include_router(
    imports_router,
    prefix="/imports",
    tags=["imports"],
)

router.include_router(
    maintenance_router,
    prefix="/maintenance",
    tags=["maintenance"],
)
