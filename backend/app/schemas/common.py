"""共通Pydanticスキーマ。

一覧系エンドポイントで再利用するページネーション情報を定義する。
"""

from __future__ import annotations

import math

from pydantic import BaseModel, Field, computed_field


class PaginationMeta(BaseModel):
    """ページネーションメタ情報。"""

    page: int = Field(..., ge=1, description="現在のページ番号")
    per_page: int = Field(..., ge=1, le=100, description="1ページあたりの件数")
    total: int = Field(..., ge=0, description="総件数")

    @staticmethod
    def offset_for(page: int, per_page: int) -> int:
        """ページ番号からSQLのOFFSETを求める。"""
        return (page - 1) * per_page

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.per_page) if self.total else 0
