"""ダッシュボード関連のPydanticスキーマ。

カレンダーヒートマップ、リポジトリ別統計、著者別内訳用のスキーマを定義する。
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# カレンダー
# ---------------------------------------------------------------------------

class CalendarDay(BaseModel):
    """カレンダーの1日分。"""

    date: date
    commit_count: int
    lines_added: int
    lines_deleted: int
    total_lines: int
    level: int = Field(..., ge=0, le=4, description="ヒートマップの段階")


class CalendarSummary(BaseModel):
    """カレンダー期間の集計値。"""

    total_commits: int = 0
    lines_added: int = 0
    lines_deleted: int = 0
    active_days: int = 0
    current_streak: int = 0


class CalendarResponse(BaseModel):
    """カレンダーレスポンス。

    ``days`` はコミットのある日だけを日付昇順で含む。
    """

    window_days: int
    author: str | None = None
    days: list[CalendarDay]
    summary: CalendarSummary


# ---------------------------------------------------------------------------
# リポジトリ別統計
# ---------------------------------------------------------------------------

class RepoStats(BaseModel):
    """リポジトリ別の直近コミット数。"""

    repo_id: int
    name: str
    today_count: int
    week_count: int
    month_count: int
    last_commit_at: datetime | None = None


class RepoStatsResponse(BaseModel):
    """リポジトリ別統計レスポンス。"""

    data: list[RepoStats]


# ---------------------------------------------------------------------------
# 著者別内訳
# ---------------------------------------------------------------------------

class AuthorBreakdown(BaseModel):
    """著者別コミット数。"""

    author_name: str
    commit_count: int


class AuthorBreakdownResponse(BaseModel):
    """著者別内訳レスポンス。"""

    window_days: int
    data: list[AuthorBreakdown]
