"""ダッシュボードエンドポイント。

カレンダーヒートマップ、今日のコミット、日付別コミット、
リポジトリ別統計、著者別内訳のAPIを提供する。
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_session
from app.config import settings
from app.models import Commit
from app.schemas.commit import CommitListResponse, CommitResponse
from app.schemas.dashboard import (
    AuthorBreakdown,
    AuthorBreakdownResponse,
    CalendarDay,
    CalendarResponse,
    CalendarSummary,
    RepoStats,
    RepoStatsResponse,
)
from app.services.dashboard_service import DashboardService, RepositoryIndex, heat_level

router = APIRouter()


def _author_or_default(author: str | None) -> str | None:
    """クエリ未指定時は ``GIT_AUTHOR_FILTER`` を使う。空文字はフィルタなし。"""
    if author is None:
        author = settings.GIT_AUTHOR_FILTER
    return author or None


async def _to_commit_list(session: AsyncSession, commits: list[Commit]) -> CommitListResponse:
    index = await RepositoryIndex(session).load({c.repo_id for c in commits})
    return CommitListResponse(
        commits=[
            CommitResponse(
                commit_id=c.commit_id,
                commit_hash=c.commit_hash,
                short_hash=c.short_hash,
                author_name=c.author_name,
                author_email=c.author_email,
                committed_at=c.committed_at,
                message=c.message,
                short_message=c.short_message,
                repo_id=c.repo_id,
                repo_name=index.name_of(c.repo_id),
                lines_added=c.lines_added,
                lines_deleted=c.lines_deleted,
                total_lines_changed=c.total_lines_changed,
                web_url=index.commit_url(c),
            )
            for c in commits
        ],
        total=len(commits),
    )


# ---------------------------------------------------------------------------
# カレンダー
# ---------------------------------------------------------------------------


@router.get(
    "/calendar",
    response_model=CalendarResponse,
    summary="コミットカレンダー",
)
async def get_calendar(
    days: int | None = Query(default=None, ge=1, le=3650, description="遡る日数"),
    author: str | None = Query(default=None, description="著者名の部分一致フィルタ"),
    repo_ids: list[int] | None = Query(default=None, description="対象リポジトリID"),
    session: AsyncSession = Depends(get_session),
) -> CalendarResponse:
    """直近の日別コミット集計とヒートマップ段階を取得する。

    Args:
        days: 遡る日数（未指定時は ``CALENDAR_WINDOW_DAYS``）。
        author: 著者名フィルタ（未指定時は ``GIT_AUTHOR_FILTER``）。
        repo_ids: 対象リポジトリID（未指定時は全アクティブリポジトリ）。
        session: データベースセッション。

    Returns:
        コミットのある日の一覧と期間集計。
    """
    window_days = days or settings.CALENDAR_WINDOW_DAYS
    author = _author_or_default(author)

    service = DashboardService(session)
    buckets = await service.aggregate_daily(
        repo_ids=repo_ids,
        window_days=window_days,
        author=author,
    )

    calendar_days = [
        CalendarDay(
            date=day.date(),
            commit_count=stats.commit_count,
            lines_added=stats.lines_added,
            lines_deleted=stats.lines_deleted,
            total_lines=stats.total_lines,
            level=heat_level(stats.total_lines),
        )
        for day, stats in sorted(buckets.items())
    ]

    return CalendarResponse(
        window_days=window_days,
        author=author,
        days=calendar_days,
        summary=CalendarSummary(**service.summarize(buckets)),
    )


# ---------------------------------------------------------------------------
# コミット一覧
# ---------------------------------------------------------------------------


@router.get(
    "/today",
    response_model=CommitListResponse,
    summary="今日のコミット",
)
async def get_today_commits(
    author: str | None = Query(default=None, description="著者名の部分一致フィルタ"),
    repo_ids: list[int] | None = Query(default=None, description="対象リポジトリID"),
    session: AsyncSession = Depends(get_session),
) -> CommitListResponse:
    """今日のコミットを全リポジトリ横断で新しい順に取得する。"""
    service = DashboardService(session)
    commits = await service.get_today_commits(
        repo_ids=repo_ids,
        author=_author_or_default(author),
    )
    return await _to_commit_list(session, commits)


@router.get(
    "/commits",
    response_model=CommitListResponse,
    summary="日付別コミット",
)
async def get_commits_on_date(
    day: date = Query(..., description="対象日（ローカル暦日）"),
    author: str | None = Query(default=None, description="著者名の部分一致フィルタ"),
    repo_ids: list[int] | None = Query(default=None, description="対象リポジトリID"),
    session: AsyncSession = Depends(get_session),
) -> CommitListResponse:
    """指定日のコミットを新しい順に取得する（カレンダーのドリルダウン）。"""
    service = DashboardService(session)
    commits = await service.get_commits_on_date(
        day,
        repo_ids=repo_ids,
        author=_author_or_default(author),
    )
    return await _to_commit_list(session, commits)


# ---------------------------------------------------------------------------
# 統計
# ---------------------------------------------------------------------------


@router.get(
    "/repository-stats",
    response_model=RepoStatsResponse,
    summary="リポジトリ別統計",
)
async def get_repository_stats(
    author: str | None = Query(default=None, description="著者名の部分一致フィルタ"),
    session: AsyncSession = Depends(get_session),
) -> RepoStatsResponse:
    """アクティブリポジトリごとの今日・7日・30日のコミット数を取得する。"""
    service = DashboardService(session)
    stats = await service.get_repository_stats(author=_author_or_default(author))
    return RepoStatsResponse(
        data=[
            RepoStats(
                repo_id=s.repo_id,
                name=s.name,
                today_count=s.today_count,
                week_count=s.week_count,
                month_count=s.month_count,
                last_commit_at=s.last_commit_at,
            )
            for s in stats
        ],
    )


@router.get(
    "/authors",
    response_model=AuthorBreakdownResponse,
    summary="著者別内訳",
)
async def get_author_breakdown(
    days: int | None = Query(default=None, ge=1, le=3650, description="遡る日数"),
    repo_ids: list[int] | None = Query(default=None, description="対象リポジトリID"),
    session: AsyncSession = Depends(get_session),
) -> AuthorBreakdownResponse:
    """期間内のコミット数を著者別に取得する。"""
    window_days = days or settings.CALENDAR_WINDOW_DAYS
    service = DashboardService(session)
    breakdown = await service.get_author_breakdown(
        repo_ids=repo_ids,
        window_days=window_days,
    )
    return AuthorBreakdownResponse(
        window_days=window_days,
        data=[
            AuthorBreakdown(author_name=name, commit_count=count)
            for name, count in breakdown
        ],
    )
