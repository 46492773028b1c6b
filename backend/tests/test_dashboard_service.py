"""Tests for ``app.services.dashboard_service``."""

from __future__ import annotations

from datetime import date, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.services.commit_store import CommitStore
from app.services.dashboard_service import (
    DashboardService,
    RepositoryIndex,
    calculate_streak,
    heat_level,
)
from tests.conftest import add_repository, make_commit, utc

NOW = utc(2026, 3, 15, 12)


@pytest.mark.parametrize(
    ("lines", "level"),
    [(0, 0), (1, 1), (49, 1), (50, 2), (199, 2), (200, 3), (499, 3), (500, 4), (10_000, 4)],
)
def test_heat_level(lines: int, level: int) -> None:
    assert heat_level(lines) == level


class TestCalculateStreak:
    def test_counts_back_from_today(self) -> None:
        today = date(2026, 3, 15)
        days = {today, today - timedelta(days=1), today - timedelta(days=2), today - timedelta(days=4)}
        assert calculate_streak(days, today) == 3

    def test_starts_yesterday_when_today_is_empty(self) -> None:
        today = date(2026, 3, 15)
        assert calculate_streak({date(2026, 3, 14), date(2026, 3, 13)}, today) == 2

    def test_broken_streak(self) -> None:
        assert calculate_streak({date(2026, 3, 12)}, date(2026, 3, 15)) == 0


class TestAggregateDaily:
    @pytest.mark.asyncio
    async def test_buckets_by_local_day(self, session: AsyncSession) -> None:
        repo = await add_repository(session, "alpha")
        await CommitStore(session).save_commits(
            [
                make_commit(repo.repo_id, "c1", utc(2026, 3, 15, 10), added=10, deleted=5),
                make_commit(repo.repo_id, "c2", utc(2026, 3, 15, 9), added=100),
                make_commit(repo.repo_id, "c3", utc(2026, 3, 14, 23, 30), added=3),
                make_commit(repo.repo_id, "old", utc(2026, 2, 1), added=7),
            ]
        )

        service = DashboardService(session, tz=timezone.utc)
        buckets = await service.aggregate_daily(window_days=30, now=NOW)

        assert sorted(buckets) == [utc(2026, 3, 14), utc(2026, 3, 15)]
        today = buckets[utc(2026, 3, 15)]
        assert today.commit_count == 2
        assert today.lines_added == 110
        assert today.lines_deleted == 5
        assert today.total_lines == 115
        assert buckets[utc(2026, 3, 14)].commit_count == 1

    @pytest.mark.asyncio
    async def test_time_zone_moves_commit_to_next_day(self, session: AsyncSession) -> None:
        repo = await add_repository(session, "alpha")
        await CommitStore(session).save_commits(
            [make_commit(repo.repo_id, "late", utc(2026, 3, 14, 23, 30))]
        )

        tokyo = timezone(timedelta(hours=9))
        service = DashboardService(session, tz=tokyo)
        buckets = await service.aggregate_daily(window_days=7, now=NOW)

        assert [d.date() for d in buckets] == [date(2026, 3, 15)]
        assert next(iter(buckets)).utcoffset() == timedelta(hours=9)

    @pytest.mark.asyncio
    async def test_author_substring_is_case_sensitive(self, session: AsyncSession) -> None:
        repo = await add_repository(session, "alpha")
        await CommitStore(session).save_commits(
            [
                make_commit(repo.repo_id, "a", utc(2026, 3, 15, 8), author="Alice Smith"),
                make_commit(repo.repo_id, "b", utc(2026, 3, 15, 9), author="Bob"),
            ]
        )
        service = DashboardService(session, tz=timezone.utc)

        matched = await service.aggregate_daily(author="Ali", now=NOW)
        unmatched = await service.aggregate_daily(author="ali", now=NOW)

        assert matched[utc(2026, 3, 15)].commit_count == 1
        assert unmatched == {}

    @pytest.mark.asyncio
    async def test_inactive_and_unselected_repositories(self, session: AsyncSession) -> None:
        alpha = await add_repository(session, "alpha")
        beta = await add_repository(session, "beta")
        hidden = await add_repository(session, "hidden", is_active=False)
        await CommitStore(session).save_commits(
            [
                make_commit(alpha.repo_id, "a", utc(2026, 3, 15, 8)),
                make_commit(beta.repo_id, "b", utc(2026, 3, 15, 9)),
                make_commit(hidden.repo_id, "h", utc(2026, 3, 15, 10)),
            ]
        )
        service = DashboardService(session, tz=timezone.utc)

        all_active = await service.aggregate_daily(now=NOW)
        only_beta = await service.aggregate_daily(repo_ids=[beta.repo_id], now=NOW)

        assert all_active[utc(2026, 3, 15)].commit_count == 2
        assert only_beta[utc(2026, 3, 15)].commit_count == 1

    @pytest.mark.asyncio
    async def test_empty_store(self, session: AsyncSession) -> None:
        await add_repository(session, "alpha")
        service = DashboardService(session, tz=timezone.utc)
        assert await service.aggregate_daily(now=NOW) == {}

    @pytest.mark.asyncio
    async def test_summary(self, session: AsyncSession) -> None:
        repo = await add_repository(session, "alpha")
        await CommitStore(session).save_commits(
            [
                make_commit(repo.repo_id, "c1", utc(2026, 3, 14, 10), added=4, deleted=1),
                make_commit(repo.repo_id, "c2", utc(2026, 3, 13, 10), added=2),
                make_commit(repo.repo_id, "c3", utc(2026, 3, 13, 11), added=2),
                make_commit(repo.repo_id, "c4", utc(2026, 3, 10, 11), added=1),
            ]
        )
        service = DashboardService(session, tz=timezone.utc)

        summary = service.summarize(await service.aggregate_daily(now=NOW), now=NOW)

        assert summary == {
            "total_commits": 4,
            "lines_added": 9,
            "lines_deleted": 1,
            "active_days": 3,
            "current_streak": 2,
        }


class TestCommitLists:
    @pytest.mark.asyncio
    async def test_today_across_repositories_newest_first(self, session: AsyncSession) -> None:
        alpha = await add_repository(session, "alpha")
        beta = await add_repository(session, "beta")
        await CommitStore(session).save_commits(
            [
                make_commit(alpha.repo_id, "a-early", utc(2026, 3, 15, 8)),
                make_commit(beta.repo_id, "b-mid", utc(2026, 3, 15, 9)),
                make_commit(alpha.repo_id, "a-late", utc(2026, 3, 15, 11)),
                make_commit(alpha.repo_id, "yesterday", utc(2026, 3, 14, 11)),
            ]
        )
        service = DashboardService(session, tz=timezone.utc)

        commits = await service.get_today_commits(now=NOW)

        assert [c.commit_hash for c in commits] == ["a-late", "b-mid", "a-early"]

    @pytest.mark.asyncio
    async def test_commits_on_date(self, session: AsyncSession) -> None:
        repo = await add_repository(session, "alpha")
        await CommitStore(session).save_commits(
            [
                make_commit(repo.repo_id, "midnight", utc(2026, 3, 14)),
                make_commit(repo.repo_id, "evening", utc(2026, 3, 14, 20)),
                make_commit(repo.repo_id, "next", utc(2026, 3, 15)),
            ]
        )
        service = DashboardService(session, tz=timezone.utc)

        commits = await service.get_commits_on_date(date(2026, 3, 14))

        assert [c.commit_hash for c in commits] == ["evening", "midnight"]


class TestStatistics:
    @pytest.mark.asyncio
    async def test_repository_stats(self, session: AsyncSession) -> None:
        alpha = await add_repository(session, "alpha")
        beta = await add_repository(session, "beta")
        await add_repository(session, "inactive", is_active=False)
        await CommitStore(session).save_commits(
            [
                make_commit(alpha.repo_id, "t", utc(2026, 3, 15, 9)),
                make_commit(alpha.repo_id, "w", utc(2026, 3, 10)),
                make_commit(alpha.repo_id, "m", utc(2026, 2, 20)),
                make_commit(alpha.repo_id, "x", utc(2026, 1, 1)),
            ]
        )
        service = DashboardService(session, tz=timezone.utc)

        stats = await service.get_repository_stats(now=NOW)

        assert [s.name for s in stats] == ["alpha", "beta"]
        alpha_stats = stats[0]
        assert (alpha_stats.today_count, alpha_stats.week_count, alpha_stats.month_count) == (1, 2, 3)
        assert alpha_stats.last_commit_at == utc(2026, 3, 15, 9)
        assert stats[1].month_count == 0
        assert stats[1].last_commit_at is None

    @pytest.mark.asyncio
    async def test_author_breakdown(self, session: AsyncSession) -> None:
        repo = await add_repository(session, "alpha")
        await CommitStore(session).save_commits(
            [
                make_commit(repo.repo_id, "1", utc(2026, 3, 15, 1), author="Bob"),
                make_commit(repo.repo_id, "2", utc(2026, 3, 15, 2), author="Alice"),
                make_commit(repo.repo_id, "3", utc(2026, 3, 15, 3), author="Bob"),
            ]
        )
        service = DashboardService(session, tz=timezone.utc)

        assert await service.get_author_breakdown(now=NOW) == [("Bob", 2), ("Alice", 1)]


@pytest.mark.asyncio
async def test_repository_index(session: AsyncSession) -> None:
    repo = await add_repository(session, "widgets", remote_url="git@github.com:acme/widgets.git")
    commit = make_commit(repo.repo_id, "f" * 40, utc(2026, 3, 15))

    index = await RepositoryIndex(session).load([repo.repo_id])

    assert index.get(repo.repo_id) is repo
    assert index.name_of(repo.repo_id) == "widgets"
    assert index.name_of(12345) is None
    assert index.commit_url(commit) == f"https://github.com/acme/widgets/commit/{'f' * 40}"
