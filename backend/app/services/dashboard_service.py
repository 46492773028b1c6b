"""ダッシュボード集計サービス。

保存済みコミットをローカル暦日ごとに集計し、カレンダーヒートマップ、
今日のコミット一覧、日付別ドリルダウン、リポジトリ別統計を提供する。
集計結果は保存せず、呼び出しのたびにコミットストアから再構築する。
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dates import (
    day_range,
    get_local_timezone,
    local_day,
    start_of_day,
    trailing_window,
)
from app.models import Commit, Repository
from app.services.commit_store import CommitStore

# ---------------------------------------------------------------------------
# ヒートマップの段階（変更行数）
# ---------------------------------------------------------------------------
HEAT_THRESHOLDS: tuple[int, ...] = (50, 200, 500)


def heat_level(lines: int) -> int:
    """変更行数をヒートマップの段階 0〜4 に変換する。

    0行は0、50行未満は1、200行未満は2、500行未満は3、それ以上は4。
    """
    if lines <= 0:
        return 0
    for level, threshold in enumerate(HEAT_THRESHOLDS, start=1):
        if lines < threshold:
            return level
    return len(HEAT_THRESHOLDS) + 1


def matches_author(commit: Commit, author: str | None) -> bool:
    """著者名の部分一致（大文字小文字を区別）。author未指定なら常にTrue。"""
    return not author or author in commit.author_name


@dataclass
class DayStats:
    """1日分の集計値。"""

    commit_count: int = 0
    lines_added: int = 0
    lines_deleted: int = 0

    @property
    def total_lines(self) -> int:
        return self.lines_added + self.lines_deleted

    def add(self, commit: Commit) -> None:
        self.commit_count += 1
        self.lines_added += commit.lines_added
        self.lines_deleted += commit.lines_deleted


@dataclass
class RepositoryStats:
    """リポジトリ別の直近コミット数。"""

    repo_id: int
    name: str
    today_count: int
    week_count: int
    month_count: int
    last_commit_at: datetime | None


def bucket_by_day(
    commits: Iterable[Commit],
    tz: tzinfo,
    author: str | None = None,
) -> dict[datetime, DayStats]:
    """コミットをローカル暦日の0時をキーにして集計する。"""
    buckets: dict[datetime, DayStats] = {}
    for commit in commits:
        if not matches_author(commit, author):
            continue
        key = start_of_day(commit.committed_at, tz)
        buckets.setdefault(key, DayStats()).add(commit)
    return buckets


def calculate_streak(active_days: set[date], today: date) -> int:
    """連続コミット日数を計算する。

    今日にコミットがなければ昨日を起点とする。
    """
    check_date = today
    if check_date not in active_days:
        check_date = today - timedelta(days=1)
        if check_date not in active_days:
            return 0

    streak = 0
    while check_date in active_days:
        streak += 1
        check_date -= timedelta(days=1)
    return streak


class RepositoryIndex:
    """repo_id → Repository の読み取りキャッシュ。

    表示層がリクエストごとに ``load`` で作り直す。
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._by_id: dict[int, Repository] = {}

    async def load(self, repo_ids: Iterable[int] | None = None) -> "RepositoryIndex":
        stmt = select(Repository)
        if repo_ids is not None:
            stmt = stmt.where(Repository.repo_id.in_(list(repo_ids)))
        result = await self.session.execute(stmt)
        self._by_id = {repo.repo_id: repo for repo in result.scalars().all()}
        return self

    def get(self, repo_id: int) -> Repository | None:
        return self._by_id.get(repo_id)

    def name_of(self, repo_id: int) -> str | None:
        repo = self._by_id.get(repo_id)
        return repo.name if repo else None

    def commit_url(self, commit: Commit) -> str | None:
        repo = self._by_id.get(commit.repo_id)
        return commit.web_url(repo.remote_url) if repo else None


class DashboardService:
    """コミット集計クエリを実行するサービスクラス。"""

    def __init__(self, session: AsyncSession, tz: tzinfo | None = None) -> None:
        """DashboardServiceを初期化する。

        Args:
            session: 非同期データベースセッション。
            tz: 日単位集計に使うタイムゾーン。省略時は設定値。
        """
        self.session = session
        self.store = CommitStore(session)
        self.tz = tz or get_local_timezone()

    # ------------------------------------------------------------------
    # 対象リポジトリ
    # ------------------------------------------------------------------

    async def resolve_repo_ids(self, repo_ids: Sequence[int] | None = None) -> list[int]:
        """集計対象のリポジトリIDを返す。

        指定がなければ全アクティブリポジトリ、指定があればそのうち
        アクティブなもの。
        """
        stmt = select(Repository.repo_id).where(Repository.is_active.is_(True))
        if repo_ids:
            stmt = stmt.where(Repository.repo_id.in_(list(repo_ids)))
        stmt = stmt.order_by(Repository.repo_id)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def _collect(
        self,
        repo_ids: Sequence[int],
        start: datetime,
        end: datetime,
        author: str | None,
    ) -> list[Commit]:
        commits: list[Commit] = []
        for repo_id in repo_ids:
            rows = await self.store.get_commits(repo_id, start, end)
            commits.extend(c for c in rows if matches_author(c, author))
        return commits

    # ------------------------------------------------------------------
    # カレンダー
    # ------------------------------------------------------------------

    async def aggregate_daily(
        self,
        repo_ids: Sequence[int] | None = None,
        window_days: int = 30,
        author: str | None = None,
        now: datetime | None = None,
    ) -> dict[datetime, DayStats]:
        """直近 ``window_days`` 日のコミットを日別に集計する。

        Args:
            repo_ids: 対象リポジトリID。None/空の場合は全アクティブリポジトリ。
            window_days: 遡る日数（今日を含む）。
            author: 著者名の部分一致フィルタ。
            now: 基準時刻（テスト用）。

        Returns:
            ローカル暦日0時 → DayStats のマッピング。コミットの無い日は含まない。
        """
        start, end = trailing_window(window_days, self.tz, now)
        targets = await self.resolve_repo_ids(repo_ids)
        commits = await self._collect(targets, start, end, author)
        return bucket_by_day(commits, self.tz)

    async def get_today_commits(
        self,
        repo_ids: Sequence[int] | None = None,
        author: str | None = None,
        now: datetime | None = None,
    ) -> list[Commit]:
        """今日のコミットを全リポジトリ横断で新しい順に返す。"""
        today = (now or datetime.now(self.tz)).astimezone(self.tz).date()
        return await self.get_commits_on_date(today, repo_ids, author)

    async def get_commits_on_date(
        self,
        day: date,
        repo_ids: Sequence[int] | None = None,
        author: str | None = None,
    ) -> list[Commit]:
        """指定日のコミットを新しい順に返す（ドリルダウン表示用）。"""
        start, end = day_range(day, self.tz)
        targets = await self.resolve_repo_ids(repo_ids)
        commits = await self._collect(targets, start, end, author)
        return sorted(commits, key=lambda c: c.committed_at, reverse=True)

    # ------------------------------------------------------------------
    # 統計
    # ------------------------------------------------------------------

    def summarize(
        self,
        buckets: dict[datetime, DayStats],
        now: datetime | None = None,
    ) -> dict[str, int]:
        """日別集計から合計値と連続コミット日数を求める。"""
        today = (now or datetime.now(self.tz)).astimezone(self.tz).date()
        active_days = {local_day(day, self.tz) for day, s in buckets.items() if s.commit_count}
        return {
            "total_commits": sum(s.commit_count for s in buckets.values()),
            "lines_added": sum(s.lines_added for s in buckets.values()),
            "lines_deleted": sum(s.lines_deleted for s in buckets.values()),
            "active_days": len(active_days),
            "current_streak": calculate_streak(active_days, today),
        }

    async def get_repository_stats(
        self,
        author: str | None = None,
        now: datetime | None = None,
    ) -> list[RepositoryStats]:
        """アクティブリポジトリごとの今日・7日・30日のコミット数を返す。"""
        now = now or datetime.now(self.tz)
        today_start = start_of_day(now, self.tz)
        week_start = today_start - timedelta(days=7)
        month_start = today_start - timedelta(days=30)
        _, end = trailing_window(0, self.tz, now)

        stmt = (
            select(Repository)
            .where(Repository.is_active.is_(True))
            .order_by(Repository.name)
        )
        repos = (await self.session.execute(stmt)).scalars().all()

        stats: list[RepositoryStats] = []
        for repo in repos:
            commits = [
                c
                for c in await self.store.get_commits(repo.repo_id, month_start, end)
                if matches_author(c, author)
            ]
            stats.append(
                RepositoryStats(
                    repo_id=repo.repo_id,
                    name=repo.name,
                    today_count=sum(1 for c in commits if c.committed_at >= today_start),
                    week_count=sum(1 for c in commits if c.committed_at >= week_start),
                    month_count=len(commits),
                    last_commit_at=commits[0].committed_at if commits else None,
                )
            )
        return stats

    async def get_author_breakdown(
        self,
        repo_ids: Sequence[int] | None = None,
        window_days: int = 30,
        now: datetime | None = None,
    ) -> list[tuple[str, int]]:
        """期間内のコミット数を著者別に多い順で返す。"""
        start, end = trailing_window(window_days, self.tz, now)
        targets = await self.resolve_repo_ids(repo_ids)
        commits = await self.store.get_commits_for_repositories(targets, start, end)
        return Counter(c.author_name for c in commits).most_common()
