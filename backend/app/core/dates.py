"""ローカル日付の計算ヘルパー。

コミット日時はUTCで保存し、日単位の集計は ``DEFAULT_TIMEZONE``
（未設定時はシステムのローカルタイムゾーン）の暦日で行う。
期間はすべて半開区間 ``[start, end)`` で扱う。
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo
from zoneinfo import ZoneInfo

from app.config import settings


def get_local_timezone(name: str | None = None) -> tzinfo:
    """集計に使うタイムゾーンを返す。

    Args:
        name: IANAタイムゾーン名。Noneの場合は設定値、それも無ければシステム設定。

    Returns:
        tzinfo インスタンス。
    """
    name = name or settings.DEFAULT_TIMEZONE
    if name:
        return ZoneInfo(name)
    return datetime.now().astimezone().tzinfo  # type: ignore[return-value]


def start_of_day(day: date | datetime, tz: tzinfo) -> datetime:
    """指定日（またはその日時が属する暦日）の0時をtz付きで返す。"""
    if isinstance(day, datetime):
        day = day.astimezone(tz).date() if day.tzinfo else day.date()
    return datetime.combine(day, time.min, tzinfo=tz)


def day_range(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """1日分の半開区間 ``[当日0時, 翌日0時)`` を返す。"""
    return start_of_day(day, tz), start_of_day(day + timedelta(days=1), tz)


def trailing_window(
    days: int,
    tz: tzinfo,
    now: datetime | None = None,
) -> tuple[datetime, datetime]:
    """今日を含む直近 ``days`` 日の半開区間を返す。

    ``days=30`` なら 30日前の0時から翌日0時まで。
    """
    now = now or datetime.now(tz)
    today = now.astimezone(tz).date()
    start = start_of_day(today - timedelta(days=days), tz)
    end = start_of_day(today + timedelta(days=1), tz)
    return start, end


def local_day(moment: datetime, tz: tzinfo) -> date:
    """日時が属するローカル暦日を返す。"""
    return moment.astimezone(tz).date()
