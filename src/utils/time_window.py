from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any, Optional


def local_now() -> datetime:
    """プロセスのローカルタイムゾーンでの現在時刻"""
    return datetime.now().astimezone()


def to_local(value: datetime) -> datetime:
    # naive はローカル時刻として扱う
    return value.astimezone()


def reference_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return local_now()
    return to_local(now)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """GamePlan の日時文字列をローカルタイムゾーンの datetime に変換（不正値は None）"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_local(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min).astimezone()
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return to_local(parsed)


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def is_today(value: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if value is None:
        return False
    return to_local(value).date() == reference_now(now).date()


def is_yesterday(value: Optional[datetime], now: Optional[datetime] = None) -> bool:
    if value is None:
        return False
    yesterday = reference_now(now).date() - timedelta(days=1)
    return to_local(value).date() == yesterday


def is_in_range(value: Optional[datetime], start: datetime, end: datetime) -> bool:
    """start <= value <= end（両端を含む）"""
    if value is None:
        return False
    return to_local(start) <= to_local(value) <= to_local(end)


def is_on_date(value: Optional[datetime], day: date) -> bool:
    if value is None:
        return False
    return to_local(value).date() == day


def days_ago(days: int, now: Optional[datetime] = None) -> datetime:
    """n 日前の同時刻"""
    return reference_now(now) - timedelta(days=days)


def start_of_day(value: datetime) -> datetime:
    return to_local(value).replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    return to_local(value).replace(hour=23, minute=59, second=59, microsecond=999999)


def format_label(day: date) -> str:
    """トレンド表示用ラベル（例: 1/5/2024）"""
    return f"{day.month}/{day.day}/{day.year}"


def format_date(day: date) -> str:
    """表示用日付（例: Jan 5, 2024）"""
    return f"{day.strftime('%b')} {day.day}, {day.year}"
