"""Timestamp helpers for scheduled posts: parsing, past-due checks, display strings."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as dateutil_parser


def utc_now_iso() -> str:
    return to_iso(datetime.now(timezone.utc))


def to_iso(dt: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a `Z` suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a timestamp (string or datetime) to timezone-aware UTC; None if unparseable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = dateutil_parser.isoparse(value)
        except ValueError:
            try:
                parsed = dateutil_parser.parse(value)
            except (ValueError, OverflowError):
                return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_date_time(date_str: Optional[str], time_str: Optional[str], tz_name: str = "UTC") -> Optional[str]:
    """Combine 'YYYY-MM-DD' and 'HH:MM' form inputs (in tz_name) into an ISO UTC string."""
    if not date_str or not time_str:
        return None
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        tz = timezone.utc
    try:
        local = datetime.strptime(f"{date_str}T{time_str}", "%Y-%m-%dT%H:%M")
    except ValueError:
        return None
    return to_iso(local.replace(tzinfo=tz))


def is_past(value: Any, now: Optional[datetime] = None) -> bool:
    ts = parse_timestamp(value)
    if ts is None:
        return False
    return ts < (now or datetime.now(timezone.utc))


def is_on_date(value: Any, day: date) -> bool:
    ts = parse_timestamp(value)
    return ts is not None and ts.date() == day


def relative_time(value: Any, now: Optional[datetime] = None) -> str:
    """'in 5m', 'in 3h', 'in 2d', '5m ago', '3h ago', '2d ago'."""
    ts = parse_timestamp(value)
    if ts is None:
        return "Invalid date"
    now = now or datetime.now(timezone.utc)
    diff = (ts - now).total_seconds()
    mins = round(diff / 60)
    hours = round(diff / 3600)
    days = round(diff / 86400)
    if mins < 0:
        if abs(mins) < 60:
            return f"{abs(mins)}m ago"
        if abs(days) < 1:
            return f"{abs(hours)}h ago"
        return f"{abs(days)}d ago"
    if mins < 60:
        return f"in {mins}m"
    if hours < 24:
        return f"in {hours}h"
    return f"in {days}d"


def _clock(dt: datetime) -> str:
    return dt.strftime("%I:%M %p").lstrip("0")


def format_schedule_display(value: Any, now: Optional[datetime] = None, tz_name: str = "UTC") -> str:
    """'Today at 2:30 PM', 'Tomorrow at 9:00 AM', else 'Feb 15, 2:30 PM'."""
    ts = parse_timestamp(value)
    if ts is None:
        return "Invalid date"
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        tz = timezone.utc
    local = ts.astimezone(tz)
    today = (now or datetime.now(timezone.utc)).astimezone(tz).date()
    if local.date() == today:
        return f"Today at {_clock(local)}"
    if local.date() == today + timedelta(days=1):
        return f"Tomorrow at {_clock(local)}"
    return f"{local.strftime('%b %d')}, {_clock(local)}"
