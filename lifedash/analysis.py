from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Mapping, Optional


METERS_PER_MILE = 1609.34
SECONDS_PER_DAY = 86400


def meters_to_miles(distance_m: float) -> float:
    return float(distance_m) / METERS_PER_MILE


def format_pace(distance_m: float, moving_time_s: float) -> str:
    """Return pace per mile as ``M:SS``.

    Minutes and seconds are floored. The pace is first kept to hundredths of a
    second so the metre/mile conversion error (8046.72 m is a hair over 5 miles)
    does not turn a 6:00 pace into 5:59.
    """
    miles = meters_to_miles(distance_m)
    if miles <= 0:
        return "0:00"
    total = math.floor(round(float(moving_time_s) / miles, 2))
    minutes = total // 60
    seconds = total % 60
    return f"{minutes}:{seconds:02d}"


def format_duration(moving_time_s: float) -> str:
    """``HH:MM:SS`` with a zero hour group dropped (``1800`` -> ``30:00``)."""
    total = int(moving_time_s) % SECONDS_PER_DAY
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    text = f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    if text.startswith("00:"):
        text = text[3:]
    return text


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into an aware datetime."""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    return parse_timestamp(now)


def is_run(activity: Mapping[str, Any]) -> bool:
    return activity.get("type") == "Run"


def weekly_mileage(activities: Iterable[Mapping[str, Any]], now: Optional[datetime] = None) -> float:
    """Miles run in the trailing seven days.

    Only ``type == "Run"`` activities whose start is strictly after ``now - 7 days``
    count.
    """
    cutoff = _now(now) - timedelta(days=7)
    total = 0.0
    for activity in activities:
        if not is_run(activity) or not activity.get("start_date"):
            continue
        if parse_timestamp(activity["start_date"]) > cutoff:
            total += meters_to_miles(activity.get("distance") or 0)
    return total


def relative_date_label(start: str | datetime, now: Optional[datetime] = None) -> str:
    started = parse_timestamp(start)
    diff_days = int((_now(now) - started).total_seconds() // SECONDS_PER_DAY)
    if diff_days <= 0:
        return "Today"
    if diff_days == 1:
        return "Yesterday"
    if diff_days < 7:
        return f"{diff_days} days ago"
    return f"{started.month}/{started.day}/{started.year}"
