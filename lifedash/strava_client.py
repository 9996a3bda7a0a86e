from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from lifedash.analysis import format_duration, format_pace, is_run, meters_to_miles, relative_date_label, weekly_mileage
from lifedash.errors import UpstreamError
from lifedash.models import ActivitySummaryView, RunSummary
from lifedash.sessions import TokenSession


STRAVA_API_BASE_URL = "https://www.strava.com/api/v3"
ACTIVITY_PAGE_SIZE = 5
RECENT_RUNS_LIMIT = 3


def summarize_run(activity: Dict[str, Any], now: datetime) -> RunSummary:
    distance = activity.get("distance") or 0
    moving_time = activity.get("moving_time") or 0
    return RunSummary(
        name=activity.get("name", ""),
        distance=f"{meters_to_miles(distance):.1f}",
        duration=format_duration(moving_time),
        pace=format_pace(distance, moving_time),
        date=relative_date_label(activity["start_date"], now) if activity.get("start_date") else "",
    )


def summarize_activities(activities: List[Dict[str, Any]], now: Optional[datetime] = None) -> ActivitySummaryView:
    """Project raw Strava activities onto recent runs plus weekly mileage.

    ``now`` is evaluated once so every run in one response shares the same clock.
    """
    now = now or datetime.now(timezone.utc)
    runs = [summarize_run(a, now) for a in activities if is_run(a)]
    return ActivitySummaryView(
        recent_runs=runs[:RECENT_RUNS_LIMIT],
        weekly_mileage=f"{weekly_mileage(activities, now):.1f}",
    )


def get_activity_summary(session: TokenSession, now: Optional[datetime] = None) -> ActivitySummaryView:
    resp = session.authorized_request(
        "GET", f"{STRAVA_API_BASE_URL}/athlete/activities", params={"per_page": ACTIVITY_PAGE_SIZE}
    )
    try:
        activities = resp.json()
    except ValueError as exc:
        raise UpstreamError("Strava response was not JSON", status=resp.status_code, body=resp.text) from exc
    if not isinstance(activities, list):
        raise UpstreamError("Strava response was not a list", status=resp.status_code, body=resp.text)
    try:
        return summarize_activities([a for a in activities if isinstance(a, dict)], now)
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise UpstreamError("Unexpected Strava payload", status=resp.status_code, body=resp.text) from exc
