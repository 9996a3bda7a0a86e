import logging
from typing import Dict, List, Optional

import requests
from fastapi import APIRouter, Depends, HTTPException, Request

from lifedash import spotify_client, strava_client, weather_client
from lifedash.config import Settings
from lifedash.deps import get_http, get_settings, get_spotify_session, get_strava_session
from lifedash.errors import InvalidInputError, UpstreamError
from lifedash.models import (
    ActivitySummaryView,
    BookView,
    NowPlayingView,
    PlaylistView,
    SessionStatus,
    ShoesView,
    SocialPost,
    WeatherView,
)
from lifedash.sessions import TokenSession
from lifedash.static_data import CURRENT_BOOK, RUNNING_SHOES, SOCIAL_POSTS


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["dashboard"])


def _upstream_failure(label: str, exc: UpstreamError, message: str) -> HTTPException:
    logger.error("%s: %s", label, exc)
    return HTTPException(status_code=500, detail=message)


@router.get("/spotify/now-playing", response_model=NowPlayingView, response_model_exclude_none=True)
def now_playing(session: TokenSession = Depends(get_spotify_session)):
    try:
        return spotify_client.get_now_playing(session)
    except UpstreamError as exc:
        raise _upstream_failure("Spotify API error", exc, "Failed to fetch Spotify data")


@router.get("/spotify/running-playlist", response_model=PlaylistView)
def running_playlist(
    session: TokenSession = Depends(get_spotify_session),
    settings: Settings = Depends(get_settings),
):
    if not session.is_authenticated():
        # Checked first so an unset playlist id never hides the 401.
        raise HTTPException(status_code=401, detail="Not authenticated with Spotify")
    try:
        if not settings.spotify_running_playlist_id:
            raise UpstreamError("SPOTIFY_RUNNING_PLAYLIST_ID is not set")
        return spotify_client.get_playlist_preview(session, settings.spotify_running_playlist_id)
    except UpstreamError as exc:
        raise _upstream_failure("Spotify playlist error", exc, "Failed to fetch playlist")


@router.get("/strava/activities", response_model=ActivitySummaryView)
def activities(session: TokenSession = Depends(get_strava_session)):
    try:
        return strava_client.get_activity_summary(session)
    except UpstreamError as exc:
        raise _upstream_failure("Strava API error", exc, "Failed to fetch Strava data")


@router.get("/weather", response_model=WeatherView)
def weather(
    lat: Optional[str] = None,
    lon: Optional[str] = None,
    settings: Settings = Depends(get_settings),
    http: requests.Session = Depends(get_http),
):
    if not lat or not lon:
        raise InvalidInputError("Latitude and longitude required")
    try:
        return weather_client.get_current_weather(http, settings.openweather_api_key, lat, lon, settings.http_timeout)
    except UpstreamError as exc:
        raise _upstream_failure("Weather API error", exc, "Failed to fetch weather data")


@router.get("/book", response_model=BookView)
def book():
    return CURRENT_BOOK


@router.get("/shoes", response_model=ShoesView, response_model_exclude_none=True)
def shoes():
    return RUNNING_SHOES


@router.get("/social", response_model=List[SocialPost])
def social():
    return SOCIAL_POSTS


@router.get("/status", response_model=Dict[str, SessionStatus], response_model_exclude_none=True)
def status(request: Request):
    """Which providers currently hold a token session."""
    return {name: session.status() for name, session in request.app.state.sessions.items()}
