"""Where the dashboard page gets its data: the live backend or fixed fixtures."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional, Protocol, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from lifedash.config import Settings
from lifedash.models import (
    ActivitySummaryView,
    BookView,
    CurrentTrack,
    NowPlayingView,
    PlaylistTrack,
    PlaylistView,
    RunSummary,
    ShoesView,
    SocialPost,
    WeatherView,
)
from lifedash.static_data import CURRENT_BOOK, RUNNING_SHOES, SOCIAL_POSTS


logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class DashboardSource(Protocol):
    def now_playing(self) -> Optional[NowPlayingView]: ...

    def running_playlist(self) -> Optional[PlaylistView]: ...

    def activities(self) -> Optional[ActivitySummaryView]: ...

    def weather(self, lat: float, lon: float) -> Optional[WeatherView]: ...

    def book(self) -> Optional[BookView]: ...

    def shoes(self) -> Optional[ShoesView]: ...

    def social_posts(self) -> List[SocialPost]: ...


class LiveSource:
    """Reads every panel from the backend API. A failing panel comes back as ``None``."""

    def __init__(self, api_base: str, *, http: Optional[requests.Session] = None, timeout: float = 10.0):
        self.api_base = api_base.rstrip("/")
        self.http = http if http is not None else requests.Session()
        self.timeout = timeout

    def _get(self, path: str, params: Optional[dict] = None) -> Any:
        try:
            resp = self.http.get(f"{self.api_base}{path}", params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("GET %s failed: %s", path, exc)
            return None
        if not resp.ok:
            logger.warning("GET %s returned HTTP %s", path, resp.status_code)
            return None
        try:
            return resp.json()
        except ValueError:
            logger.warning("GET %s returned a non-JSON body", path)
            return None

    def _get_model(self, path: str, model: Type[M], params: Optional[dict] = None) -> Optional[M]:
        data = self._get(path, params)
        if data is None:
            return None
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            logger.warning("GET %s returned an unexpected shape: %s", path, exc)
            return None

    def now_playing(self) -> Optional[NowPlayingView]:
        return self._get_model("/api/spotify/now-playing", NowPlayingView)

    def running_playlist(self) -> Optional[PlaylistView]:
        return self._get_model("/api/spotify/running-playlist", PlaylistView)

    def activities(self) -> Optional[ActivitySummaryView]:
        return self._get_model("/api/strava/activities", ActivitySummaryView)

    def weather(self, lat: float, lon: float) -> Optional[WeatherView]:
        return self._get_model("/api/weather", WeatherView, params={"lat": lat, "lon": lon})

    def book(self) -> Optional[BookView]:
        return self._get_model("/api/book", BookView)

    def shoes(self) -> Optional[ShoesView]:
        return self._get_model("/api/shoes", ShoesView)

    def social_posts(self) -> List[SocialPost]:
        data = self._get("/api/social")
        if not isinstance(data, list):
            return []
        posts = []
        for item in data:
            try:
                posts.append(SocialPost.model_validate(item))
            except ValidationError:
                continue
        return posts


class FixtureSource:
    """Fixed sample data for running the page without any accounts connected."""

    def now_playing(self) -> Optional[NowPlayingView]:
        return NowPlayingView(
            current_track=CurrentTrack(
                name="Running Up That Hill",
                artist="Kate Bush",
                album="Hounds of Love",
                album_art="https://i.scdn.co/image/ab67616d0000b273b2a2e7bb6b37c2f3f5ae908a",
                is_playing=True,
            )
        )

    def running_playlist(self) -> Optional[PlaylistView]:
        return PlaylistView(
            name="Morning Run Mix",
            tracks=[
                PlaylistTrack(name="Blinding Lights", artist="The Weeknd"),
                PlaylistTrack(name="Don't Stop Me Now", artist="Queen"),
                PlaylistTrack(name="Eye of the Tiger", artist="Survivor"),
            ],
        )

    def activities(self) -> Optional[ActivitySummaryView]:
        return ActivitySummaryView(
            recent_runs=[
                RunSummary(name="Morning Run", distance="5.2", duration="28:45", pace="5:32", date="Today"),
                RunSummary(name="Evening Run", distance="8.1", duration="45:20", pace="5:36", date="Yesterday"),
            ],
            weekly_mileage="24.3",
        )

    def weather(self, lat: float, lon: float) -> Optional[WeatherView]:
        return WeatherView(temp=68, condition="Partly Cloudy", location="Brooklyn, NY")

    def book(self) -> Optional[BookView]:
        return CURRENT_BOOK

    def shoes(self) -> Optional[ShoesView]:
        return RUNNING_SHOES

    def social_posts(self) -> List[SocialPost]:
        return list(SOCIAL_POSTS)


def load_source(settings: Settings, *, http: Optional[requests.Session] = None) -> DashboardSource:
    kind = (settings.dashboard_data_source or "live").strip().lower()
    if kind == "fixture":
        return FixtureSource()
    if kind != "live":
        raise ValueError(f"Unknown DASHBOARD_DATA_SOURCE: {settings.dashboard_data_source!r} (expected 'live' or 'fixture')")
    return LiveSource(settings.api_base, http=http, timeout=settings.http_timeout)


@dataclass
class DashboardSnapshot:
    now_playing: Optional[NowPlayingView] = None
    playlist: Optional[PlaylistView] = None
    activities: Optional[ActivitySummaryView] = None
    weather: Optional[WeatherView] = None
    book: Optional[BookView] = None
    shoes: Optional[ShoesView] = None
    posts: List[SocialPost] = field(default_factory=list)
    fetched_at: datetime = field(default_factory=datetime.now)


def fetch_all(source: DashboardSource, lat: float, lon: float) -> DashboardSnapshot:
    """Load every panel; the Spotify, Strava and weather fetches run concurrently."""

    def spotify():
        return source.now_playing(), source.running_playlist()

    with ThreadPoolExecutor(max_workers=3) as pool:
        spotify_future = pool.submit(spotify)
        strava_future = pool.submit(source.activities)
        weather_future = pool.submit(source.weather, lat, lon)
        now_playing, playlist = spotify_future.result()
        activities = strava_future.result()
        weather = weather_future.result()

    return DashboardSnapshot(
        now_playing=now_playing,
        playlist=playlist,
        activities=activities,
        weather=weather,
        book=source.book(),
        shoes=source.shoes(),
        posts=source.social_posts(),
    )
