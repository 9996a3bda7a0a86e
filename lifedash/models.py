from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class View(BaseModel):
    """Read-only projection serialised with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class TokenInfo(BaseModel):
    access_token: str = Field(..., description="Provider access token")
    refresh_token: str | None = Field(None, description="Provider refresh token")
    expires_at: int | None = Field(None, description="Epoch seconds when the token expires")
    scope: str | None = None


class SessionStatus(View):
    provider: str
    authenticated: bool
    scope: Optional[str] = None
    expires_at: Optional[int] = Field(None, alias="expiresAt")


class CurrentTrack(View):
    name: str
    artist: str
    album: Optional[str] = None
    album_art: Optional[str] = Field(None, alias="albumArt")
    is_playing: bool = Field(False, alias="isPlaying")


class NowPlayingView(View):
    """Either ``{"isPlaying": false}`` or ``{"currentTrack": {...}}``."""

    is_playing: Optional[bool] = Field(None, alias="isPlaying")
    current_track: Optional[CurrentTrack] = Field(None, alias="currentTrack")


class PlaylistTrack(View):
    name: str
    artist: str


class PlaylistView(View):
    name: str
    tracks: List[PlaylistTrack] = Field(default_factory=list)


class RunSummary(View):
    name: str
    distance: str
    duration: str
    pace: str
    date: str


class ActivitySummaryView(View):
    recent_runs: List[RunSummary] = Field(default_factory=list, alias="recentRuns")
    weekly_mileage: str = Field("0.0", alias="weeklyMileage")


class WeatherView(View):
    temp: int
    condition: str
    location: str


class BookView(View):
    title: str
    author: str
    progress: int
    cover_url: str = Field(..., alias="coverUrl")


class Shoe(View):
    brand: str
    model: str
    miles: int
    max_miles: Optional[int] = Field(None, alias="maxMiles")


class ShoesView(View):
    current: Shoe
    retired: List[Shoe] = Field(default_factory=list)


class SocialPost(View):
    url: str
    caption: str
