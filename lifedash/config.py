from __future__ import annotations

import os

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field


DEFAULT_SPOTIFY_REDIRECT_URI = "http://localhost:3001/auth/spotify/callback"
DEFAULT_STRAVA_REDIRECT_URI = "http://localhost:3001/auth/strava/callback"


class Settings(BaseModel):
    """Runtime configuration read from the environment (and an optional .env).

    Credentials default to empty strings: a missing value shows up as a failed
    upstream authentication, not as a startup error.
    """

    spotify_client_id: str = ""
    spotify_client_secret: str = ""
    spotify_redirect_uri: str = DEFAULT_SPOTIFY_REDIRECT_URI
    spotify_running_playlist_id: str = ""

    strava_client_id: str = ""
    strava_client_secret: str = ""
    strava_redirect_uri: str = DEFAULT_STRAVA_REDIRECT_URI

    openweather_api_key: str = ""

    port: int = 3001
    frontend_url: str = "http://localhost:8501"
    http_timeout: float = Field(10.0, gt=0)
    log_level: str = "INFO"

    # Frontend
    api_base: str = "http://localhost:3001"
    dashboard_data_source: str = "live"
    dashboard_lat: float = 40.6782
    dashboard_lon: float = -73.9442

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv(dotenv_path=find_dotenv(usecwd=True))
        values = {}
        for name in cls.model_fields:
            raw = os.getenv(name.upper())
            if raw is not None and raw != "":
                values[name] = raw
        return cls(**values)
