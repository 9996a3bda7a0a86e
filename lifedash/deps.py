from __future__ import annotations

import requests
from fastapi import Request

from lifedash.config import Settings
from lifedash.errors import DashboardError
from lifedash.sessions import TokenSession


class UnknownProviderError(DashboardError):
    status_code = 404


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_http(request: Request) -> requests.Session:
    """Shared outbound session for calls that carry no user token."""
    return request.app.state.http


def get_token_session(request: Request, provider: str) -> TokenSession:
    session = request.app.state.sessions.get(provider)
    if session is None:
        raise UnknownProviderError(f"Unknown provider: {provider}")
    return session


def get_spotify_session(request: Request) -> TokenSession:
    return get_token_session(request, "spotify")


def get_strava_session(request: Request) -> TokenSession:
    return get_token_session(request, "strava")
