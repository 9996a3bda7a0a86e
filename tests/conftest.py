import json
from typing import Any, NamedTuple, Optional

import pytest
import requests
from fastapi.testclient import TestClient

from lifedash.config import Settings
from lifedash.main import create_app


class Call(NamedTuple):
    method: str
    url: str
    kwargs: dict


def make_response(status: int = 200, body: Any = None, text: Optional[str] = None, url: str = "") -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.url = url
    resp.reason = "FAKE"
    resp.encoding = "utf-8"
    if body is not None:
        resp._content = json.dumps(body).encode("utf-8")
        resp.headers["Content-Type"] = "application/json"
    else:
        resp._content = (text or "").encode("utf-8")
    return resp


class FakeHTTP(requests.Session):
    """requests.Session double that answers from scripted routes and records every call.

    Each route holds a queue of responses; the last one repeats once the queue
    is down to one entry. Unrouted URLs raise ``ConnectionError``.
    """

    def __init__(self):
        super().__init__()
        self.routes = {}
        self.calls = []

    def add(self, method: str, url: str, status: int = 200, body: Any = None, text: Optional[str] = None):
        self.routes.setdefault((method.upper(), url), []).append((status, body, text))
        return self

    def calls_to(self, url: str, method: Optional[str] = None):
        return [c for c in self.calls if c.url == url and (method is None or c.method == method.upper())]

    def request(self, method, url, **kwargs):
        method = method.upper()
        self.calls.append(Call(method, url, kwargs))
        queue = self.routes.get((method, url))
        if not queue:
            raise requests.ConnectionError(f"no fake route for {method} {url}")
        status, body, text = queue.pop(0) if len(queue) > 1 else queue[0]
        return make_response(status, body, text, url)


@pytest.fixture
def fake_http():
    return FakeHTTP()


@pytest.fixture
def settings():
    return Settings(
        spotify_client_id="sp-client",
        spotify_client_secret="sp-secret",
        spotify_running_playlist_id="pl123",
        strava_client_id="st-client",
        strava_client_secret="st-secret",
        openweather_api_key="ow-key",
        frontend_url="http://localhost:3000",
    )


@pytest.fixture
def app(settings, fake_http):
    return create_app(settings, http=fake_http)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def seed_token():
    """Put a token pair straight into a session, as if an exchange had succeeded."""

    def _seed(session, access_token="access-1", refresh_token="refresh-1"):
        session._store({"access_token": access_token, "refresh_token": refresh_token, "expires_in": 3600})
        return session

    return _seed
