"""Per-provider OAuth2 token sessions.

A session holds the access/refresh token pair for one provider for the life of
the process. ``authorized_request`` is the only way handlers talk to a
provider's API: on a 401 it refreshes once and retries once, never more.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Iterable, Optional
from urllib.parse import urlencode

import requests
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from lifedash.config import Settings
from lifedash.errors import UnauthenticatedError, UpstreamError
from lifedash.models import SessionStatus, TokenInfo


logger = logging.getLogger(__name__)


def _scope_string(scopes: Iterable[str] | str | None, sep: str) -> str:
    if scopes is None:
        return ""
    if isinstance(scopes, str):
        return scopes
    return sep.join(s.strip() for s in scopes if s and s.strip())


class TokenSession:
    provider = "oauth"
    display_name = "OAuth provider"
    authorize_endpoint = ""
    token_endpoint = ""
    default_scopes = ""
    scope_separator = " "

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        *,
        http: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ):
        self.client_id = client_id or ""
        self.client_secret = client_secret or ""
        self.redirect_uri = redirect_uri
        self.http = http if http is not None else requests.Session()
        self.timeout = timeout
        self._lock = threading.Lock()
        self._token: Optional[TokenInfo] = None

    # ---------- token state ----------

    @property
    def access_token(self) -> Optional[str]:
        token = self._token
        return token.access_token if token else None

    @property
    def refresh_token(self) -> Optional[str]:
        token = self._token
        return token.refresh_token if token else None

    def is_authenticated(self) -> bool:
        return self.access_token is not None

    def status(self) -> SessionStatus:
        token = self._token
        return SessionStatus(
            provider=self.provider,
            authenticated=token is not None,
            scope=token.scope if token else None,
            expires_at=token.expires_at if token else None,
        )

    def _store(self, payload: Dict[str, Any]) -> TokenInfo:
        expires_at = payload.get("expires_at")
        if expires_at is None and payload.get("expires_in") is not None:
            expires_at = int(time.time()) + int(payload["expires_in"])
        with self._lock:
            previous = self._token
            token = TokenInfo(
                access_token=str(payload["access_token"]),
                # Providers usually keep the refresh token unchanged on refresh.
                refresh_token=payload.get("refresh_token") or (previous.refresh_token if previous else None),
                expires_at=int(expires_at) if expires_at is not None else None,
                scope=payload.get("scope") or (previous.scope if previous else None),
            )
            self._token = token
        return token

    # ---------- OAuth grants ----------

    def authorization_url(self, scopes: Iterable[str] | str | None = None, redirect_uri: Optional[str] = None) -> str:
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": redirect_uri or self.redirect_uri,
            "scope": _scope_string(scopes, self.scope_separator) or self.default_scopes,
        }
        return f"{self.authorize_endpoint}?{urlencode(params)}"

    def exchange_code(self, code: str, redirect_uri: Optional[str] = None) -> TokenInfo:
        """Trade an authorization code for tokens. Raises ``UpstreamError``; never retries."""
        payload = self._grant_authorization_code(code, redirect_uri or self.redirect_uri)
        if not payload.get("access_token"):
            raise UpstreamError(f"{self.display_name} token exchange returned no access token", body=str(payload))
        token = self._store(payload)
        logger.info("%s session authenticated (scope=%s)", self.display_name, token.scope)
        return token

    def refresh(self) -> bool:
        refresh_token = self.refresh_token
        if not refresh_token:
            return False
        try:
            payload = self._grant_refresh_token(refresh_token)
        except UpstreamError as exc:
            logger.error("%s token refresh error: %s", self.display_name, exc)
            return False
        if not payload.get("access_token"):
            logger.error("%s token refresh returned no access token", self.display_name)
            return False
        self._store(payload)
        logger.info("%s access token refreshed", self.display_name)
        return True

    def _grant_authorization_code(self, code: str, redirect_uri: str) -> Dict[str, Any]:
        raise NotImplementedError

    def _grant_refresh_token(self, refresh_token: str) -> Dict[str, Any]:
        raise NotImplementedError

    def _post_token_form(self, form: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = self.http.post(self.token_endpoint, data=form, timeout=self.timeout)
        except requests.RequestException as exc:
            raise UpstreamError(f"{self.display_name} token request failed: {exc}") from exc
        if resp.status_code >= 400:
            raise UpstreamError(f"{self.display_name} token request failed", status=resp.status_code, body=resp.text)
        try:
            payload = resp.json()
        except ValueError as exc:
            raise UpstreamError(f"{self.display_name} token response was not JSON", status=resp.status_code, body=resp.text) from exc
        if not isinstance(payload, dict):
            raise UpstreamError(f"{self.display_name} token response was not an object", status=resp.status_code, body=resp.text)
        return payload

    # ---------- API calls ----------

    def authorized_request(self, method: str, url: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        """Call the provider API with the bearer token.

        A 401 triggers one refresh and, if that succeeds, one retry. Any other
        failure, a failed refresh, or a second 401 raises ``UpstreamError``.
        """
        token = self.access_token
        if not token:
            raise UnauthenticatedError(f"Not authenticated with {self.display_name}")

        resp = self._send(method, url, params, token)
        if resp.status_code == 401:
            logger.info("%s returned 401 for %s %s; refreshing token", self.display_name, method.upper(), url)
            if not self.refresh():
                raise UpstreamError(f"{self.display_name} rejected the access token", status=401, body=resp.text)
            resp = self._send(method, url, params, self.access_token)
            if resp.status_code == 401:
                raise UpstreamError(f"{self.display_name} rejected the refreshed access token", status=401, body=resp.text)

        if resp.status_code >= 400:
            raise UpstreamError(f"{self.display_name} API error", status=resp.status_code, body=resp.text)
        return resp

    def _send(self, method: str, url: str, params: Optional[Dict[str, Any]], token: Optional[str]) -> requests.Response:
        try:
            return self.http.request(
                method.upper(),
                url,
                params=params,
                headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamError(f"{self.display_name} request failed: {exc}") from exc


class SpotifyTokenSession(TokenSession):
    """Spotify session; the token grants go through spotipy's ``SpotifyOAuth``."""

    provider = "spotify"
    display_name = "Spotify"
    authorize_endpoint = SpotifyOAuth.OAUTH_AUTHORIZE_URL
    token_endpoint = SpotifyOAuth.OAUTH_TOKEN_URL
    default_scopes = "user-read-currently-playing user-read-playback-state playlist-read-private"

    def get_oauth(self, redirect_uri: Optional[str] = None, scope: Optional[str] = None) -> SpotifyOAuth:
        try:
            return SpotifyOAuth(
                client_id=self.client_id or None,
                client_secret=self.client_secret or None,
                redirect_uri=redirect_uri or self.redirect_uri,
                scope=scope or self.default_scopes,
                cache_handler=MemoryCacheHandler(),
                requests_session=self.http,
                requests_timeout=self.timeout,
                open_browser=False,
            )
        except SpotifyOauthError as exc:
            raise UpstreamError(f"Spotify OAuth is not configured: {exc}") from exc

    def authorization_url(self, scopes: Iterable[str] | str | None = None, redirect_uri: Optional[str] = None) -> str:
        scope = _scope_string(scopes, self.scope_separator) or None
        return self.get_oauth(redirect_uri, scope).get_authorize_url()

    def _grant_authorization_code(self, code: str, redirect_uri: str) -> Dict[str, Any]:
        oauth = self.get_oauth(redirect_uri)
        try:
            return oauth.get_access_token(code, check_cache=False)
        except SpotifyOauthError as exc:
            raise UpstreamError("Spotify token exchange failed", body=str(exc)) from exc
        except requests.RequestException as exc:
            raise UpstreamError(f"Spotify token request failed: {exc}") from exc

    def _grant_refresh_token(self, refresh_token: str) -> Dict[str, Any]:
        oauth = self.get_oauth()
        try:
            return oauth.refresh_access_token(refresh_token)
        except SpotifyOauthError as exc:
            raise UpstreamError("Spotify token refresh failed", body=str(exc)) from exc
        except requests.RequestException as exc:
            raise UpstreamError(f"Spotify token request failed: {exc}") from exc


class StravaTokenSession(TokenSession):
    provider = "strava"
    display_name = "Strava"
    authorize_endpoint = "https://www.strava.com/oauth/authorize"
    token_endpoint = "https://www.strava.com/oauth/token"
    default_scopes = "read,activity:read"
    scope_separator = ","

    def _grant_authorization_code(self, code: str, redirect_uri: str) -> Dict[str, Any]:
        return self._post_token_form(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "grant_type": "authorization_code",
            }
        )

    def _grant_refresh_token(self, refresh_token: str) -> Dict[str, Any]:
        return self._post_token_form(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            }
        )


def build_sessions(settings: Settings, http: Optional[requests.Session] = None) -> Dict[str, TokenSession]:
    """Create the empty per-provider sessions owned by one server process."""
    return {
        "spotify": SpotifyTokenSession(
            settings.spotify_client_id,
            settings.spotify_client_secret,
            settings.spotify_redirect_uri,
            http=http,
            timeout=settings.http_timeout,
        ),
        "strava": StravaTokenSession(
            settings.strava_client_id,
            settings.strava_client_secret,
            settings.strava_redirect_uri,
            http=http,
            timeout=settings.http_timeout,
        ),
    }
