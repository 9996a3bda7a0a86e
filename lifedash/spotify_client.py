from __future__ import annotations

from typing import Any, Dict, List

import requests

from lifedash.errors import UpstreamError
from lifedash.models import CurrentTrack, NowPlayingView, PlaylistTrack, PlaylistView
from lifedash.sessions import TokenSession


SPOTIFY_API_BASE_URL = "https://api.spotify.com/v1"
PLAYLIST_PREVIEW_SIZE = 5


def _json(resp: requests.Response) -> Dict[str, Any]:
    try:
        payload = resp.json()
    except ValueError as exc:
        raise UpstreamError("Spotify response was not JSON", status=resp.status_code, body=resp.text) from exc
    if not isinstance(payload, dict):
        raise UpstreamError("Spotify response was not an object", status=resp.status_code, body=resp.text)
    return payload


def _artists(track: Dict[str, Any]) -> str:
    return ", ".join(a.get("name", "") for a in track.get("artists", []) or [])


def get_now_playing(session: TokenSession) -> NowPlayingView:
    """Fetch the currently playing track; HTTP 204 means nothing is playing."""
    resp = session.authorized_request("GET", f"{SPOTIFY_API_BASE_URL}/me/player/currently-playing")
    if resp.status_code == 204 or not resp.content:
        return NowPlayingView(is_playing=False)
    payload = _json(resp)
    track = payload.get("item")
    if not track:
        return NowPlayingView(is_playing=False)
    album = track.get("album", {}) or {}
    images = album.get("images", []) or []
    return NowPlayingView(
        current_track=CurrentTrack(
            name=track.get("name", ""),
            artist=_artists(track),
            album=album.get("name"),
            album_art=images[0].get("url") if images else None,
            is_playing=bool(payload.get("is_playing")),
        )
    )


def get_playlist_preview(session: TokenSession, playlist_id: str, limit: int = PLAYLIST_PREVIEW_SIZE) -> PlaylistView:
    resp = session.authorized_request("GET", f"{SPOTIFY_API_BASE_URL}/playlists/{playlist_id}")
    payload = _json(resp)
    tracks: List[PlaylistTrack] = []
    for item in ((payload.get("tracks") or {}).get("items") or [])[:limit]:
        # Removed or unavailable tracks come back as null.
        track = (item or {}).get("track")
        if not track:
            continue
        tracks.append(PlaylistTrack(name=track.get("name", ""), artist=_artists(track)))
    return PlaylistView(name=payload.get("name", ""), tracks=tracks)
