from datetime import datetime, timedelta, timezone

import pytest


NOW_PLAYING_URL = "https://api.spotify.com/v1/me/player/currently-playing"
PLAYLIST_URL = "https://api.spotify.com/v1/playlists/pl123"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
STRAVA_TOKEN_URL = "https://www.strava.com/oauth/token"
ACTIVITIES_URL = "https://www.strava.com/api/v3/athlete/activities"
WEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"

TRACK_PAYLOAD = {
    "is_playing": True,
    "item": {
        "name": "Running Up That Hill",
        "artists": [{"name": "Kate Bush"}],
        "album": {"name": "Hounds of Love", "images": [{"url": "https://img.test/large.jpg"}, {"url": "https://img.test/small.jpg"}]},
    },
}


@pytest.fixture
def spotify_session(app, seed_token):
    return seed_token(app.state.sessions["spotify"], "sp-access", "sp-refresh")


@pytest.fixture
def strava_session(app, seed_token):
    return seed_token(app.state.sessions["strava"], "st-access", "st-refresh")


def _iso(moment):
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


# ---------- OAuth routes ----------


def test_auth_redirects_to_strava(client):
    r = client.get("/auth/strava", follow_redirects=False)
    assert r.status_code == 307
    assert r.headers["location"].startswith("https://www.strava.com/oauth/authorize?")
    assert "client_id=st-client" in r.headers["location"]


def test_auth_redirects_to_spotify(client):
    r = client.get("/auth/spotify", follow_redirects=False)
    assert r.status_code == 307
    assert r.headers["location"].startswith("https://accounts.spotify.com/authorize?")


def test_unknown_provider(client):
    r = client.get("/auth/myspace", follow_redirects=False)
    assert r.status_code == 404
    assert r.json() == {"error": "Unknown provider: myspace"}


def test_callback_exchanges_code_and_redirects_to_frontend(client, app, fake_http):
    fake_http.add("POST", STRAVA_TOKEN_URL, body={"access_token": "a1", "refresh_token": "r1", "expires_in": 21600})

    r = client.get("/auth/strava/callback?code=abc", follow_redirects=False)

    assert r.status_code == 302
    assert r.headers["location"] == "http://localhost:3000?strava=connected"
    assert app.state.sessions["strava"].access_token == "a1"


def test_spotify_callback(client, app, fake_http):
    fake_http.add("POST", SPOTIFY_TOKEN_URL, body={"access_token": "sa", "refresh_token": "sr", "expires_in": 3600})

    r = client.get("/auth/spotify/callback?code=abc", follow_redirects=False)

    assert r.status_code == 302
    assert r.headers["location"] == "http://localhost:3000?spotify=connected"
    assert app.state.sessions["spotify"].is_authenticated()


def test_callback_exchange_failure_returns_500(client, app, fake_http, caplog):
    fake_http.add("POST", STRAVA_TOKEN_URL, status=400, body={"message": "Bad Request"})

    r = client.get("/auth/strava/callback?code=abc", follow_redirects=False)

    assert r.status_code == 500
    assert r.json() == {"error": "Failed to authenticate with Strava"}
    assert not app.state.sessions["strava"].is_authenticated()
    assert "Strava auth error" in caplog.text


def test_callback_without_code(client, fake_http):
    r = client.get("/auth/spotify/callback", follow_redirects=False)
    assert r.status_code == 400
    assert r.json() == {"error": "Missing authorization code"}
    assert fake_http.calls == []


def test_callback_with_provider_error(client, fake_http):
    r = client.get("/auth/spotify/callback?error=access_denied", follow_redirects=False)
    assert r.status_code == 400
    assert r.json() == {"error": "access_denied"}
    assert fake_http.calls == []


# ---------- Spotify ----------


def test_now_playing_before_oauth_is_401_without_outbound_call(client, fake_http):
    r = client.get("/api/spotify/now-playing")
    assert r.status_code == 401
    assert r.json() == {"error": "Not authenticated with Spotify"}
    assert fake_http.calls == []


def test_now_playing_nothing_playing(client, fake_http, spotify_session):
    fake_http.add("GET", NOW_PLAYING_URL, status=204)

    r = client.get("/api/spotify/now-playing")

    assert r.status_code == 200
    assert r.json() == {"isPlaying": False}


def test_now_playing_track(client, fake_http, spotify_session):
    fake_http.add("GET", NOW_PLAYING_URL, body=TRACK_PAYLOAD)

    r = client.get("/api/spotify/now-playing")

    assert r.status_code == 200
    assert r.json() == {
        "currentTrack": {
            "name": "Running Up That Hill",
            "artist": "Kate Bush",
            "album": "Hounds of Love",
            "albumArt": "https://img.test/large.jpg",
            "isPlaying": True,
        }
    }


def test_now_playing_joins_artists(client, fake_http, spotify_session):
    payload = {
        "is_playing": False,
        "item": {"name": "Under Pressure", "artists": [{"name": "Queen"}, {"name": "David Bowie"}], "album": {"name": "Hot Space", "images": []}},
    }
    fake_http.add("GET", NOW_PLAYING_URL, body=payload)

    track = client.get("/api/spotify/now-playing").json()["currentTrack"]

    assert track["artist"] == "Queen, David Bowie"
    assert track["isPlaying"] is False
    assert "albumArt" not in track


def test_now_playing_refreshes_in_process_after_401(client, app, fake_http, spotify_session):
    fake_http.add("GET", NOW_PLAYING_URL, status=401, body={"error": {"status": 401, "message": "The access token expired"}})
    fake_http.add("GET", NOW_PLAYING_URL, body=TRACK_PAYLOAD)
    fake_http.add("POST", SPOTIFY_TOKEN_URL, body={"access_token": "sp-access-2", "expires_in": 3600})

    r = client.get("/api/spotify/now-playing", follow_redirects=False)

    assert r.status_code == 200
    assert r.json()["currentTrack"]["name"] == "Running Up That Hill"
    assert app.state.sessions["spotify"].access_token == "sp-access-2"
    assert len(fake_http.calls_to(SPOTIFY_TOKEN_URL)) == 1


def test_now_playing_failed_refresh_is_500(client, fake_http, spotify_session):
    fake_http.add("GET", NOW_PLAYING_URL, status=401, body={"error": {"status": 401}})
    fake_http.add("POST", SPOTIFY_TOKEN_URL, status=400, body={"error": "invalid_grant"})

    r = client.get("/api/spotify/now-playing", follow_redirects=False)

    assert r.status_code == 500
    assert r.json() == {"error": "Failed to fetch Spotify data"}
    assert len(fake_http.calls_to(NOW_PLAYING_URL)) == 1


def test_running_playlist_first_five_tracks(client, fake_http, spotify_session):
    items = [{"track": {"name": f"Song {i}", "artists": [{"name": f"Artist {i}"}]}} for i in range(8)]
    fake_http.add("GET", PLAYLIST_URL, body={"name": "Morning Run Mix", "tracks": {"items": items}})

    r = client.get("/api/spotify/running-playlist")

    assert r.status_code == 200
    body = r.json()
    assert body["name"] == "Morning Run Mix"
    assert body["tracks"] == [{"name": f"Song {i}", "artist": f"Artist {i}"} for i in range(5)]


def test_running_playlist_unauthenticated(client, fake_http):
    r = client.get("/api/spotify/running-playlist")
    assert r.status_code == 401
    assert fake_http.calls == []


def test_running_playlist_upstream_error(client, fake_http, spotify_session):
    fake_http.add("GET", PLAYLIST_URL, status=404, body={"error": {"status": 404, "message": "Not found."}})

    r = client.get("/api/spotify/running-playlist")

    assert r.status_code == 500
    assert r.json() == {"error": "Failed to fetch playlist"}


# ---------- Strava ----------


def test_strava_activities_summary(client, fake_http, strava_session):
    now = datetime.now(timezone.utc)
    activities = [
        {"name": "Morning Run", "type": "Run", "distance": 8046.72, "moving_time": 1800, "start_date": _iso(now - timedelta(hours=2))},
        {"name": "Commute", "type": "Ride", "distance": 12000, "moving_time": 2400, "start_date": _iso(now - timedelta(days=1))},
        {"name": "Evening Run", "type": "Run", "distance": 4828.02, "moving_time": 1500, "start_date": _iso(now - timedelta(days=1, hours=1))},
        {"name": "Tempo", "type": "Run", "distance": 1609.34, "moving_time": 400, "start_date": _iso(now - timedelta(days=3, hours=1))},
        {"name": "Long Run", "type": "Run", "distance": 16093.4, "moving_time": 5400, "start_date": _iso(now - timedelta(days=9))},
    ]
    fake_http.add("GET", ACTIVITIES_URL, body=activities)

    r = client.get("/api/strava/activities")

    assert r.status_code == 200
    body = r.json()
    assert body["weeklyMileage"] == "9.0"
    assert body["recentRuns"] == [
        {"name": "Morning Run", "distance": "5.0", "duration": "30:00", "pace": "6:00", "date": "Today"},
        {"name": "Evening Run", "distance": "3.0", "duration": "25:00", "pace": "8:20", "date": "Yesterday"},
        {"name": "Tempo", "distance": "1.0", "duration": "06:40", "pace": "6:40", "date": "3 days ago"},
    ]
    (call,) = fake_http.calls
    assert call.kwargs["params"] == {"per_page": 5}
    assert call.kwargs["headers"]["Authorization"] == "Bearer st-access"


def test_strava_activities_unauthenticated(client, fake_http):
    r = client.get("/api/strava/activities")
    assert r.status_code == 401
    assert r.json() == {"error": "Not authenticated with Strava"}
    assert fake_http.calls == []


def test_strava_upstream_failure(client, fake_http, strava_session):
    fake_http.add("GET", ACTIVITIES_URL, status=500, text="oops")

    r = client.get("/api/strava/activities")

    assert r.status_code == 500
    assert r.json() == {"error": "Failed to fetch Strava data"}


@pytest.mark.parametrize(
    "activity",
    [
        {"name": "Bad Date", "type": "Run", "distance": 5000, "moving_time": 1500, "start_date": "not-a-date"},
        {"name": "Bad Distance", "type": "Run", "distance": "far", "moving_time": 1500, "start_date": "2024-06-15T08:00:00Z"},
    ],
)
def test_strava_malformed_activity(client, fake_http, strava_session, activity):
    fake_http.add("GET", ACTIVITIES_URL, body=[activity])

    r = client.get("/api/strava/activities")

    assert r.status_code == 500
    assert r.json() == {"error": "Failed to fetch Strava data"}


# ---------- Weather ----------


@pytest.mark.parametrize("query", ["", "?lat=40.7", "?lon=-73.9", "?lat=&lon=-73.9"])
def test_weather_requires_coordinates(client, fake_http, query):
    r = client.get(f"/api/weather{query}")
    assert r.status_code == 400
    assert r.json() == {"error": "Latitude and longitude required"}
    assert fake_http.calls == []


def test_weather(client, fake_http):
    fake_http.add("GET", WEATHER_URL, body={"main": {"temp": 67.6}, "weather": [{"main": "Clouds"}], "name": "Brooklyn"})

    r = client.get("/api/weather?lat=40.68&lon=-73.94")

    assert r.status_code == 200
    assert r.json() == {"temp": 68, "condition": "Clouds", "location": "Brooklyn"}
    (call,) = fake_http.calls
    assert call.kwargs["params"] == {"lat": "40.68", "lon": "-73.94", "appid": "ow-key", "units": "imperial"}
    assert "Authorization" not in (call.kwargs.get("headers") or {})


def test_weather_upstream_failure(client, fake_http):
    fake_http.add("GET", WEATHER_URL, status=401, body={"cod": 401, "message": "Invalid API key"})

    r = client.get("/api/weather?lat=1&lon=2")

    assert r.status_code == 500
    assert r.json() == {"error": "Failed to fetch weather data"}


# ---------- Static ----------


def test_book(client, fake_http):
    r = client.get("/api/book")
    assert r.status_code == 200
    assert r.json()["title"] == "Project Hail Mary"
    assert r.json()["progress"] == 67
    assert "coverUrl" in r.json()
    assert fake_http.calls == []


def test_shoes(client):
    body = client.get("/api/shoes").json()
    assert body["current"] == {"brand": "Nike", "model": "Pegasus 40", "miles": 187, "maxMiles": 400}
    assert body["retired"] == [
        {"brand": "Hoka", "model": "Clifton 8", "miles": 423},
        {"brand": "Brooks", "model": "Ghost 14", "miles": 456},
    ]


def test_social(client):
    posts = client.get("/api/social").json()
    assert len(posts) == 4
    assert posts[0] == {"url": "https://picsum.photos/seed/1/400/400", "caption": "Brooklyn Bridge run"}


def test_status_and_health(client, strava_session):
    status = client.get("/api/status").json()
    assert status["spotify"] == {"provider": "spotify", "authenticated": False}
    assert status["strava"]["authenticated"] is True
    assert "expiresAt" in status["strava"]
    assert client.get("/health").json() == {"status": "ok"}
