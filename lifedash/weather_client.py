from __future__ import annotations

import requests

from lifedash.errors import UpstreamError
from lifedash.models import WeatherView


OPENWEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"


def get_current_weather(http: requests.Session, api_key: str, lat: str, lon: str, timeout: float = 10.0) -> WeatherView:
    """Current conditions in imperial units. The call carries no user token."""
    try:
        resp = http.get(
            OPENWEATHER_URL,
            params={"lat": lat, "lon": lon, "appid": api_key, "units": "imperial"},
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise UpstreamError(f"OpenWeatherMap request failed: {exc}") from exc
    if resp.status_code >= 400:
        raise UpstreamError("OpenWeatherMap API error", status=resp.status_code, body=resp.text)
    try:
        payload = resp.json()
        conditions = payload.get("weather") or [{}]
        return WeatherView(
            temp=round(float(payload["main"]["temp"])),
            condition=conditions[0].get("main", ""),
            location=payload.get("name", ""),
        )
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise UpstreamError("Unexpected OpenWeatherMap payload", status=resp.status_code, body=resp.text) from exc
