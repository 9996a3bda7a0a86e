from datetime import datetime
from typing import Any, Dict

import streamlit as st

from lifedash.config import Settings
from lifedash.data_sources import DashboardSnapshot, fetch_all, load_source


def _connect_link(label: str, url: str):
    try:
        # Streamlit >= 1.30
        st.link_button(label, url)  # type: ignore[attr-defined]
    except AttributeError:
        st.markdown(f"[{label}]({url})")


def _get_query_params() -> Dict[str, Any]:
    # Streamlit 1.30+: st.query_params; older: experimental_get_query_params
    try:
        return dict(st.query_params)  # type: ignore[attr-defined]
    except AttributeError:
        return {k: v[0] if isinstance(v, list) and v else v for k, v in st.experimental_get_query_params().items()}


def announce_connections():
    """Show a toast after an OAuth callback redirected back here with `?<provider>=connected`."""
    params = _get_query_params()
    connected = [name for name, value in params.items() if value == "connected"]
    for name in connected:
        st.toast(f"{name.capitalize()} connected")
    if connected:
        st.session_state["refresh_requested"] = True
        try:
            st.query_params.clear()  # type: ignore[attr-defined]
        except AttributeError:
            st.experimental_set_query_params()


def _format_time(moment: datetime) -> str:
    return moment.strftime("%I:%M:%S %p").lstrip("0")


def load_snapshot(settings: Settings, force: bool = False) -> DashboardSnapshot:
    snapshot = st.session_state.get("snapshot")
    if snapshot is None or force:
        with st.spinner("Loading your world..."):
            source = load_source(settings)
            snapshot = fetch_all(source, settings.dashboard_lat, settings.dashboard_lon)
        st.session_state["snapshot"] = snapshot
    return snapshot


def render_header(snapshot: DashboardSnapshot):
    st.title("Now Playing: My Life")
    weather = snapshot.weather
    cols = st.columns(3)
    cols[0].markdown(f"📍 {weather.location if weather else '-'}")
    cols[1].markdown(f"☁️ {f'{weather.temp}°F • {weather.condition}' if weather else '-'}")
    cols[2].markdown(f"🗓️ {_format_time(datetime.now())}")


def render_now_playing(snapshot: DashboardSnapshot, settings: Settings):
    st.subheader("🎵 Now Playing")
    view = snapshot.now_playing
    if view is None:
        st.info("Spotify is not connected.")
        _connect_link("Connect Spotify", f"{settings.api_base}/auth/spotify")
        return
    track = view.current_track
    if track is None:
        st.caption("Nothing playing right now.")
        return
    if track.album_art:
        st.image(track.album_art, width="stretch")
    st.markdown(f"**{track.name}**")
    st.write(track.artist)
    if track.album:
        st.caption(track.album)
    if track.is_playing:
        st.success("Playing")


def render_playlist(snapshot: DashboardSnapshot):
    st.subheader("🏃 Running Playlist")
    playlist = snapshot.playlist
    if playlist is None:
        st.caption("Playlist unavailable.")
        return
    st.markdown(f"**{playlist.name}**")
    for track in playlist.tracks:
        st.markdown(f"{track.name}  \n<small>{track.artist}</small>", unsafe_allow_html=True)


def render_book(snapshot: DashboardSnapshot):
    st.subheader("📖 Currently Reading")
    book = snapshot.book
    if book is None:
        st.caption("No book on the nightstand.")
        return
    st.image(book.cover_url, width="stretch")
    st.markdown(f"**{book.title}**")
    st.write(book.author)
    st.progress(min(max(book.progress, 0), 100) / 100)
    st.caption(f"{book.progress}% complete")


def render_runs(snapshot: DashboardSnapshot, settings: Settings):
    st.subheader("🏅 Recent Runs")
    summary = snapshot.activities
    if summary is None:
        st.info("Strava is not connected.")
        _connect_link("Connect Strava", f"{settings.api_base}/auth/strava")
        return
    st.metric("This Week", f"{summary.weekly_mileage} miles")
    for run in summary.recent_runs:
        st.markdown(f"**{run.name}** · {run.date}")
        st.caption(f"{run.distance} mi · {run.duration} · {run.pace}/mi")


def render_shoes(snapshot: DashboardSnapshot):
    st.subheader("👟 Running Shoes")
    shoes = snapshot.shoes
    if shoes is None:
        st.caption("No shoe data.")
        return
    current = shoes.current
    st.markdown(f"**Current:** {current.brand} {current.model}")
    if current.max_miles:
        st.progress(min(current.miles / current.max_miles, 1.0))
        st.caption(f"{current.miles} miles / {current.max_miles} max")
    st.markdown("**Retired**")
    for shoe in shoes.retired:
        st.caption(f"{shoe.brand} {shoe.model} · {shoe.miles} miles")


def render_moments(snapshot: DashboardSnapshot):
    st.subheader("📸 Recent Moments")
    cols = st.columns(2)
    for idx, post in enumerate(snapshot.posts):
        cols[idx % 2].image(post.url, caption=post.caption, width="stretch")


def main():
    st.set_page_config(page_title="Now Playing: My Life", page_icon="🎵", layout="wide")

    settings = Settings.from_env()
    announce_connections()
    refresh = st.session_state.pop("refresh_requested", False)
    snapshot = load_snapshot(settings, force=refresh)

    render_header(snapshot)

    row_one = st.columns(3)
    with row_one[0]:
        render_now_playing(snapshot, settings)
    with row_one[1]:
        render_playlist(snapshot)
    with row_one[2]:
        render_book(snapshot)

    row_two = st.columns(3)
    with row_two[0]:
        render_runs(snapshot, settings)
    with row_two[1]:
        render_shoes(snapshot)
    with row_two[2]:
        render_moments(snapshot)

    st.divider()
    st.caption(f"Last updated: {snapshot.fetched_at.strftime('%m/%d/%Y, %I:%M:%S %p')}")
    if st.button("Refresh Data"):
        st.session_state["refresh_requested"] = True
        st.rerun()


if __name__ == "__main__":
    main()
