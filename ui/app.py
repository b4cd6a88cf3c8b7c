"""Streamlit UI for the Offbeat trip planner - chat, trip cards, saved trips.

Run with: streamlit run ui/app.py
"""

# Add project root to sys.path for imports to work when run via streamlit
import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio  # noqa: E402

import httpx  # noqa: E402
import streamlit as st  # noqa: E402

from offbeat.config import get_settings  # noqa: E402
from offbeat.models.trip import Trip  # noqa: E402
from offbeat.offline.backends import FileBackend  # noqa: E402
from offbeat.offline.connectivity import ConnectivityMonitor  # noqa: E402
from offbeat.offline.remote import RemoteTripClient, TripApiError  # noqa: E402
from offbeat.offline.store import OfflineTripStore  # noqa: E402
from offbeat.offline.sync import SyncCoordinator  # noqa: E402
from offbeat.utils.logging import StructuredSyncLogger  # noqa: E402
from offbeat.utils.metrics import PrometheusSyncMetrics  # noqa: E402
from ui.helpers import (  # noqa: E402
    build_activity_timeline,
    build_itinerary_view,
    build_map_view,
    build_sync_badge,
    build_trip_badge,
    send_chat_message,
)

settings = get_settings()
BACKEND_URL = settings.api_base_url
DEV_USER_ID = "1"

st.set_page_config(page_title="Offbeat Trip Planner", page_icon="🏕️", layout="wide")

# Initialize session state
if "messages" not in st.session_state:
    st.session_state.messages = []
if "session_id" not in st.session_state:
    st.session_state.session_id = None
if "connectivity" not in st.session_state:
    st.session_state.connectivity = ConnectivityMonitor(is_online=True)
if "store" not in st.session_state:
    st.session_state.store = OfflineTripStore(FileBackend(settings.offline_storage_dir))

store: OfflineTripStore = st.session_state.store
connectivity: ConnectivityMonitor = st.session_state.connectivity


def _coordinator(remote: RemoteTripClient) -> SyncCoordinator:
    return SyncCoordinator(
        store,
        remote,
        connectivity,
        timeout_seconds=settings.sync_timeout_seconds,
        max_attempts=settings.sync_max_attempts,
        backoff_base_seconds=settings.sync_backoff_base_seconds,
        backoff_max_seconds=settings.sync_backoff_max_seconds,
        metrics=PrometheusSyncMetrics(),
        sync_logger=StructuredSyncLogger(),
    )


async def _run_sync() -> str:
    remote = RemoteTripClient(BACKEND_URL, token=DEV_USER_ID, timeout=settings.http_timeout_seconds)
    coordinator = _coordinator(remote)
    try:
        result = await coordinator.sync()
        return result.message
    finally:
        coordinator.close()
        await remote.aclose()


async def _run_delete(offline_id: str) -> bool:
    remote = RemoteTripClient(BACKEND_URL, token=DEV_USER_ID, timeout=settings.http_timeout_seconds)
    coordinator = _coordinator(remote)
    try:
        return await coordinator.delete_trip(offline_id)
    finally:
        coordinator.close()
        await remote.aclose()


def render_trip(trip: Trip, key: str) -> None:
    """Render one trip card: summary, map data, itinerary, timeline."""
    st.markdown(f"### {trip.title}")
    st.caption(" · ".join(p for p in (trip.location, trip.duration, trip.difficulty_level) if p))
    if trip.description:
        st.markdown(trip.description)

    map_view = build_map_view(trip)
    if map_view["empty"]:
        st.info("No map data for this trip.")
    else:
        points = [
            {"lon": m["coordinates"][0], "lat": m["coordinates"][1]} for m in map_view["markers"]
        ]
        for route in map_view["routes"]:
            points.extend({"lon": lng, "lat": lat} for lng, lat in route["coordinates"])
        st.map(points)

    tab_itinerary, tab_timeline = st.tabs(["Itinerary", "Activities"])
    with tab_itinerary:
        view = build_itinerary_view(trip)
        for day in view["days"]:
            with st.expander(f"Day {day['day']}: {day['title']}"):
                st.markdown(day["description"])
                for activity in day["activities"]:
                    st.markdown(f"- {activity}")
                if day["accommodation"]:
                    st.caption(f"Stay: {day['accommodation']}")
        if view["guides"]:
            st.caption("Suggested guides: " + ", ".join(view["guides"]))
    with tab_timeline:
        timeline = build_activity_timeline(trip)
        for group in timeline["groups"]:
            st.markdown(f"**Day {group['day']}**")
            for item in group["items"]:
                st.markdown(f"- {item['title']}")

    if st.button("Save trip", key=f"save-{key}"):
        saved = store.save(trip)
        st.toast(f"Saved {saved.title} offline")


# =============================================================================
# SIDEBAR - OFFLINE STATUS
# =============================================================================
with st.sidebar:
    online = st.toggle("Online", value=connectivity.is_online)
    connectivity.set_online(online)

    metadata = store.load_sync_metadata()
    badge = build_sync_badge(online, store.pending_count, metadata.last_sync_attempt)
    st.subheader(badge["label"])
    if badge["pending_label"]:
        st.warning(badge["pending_label"])
    st.caption(f"Last sync: {badge['last_sync']}")
    if st.button(badge["button_label"], disabled=not badge["can_sync"], help=badge["hint"]):
        st.toast(asyncio.run(_run_sync()))
        st.rerun()

    st.divider()
    st.subheader("Saved trips")
    for entry in store.get_all():
        trip_badge = build_trip_badge(entry.sync_status)
        st.markdown(f"**{entry.title}**  `{trip_badge['label']}`", help=trip_badge["tooltip"])
        if st.button("Delete", key=f"delete-{entry.offline_id}"):
            try:
                asyncio.run(_run_delete(entry.offline_id))
            except (TripApiError, TimeoutError) as e:
                st.error(f"Could not delete trip: {e}")
            st.rerun()

# =============================================================================
# MAIN - CHAT
# =============================================================================
st.title("🏕️ Offbeat Trip Planner")

for index, message in enumerate(st.session_state.messages):
    with st.chat_message(message["role"]):
        st.markdown(message["content"])
        for trip_index, raw_trip in enumerate(message.get("tripData") or []):
            render_trip(Trip.model_validate(raw_trip), key=f"{index}-{trip_index}")

prompt = st.chat_input("Where do you want to go?")
if prompt:
    try:
        with st.spinner("Planning..."):
            response = send_chat_message(
                BACKEND_URL,
                prompt,
                session_id=st.session_state.session_id,
                messages=st.session_state.messages,
            )
        st.session_state.session_id = response["sessionId"]
        st.session_state.messages.append(response["userMessage"])
        st.session_state.messages.append(response["aiMessage"])
    except httpx.HTTPError as e:
        st.error(f"❌ {e}")
    st.rerun()
