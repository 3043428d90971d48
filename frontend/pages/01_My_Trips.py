"""Trip list and trip creation."""

from datetime import date, datetime, time, timedelta, timezone

import streamlit as st
from auth import auth, error_detail

STATUS_ICONS = {
    "DRAFT": "📝",
    "PLANNED": "📅",
    "ACTIVE": "🧳",
    "COMPLETED": "✅",
    "CANCELLED": "🚫",
}

st.set_page_config(page_title="My Trips - Terra Voyage", page_icon="🗺️", layout="wide")
auth.require_auth()
auth.show_auth_sidebar()


def to_utc(day: date) -> str:
    return datetime.combine(day, time.min, tzinfo=timezone.utc).isoformat()


def show_overlap_conflict(detail: dict):
    st.error(detail.get("error", "These dates overlap another trip"))
    suggestions = detail.get("suggested_dates") or []
    if suggestions:
        st.markdown("**Free windows of the same length:**")
        for s in suggestions:
            st.write(f"- {s['start_date'][:10]} → {s['end_date'][:10]}")


def main():
    st.title("🗺️ My Trips")

    col_search, col_status = st.columns([3, 1])
    with col_search:
        search = st.text_input("🔍 Search", placeholder="Title, destination or description")
    with col_status:
        status_filter = st.selectbox("Status", ["All", *STATUS_ICONS])

    page = st.session_state.get("trips_page", 1)
    params = {"page": page, "limit": 10}
    if search:
        params["search"] = search
    if status_filter != "All":
        params["status"] = status_filter

    response = auth.request("GET", "/trips", params=params)
    if response.status_code != 200:
        st.error(f"Failed to load trips: {error_detail(response)}")
        return
    data = response.json()
    pagination = data["pagination"]

    if not data["trips"]:
        st.info("No trips yet. Create your first one below!")
    for trip in data["trips"]:
        icon = STATUS_ICONS.get(trip["status"], "")
        with st.container(border=True):
            col1, col2 = st.columns([4, 1])
            with col1:
                st.markdown(f"### {icon} {trip['title']}")
                st.caption(
                    f"{trip['destination']} · {trip['start_date'][:10]} → {trip['end_date'][:10]} · "
                    f"{trip['travelers']} traveler(s)"
                )
            with col2:
                if st.button("Open", key=f"open_{trip['trip_id']}", use_container_width=True):
                    st.session_state["selected_trip_id"] = trip["trip_id"]
                    st.switch_page("pages/02_Trip_Detail.py")

    if pagination["pages"] > 1:
        col_prev, col_info, col_next = st.columns([1, 2, 1])
        with col_prev:
            if st.button("← Previous", disabled=not pagination["has_prev"]):
                st.session_state["trips_page"] = page - 1
                st.rerun()
        with col_info:
            st.caption(f"Page {pagination['page']} of {pagination['pages']} · {pagination['total']} trips")
        with col_next:
            if st.button("Next →", disabled=not pagination["has_next"]):
                st.session_state["trips_page"] = page + 1
                st.rerun()

    overlaps = auth.request("GET", "/trips/overlaps")
    if overlaps.status_code == 200 and overlaps.json():
        with st.expander(f"⚠️ {len(overlaps.json())} overlapping trip pair(s)"):
            for pair in overlaps.json():
                st.write(
                    f"- {pair['trip1']['title']} and {pair['trip2']['title']} "
                    f"share {pair['overlap_days']} day(s)"
                )

    st.divider()
    st.subheader("➕ New trip")
    with st.form("new_trip", clear_on_submit=False):
        col1, col2 = st.columns(2)
        with col1:
            title = st.text_input("Title *", placeholder="e.g., Lisbon long weekend")
            destination = st.text_input("Destination *", placeholder="e.g., Lisbon, Portugal")
            travelers = st.number_input("Travelers", min_value=1, max_value=50, value=1)
        with col2:
            start = st.date_input("Start date", value=date.today() + timedelta(days=30))
            end = st.date_input("End date", value=date.today() + timedelta(days=35))
            budget = st.number_input("Budget (USD)", min_value=0.0, value=0.0, step=100.0)
        description = st.text_area("Description", max_chars=1000)
        force = st.checkbox("Create even if it overlaps another trip")
        submitted = st.form_submit_button("Create trip", type="primary")

    if submitted:
        if not title or not destination:
            st.error("Title and destination are required")
            return
        payload = {
            "title": title,
            "destination": destination,
            "description": description or None,
            "start_date": to_utc(start),
            "end_date": to_utc(end),
            "travelers": int(travelers),
            "budget": budget or None,
        }
        created = auth.request("POST", "/trips", json=payload, params={"force": force})
        if created.status_code == 201:
            st.success("Trip created!")
            st.session_state["selected_trip_id"] = created.json()["trip_id"]
            st.switch_page("pages/02_Trip_Detail.py")
        elif created.status_code == 409:
            show_overlap_conflict(created.json()["detail"])
        else:
            st.error(f"Could not create trip: {error_detail(created)}")


main()
