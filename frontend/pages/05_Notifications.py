"""Notification inbox with invitation accept/decline."""

import streamlit as st
from auth import auth, error_detail

ICONS = {
    "invitation": "✉️",
    "collaboration_joined": "🤝",
    "role_changed": "🎭",
    "member_removed": "🚪",
    "comment_added": "💬",
    "vote_added": "👍",
    "price_alert": "💸",
    "status_changed": "🔁",
}

st.set_page_config(page_title="Notifications - Terra Voyage", page_icon="🔔")
auth.require_auth()
auth.show_auth_sidebar()

st.title("🔔 Notifications")

unread_only = st.toggle("Unread only")
response = auth.request("GET", "/notifications", params={"limit": 50, "unread_only": unread_only})
if response.status_code != 200:
    st.error(error_detail(response))
    st.stop()

body = response.json()
col1, col2 = st.columns([3, 1])
col1.caption(f"{body['unread_count']} unread")
if body["unread_count"] and col2.button("Mark all read"):
    auth.request("PATCH", "/notifications", json={"mark_all": True})
    st.rerun()

if not body["notifications"]:
    st.info("Nothing here yet.")

for notification in body["notifications"]:
    icon = ICONS.get(notification["type"], "🔔")
    weight = "" if notification["is_read"] else "**"
    with st.container(border=True):
        st.markdown(f"{icon} {weight}{notification['title']}{weight}")
        st.write(notification["message"])
        st.caption(notification["created_at"][:16].replace("T", " "))

        nid = notification["notification_id"]
        token = notification["data"].get("token")
        cols = st.columns(4)
        if notification["type"] == "invitation" and token and not notification["is_read"]:
            if cols[0].button("Accept", key=f"accept_{nid}", type="primary"):
                accepted = auth.request("POST", "/collaboration/accept", json={"token": token})
                if accepted.status_code == 200:
                    auth.request("PATCH", "/notifications", json={"notification_id": nid})
                    st.session_state["selected_trip_id"] = accepted.json()["trip_id"]
                    st.switch_page("pages/02_Trip_Detail.py")
                else:
                    st.error(error_detail(accepted))
            if cols[1].button("Decline", key=f"decline_{nid}"):
                declined = auth.request("POST", "/collaboration/decline", json={"token": token})
                if declined.status_code == 204:
                    auth.request("PATCH", "/notifications", json={"notification_id": nid})
                    st.rerun()
                else:
                    st.error(error_detail(declined))
        elif not notification["is_read"]:
            if cols[0].button("Mark read", key=f"read_{nid}"):
                auth.request("PATCH", "/notifications", json={"notification_id": nid})
                st.rerun()
        if notification["trip_id"] and notification["type"] != "invitation":
            if cols[-1].button("Open trip", key=f"open_{nid}"):
                st.session_state["selected_trip_id"] = notification["trip_id"]
                st.switch_page("pages/02_Trip_Detail.py")
