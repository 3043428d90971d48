"""Single trip: itinerary, status, collaboration, sharing and export."""

import streamlit as st
from auth import auth, error_detail

ACTIVITY_TYPES = [
    "ATTRACTION",
    "RESTAURANT",
    "EXPERIENCE",
    "TRANSPORTATION",
    "ACCOMMODATION",
    "SHOPPING",
    "OTHER",
]
INVITE_ROLES = ["VIEWER", "EDITOR", "ADMIN"]
VOTE_ICONS = {1: "👍", 0: "😐", -1: "👎"}

st.set_page_config(page_title="Trip - Terra Voyage", page_icon="🧳", layout="wide")
auth.require_auth()
auth.show_auth_sidebar()


def show_status(trip: dict):
    trip_id = trip["trip_id"]
    response = auth.request("GET", f"/trips/{trip_id}/status")
    if response.status_code != 200:
        return
    info = response.json()
    st.markdown(f"**Status:** {info['label']} · {info['description']}")

    options = info["valid_next_statuses"]
    if trip["permissions"]["can_change_status"] and options:
        with st.form("status_form"):
            labels = {o["label"]: o["status"] for o in options}
            choice = st.selectbox("Move to", list(labels))
            reason = st.text_input("Reason (optional)")
            if st.form_submit_button("Change status"):
                changed = auth.request(
                    "PUT",
                    f"/trips/{trip_id}/status",
                    json={"status": labels[choice], "reason": reason or None},
                )
                if changed.status_code == 200:
                    st.success(changed.json()["message"])
                    st.rerun()
                else:
                    st.error(error_detail(changed))

    with st.expander("Status history"):
        history = auth.request("GET", f"/trips/{trip_id}/status-history")
        for entry in history.json() if history.status_code == 200 else []:
            who = "automatic" if entry["user_id"] is None else "manual"
            st.write(
                f"- {entry['timestamp'][:16]} · {entry['old_label']} → {entry['new_label']} "
                f"({entry['reason'] or who})"
            )


def show_votes(activity: dict, summaries: dict):
    summary = summaries.get(activity["activity_id"], {})
    cols = st.columns([1, 1, 1, 3])
    for col, value in zip(cols, (1, 0, -1)):
        with col:
            selected = summary.get("user_vote") == value
            if st.button(
                VOTE_ICONS[value],
                key=f"vote_{activity['activity_id']}_{value}",
                type="primary" if selected else "secondary",
            ):
                auth.request("POST", "/votes", json={"activity_id": activity["activity_id"], "vote": value})
                st.rerun()
    with cols[3]:
        if summary:
            st.caption(
                f"{summary['upvotes']} up · {summary['downvotes']} down · consensus: {summary['consensus']}"
            )


def show_itinerary(trip: dict):
    trip_id = trip["trip_id"]
    perms = trip["permissions"]

    if perms["can_regenerate"]:
        label = "🔄 Regenerate itinerary" if trip["activities"] else "✨ Generate itinerary"
        if st.button(label, type="primary"):
            with st.spinner("Planning your days..."):
                generated = auth.request("POST", f"/trips/{trip_id}/generate-itinerary", timeout=120)
            if generated.status_code == 200:
                body = generated.json()
                st.success(f"{body['activities_created']} activities planned")
                st.rerun()
            else:
                st.error(error_detail(generated))

    votes = auth.request("GET", f"/votes/trip/{trip_id}")
    summaries = {v["activity_id"]: v for v in votes.json()} if votes.status_code == 200 else {}

    by_day: dict[int, list[dict]] = {}
    for activity in trip["activities"]:
        by_day.setdefault(activity["day_number"], []).append(activity)

    if not by_day:
        st.info("No activities planned yet.")
    for day_number in sorted(by_day):
        st.markdown(f"#### Day {day_number}")
        for activity in sorted(by_day[day_number], key=lambda a: a["order_index"]):
            with st.container(border=True):
                start = activity["start_time"][11:16] if activity["start_time"] else ""
                price = f" · ${activity['price']:.0f}" if activity["price"] else ""
                st.markdown(f"**{start} {activity['name']}** · {activity['activity_type'].title()}{price}")
                if activity["location"]:
                    st.caption(activity["location"])
                if activity["description"]:
                    st.write(activity["description"])
                show_votes(activity, summaries)
                if perms["can_add_activities"] and st.button("Remove", key=f"rm_{activity['activity_id']}"):
                    auth.request("DELETE", f"/trips/{trip_id}/activities/{activity['activity_id']}")
                    st.rerun()

    if perms["can_add_activities"]:
        with st.expander("➕ Add activity"):
            with st.form("add_activity", clear_on_submit=True):
                name = st.text_input("Name *")
                col1, col2, col3 = st.columns(3)
                with col1:
                    activity_type = st.selectbox("Type", ACTIVITY_TYPES)
                with col2:
                    day_number = st.number_input("Day", min_value=1, value=1)
                with col3:
                    price = st.number_input("Price", min_value=0.0, value=0.0)
                location = st.text_input("Location")
                if st.form_submit_button("Add"):
                    added = auth.request(
                        "POST",
                        f"/trips/{trip_id}/activities",
                        json={
                            "name": name,
                            "activity_type": activity_type,
                            "day_number": int(day_number),
                            "price": price or None,
                            "location": location or None,
                        },
                    )
                    if added.status_code == 201:
                        st.rerun()
                    else:
                        st.error(error_detail(added))
    elif perms["reasons"]:
        st.caption(" · ".join(perms["reasons"]))


def show_comments(trip_id: str):
    response = auth.request("GET", "/comments", params={"trip_id": trip_id})
    comments = response.json() if response.status_code == 200 else []
    for comment in comments:
        st.markdown(f"**{comment['author']['name']}** · {comment['created_at'][:16]}")
        st.write(comment["content"])
        for reply in comment["replies"]:
            st.markdown(f"> **{reply['author']['name']}:** {reply['content']}")
        with st.form(f"reply_{comment['comment_id']}", clear_on_submit=True):
            text = st.text_input("Reply", key=f"reply_text_{comment['comment_id']}")
            if st.form_submit_button("Reply") and text:
                auth.request(
                    "POST",
                    "/comments",
                    json={"trip_id": trip_id, "content": text, "parent_id": comment["comment_id"]},
                )
                st.rerun()
        st.divider()

    with st.form("new_comment", clear_on_submit=True):
        text = st.text_area("Add a comment", max_chars=2000)
        if st.form_submit_button("Post") and text:
            posted = auth.request("POST", "/comments", json={"trip_id": trip_id, "content": text})
            if posted.status_code == 201:
                st.rerun()
            else:
                st.error(error_detail(posted))


def show_members(trip: dict):
    trip_id = trip["trip_id"]
    response = auth.request("GET", "/collaboration/members", params={"trip_id": trip_id})
    if response.status_code != 200:
        return
    data = response.json()
    can_manage = trip["role"] in ("OWNER", "ADMIN")

    for member in data["members"]:
        col1, col2 = st.columns([3, 1])
        with col1:
            st.write(f"**{member['name'] or member['email']}** · {member['role'].title()}")
        with col2:
            if can_manage and member["role"] != "OWNER":
                if st.button("Remove", key=f"remove_{member['user_id']}"):
                    removed = auth.request(
                        "DELETE",
                        "/collaboration/members",
                        params={"trip_id": trip_id, "user_id": member["user_id"]},
                    )
                    if removed.status_code != 204:
                        st.error(error_detail(removed))
                    st.rerun()

    for invitation in data["pending_invitations"]:
        st.caption(f"Invited {invitation['email']} as {invitation['role'].title()} · pending")

    if can_manage:
        with st.form("invite", clear_on_submit=True):
            email = st.text_input("Invite by email")
            role = st.selectbox("Role", INVITE_ROLES)
            message = st.text_input("Message (optional)")
            if st.form_submit_button("Send invitation") and email:
                invited = auth.request(
                    "POST",
                    "/collaboration/invite",
                    json={"trip_id": trip_id, "email": email, "role": role, "message": message or None},
                )
                if invited.status_code == 201:
                    st.success("Invitation sent")
                    st.code(invited.json()["invitation_url"])
                else:
                    st.error(error_detail(invited))


def show_share_and_export(trip: dict):
    trip_id = trip["trip_id"]
    col1, col2 = st.columns(2)

    with col1:
        st.markdown("#### 🔗 Public link")
        stats = auth.request("GET", "/share/stats", params={"trip_id": trip_id})
        info = stats.json() if stats.status_code == 200 else None
        if info and info["is_public"]:
            st.code(info["share_url"])
            st.caption(f"{info['view_count']} view(s)")
            if st.button("Stop sharing"):
                auth.request("DELETE", "/share", params={"trip_id": trip_id})
                st.rerun()
        if trip["role"] != "VIEWER":
            with st.form("share"):
                expires = st.number_input("Expires in days (0 = never)", min_value=0, max_value=365, value=30)
                show_budget = st.checkbox("Show budget")
                password = st.text_input("Password (optional)", type="password")
                if st.form_submit_button("Create share link"):
                    shared = auth.request(
                        "POST",
                        "/share",
                        json={
                            "trip_id": trip_id,
                            "options": {
                                "expires_in_days": int(expires),
                                "show_budget": show_budget,
                                "password": password or None,
                            },
                        },
                    )
                    if shared.status_code == 201:
                        st.rerun()
                    else:
                        st.error(error_detail(shared))

    with col2:
        st.markdown("#### 📤 Export")
        theme = st.selectbox("PDF theme", ["modern", "classic", "minimal"])
        paper = st.selectbox("Paper", ["A4", "Letter"])
        if st.button("Prepare PDF"):
            pdf = auth.request(
                "POST",
                "/export/pdf",
                json={"trip_id": trip_id, "options": {"theme": theme, "format": paper}},
            )
            if pdf.status_code == 200:
                st.download_button("Download PDF", pdf.content, file_name="itinerary.pdf", mime="application/pdf")
            else:
                st.error(error_detail(pdf))

        timezone_name = st.text_input("Calendar timezone", value="UTC")
        if st.button("Prepare calendar (.ics)"):
            ics = auth.request("POST", "/export/calendar", json={"trip_id": trip_id, "timezone": timezone_name})
            if ics.status_code == 200:
                st.download_button("Download .ics", ics.content, file_name="trip.ics", mime="text/calendar")
            else:
                st.error(error_detail(ics))
        if st.button("Google Calendar links"):
            links = auth.request(
                "POST", "/export/calendar", json={"trip_id": trip_id, "format": "google", "timezone": timezone_name}
            )
            for event in links.json().get("events", []) if links.status_code == 200 else []:
                st.markdown(f"- [{event['name']}]({event['url']})")


def main():
    trip_id = st.session_state.get("selected_trip_id")
    if not trip_id:
        st.info("Pick a trip first.")
        if st.button("Go to My Trips"):
            st.switch_page("pages/01_My_Trips.py")
        st.stop()

    response = auth.request("GET", f"/trips/{trip_id}")
    if response.status_code != 200:
        st.error(f"Could not load trip: {error_detail(response)}")
        st.stop()
    trip = response.json()

    st.title(f"🧳 {trip['title']}")
    st.caption(
        f"{trip['destination']} · {trip['start_date'][:10]} → {trip['end_date'][:10]} · "
        f"your role: {trip['role'].title()}"
    )
    show_status(trip)

    tab_plan, tab_comments, tab_people, tab_share = st.tabs(
        ["Itinerary", "Comments", "People", "Share & export"]
    )
    with tab_plan:
        show_itinerary(trip)
    with tab_comments:
        show_comments(trip_id)
    with tab_people:
        show_members(trip)
    with tab_share:
        show_share_and_export(trip)

    if trip["permissions"]["can_delete"]:
        st.divider()
        if st.button("🗑️ Delete trip"):
            if st.session_state.get(f"confirm_delete_{trip_id}"):
                deleted = auth.request("DELETE", f"/trips/{trip_id}")
                if deleted.status_code == 204:
                    st.session_state.pop("selected_trip_id", None)
                    st.switch_page("pages/01_My_Trips.py")
                else:
                    st.error(error_detail(deleted))
            else:
                st.session_state[f"confirm_delete_{trip_id}"] = True
                st.warning("Click delete again to confirm")


main()
