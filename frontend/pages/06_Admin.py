"""Admin console: users, trip status jobs, price alerts, map quota and affiliate revenue."""

import streamlit as st
from auth import auth, error_detail

st.set_page_config(page_title="Admin - Terra Voyage", page_icon="🛠️", layout="wide")
auth.require_admin()
auth.show_auth_sidebar()

st.title("🛠️ Admin")

overview = auth.request("GET", "/admin/overview")
if overview.status_code == 200:
    data = overview.json()
    cols = st.columns(5)
    cols[0].metric("Users", data["users"])
    cols[1].metric("Trips", data["trips"])
    cols[2].metric("Collaborations", data["collaborations"])
    cols[3].metric("Active alerts", data["active_price_alerts"])
    cols[4].metric("Affiliate revenue", f"${data['affiliate']['revenue']:.2f}")
    st.caption(" · ".join(f"{k.title()}: {v}" for k, v in data["trips_by_status"].items()))

tab_users, tab_jobs, tab_maps, tab_affiliate = st.tabs(["Users", "Jobs", "Map quota", "Affiliate"])

with tab_users:
    page = st.number_input("Page", min_value=1, value=1)
    users = auth.request("GET", "/admin/users", params={"limit": 50, "offset": (page - 1) * 50})
    if users.status_code == 200:
        body = users.json()
        st.caption(f"{body['total']} users")
        for user in body["users"]:
            col1, col2 = st.columns([4, 1])
            locked = " · 🔒 locked" if user["locked_until"] else ""
            col1.write(f"**{user['email']}** · {user['name'] or ''} · {user['role'].title()}{locked}")
            target = "USER" if user["role"] == "ADMIN" else "ADMIN"
            if user["user_id"] != (auth.current_user or {}).get("user_id"):
                if col2.button(f"Make {target.lower()}", key=f"role_{user['user_id']}"):
                    changed = auth.request("PATCH", f"/admin/users/{user['user_id']}", json={"role": target})
                    if changed.status_code != 200:
                        st.error(error_detail(changed))
                    st.rerun()

with tab_jobs:
    st.markdown("#### Trip status transitions")
    pending = auth.request("GET", "/system/status-transitions")
    if pending.status_code == 200:
        st.json(pending.json())
    if st.button("Run status transitions"):
        result = auth.request("POST", "/system/status-transitions")
        if result.status_code == 200:
            r = result.json()
            st.success(f"Processed {r['processed']} trips, {r['transitions']} transitions, {r['errors']} errors")
        else:
            st.error(error_detail(result))

    st.markdown("#### Price alerts")
    force = st.checkbox("Ignore the hourly check interval")
    if st.button("Check price alerts"):
        result = auth.request("POST", "/admin/pricing/check-alerts", params={"force": force}, timeout=120)
        if result.status_code == 200:
            r = result.json()
            st.success(
                f"Checked {r['checked']}, skipped {r['skipped']}, triggered {r['triggered']}, "
                f"emails {r['emails_sent']}, errors {r['errors']}"
            )
        else:
            st.error(error_detail(result))

with tab_maps:
    quota = auth.request("GET", "/admin/maps/quota")
    if quota.status_code == 200:
        q = quota.json()
        status = q["status"]
        st.progress(min(status["usage_percentage"], 1.0), text=f"{q['total_requests']} / {q['daily_limit']} today")
        st.caption(
            f"Warning: {status['warning_level']} · service: {status['recommended_service']} · "
            f"resets in {q['time_until_reset_formatted']}"
        )
        with st.form("quota_limits"):
            daily = st.number_input("Daily limit", min_value=1, value=q["daily_limit"])
            monthly = st.number_input("Monthly limit", min_value=1, value=q["monthly_limit"])
            if st.form_submit_button("Update limits"):
                updated = auth.request(
                    "PUT", "/admin/maps/quota/limits", json={"daily_limit": int(daily), "monthly_limit": int(monthly)}
                )
                if updated.status_code == 200:
                    st.rerun()
                st.error(error_detail(updated))
        if st.button("Reset usage"):
            auth.request("POST", "/admin/maps/quota/reset")
            st.rerun()

with tab_affiliate:
    stats = auth.request("GET", "/admin/affiliate/stats")
    if stats.status_code == 200:
        s = stats.json()
        cols = st.columns(4)
        cols[0].metric("Clicks", s["total_clicks"])
        cols[1].metric("Conversions", s["conversions"])
        cols[2].metric("Conversion rate", f"{s['conversion_rate']:.1f}%")
        cols[3].metric("Pending", f"${s['pending_revenue']:.2f}")
        for partner in s["partners"]:
            st.write(f"- {partner['name']}: {partner['clicks']} clicks, ${partner['revenue']:.2f}")

    status_filter = st.selectbox("Status", ["", "pending", "confirmed", "paid", "rejected"])
    params = {"status": status_filter} if status_filter else {}
    commissions = auth.request("GET", "/admin/affiliate/commissions", params=params)
    if commissions.status_code == 200:
        for commission in commissions.json()["commissions"]:
            col1, col2 = st.columns([4, 1])
            col1.write(
                f"{commission['created_at'][:10]} · {commission['partner_id']} · "
                f"{commission['currency']} {commission['commission_amount']:.2f} · {commission['status']}"
            )
            if commission["status"] == "pending" and col2.button("Confirm", key=commission["commission_id"]):
                auth.request(
                    "PATCH",
                    f"/admin/affiliate/commissions/{commission['commission_id']}",
                    json={"status": "confirmed"},
                )
                st.rerun()

    export_format = st.radio("Export format", ["csv", "json"], horizontal=True)
    if st.button("Prepare export"):
        exported = auth.request("GET", "/admin/affiliate/export", params={"format": export_format})
        if exported.status_code == 200:
            st.download_button("Download", exported.content, file_name=f"commissions.{export_format}")
