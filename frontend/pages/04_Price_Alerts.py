"""Flight and hotel price search, history charts and price alerts."""

import json
from datetime import date, timedelta

import streamlit as st
from auth import API_BASE_URL, auth, error_detail

st.set_page_config(page_title="Prices - Terra Voyage", page_icon="💸", layout="wide")
auth.require_auth()
auth.show_auth_sidebar()

st.title("💸 Prices & Alerts")


def search_form() -> dict | None:
    price_type = st.radio("Search for", ["hotel", "flight"], horizontal=True)
    with st.form("price_search"):
        if price_type == "hotel":
            destination = st.text_input("City", value="Lisbon")
            col1, col2, col3 = st.columns(3)
            checkin = col1.date_input("Check-in", value=date.today() + timedelta(days=30))
            checkout = col2.date_input("Check-out", value=date.today() + timedelta(days=33))
            adults = col3.number_input("Adults", min_value=1, max_value=20, value=2)
            params = {
                "type": "hotel",
                "destination": destination,
                "checkin_date": checkin.isoformat(),
                "checkout_date": checkout.isoformat(),
                "adults": int(adults),
            }
        else:
            col1, col2 = st.columns(2)
            origin = col1.text_input("From", value="JFK")
            destination = col2.text_input("To", value="LIS")
            col3, col4, col5 = st.columns(3)
            departure = col3.date_input("Departure", value=date.today() + timedelta(days=30))
            return_date = col4.date_input("Return", value=date.today() + timedelta(days=37))
            adults = col5.number_input("Adults", min_value=1, max_value=9, value=1)
            params = {
                "type": "flight",
                "origin": origin,
                "destination": destination,
                "departure_date": departure.isoformat(),
                "return_date": return_date.isoformat(),
                "adults": int(adults),
            }
        if st.form_submit_button("Search", type="primary"):
            return params
    return None


params = search_form()
if params:
    st.session_state.last_search = params

last = st.session_state.get("last_search")
if last:
    response = auth.request("POST", "/pricing/search", json=last)
    if response.status_code != 200:
        st.error(error_detail(response))
    else:
        body = response.json()
        cached = " (cached)" if body["cached"] else ""
        if body["lowest_price"] is not None:
            st.metric("Lowest price" + cached, f"${body['lowest_price']:.2f}")
        for result in body["results"]:
            with st.container(border=True):
                col1, col2 = st.columns([4, 1])
                col1.markdown(f"**{result['name']}** · {result['provider']}")
                col1.caption(f"{result['currency']} {result['price']:.2f}")
                link = result["affiliate_url"] or result["booking_url"]
                if link.startswith("/"):
                    link = f"{API_BASE_URL}{link}"
                col2.link_button("Book", link)

        search_params = {k: v for k, v in last.items() if k != "type"}
        history = auth.request(
            "GET",
            "/pricing/history",
            params={"type": last["type"], "params": json.dumps(search_params), "days": 30},
        )
        if history.status_code == 200:
            data = history.json()
            if data["history"]:
                st.line_chart(
                    {"price": [point["price"] for point in data["history"]]},
                    y="price",
                )
                stats = data["stats"]
                st.caption(
                    f"Low ${stats['lowest']:.2f} · High ${stats['highest']:.2f} · "
                    f"Avg ${stats['average']:.2f} · trend {stats['trend']} ({stats['change_percent']:+.1f}%)"
                )

        with st.form("new_alert"):
            target = st.number_input("Alert me when the price drops to", min_value=1.0, value=float(body["lowest_price"] or 100) * 0.9)
            if st.form_submit_button("🔔 Create alert"):
                created = auth.request(
                    "POST",
                    "/pricing/alerts",
                    json={"type": last["type"], "search_params": search_params, "target_price": target},
                )
                if created.status_code == 201:
                    st.success("Alert created")
                else:
                    st.error(error_detail(created))

st.divider()
st.subheader("🔔 Your alerts")
alerts = auth.request("GET", "/pricing/alerts")
for alert in alerts.json() if alerts.status_code == 200 else []:
    params = alert["search_params"]
    where = params.get("destination", "")
    if alert["type"] == "flight":
        where = f"{params.get('origin')} → {where}"
    with st.container(border=True):
        col1, col2, col3 = st.columns([4, 1, 1])
        current = f"${alert['current_price']:.2f}" if alert["current_price"] is not None else "not checked"
        col1.markdown(f"**{alert['type'].title()}** {where} · target ${alert['target_price']:.2f} · now {current}")
        col1.caption(f"{alert['alerts_sent']} alert(s) sent")
        label = "Pause" if alert["is_active"] else "Resume"
        if col2.button(label, key=f"toggle_{alert['alert_id']}"):
            auth.request("PATCH", f"/pricing/alerts/{alert['alert_id']}", json={"is_active": not alert["is_active"]})
            st.rerun()
        if col3.button("Delete", key=f"delete_{alert['alert_id']}"):
            auth.request("DELETE", f"/pricing/alerts/{alert['alert_id']}")
            st.rerun()
