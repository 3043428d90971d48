"""Home page for Terra Voyage."""

import streamlit as st
from auth import auth

st.set_page_config(
    page_title="Terra Voyage",
    page_icon="🧭",
    layout="wide",
)

auth.show_auth_sidebar()

st.title("🧭 Terra Voyage")
st.markdown("Plan trips together: AI itineraries, shared decisions and price alerts")

if auth.is_authenticated:
    user = auth.current_user or {}
    st.success(f"🎉 Welcome back, **{user.get('name') or user.get('email', 'traveler')}**!")
    if not user.get("onboarding_completed"):
        st.info("Tell us how you like to travel so generated itineraries fit you.")
        if st.button("✨ Set up my profile", key="home_onboarding"):
            st.switch_page("pages/03_Onboarding.py")
else:
    st.info("👋 Welcome! Please log in or sign up to start planning.")
    col_auth1, col_auth2, _ = st.columns([1, 1, 2])
    with col_auth1:
        if st.button("🔑 Login", key="home_login", use_container_width=True):
            st.switch_page("pages/00_Login.py")
    with col_auth2:
        if st.button("📝 Sign Up", key="home_signup", use_container_width=True):
            st.switch_page("pages/00_Signup.py")

st.divider()

col1, col2, col3 = st.columns(3)

with col1:
    st.subheader("🗺️ Trips")
    st.markdown(
        """
        - Create trips without overlapping dates
        - Generate a day-by-day itinerary
        - Export to PDF or your calendar
        """
    )
    if st.button("Go to My Trips", key="nav_trips", use_container_width=True, disabled=not auth.is_authenticated):
        st.switch_page("pages/01_My_Trips.py")

with col2:
    st.subheader("🤝 Collaboration")
    st.markdown(
        """
        - Invite friends as editors or viewers
        - Comment and vote on activities
        - Share a read-only public link
        """
    )
    if st.button("Notifications", key="nav_notifications", use_container_width=True, disabled=not auth.is_authenticated):
        st.switch_page("pages/05_Notifications.py")

with col3:
    st.subheader("💸 Prices")
    st.markdown(
        """
        - Search flights and hotels
        - Watch price history and trends
        - Get alerted below a target price
        """
    )
    if st.button("Go to Price Alerts", key="nav_prices", use_container_width=True, disabled=not auth.is_authenticated):
        st.switch_page("pages/04_Price_Alerts.py")

if auth.is_admin:
    st.divider()
    if st.button("🛠️ Admin dashboard", key="nav_admin"):
        st.switch_page("pages/06_Admin.py")
