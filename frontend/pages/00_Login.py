"""Login page for Terra Voyage."""

import streamlit as st
from auth import auth

st.set_page_config(
    page_title="Login - Terra Voyage",
    page_icon="🔑",
    layout="centered",
)

if auth.is_authenticated:
    st.success("You are already logged in!")
    col1, col2 = st.columns(2)
    with col1:
        if st.button("🗺️ Go to My Trips", use_container_width=True, type="primary"):
            st.switch_page("pages/01_My_Trips.py")
    with col2:
        if st.button("🏠 Go to Home", use_container_width=True):
            st.switch_page("Home.py")
    st.stop()

st.title("🔑 Login to Terra Voyage")
st.markdown("Welcome back! Please sign in to your account.")

with st.form("login_form"):
    email = st.text_input("📧 Email", placeholder="Enter your email address")
    password = st.text_input("🔒 Password", placeholder="Enter your password", type="password")

    col1, col2 = st.columns([1, 1])
    with col1:
        login_submitted = st.form_submit_button("🔑 Login", use_container_width=True)
    with col2:
        signup_instead = st.form_submit_button("📝 Sign Up Instead", use_container_width=True)

if signup_instead:
    st.switch_page("pages/00_Signup.py")

if login_submitted:
    if not email or not password:
        st.error("Please enter both email and password")
    elif auth.login(email, password):
        user = auth.current_user or {}
        target = "pages/01_My_Trips.py" if user.get("onboarding_completed") else "pages/03_Onboarding.py"
        st.switch_page(target)
