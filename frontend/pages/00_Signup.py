"""Signup page for Terra Voyage."""

import streamlit as st
from auth import auth

st.set_page_config(
    page_title="Sign Up - Terra Voyage",
    page_icon="📝",
    layout="centered",
)

if auth.is_authenticated:
    st.success("You are already logged in!")
    if st.button("🏠 Go to Home", use_container_width=True):
        st.switch_page("Home.py")
    st.stop()

st.title("📝 Create your account")

with st.form("signup_form"):
    name = st.text_input("👤 Name", placeholder="How should collaborators see you?")
    email = st.text_input("📧 Email", placeholder="you@example.com")
    password = st.text_input("🔒 Password", type="password", help="At least 8 characters")
    confirm = st.text_input("🔒 Confirm password", type="password")
    submitted = st.form_submit_button("Create account", use_container_width=True, type="primary")

if submitted:
    if not email or not password:
        st.error("Email and password are required")
    elif password != confirm:
        st.error("Passwords do not match")
    elif len(password) < 8:
        st.error("Password must be at least 8 characters")
    elif auth.signup(email, password, name):
        st.switch_page("pages/03_Onboarding.py")

st.divider()
if st.button("🔑 I already have an account"):
    st.switch_page("pages/00_Login.py")
