"""Authentication and API helpers for the Streamlit frontend."""

import os
from typing import Any, Dict, Optional

import requests
import streamlit as st

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
REQUEST_TIMEOUT = 15


class AuthManager:
    """Manages user authentication state in Streamlit."""

    def __init__(self, backend_url: str = API_BASE_URL):
        self.backend_url = backend_url.rstrip("/")
        self._ensure_session_initialized()

    def _ensure_session_initialized(self):
        """Ensure session state has the required keys initialized."""
        if "access_token" not in st.session_state:
            st.session_state.access_token = None
        if "refresh_token" not in st.session_state:
            st.session_state.refresh_token = None
        if "current_user" not in st.session_state:
            st.session_state.current_user = None

    @property
    def is_authenticated(self) -> bool:
        """Check if user is currently authenticated."""
        return st.session_state.get("access_token") is not None

    @property
    def current_user(self) -> Optional[Dict[str, Any]]:
        """Get current user information."""
        return st.session_state.get("current_user")

    @property
    def is_admin(self) -> bool:
        user = self.current_user or {}
        return user.get("role") == "ADMIN"

    def signup(self, email: str, password: str, name: Optional[str] = None) -> bool:
        """Sign up a new user."""
        try:
            response = requests.post(
                f"{self.backend_url}/auth/signup",
                json={"email": email, "password": password, "name": name or None},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.exceptions.RequestException as e:
            st.error(f"Connection error: {e}")
            return False

        if response.status_code == 201:
            self._save_tokens(response.json())
            self._fetch_user_info()
            st.success(f"Welcome! Account created for {email}")
            return True
        st.error(f"Signup failed: {error_detail(response)}")
        return False

    def login(self, email: str, password: str) -> bool:
        """Log in an existing user."""
        try:
            response = requests.post(
                f"{self.backend_url}/auth/login",
                json={"email": email, "password": password},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.exceptions.RequestException as e:
            st.error(f"Connection error: {e}")
            return False

        if response.status_code == 200:
            self._save_tokens(response.json())
            self._fetch_user_info()
            return True
        if response.status_code == 423:
            detail = response.json().get("detail", {})
            st.error(f"Account locked until {detail.get('locked_until', 'later')}. Try again shortly.")
            return False
        st.error(f"Login failed: {error_detail(response)}")
        return False

    def logout(self):
        """Log out the current user."""
        if self.is_authenticated:
            try:
                requests.post(
                    f"{self.backend_url}/auth/logout",
                    headers=self.get_auth_headers(),
                    timeout=REQUEST_TIMEOUT,
                )
            except requests.exceptions.RequestException:
                # Tokens are stateless; clearing local state is enough
                pass
        self._clear_auth_state()
        st.rerun()

    def get_auth_headers(self) -> Dict[str, str]:
        """Get authorization headers for API requests."""
        token = st.session_state.get("access_token")
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    def refresh(self) -> bool:
        """Swap the refresh token for a new pair; False when the session is over."""
        refresh_token = st.session_state.get("refresh_token")
        if not refresh_token:
            return False
        try:
            response = requests.post(
                f"{self.backend_url}/auth/refresh",
                json={"refresh_token": refresh_token},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.exceptions.RequestException:
            return False
        if response.status_code != 200:
            self._clear_auth_state()
            return False
        self._save_tokens(response.json())
        return True

    def request(self, method: str, path: str, **kwargs) -> requests.Response:
        """Call the API as the current user, refreshing the access token once on 401."""
        url = f"{self.backend_url}{path}"
        kwargs.setdefault("timeout", REQUEST_TIMEOUT)
        response = requests.request(method, url, headers=self.get_auth_headers(), **kwargs)
        if response.status_code == 401 and self.refresh():
            response = requests.request(method, url, headers=self.get_auth_headers(), **kwargs)
        return response

    def _save_tokens(self, data: Dict[str, Any]):
        st.session_state.access_token = data.get("access_token")
        st.session_state.refresh_token = data.get("refresh_token")

    def _fetch_user_info(self):
        """Fetch and save current user information."""
        try:
            response = self.request("GET", "/auth/me")
        except requests.exceptions.RequestException:
            return
        if response.status_code == 200:
            st.session_state.current_user = response.json()
        else:
            self._clear_auth_state()

    def _clear_auth_state(self):
        for key in ("access_token", "refresh_token", "current_user"):
            st.session_state[key] = None

    def require_auth(self):
        """Stop rendering the page unless the user is logged in."""
        if self.is_authenticated and not self.current_user:
            self._fetch_user_info()

        if not self.is_authenticated:
            st.warning("🔐 Please log in to access this page")
            col1, col2 = st.columns(2)
            with col1:
                if st.button("🔑 Go to Login", use_container_width=True):
                    st.switch_page("pages/00_Login.py")
            with col2:
                if st.button("📝 Go to Sign Up", use_container_width=True):
                    st.switch_page("pages/00_Signup.py")
            st.stop()

    def require_admin(self):
        self.require_auth()
        if not self.is_admin:
            st.error("Administrator access required")
            st.stop()

    def show_auth_sidebar(self):
        """Show authentication status and controls in sidebar."""
        with st.sidebar:
            st.divider()
            if self.is_authenticated:
                user = self.current_user or {}
                st.success(f"👋 {user.get('name') or user.get('email', 'Traveler')}")
                if st.button("🚪 Logout", use_container_width=True, type="secondary", key="sidebar_logout_btn"):
                    self.logout()
            else:
                st.warning("🔐 Not logged in")
                col1, col2 = st.columns(2)
                with col1:
                    if st.button("🔑 Login", use_container_width=True, key="sidebar_login_btn"):
                        st.switch_page("pages/00_Login.py")
                with col2:
                    if st.button("📝 Sign Up", use_container_width=True, key="sidebar_signup_btn"):
                        st.switch_page("pages/00_Signup.py")


def error_detail(response: requests.Response) -> str:
    """Best-effort human message from an API error response."""
    try:
        detail = response.json().get("detail", response.text)
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(detail, dict):
        return detail.get("error") or str(detail)
    if isinstance(detail, list):
        return "; ".join(str(item.get("msg", item)) for item in detail)
    return str(detail)


# Global auth manager instance
auth = AuthManager()
