"""Authentication API endpoints and dependencies."""

import logging
from datetime import UTC, datetime
from uuid import UUID

__all__ = [
    "CurrentUser",
    "get_current_user",
    "get_current_db_user",
    "require_admin",
    "router",
]

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from backend.terra_voyage.config import get_settings
from backend.terra_voyage.db.models import User
from backend.terra_voyage.db.session import get_session
from backend.terra_voyage.models.common import UserRole
from backend.terra_voyage.security import (
    AuthenticationError,
    create_access_token,
    create_refresh_token,
    get_lockout_status,
    hash_password,
    record_login_attempt,
    validate_password,
    verify_access_token,
    verify_password,
    verify_refresh_token,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


# Pydantic models
class LoginRequest(BaseModel):
    """Login request payload."""
    email: EmailStr
    password: str


class SignupRequest(BaseModel):
    """Signup request payload."""
    email: EmailStr
    password: str
    name: str | None = Field(None, max_length=100)


class AuthResponse(BaseModel):
    """Authentication response."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = 900


class RefreshRequest(BaseModel):
    """Refresh token request."""
    refresh_token: str


class CurrentUser(BaseModel):
    """Current authenticated user context."""
    user_id: UUID
    email: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.admin


class MeResponse(CurrentUser):
    name: str | None = None
    onboarding_completed: bool = False
    email_notifications: bool = True


# HTTP Bearer token security scheme
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _tokens_for(user: User) -> AuthResponse:
    return AuthResponse(
        access_token=create_access_token(user.user_id, user.role),
        refresh_token=create_refresh_token(user.user_id, user.role),
        expires_in=get_settings().jwt_access_ttl_minutes * 60,
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> CurrentUser:
    """Get current authenticated user from JWT token.

    The role is read from the database, not the token, so a demotion takes
    effect on the next request.

    Raises:
        HTTPException: 401 if the token is missing, invalid or the user is gone
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Missing authorization token")

    try:
        payload = verify_access_token(credentials.credentials)
    except AuthenticationError as e:
        raise _unauthorized(str(e)) from e

    user = session.get(User, payload.user_id)
    if user is None:
        raise _unauthorized("User not found")

    return CurrentUser(user_id=user.user_id, email=user.email, role=UserRole(user.role))


def get_current_db_user(
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> User:
    """The authenticated user's ORM row, bound to the request session."""
    user = session.get(User, current_user.user_id)
    if user is None:
        raise _unauthorized("User not found")
    return user


def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Allow site administrators only."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required",
        )
    return current_user


def _find_user(session: Session, email: str) -> User | None:
    return session.execute(
        select(User).where(func.lower(User.email) == email.strip().lower())
    ).scalar_one_or_none()


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(request: SignupRequest, session: Session = Depends(get_session)) -> AuthResponse:
    """Create a new user account and return JWT tokens.

    Raises:
        HTTPException: 409 if the email is registered, 400 for a weak password
    """
    if _find_user(session, request.email) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    try:
        validate_password(request.password)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    user = User(
        email=request.email.strip().lower(),
        name=request.name,
        password_hash=hash_password(request.password),
        role=UserRole.user.value,
    )
    session.add(user)
    session.commit()
    logger.info("user_signed_up", extra={"user_id": str(user.user_id)})
    return _tokens_for(user)


@router.post("/login", response_model=AuthResponse)
def login(request: LoginRequest, session: Session = Depends(get_session)) -> AuthResponse:
    """Authenticate user and return JWT tokens.

    Raises:
        HTTPException: 401 on bad credentials, 423 while the account is locked
    """
    user = _find_user(session, request.email)
    if user is None:
        # Don't reveal whether email exists
        raise _unauthorized("Invalid email or password")

    now = datetime.now(UTC)
    lockout = get_lockout_status(user, now)
    if lockout.locked:
        raise HTTPException(
            status_code=status.HTTP_423_LOCKED,
            detail={
                "error": "Account temporarily locked",
                "locked_until": lockout.locked_until.isoformat(),
                "reason": "Too many failed login attempts",
            },
        )

    if not verify_password(request.password, user.password_hash):
        lockout = record_login_attempt(user, authentication_failed=True, now=now)
        session.commit()
        if lockout.locked:
            raise HTTPException(
                status_code=status.HTTP_423_LOCKED,
                detail={
                    "error": "Account temporarily locked",
                    "locked_until": lockout.locked_until.isoformat(),
                    "reason": "Too many failed login attempts",
                },
            )
        raise _unauthorized("Invalid email or password")

    record_login_attempt(user, authentication_failed=False, now=now)
    session.commit()
    return _tokens_for(user)


@router.post("/refresh", response_model=AuthResponse)
def refresh_token(request: RefreshRequest, session: Session = Depends(get_session)) -> AuthResponse:
    """Exchange a refresh token for a fresh token pair."""
    try:
        payload = verify_refresh_token(request.refresh_token)
    except AuthenticationError as e:
        raise _unauthorized(str(e)) from e

    user = session.get(User, payload.user_id)
    if user is None:
        raise _unauthorized("User not found")
    if get_lockout_status(user).locked:
        raise HTTPException(status_code=status.HTTP_423_LOCKED, detail="Account locked")
    return _tokens_for(user)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(current_user: CurrentUser = Depends(get_current_user)) -> Response:
    """Logout. Tokens are stateless, so the client discards them."""
    logger.info("user_logged_out", extra={"user_id": str(current_user.user_id)})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=MeResponse)
def get_current_user_info(user: User = Depends(get_current_db_user)) -> MeResponse:
    """Get current user information."""
    return MeResponse(
        user_id=user.user_id,
        email=user.email,
        role=UserRole(user.role),
        name=user.name,
        onboarding_completed=user.onboarding_completed,
        email_notifications=user.email_notifications,
    )
