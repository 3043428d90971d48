"""User onboarding wizard endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from backend.terra_voyage.api.auth import get_current_db_user
from backend.terra_voyage.db.models import User
from backend.terra_voyage.db.session import get_session
from backend.terra_voyage.onboarding.profile import (
    OnboardingData,
    OnboardingFieldError,
    OnboardingStatus,
    complete_onboarding,
    get_onboarding_status,
    update_profile_field,
)

router = APIRouter(prefix="/user/onboarding", tags=["onboarding"])


class FieldUpdate(BaseModel):
    field: str
    value: Any = None


@router.get("", response_model=OnboardingStatus)
def onboarding_status(user: User = Depends(get_current_db_user)) -> OnboardingStatus:
    return get_onboarding_status(user)


@router.post("", response_model=OnboardingStatus)
def submit_onboarding(
    request: OnboardingData,
    user: User = Depends(get_current_db_user),
    session: Session = Depends(get_session),
) -> OnboardingStatus:
    """Store the completed wizard and mark onboarding done."""
    complete_onboarding(session, user, request)
    session.commit()
    return get_onboarding_status(user)


@router.put("", response_model=OnboardingStatus)
def update_field(
    request: FieldUpdate,
    user: User = Depends(get_current_db_user),
    session: Session = Depends(get_session),
) -> OnboardingStatus:
    try:
        update_profile_field(session, user, request.field, request.value)
    except OnboardingFieldError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    session.commit()
    return get_onboarding_status(user)
