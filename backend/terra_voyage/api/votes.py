"""Activity voting endpoints."""

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from backend.terra_voyage.api.auth import get_current_db_user
from backend.terra_voyage.api.common import not_found
from backend.terra_voyage.collaboration.voting import (
    VoteSummary,
    cast_vote,
    get_trip_vote_summaries,
    get_vote_summary,
)
from backend.terra_voyage.db.access import TripNotFoundError
from backend.terra_voyage.db.models import User
from backend.terra_voyage.db.session import get_session

router = APIRouter(prefix="/votes", tags=["votes"])


class VoteRequest(BaseModel):
    activity_id: UUID
    vote: Literal[-1, 0, 1]


@router.post("", response_model=VoteSummary)
def vote(
    request: VoteRequest,
    user: User = Depends(get_current_db_user),
    session: Session = Depends(get_session),
) -> VoteSummary:
    """Cast or change a vote; returns the updated tally."""
    try:
        summary = cast_vote(session, user, request.activity_id, request.vote)
    except TripNotFoundError as e:
        raise not_found(str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    session.commit()
    return summary


@router.get("", response_model=VoteSummary)
def activity_votes(
    activity_id: UUID = Query(...),
    user: User = Depends(get_current_db_user),
    session: Session = Depends(get_session),
) -> VoteSummary:
    try:
        return get_vote_summary(session, user, activity_id)
    except TripNotFoundError as e:
        raise not_found(str(e)) from e


@router.get("/trip/{trip_id}", response_model=list[VoteSummary])
def trip_votes(
    trip_id: UUID,
    user: User = Depends(get_current_db_user),
    session: Session = Depends(get_session),
) -> list[VoteSummary]:
    try:
        return get_trip_vote_summaries(session, user, trip_id)
    except TripNotFoundError as e:
        raise not_found(str(e)) from e
