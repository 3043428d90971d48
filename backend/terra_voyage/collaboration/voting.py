"""Activity voting and consensus."""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.terra_voyage.collaboration.notifications import create_notification
from backend.terra_voyage.db.access import TripNotFoundError, get_accessible_trip
from backend.terra_voyage.db.models import Activity, User, Vote
from backend.terra_voyage.models.common import NotificationType

Consensus = Literal["positive", "negative", "mixed", "neutral"]
VOTE_LABELS = {1: "upvoted", 0: "voted neutral on", -1: "downvoted"}


class VoteSummary(BaseModel):
    activity_id: UUID
    upvotes: int = 0
    downvotes: int = 0
    neutral: int = 0
    total: int = 0
    score: int = 0
    user_vote: int | None = None
    consensus: Consensus = "neutral"


def consensus(upvotes: int, downvotes: int) -> Consensus:
    """
    Classify the balance of non-zero votes.

    >= 80% up is positive, <= 20% is negative, 40-60% is mixed; anything
    else leans toward whichever side holds the majority.
    """
    decided = upvotes + downvotes
    if decided == 0:
        return "neutral"
    ratio = upvotes / decided
    if ratio >= 0.8:
        return "positive"
    if ratio <= 0.2:
        return "negative"
    if 0.4 <= ratio <= 0.6:
        return "mixed"
    return "positive" if ratio > 0.5 else "negative"


def summarize(activity_id: UUID, votes: list[Vote], user_id: UUID | None = None) -> VoteSummary:
    summary = VoteSummary(activity_id=activity_id)
    for vote in votes:
        if vote.value > 0:
            summary.upvotes += 1
        elif vote.value < 0:
            summary.downvotes += 1
        else:
            summary.neutral += 1
        if user_id is not None and vote.user_id == user_id:
            summary.user_vote = vote.value
    summary.total = len(votes)
    summary.score = summary.upvotes - summary.downvotes
    summary.consensus = consensus(summary.upvotes, summary.downvotes)
    return summary


def _activity_for_user(session: Session, user: User, activity_id: UUID) -> Activity:
    activity = session.get(Activity, activity_id)
    if activity is None:
        raise TripNotFoundError(f"Activity {activity_id} not found")
    get_accessible_trip(session, activity.trip_id, user.user_id, is_admin=user.is_admin)
    return activity


def cast_vote(session: Session, user: User, activity_id: UUID, value: int) -> VoteSummary:
    """Create or replace the user's vote on an activity."""
    if value not in (-1, 0, 1):
        raise ValueError("Vote must be -1, 0 or 1")
    activity = _activity_for_user(session, user, activity_id)

    vote = session.execute(
        select(Vote).where(Vote.activity_id == activity_id, Vote.user_id == user.user_id)
    ).scalar_one_or_none()
    if vote is None:
        vote = Vote(activity_id=activity_id, user_id=user.user_id, value=value)
        session.add(vote)
    else:
        vote.value = value

    trip = activity.trip
    if trip.user_id != user.user_id:
        create_notification(
            session,
            trip.user_id,
            NotificationType.vote_added,
            "New vote",
            f'{user.display_name} {VOTE_LABELS[value]} "{activity.name}"',
            trip_id=trip.trip_id,
            data={"activity_id": str(activity_id), "vote": value},
        )
    session.flush()
    return get_vote_summary(session, user, activity_id)


def get_vote_summary(session: Session, user: User, activity_id: UUID) -> VoteSummary:
    _activity_for_user(session, user, activity_id)
    votes = list(session.execute(select(Vote).where(Vote.activity_id == activity_id)).scalars())
    return summarize(activity_id, votes, user.user_id)


def get_trip_vote_summaries(session: Session, user: User, trip_id: UUID) -> list[VoteSummary]:
    trip, _ = get_accessible_trip(session, trip_id, user.user_id, is_admin=user.is_admin)
    activity_ids = [a.activity_id for a in trip.activities]
    if not activity_ids:
        return []
    votes = list(
        session.execute(select(Vote).where(Vote.activity_id.in_(activity_ids))).scalars()
    )
    by_activity: dict[UUID, list[Vote]] = {aid: [] for aid in activity_ids}
    for vote in votes:
        by_activity[vote.activity_id].append(vote)
    return [summarize(aid, vs, user.user_id) for aid, vs in by_activity.items()]
