"""Comment threads on trips and activities."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from backend.terra_voyage.api.auth import get_current_db_user
from backend.terra_voyage.api.common import not_found
from backend.terra_voyage.collaboration.comments import (
    CONTENT_MAX,
    CommentError,
    create_comment,
    delete_comment,
    list_comments,
    update_comment,
)
from backend.terra_voyage.db.access import TripNotFoundError
from backend.terra_voyage.db.models import Comment, User
from backend.terra_voyage.db.session import get_session

router = APIRouter(prefix="/comments", tags=["comments"])


class CommentCreate(BaseModel):
    trip_id: UUID
    content: str = Field(..., min_length=1, max_length=CONTENT_MAX)
    activity_id: UUID | None = None
    parent_id: UUID | None = None


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=CONTENT_MAX)


class CommentAuthor(BaseModel):
    user_id: UUID
    name: str


class CommentResponse(BaseModel):
    comment_id: UUID
    trip_id: UUID
    activity_id: UUID | None
    parent_id: UUID | None
    content: str
    author: CommentAuthor
    created_at: datetime
    updated_at: datetime
    replies: list["CommentResponse"] = []


def comment_response(comment: Comment, with_replies: bool = True) -> CommentResponse:
    return CommentResponse(
        comment_id=comment.comment_id,
        trip_id=comment.trip_id,
        activity_id=comment.activity_id,
        parent_id=comment.parent_id,
        content=comment.content,
        author=CommentAuthor(user_id=comment.user_id, name=comment.user.display_name),
        created_at=comment.created_at,
        updated_at=comment.updated_at,
        replies=[comment_response(r, False) for r in comment.replies] if with_replies else [],
    )


def _http_error(error: Exception) -> HTTPException:
    if isinstance(error, CommentError):
        return HTTPException(status_code=error.code, detail=str(error))
    return not_found(str(error))


@router.post("", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
def add_comment(
    request: CommentCreate,
    user: User = Depends(get_current_db_user),
    session: Session = Depends(get_session),
) -> CommentResponse:
    try:
        comment = create_comment(
            session,
            user,
            request.trip_id,
            request.content,
            activity_id=request.activity_id,
            parent_id=request.parent_id,
        )
    except (CommentError, TripNotFoundError) as e:
        raise _http_error(e) from e
    session.commit()
    session.refresh(comment)
    return comment_response(comment)


@router.get("", response_model=list[CommentResponse])
def get_comments(
    trip_id: UUID = Query(...),
    activity_id: UUID | None = Query(None),
    user: User = Depends(get_current_db_user),
    session: Session = Depends(get_session),
) -> list[CommentResponse]:
    """Top-level comments newest first, each with its replies."""
    try:
        comments = list_comments(session, user, trip_id, activity_id)
    except TripNotFoundError as e:
        raise _http_error(e) from e
    return [comment_response(c) for c in comments]


@router.patch("/{comment_id}", response_model=CommentResponse)
def edit_comment(
    comment_id: UUID,
    request: CommentUpdate,
    user: User = Depends(get_current_db_user),
    session: Session = Depends(get_session),
) -> CommentResponse:
    try:
        comment = update_comment(session, user, comment_id, request.content)
    except CommentError as e:
        raise _http_error(e) from e
    session.commit()
    return comment_response(comment)


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_comment(
    comment_id: UUID,
    user: User = Depends(get_current_db_user),
    session: Session = Depends(get_session),
) -> Response:
    try:
        delete_comment(session, user, comment_id)
    except CommentError as e:
        raise _http_error(e) from e
    session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
