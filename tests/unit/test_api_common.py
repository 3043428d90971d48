"""Unit tests for the shared router helpers."""

from uuid import uuid4

import pytest
from fastapi import HTTPException

from backend.terra_voyage.api.auth import CurrentUser
from backend.terra_voyage.api.common import load_trip, load_trip_with_permission
from backend.terra_voyage.collaboration.roles import Permission
from backend.terra_voyage.db.access import PermissionDeniedError, TripNotFoundError
from backend.terra_voyage.models.common import CollaboratorRole


def _as_current(user) -> CurrentUser:
    return CurrentUser(user_id=user.user_id, email=user.email, role=user.role)


@pytest.mark.unit
class TestErrorTranslation:
    """Domain errors become HTTP errors with the original kept as the cause."""

    def test_missing_trip_is_404(self, test_session, test_user):
        with pytest.raises(HTTPException) as exc_info:
            load_trip(test_session, uuid4(), _as_current(test_user))
        assert exc_info.value.status_code == 404
        assert isinstance(exc_info.value.__cause__, TripNotFoundError)

    def test_stranger_sees_404(self, test_session, test_trip, other_user):
        with pytest.raises(HTTPException) as exc_info:
            load_trip(test_session, test_trip.trip_id, _as_current(other_user))
        assert exc_info.value.status_code == 404
        assert isinstance(exc_info.value.__cause__, TripNotFoundError)

    def test_viewer_denied_edit_is_403(self, test_session, test_trip, other_user, member_factory):
        member_factory(test_trip, other_user, CollaboratorRole.viewer)
        with pytest.raises(HTTPException) as exc_info:
            load_trip_with_permission(
                test_session, test_trip.trip_id, _as_current(other_user), Permission.edit
            )
        assert exc_info.value.status_code == 403
        assert isinstance(exc_info.value.__cause__, PermissionDeniedError)

    def test_owner_gets_trip_and_role(self, test_session, test_trip, test_user):
        trip, role = load_trip(test_session, test_trip.trip_id, _as_current(test_user))
        assert trip.trip_id == test_trip.trip_id
        assert role is CollaboratorRole.owner
