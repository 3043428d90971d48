"""Unit tests for the trip status state machine."""

from datetime import UTC, datetime, timedelta

import pytest

from backend.terra_voyage.db.models import Activity, StatusHistory
from backend.terra_voyage.models.common import TripStatus
from backend.terra_voyage.trips.status import (
    REASON_DATE_BASED,
    REASON_ITINERARY_GENERATED,
    REASON_NO_TRANSITION,
    InvalidStatusTransitionError,
    apply_automatic_transition,
    check_automatic_transition,
    get_status_history,
    get_status_statistics,
    get_valid_next_statuses,
    is_valid_transition,
    run_date_based_status_checks,
    status_label,
    transition_trip_status,
    validate_transition,
)


@pytest.mark.unit
class TestTransitionTable:
    """Manual transitions follow the fixed table."""

    @pytest.mark.parametrize(
        ("current", "requested"),
        [
            (TripStatus.draft, TripStatus.planned),
            (TripStatus.draft, TripStatus.cancelled),
            (TripStatus.planned, TripStatus.active),
            (TripStatus.planned, TripStatus.draft),
            (TripStatus.active, TripStatus.completed),
            (TripStatus.active, TripStatus.cancelled),
            (TripStatus.completed, TripStatus.active),
            (TripStatus.cancelled, TripStatus.draft),
            (TripStatus.cancelled, TripStatus.planned),
        ],
    )
    def test_allowed_transitions(self, current, requested):
        """Test that every listed transition is accepted."""
        assert is_valid_transition(current, requested)
        validate_transition(current, requested)

    @pytest.mark.parametrize(
        ("current", "requested"),
        [
            (TripStatus.draft, TripStatus.active),
            (TripStatus.draft, TripStatus.completed),
            (TripStatus.completed, TripStatus.draft),
            (TripStatus.completed, TripStatus.cancelled),
            (TripStatus.cancelled, TripStatus.active),
            (TripStatus.planned, TripStatus.planned),
        ],
    )
    def test_rejected_transitions(self, current, requested):
        """Test that transitions outside the table raise."""
        assert not is_valid_transition(current, requested)
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            validate_transition(current, requested)
        assert exc_info.value.current is current
        assert exc_info.value.requested is requested

    def test_accepts_raw_values(self):
        """Test that stored string values are accepted."""
        assert is_valid_transition("DRAFT", "PLANNED")
        assert get_valid_next_statuses("COMPLETED") == [TripStatus.active]

    def test_status_labels(self):
        assert status_label(TripStatus.cancelled) == "Cancelled"


@pytest.mark.unit
class TestAutomaticTransitions:
    """Automatic transitions derived from itinerary and dates."""

    def test_draft_with_itinerary_becomes_planned(self, test_trip):
        """Test that a generated itinerary with activities plans the trip."""
        test_trip.itinerary = {"days": []}
        decision = check_automatic_transition(test_trip, activity_count=3)
        assert decision.should_transition
        assert decision.new_status is TripStatus.planned
        assert decision.reason == REASON_ITINERARY_GENERATED

    def test_draft_without_activities_stays(self, test_trip):
        """Test that an itinerary with no activities does not plan the trip."""
        test_trip.itinerary = {"days": []}
        decision = check_automatic_transition(test_trip, activity_count=0)
        assert not decision.should_transition
        assert decision.reason == REASON_NO_TRANSITION

    def test_planned_trip_starts(self, test_trip):
        """Test that a planned trip becomes active once its start passes."""
        test_trip.status = TripStatus.planned.value
        now = test_trip.start_date + timedelta(hours=1)
        decision = check_automatic_transition(test_trip, 0, now=now)
        assert decision.new_status is TripStatus.active
        assert decision.reason == REASON_DATE_BASED

    def test_active_trip_completes_after_end(self, test_trip):
        test_trip.status = TripStatus.active.value
        decision = check_automatic_transition(
            test_trip, 0, now=test_trip.end_date + timedelta(seconds=1)
        )
        assert decision.new_status is TripStatus.completed

    def test_active_trip_on_end_date_stays(self, test_trip):
        """Test that completion needs now strictly after the end date."""
        test_trip.status = TripStatus.active.value
        decision = check_automatic_transition(test_trip, 0, now=test_trip.end_date)
        assert not decision.should_transition


@pytest.mark.unit
class TestTransitionPersistence:
    """Applying transitions writes history rows."""

    def test_transition_records_history(self, test_session, test_trip, test_user):
        """Test that a manual transition updates the trip and logs history."""
        result = transition_trip_status(
            test_session, test_trip, TripStatus.planned, user_id=test_user.user_id, reason="ready"
        )
        test_session.commit()

        assert result.success
        assert result.old_status is TripStatus.draft
        assert result.message == "Trip status changed from Draft to Planned"
        assert test_trip.status == TripStatus.planned.value

        history = get_status_history(test_session, test_trip.trip_id)
        assert len(history) == 1
        assert history[0].old_status == "DRAFT"
        assert history[0].new_status == "PLANNED"
        assert history[0].user_id == test_user.user_id

    def test_invalid_transition_writes_nothing(self, test_session, test_trip):
        with pytest.raises(InvalidStatusTransitionError):
            transition_trip_status(test_session, test_trip, TripStatus.completed)
        assert test_trip.status == TripStatus.draft.value
        assert test_session.query(StatusHistory).count() == 0

    def test_apply_automatic_transition(self, test_session, test_trip):
        """Test that the automatic rule is applied as a system change."""
        test_trip.itinerary = {"days": [{"day": 1}]}
        test_session.add(Activity(trip_id=test_trip.trip_id, name="Belém Tower", day_number=1))
        test_session.commit()

        result = apply_automatic_transition(test_session, test_trip)
        test_session.commit()

        assert result is not None
        assert result.new_status is TripStatus.planned
        history = get_status_history(test_session, test_trip.trip_id)
        assert history[0].user_id is None
        assert history[0].details == {"automatic": True}

    def test_apply_automatic_transition_idle(self, test_session, test_trip):
        assert apply_automatic_transition(test_session, test_trip) is None

    def test_batch_moves_started_and_finished_trips(
        self, test_session, test_user, trip_factory
    ):
        """Test that the batch advances planned and active trips by date."""
        started = trip_factory(test_user, TripStatus.planned, start_in_days=-1)
        finished = trip_factory(test_user, TripStatus.active, start_in_days=-10, length_days=3)
        future = trip_factory(test_user, TripStatus.planned, start_in_days=20)

        result = run_date_based_status_checks(test_session, now=datetime.now(UTC))

        assert result.processed == 3
        assert result.transitions == 2
        assert result.errors == 0
        test_session.expire_all()
        assert started.status == TripStatus.active.value
        assert finished.status == TripStatus.completed.value
        assert future.status == TripStatus.planned.value

    def test_status_statistics_include_every_status(self, test_session, test_user, trip_factory):
        trip_factory(test_user, TripStatus.draft)
        trip_factory(test_user, TripStatus.draft)
        trip_factory(test_user, TripStatus.cancelled)

        counts = get_status_statistics(test_session)

        assert counts == {
            "DRAFT": 2,
            "PLANNED": 0,
            "ACTIVE": 0,
            "COMPLETED": 0,
            "CANCELLED": 1,
        }
