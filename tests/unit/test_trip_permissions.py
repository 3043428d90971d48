"""Unit tests for status- and role-based trip permissions."""

import pytest

from backend.terra_voyage.models.common import CollaboratorRole, TripStatus
from backend.terra_voyage.trips.permissions import get_trip_permissions


@pytest.mark.unit
class TestStatusRestrictions:
    """Owner permissions only depend on trip status."""

    @pytest.mark.parametrize("status", [TripStatus.draft, TripStatus.planned])
    def test_owner_unrestricted_before_trip(self, status):
        """Test that owners can do everything on draft and planned trips."""
        perms = get_trip_permissions(status, CollaboratorRole.owner)
        assert perms.can_edit and perms.can_delete and perms.can_regenerate
        assert perms.can_change_status and perms.can_add_activities
        assert perms.reasons == []

    def test_active_trip(self):
        """Test that an active trip cannot be edited, deleted or regenerated."""
        perms = get_trip_permissions(TripStatus.active, CollaboratorRole.owner)
        assert not perms.can_edit
        assert not perms.can_delete
        assert not perms.can_regenerate
        assert perms.can_add_activities
        assert perms.can_change_status
        assert "Cannot edit an active trip" in perms.reasons

    def test_completed_trip(self):
        perms = get_trip_permissions(TripStatus.completed, CollaboratorRole.owner)
        assert not perms.can_add_activities
        assert not perms.can_delete
        assert perms.can_change_status

    def test_cancelled_trip_can_be_deleted(self):
        """Test that cancelled trips remain deletable by the owner."""
        perms = get_trip_permissions(TripStatus.cancelled, CollaboratorRole.owner)
        assert perms.can_delete
        assert not perms.can_edit
        assert not perms.can_regenerate
        assert not perms.can_add_activities


@pytest.mark.unit
class TestRoleRestrictions:
    """Collaborator roles narrow the status permissions further."""

    def test_admin_cannot_delete(self):
        perms = get_trip_permissions(TripStatus.draft, CollaboratorRole.admin)
        assert perms.can_edit
        assert perms.can_regenerate
        assert not perms.can_delete
        assert "Only the trip owner can delete this trip" in perms.reasons

    def test_editor_on_draft(self):
        """Test that editors can edit drafts and add activities to them."""
        perms = get_trip_permissions(TripStatus.draft, CollaboratorRole.editor)
        assert perms.can_edit
        assert perms.can_add_activities
        assert not perms.can_change_status
        assert not perms.can_regenerate

    @pytest.mark.parametrize("status", [TripStatus.draft, TripStatus.planned, TripStatus.active])
    def test_editor_adds_activities_while_status_allows(self, status):
        perms = get_trip_permissions(status, CollaboratorRole.editor)
        assert perms.can_add_activities

    def test_viewer_is_read_only(self):
        perms = get_trip_permissions(TripStatus.planned, "VIEWER")
        assert not any(
            [
                perms.can_edit,
                perms.can_delete,
                perms.can_regenerate,
                perms.can_change_status,
                perms.can_add_activities,
            ]
        )
        assert "Viewers cannot modify this trip" in perms.reasons

    def test_no_role_means_no_access(self):
        perms = get_trip_permissions(TripStatus.draft, None)
        assert perms.reasons == ["You do not have access to this trip"]
        assert not perms.can_edit

    def test_site_admin_bypasses_restrictions(self):
        """Test that site administrators are never restricted."""
        perms = get_trip_permissions(TripStatus.completed, None, is_site_admin=True)
        assert perms.can_edit and perms.can_delete and perms.can_add_activities
