"""Unit tests for roles, invitations, comments, votes and notifications."""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from backend.terra_voyage.collaboration.comments import (
    CommentError,
    CommentForbiddenError,
    CommentNotFoundError,
    create_comment,
    delete_comment,
    list_comments,
    preview,
    update_comment,
)
from backend.terra_voyage.collaboration.invitations import (
    InvitationConflictError,
    InvitationError,
    InvitationExpiredError,
    InvitationForbiddenError,
    accept_invitation,
    create_invitation,
    decline_invitation,
    list_members,
    list_pending_invitations,
    remove_member,
    update_member_role,
)
from backend.terra_voyage.collaboration.notifications import (
    list_notifications,
    mark_all_read,
    mark_read,
    unread_count,
)
from backend.terra_voyage.collaboration.roles import Permission, has_permission
from backend.terra_voyage.collaboration.voting import cast_vote, consensus, get_trip_vote_summaries
from backend.terra_voyage.db.access import PermissionDeniedError, TripNotFoundError
from backend.terra_voyage.db.models import Activity, Collaboration, Comment, Notification
from backend.terra_voyage.models.common import CollaboratorRole, InvitationStatus


def add_member(session, trip, user, role: CollaboratorRole) -> Collaboration:
    collaboration = Collaboration(trip_id=trip.trip_id, user_id=user.user_id, role=role.value)
    session.add(collaboration)
    session.commit()
    return collaboration


@pytest.fixture
def activity(test_session, test_trip):
    item = Activity(trip_id=test_trip.trip_id, name="Tram 28", day_number=1)
    test_session.add(item)
    test_session.commit()
    return item


@pytest.mark.unit
class TestRoles:
    def test_owner_has_everything(self):
        assert all(has_permission(CollaboratorRole.owner, p) for p in Permission)

    def test_admin_cannot_delete(self):
        assert has_permission("ADMIN", Permission.manage_members)
        assert not has_permission("ADMIN", Permission.delete)

    def test_viewer_can_only_vote_and_comment(self):
        granted = {p for p in Permission if has_permission(CollaboratorRole.viewer, p)}
        assert granted == {Permission.vote, Permission.comment}

    def test_no_role(self):
        assert not has_permission(None, Permission.comment)


@pytest.mark.unit
class TestConsensus:
    @pytest.mark.parametrize(
        ("up", "down", "expected"),
        [
            (0, 0, "neutral"),
            (8, 2, "positive"),
            (2, 8, "negative"),
            (5, 5, "mixed"),
            (4, 6, "mixed"),
            (7, 3, "positive"),
            (3, 7, "negative"),
        ],
    )
    def test_thresholds(self, up, down, expected):
        assert consensus(up, down) == expected


@pytest.mark.unit
class TestInvitations:
    """Invitation lifecycle and member management."""

    def test_invite_and_accept(self, test_session, test_trip, test_user, other_user):
        """Test that accepting creates a collaboration and notifies the owner."""
        invitation = create_invitation(
            test_session, test_trip.trip_id, test_user, "Other@Example.com", CollaboratorRole.editor
        )
        test_session.commit()
        assert invitation.email == "other@example.com"
        assert invitation.status == InvitationStatus.pending.value
        assert len(invitation.token) >= 40

        collaboration = accept_invitation(test_session, invitation.token, other_user)
        test_session.commit()

        assert collaboration.role == "EDITOR"
        assert invitation.status == InvitationStatus.accepted.value
        members = list_members(test_session, test_trip)
        assert [(m.email, m.role) for m in members] == [
            ("test@example.com", CollaboratorRole.owner),
            ("other@example.com", CollaboratorRole.editor),
        ]
        assert [n.type for n in list_notifications(test_session, other_user.user_id)] == [
            "invitation"
        ]
        assert [n.type for n in list_notifications(test_session, test_user.user_id)] == [
            "collaboration_joined"
        ]

    def test_cannot_invite_as_owner(self, test_session, test_trip, test_user):
        with pytest.raises(InvitationError):
            create_invitation(
                test_session, test_trip.trip_id, test_user, "x@example.com", CollaboratorRole.owner
            )

    def test_cannot_invite_self(self, test_session, test_trip, test_user):
        with pytest.raises(InvitationError, match="yourself"):
            create_invitation(
                test_session, test_trip.trip_id, test_user, "test@example.com", CollaboratorRole.viewer
            )

    def test_duplicate_pending_invitation(self, test_session, test_trip, test_user):
        create_invitation(
            test_session, test_trip.trip_id, test_user, "new@example.com", CollaboratorRole.viewer
        )
        with pytest.raises(InvitationConflictError):
            create_invitation(
                test_session, test_trip.trip_id, test_user, "new@example.com", CollaboratorRole.editor
            )

    def test_existing_member_conflict(self, test_session, test_trip, test_user, other_user):
        add_member(test_session, test_trip, other_user, CollaboratorRole.viewer)
        with pytest.raises(InvitationConflictError):
            create_invitation(
                test_session, test_trip.trip_id, test_user, other_user.email, CollaboratorRole.editor
            )

    def test_editor_cannot_invite(self, test_session, test_trip, other_user):
        """Test that only owners and admins may invite."""
        add_member(test_session, test_trip, other_user, CollaboratorRole.editor)
        with pytest.raises(PermissionDeniedError):
            create_invitation(
                test_session, test_trip.trip_id, other_user, "x@example.com", CollaboratorRole.viewer
            )

    def test_stranger_cannot_see_trip(self, test_session, test_trip, other_user):
        with pytest.raises(TripNotFoundError):
            create_invitation(
                test_session, test_trip.trip_id, other_user, "x@example.com", CollaboratorRole.viewer
            )

    def test_wrong_email_cannot_accept(self, test_session, test_trip, test_user, other_user):
        invitation = create_invitation(
            test_session, test_trip.trip_id, test_user, "someone@example.com", CollaboratorRole.viewer
        )
        with pytest.raises(InvitationForbiddenError):
            accept_invitation(test_session, invitation.token, other_user)

    def test_expired_invitation_is_marked(self, test_session, test_trip, test_user, other_user):
        """Test that accepting a stale invitation flips it to EXPIRED."""
        invitation = create_invitation(
            test_session, test_trip.trip_id, test_user, other_user.email, CollaboratorRole.viewer
        )
        invitation.expires_at = datetime.now(UTC) - timedelta(minutes=1)
        test_session.commit()

        with pytest.raises(InvitationExpiredError):
            accept_invitation(test_session, invitation.token, other_user)
        assert invitation.status == InvitationStatus.expired.value
        assert list_pending_invitations(test_session, test_trip.trip_id) == []

    def test_decline(self, test_session, test_trip, test_user):
        invitation = create_invitation(
            test_session, test_trip.trip_id, test_user, "new@example.com", CollaboratorRole.viewer
        )
        decline_invitation(test_session, invitation.token)
        assert invitation.status == InvitationStatus.declined.value
        with pytest.raises(InvitationConflictError, match="declined"):
            decline_invitation(test_session, invitation.token)

    def test_update_role_notifies_member(self, test_session, test_trip, test_user, other_user):
        add_member(test_session, test_trip, other_user, CollaboratorRole.viewer)
        collaboration = update_member_role(
            test_session, test_trip.trip_id, test_user, other_user.user_id, CollaboratorRole.admin
        )
        assert collaboration.role == "ADMIN"
        assert unread_count(test_session, other_user.user_id) == 1

    def test_cannot_change_owner_role(self, test_session, test_trip, test_user):
        with pytest.raises(InvitationError):
            update_member_role(
                test_session, test_trip.trip_id, test_user, test_user.user_id, CollaboratorRole.viewer
            )

    def test_member_can_leave(self, test_session, test_trip, other_user):
        """Test that members may always remove themselves."""
        add_member(test_session, test_trip, other_user, CollaboratorRole.viewer)
        remove_member(test_session, test_trip.trip_id, other_user, other_user.user_id)
        test_session.commit()
        assert len(list_members(test_session, test_trip)) == 1

    def test_viewer_cannot_remove_others(
        self, test_session, test_trip, other_user, user_factory
    ):
        third = user_factory("third@example.com")
        add_member(test_session, test_trip, other_user, CollaboratorRole.viewer)
        add_member(test_session, test_trip, third, CollaboratorRole.viewer)
        with pytest.raises(PermissionDeniedError):
            remove_member(test_session, test_trip.trip_id, other_user, third.user_id)

    def test_cannot_remove_owner(self, test_session, test_trip, test_user):
        with pytest.raises(InvitationError):
            remove_member(test_session, test_trip.trip_id, test_user, test_user.user_id)


@pytest.mark.unit
class TestComments:
    def test_comment_notifies_other_members(
        self, test_session, test_trip, test_user, other_user
    ):
        add_member(test_session, test_trip, other_user, CollaboratorRole.viewer)
        create_comment(test_session, test_user, test_trip.trip_id, "  Book the fado dinner  ")
        test_session.commit()

        comments = list_comments(test_session, test_user, test_trip.trip_id)
        assert [c.content for c in comments] == ["Book the fado dinner"]
        assert unread_count(test_session, other_user.user_id) == 1
        assert unread_count(test_session, test_user.user_id) == 0

    def test_replies_flatten_to_top_level(self, test_session, test_trip, test_user):
        """Test that a reply to a reply attaches to the thread root."""
        root = create_comment(test_session, test_user, test_trip.trip_id, "Root")
        reply = create_comment(test_session, test_user, test_trip.trip_id, "Reply", parent_id=root.comment_id)
        nested = create_comment(
            test_session, test_user, test_trip.trip_id, "Nested", parent_id=reply.comment_id
        )
        assert nested.parent_id == root.comment_id

    def test_empty_and_long_content_rejected(self, test_session, test_trip, test_user):
        with pytest.raises(CommentError):
            create_comment(test_session, test_user, test_trip.trip_id, "   ")
        with pytest.raises(CommentError):
            create_comment(test_session, test_user, test_trip.trip_id, "x" * 1001)

    def test_activity_must_belong_to_trip(self, test_session, test_trip, test_user, trip_factory):
        elsewhere = trip_factory(test_user, start_in_days=90)
        stray = Activity(trip_id=elsewhere.trip_id, name="Elsewhere")
        test_session.add(stray)
        test_session.commit()
        with pytest.raises(TripNotFoundError):
            create_comment(
                test_session, test_user, test_trip.trip_id, "Hi", activity_id=stray.activity_id
            )

    def test_only_author_edits(self, test_session, test_trip, test_user, other_user):
        add_member(test_session, test_trip, other_user, CollaboratorRole.admin)
        comment = create_comment(test_session, test_user, test_trip.trip_id, "Original")
        with pytest.raises(CommentForbiddenError):
            update_comment(test_session, other_user, comment.comment_id, "Hijacked")
        assert update_comment(test_session, test_user, comment.comment_id, "Edited").content == "Edited"

    def test_trip_admin_can_delete(self, test_session, test_trip, test_user, other_user):
        """Test that trip admins may moderate comments they did not write."""
        add_member(test_session, test_trip, other_user, CollaboratorRole.admin)
        comment = create_comment(test_session, test_user, test_trip.trip_id, "Root")
        create_comment(test_session, test_user, test_trip.trip_id, "Reply", parent_id=comment.comment_id)
        test_session.commit()

        delete_comment(test_session, other_user, comment.comment_id)
        test_session.commit()
        assert test_session.query(Comment).count() == 0

    def test_viewer_cannot_delete_others(self, test_session, test_trip, test_user, other_user):
        add_member(test_session, test_trip, other_user, CollaboratorRole.viewer)
        comment = create_comment(test_session, test_user, test_trip.trip_id, "Root")
        with pytest.raises(CommentForbiddenError):
            delete_comment(test_session, other_user, comment.comment_id)

    def test_missing_comment(self, test_session, test_user):
        with pytest.raises(CommentNotFoundError):
            update_comment(test_session, test_user, uuid4(), "x")

    def test_preview(self):
        assert preview("short") == "short"
        assert preview("y" * 60) == "y" * 50 + "..."


@pytest.mark.unit
class TestVotes:
    def test_vote_replaces_previous(self, test_session, test_trip, test_user, activity):
        cast_vote(test_session, test_user, activity.activity_id, 1)
        summary = cast_vote(test_session, test_user, activity.activity_id, -1)
        assert summary.total == 1
        assert summary.downvotes == 1
        assert summary.user_vote == -1
        assert summary.consensus == "negative"

    def test_collaborator_vote_notifies_owner(
        self, test_session, test_trip, test_user, other_user, activity
    ):
        add_member(test_session, test_trip, other_user, CollaboratorRole.viewer)
        summary = cast_vote(test_session, other_user, activity.activity_id, 1)
        test_session.commit()

        assert summary.score == 1
        notifications = list_notifications(test_session, test_user.user_id)
        assert notifications[0].type == "vote_added"
        assert notifications[0].message == 'Other User upvoted "Tram 28"'

    def test_invalid_vote_value(self, test_session, test_user, activity):
        with pytest.raises(ValueError):
            cast_vote(test_session, test_user, activity.activity_id, 2)

    def test_stranger_cannot_vote(self, test_session, other_user, activity):
        with pytest.raises(TripNotFoundError):
            cast_vote(test_session, other_user, activity.activity_id, 1)

    def test_trip_summaries_cover_every_activity(
        self, test_session, test_trip, test_user, activity
    ):
        test_session.add(Activity(trip_id=test_trip.trip_id, name="Sintra", day_number=2))
        test_session.commit()
        cast_vote(test_session, test_user, activity.activity_id, 0)

        summaries = get_trip_vote_summaries(test_session, test_user, test_trip.trip_id)
        assert len(summaries) == 2
        by_id = {s.activity_id: s for s in summaries}
        assert by_id[activity.activity_id].neutral == 1
        assert by_id[activity.activity_id].consensus == "neutral"


@pytest.mark.unit
class TestNotifications:
    def test_mark_read(self, test_session, test_trip, test_user, other_user):
        add_member(test_session, test_trip, other_user, CollaboratorRole.viewer)
        create_comment(test_session, test_user, test_trip.trip_id, "One")
        create_comment(test_session, test_user, test_trip.trip_id, "Two")
        test_session.commit()

        first = list_notifications(test_session, other_user.user_id)[0]
        assert not mark_read(test_session, test_user.user_id, first.notification_id)
        assert mark_read(test_session, other_user.user_id, first.notification_id)
        test_session.commit()
        assert unread_count(test_session, other_user.user_id) == 1

        assert mark_all_read(test_session, other_user.user_id) == 1
        assert unread_count(test_session, other_user.user_id) == 0

    def test_unread_only_and_limit(self, test_session, test_user):
        for i in range(5):
            test_session.add(
                Notification(
                    user_id=test_user.user_id,
                    type="status_changed",
                    title=f"N{i}",
                    message="m",
                    is_read=i % 2 == 0,
                )
            )
        test_session.commit()
        assert len(list_notifications(test_session, test_user.user_id, unread_only=True)) == 2
        assert len(list_notifications(test_session, test_user.user_id, limit=3)) == 3
