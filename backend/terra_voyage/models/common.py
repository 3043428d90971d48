"""Common enums used across the application."""

from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    """Site-wide account role."""

    user = "USER"
    admin = "ADMIN"


class TripStatus(str, Enum):
    """Lifecycle status of a trip."""

    draft = "DRAFT"
    planned = "PLANNED"
    active = "ACTIVE"
    completed = "COMPLETED"
    cancelled = "CANCELLED"


class ActivityType(str, Enum):
    """Kind of itinerary activity."""

    attraction = "ATTRACTION"
    restaurant = "RESTAURANT"
    experience = "EXPERIENCE"
    transportation = "TRANSPORTATION"
    accommodation = "ACCOMMODATION"
    shopping = "SHOPPING"
    other = "OTHER"


class CollaboratorRole(str, Enum):
    """Role held on a trip. OWNER is implicit for the trip's user."""

    owner = "OWNER"
    admin = "ADMIN"
    editor = "EDITOR"
    viewer = "VIEWER"


class InvitationStatus(str, Enum):
    """Invitation lifecycle."""

    pending = "PENDING"
    accepted = "ACCEPTED"
    declined = "DECLINED"
    expired = "EXPIRED"


class NotificationType(str, Enum):
    """Notification categories."""

    invitation = "invitation"
    collaboration_joined = "collaboration_joined"
    role_changed = "role_changed"
    member_removed = "member_removed"
    comment_added = "comment_added"
    vote_added = "vote_added"
    price_alert = "price_alert"
    status_changed = "status_changed"


class PriceType(str, Enum):
    """Priced product categories."""

    flight = "flight"
    hotel = "hotel"


class CommissionStatus(str, Enum):
    """Affiliate commission lifecycle."""

    pending = "pending"
    confirmed = "confirmed"
    paid = "paid"
    rejected = "rejected"
