"""ORM models for database tables."""

from .affiliate import AffiliateClick, AffiliateLink, AffiliatePartner, Commission
from .collaboration import Collaboration, Invitation
from .comment import Comment
from .notification import Notification
from .price_alert import PriceAlert
from .shared_trip import SharedTrip
from .status_history import StatusHistory
from .trip import Activity, Trip
from .user import User
from .vote import Vote

__all__ = [
    "User",
    "Trip",
    "Activity",
    "StatusHistory",
    "Collaboration",
    "Invitation",
    "Notification",
    "Comment",
    "Vote",
    "PriceAlert",
    "AffiliatePartner",
    "AffiliateLink",
    "AffiliateClick",
    "Commission",
    "SharedTrip",
]
