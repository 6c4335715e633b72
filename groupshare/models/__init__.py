"""Import every model so Base.metadata knows all tables."""
from groupshare.models.access_token import AccessToken
from groupshare.models.audit_log import AuditLog
from groupshare.models.dispute import Dispute
from groupshare.models.group import Group, GroupMember
from groupshare.models.notification import Notification
from groupshare.models.offer import AccessInstructions, Offer
from groupshare.models.purchase import PurchaseRecord
from groupshare.models.transaction import Transaction
from groupshare.models.user_profile import UserProfile

__all__ = [
    "AccessInstructions",
    "AccessToken",
    "AuditLog",
    "Dispute",
    "Group",
    "GroupMember",
    "Notification",
    "Offer",
    "PurchaseRecord",
    "Transaction",
    "UserProfile",
]
