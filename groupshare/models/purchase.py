"""
PurchaseRecord: buyer-side record of a slot purchase.
Status: pending_payment -> completed | failed.
access_provided is set when the buyer redeems the one-time access link.
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from groupshare.db.base import Base


PURCHASE_PENDING_PAYMENT = "pending_payment"
PURCHASE_COMPLETED = "completed"
PURCHASE_FAILED = "failed"


class PurchaseRecord(Base):
    __tablename__ = "purchase_records"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, ForeignKey("user_profiles.id"), nullable=False, index=True)
    group_sub_id = Column(String, ForeignKey("group_subs.id"), nullable=False, index=True)
    status = Column(String, nullable=False, default=PURCHASE_PENDING_PAYMENT)
    access_provided = Column(Boolean, nullable=False, default=False)
    access_provided_at = Column(DateTime(timezone=True), nullable=True)
    access_confirmed = Column(Boolean, nullable=False, default=False)
    access_confirmed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    offer = relationship("Offer", lazy="joined")
