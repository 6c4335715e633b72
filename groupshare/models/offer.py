"""
Offer: a sellable allocation of slots in a group's shared subscription.
slots_available is only ever changed by guarded UPDATE statements
(see OfferService.decrement_slot); the CHECK constraints back that up.
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from groupshare.db.base import Base


OFFER_ACTIVE = "active"
OFFER_INACTIVE = "inactive"


class Offer(Base):
    __tablename__ = "group_subs"
    __table_args__ = (
        CheckConstraint("slots_total > 0", name="ck_offer_slots_total_positive"),
        CheckConstraint(
            "slots_available >= 0 AND slots_available <= slots_total",
            name="ck_offer_slots_available_range",
        ),
        CheckConstraint("price_per_slot > 0", name="ck_offer_price_positive"),
    )

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    group_id = Column(String, ForeignKey("groups.id"), nullable=False, index=True)
    platform_id = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False, default=OFFER_ACTIVE)  # active / inactive
    slots_total = Column(Integer, nullable=False)
    slots_available = Column(Integer, nullable=False)
    price_per_slot = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="PLN")
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

    group = relationship("Group", lazy="joined")


class AccessInstructions(Base):
    __tablename__ = "access_instructions"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    group_sub_id = Column(String, ForeignKey("group_subs.id"), unique=True, nullable=False)
    instructions = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
