"""
Transaction: one per purchase record; created when the charge is accepted,
finalized by the payment provider webhook.
Status: pending | completed | failed | refunded
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String

from groupshare.db.base import Base


TX_PENDING = "pending"
TX_COMPLETED = "completed"
TX_FAILED = "failed"
TX_REFUNDED = "refunded"


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    purchase_record_id = Column(String, ForeignKey("purchase_records.id"), unique=True, nullable=False)
    group_sub_id = Column(String, ForeignKey("group_subs.id"), nullable=False, index=True)
    buyer_id = Column(String, nullable=False, index=True)
    seller_id = Column(String, nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    payment_method = Column(String, nullable=True)
    payment_provider = Column(String, nullable=True)
    payment_id = Column(String, nullable=True, index=True)
    status = Column(String, nullable=False, default=TX_PENDING)
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
    completed_at = Column(DateTime(timezone=True), nullable=True)
