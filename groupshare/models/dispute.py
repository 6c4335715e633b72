from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, String, Text

from groupshare.db.base import Base


DISPUTE_OPEN = "open"
DISPUTE_RESOLVED = "resolved"


class Dispute(Base):
    __tablename__ = "disputes"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    reporter_id = Column(String, nullable=False, index=True)
    reported_entity_type = Column(String, nullable=False)  # "subscription"
    reported_entity_id = Column(String, nullable=False)
    transaction_id = Column(String, nullable=True, index=True)
    dispute_type = Column(String, nullable=False, default="access")
    description = Column(Text, nullable=False, default="")
    status = Column(String, nullable=False, default=DISPUTE_OPEN)
    evidence_required = Column(Boolean, nullable=False, default=True)
    resolution_deadline = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
