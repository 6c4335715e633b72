from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String

from groupshare.db.base import Base


class AccessToken(Base):
    """Single-use, short-lived credential. Only the salted sha256 of the raw token is stored."""

    __tablename__ = "access_tokens"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    purchase_record_id = Column(String, ForeignKey("purchase_records.id"), nullable=False, index=True)
    token_hash = Column(String(64), unique=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used = Column(Boolean, nullable=False, default=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
