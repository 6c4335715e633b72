from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from groupshare.db.base import Base

ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"
MEMBER_ACTIVE = "active"


class Group(Base):
    __tablename__ = "groups"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    owner_id = Column(String, ForeignKey("user_profiles.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
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


class GroupMember(Base):
    """Owner joins as admin on group creation; buyers join as members when their purchase completes."""

    __tablename__ = "group_members"
    __table_args__ = (UniqueConstraint("group_id", "user_id", name="uq_group_members_group_user"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    group_id = Column(String, ForeignKey("groups.id"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("user_profiles.id"), nullable=False, index=True)
    role = Column(String, nullable=False, default=ROLE_MEMBER)  # admin / member
    status = Column(String, nullable=False, default=MEMBER_ACTIVE)
    invited_by = Column(String, nullable=True)
    joined_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    user = relationship("UserProfile", lazy="joined")
