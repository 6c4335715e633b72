"""
GroupService: groups that own subscription offers, and their members.
"""
import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from groupshare.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from groupshare.models.group import MEMBER_ACTIVE, ROLE_ADMIN, ROLE_MEMBER, Group, GroupMember
from groupshare.models.offer import Offer

logger = logging.getLogger(__name__)


@dataclass
class GroupDetail:
    group: Group
    role: str
    members: list[GroupMember]
    offers: list[Offer]


class GroupService:
    def __init__(self, db: Session):
        self.db = db

    def get_group(self, group_id: str) -> Group:
        group = self.db.query(Group).filter(Group.id == group_id).one_or_none()
        if not group:
            raise NotFoundError("Group not found", group_id=group_id)
        return group

    def get_membership(self, group_id: str, user_id: str) -> GroupMember | None:
        return (
            self.db.query(GroupMember)
            .filter(
                GroupMember.group_id == group_id,
                GroupMember.user_id == user_id,
                GroupMember.status == MEMBER_ACTIVE,
            )
            .one_or_none()
        )

    def list_for_user(self, user_id: str) -> list[tuple[Group, str]]:
        """Groups the user is an active member of, with the user's role in each."""
        rows = (
            self.db.query(Group, GroupMember.role)
            .join(GroupMember, GroupMember.group_id == Group.id)
            .filter(GroupMember.user_id == user_id, GroupMember.status == MEMBER_ACTIVE)
            .order_by(Group.created_at.desc())
            .all()
        )
        return [(group, role) for group, role in rows]

    def get_detail(self, user_id: str, group_id: str) -> GroupDetail:
        group = self.get_group(group_id)
        membership = self.get_membership(group_id, user_id)
        if not membership:
            raise AuthorizationError("You do not have access to this group")
        members = (
            self.db.query(GroupMember)
            .filter(GroupMember.group_id == group_id, GroupMember.status == MEMBER_ACTIVE)
            .order_by(GroupMember.joined_at)
            .all()
        )
        offers = self.db.query(Offer).filter(Offer.group_id == group_id).order_by(Offer.created_at).all()
        return GroupDetail(group=group, role=membership.role, members=members, offers=offers)

    def create_group(self, owner_id: str, name: str, description: str | None = None) -> Group:
        if not name or not name.strip():
            raise ValidationError("Group name is required")
        group = Group(owner_id=owner_id, name=name.strip(), description=description or "")
        self.db.add(group)
        self.db.flush()
        self.db.add(
            GroupMember(
                group_id=group.id,
                user_id=owner_id,
                role=ROLE_ADMIN,
                status=MEMBER_ACTIVE,
                invited_by=owner_id,
            )
        )
        self.db.commit()
        self.db.refresh(group)
        logger.info("group_created", extra={"group_id": group.id, "user_id": owner_id})
        return group

    def _owned_group(self, owner_id: str, group_id: str, action: str) -> Group:
        group = self.get_group(group_id)
        if group.owner_id != owner_id:
            raise AuthorizationError(f"You do not have permission to {action} this group")
        return group

    def update_group(
        self,
        owner_id: str,
        group_id: str,
        name: str | None = None,
        description: str | None = None,
    ) -> Group:
        group = self._owned_group(owner_id, group_id, "update")
        if name is not None:
            if not name.strip():
                raise ValidationError("Group name is required")
            group.name = name.strip()
        if description is not None:
            group.description = description
        self.db.commit()
        self.db.refresh(group)
        logger.info("group_updated", extra={"group_id": group.id, "user_id": owner_id})
        return group

    def delete_group(self, owner_id: str, group_id: str) -> None:
        """Only groups without offers can be deleted; offers carry purchase history."""
        group = self._owned_group(owner_id, group_id, "delete")
        if self.db.query(Offer).filter(Offer.group_id == group_id).count():
            raise ConflictError("Group has subscription offers; deactivate them instead", group_id=group_id)
        self.db.query(GroupMember).filter(GroupMember.group_id == group_id).delete(synchronize_session=False)
        self.db.delete(group)
        self.db.commit()
        logger.info("group_deleted", extra={"group_id": group_id, "user_id": owner_id})

    def add_member(self, group_id: str, user_id: str, role: str = ROLE_MEMBER) -> bool:
        """
        Adds an active membership inside a savepoint. Returns False when the user
        already belongs to the group. Does not commit.
        """
        try:
            with self.db.begin_nested():
                self.db.add(GroupMember(group_id=group_id, user_id=user_id, role=role, status=MEMBER_ACTIVE))
                self.db.flush()
        except IntegrityError:
            return False
        logger.info("group_member_added", extra={"group_id": group_id, "user_id": user_id})
        return True
