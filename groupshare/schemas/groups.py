from datetime import datetime

from groupshare.schemas.base import ApiModel
from groupshare.schemas.offers import OfferOut


class GroupCreate(ApiModel):
    name: str
    description: str | None = None


class GroupUpdate(ApiModel):
    name: str | None = None
    description: str | None = None


class GroupOut(ApiModel):
    id: str
    name: str
    description: str | None = None
    owner_id: str
    created_at: datetime
    updated_at: datetime


class GroupListItem(GroupOut):
    role: str
    is_owner: bool


class GroupMemberOut(ApiModel):
    id: str
    user_id: str
    display_name: str
    role: str
    status: str
    joined_at: datetime


class GroupDetailOut(GroupOut):
    members: list[GroupMemberOut]
    subscriptions: list[OfferOut]
    user_role: str
    is_owner: bool
