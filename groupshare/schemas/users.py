from datetime import datetime

from groupshare.schemas.base import ApiModel


class ProfileOut(ApiModel):
    id: str
    external_auth_id: str
    display_name: str
    email: str | None = None
    phone_number: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    created_at: datetime


class ProfileUpdate(ApiModel):
    display_name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
