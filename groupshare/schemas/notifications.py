from datetime import datetime

from groupshare.schemas.base import ApiModel


class NotificationOut(ApiModel):
    id: str
    type: str
    title: str
    content: str
    related_entity_type: str | None = None
    related_entity_id: str | None = None
    read: bool
    created_at: datetime
