"""
Notification sink: best-effort, fire-and-forget.
A failed insert is rolled back to its savepoint, logged and counted;
it never propagates into the workflow step that triggered it.
"""
import logging

from sqlalchemy.orm import Session

from groupshare.models.notification import Notification
from groupshare.utils.metrics import notification_failures_total

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, db: Session):
        self.db = db

    def notify(
        self,
        user_id: str,
        type: str,
        title: str,
        content: str,
        related_entity_type: str | None = None,
        related_entity_id: str | None = None,
    ) -> Notification | None:
        try:
            with self.db.begin_nested():
                notification = Notification(
                    user_id=user_id,
                    type=type,
                    title=title,
                    content=content,
                    related_entity_type=related_entity_type,
                    related_entity_id=related_entity_id,
                    read=False,
                )
                self.db.add(notification)
                self.db.flush()
            return notification
        except Exception as e:
            notification_failures_total.labels(type=type).inc()
            logger.error(
                "notification_failed",
                extra={"user_id": user_id, "notification_type": type, "error": str(e)},
            )
            return None

    def list_for_user(self, user_id: str, limit: int = 50) -> list[Notification]:
        return (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .limit(limit)
            .all()
        )

    def mark_read(self, user_id: str, notification_id: str) -> bool:
        updated = (
            self.db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .update({Notification.read: True}, synchronize_session=False)
        )
        self.db.commit()
        return updated > 0
