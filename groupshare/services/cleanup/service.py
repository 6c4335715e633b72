from datetime import datetime, timedelta, timezone
from typing import Any
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from groupshare.models.access_token import AccessToken

logger = logging.getLogger(__name__)


class AccessTokenCleanupService:
    def __init__(self, db: Session) -> None:
        self.db = db

    def _stale_query(self, older_than_hours: int):
        threshold = datetime.now(timezone.utc) - timedelta(hours=older_than_hours)
        return self.db.query(AccessToken).filter(
            or_(
                AccessToken.expires_at <= threshold,
                (AccessToken.used.is_(True)) & (AccessToken.used_at <= threshold),
            )
        )

    def preview(self, older_than_hours: int) -> dict[str, Any]:
        """Dry-run: return count of tokens that would be deleted."""
        return {
            "tokens_count": self._stale_query(older_than_hours).count(),
            "older_than_hours": older_than_hours,
        }

    def cleanup(self, older_than_hours: int) -> dict[str, Any]:
        """Delete tokens that expired, or were used, more than older_than_hours ago."""
        deleted = self._stale_query(older_than_hours).delete(synchronize_session=False)
        self.db.commit()
        logger.info("access_tokens_cleaned", extra={"deleted": deleted})
        return {"deleted_tokens": deleted, "older_than_hours": older_than_hours}
