"""
AccessTokenService: one-time, short-lived access links.

The raw token only ever leaves the process inside the access URL; the table
stores sha256(token + salt). Redemption is a single conditional UPDATE, so a
token can be consumed at most once even under concurrent requests.
"""
import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

from sqlalchemy import update
from sqlalchemy.orm import Session

from groupshare.core.config import settings
from groupshare.models.access_token import AccessToken

logger = logging.getLogger(__name__)


def get_access_token_ttl() -> timedelta:
    return timedelta(minutes=settings.access_token_ttl_minutes)


def hash_token(token: str) -> str:
    return hashlib.sha256((token + settings.token_salt).encode("utf-8")).hexdigest()


def build_access_url(purchase_id: str, token: str) -> str:
    query = urlencode({"id": purchase_id, "token": token})
    return f"{settings.app_base_url.rstrip('/')}/access?{query}"


class AccessTokenService:
    def __init__(self, db: Session):
        self.db = db

    def issue(self, purchase_record_id: str, now: datetime | None = None) -> str:
        """Create a token row and return the raw token. Flushes; the caller commits."""
        now = now or datetime.now(timezone.utc)
        raw = secrets.token_hex(32)
        token = AccessToken(
            purchase_record_id=purchase_record_id,
            token_hash=hash_token(raw),
            expires_at=now + get_access_token_ttl(),
            used=False,
        )
        self.db.add(token)
        self.db.flush()
        logger.info("access_token_issued", extra={"purchase_id": purchase_record_id})
        return raw

    def consume(self, purchase_record_id: str, raw_token: str, now: datetime | None = None) -> bool:
        """
        Mark the token used if, and only if, it matches this purchase, is unused
        and has not expired. Returns False for every other case.
        """
        if not raw_token:
            return False
        now = now or datetime.now(timezone.utc)
        result = self.db.execute(
            update(AccessToken)
            .where(
                AccessToken.token_hash == hash_token(raw_token),
                AccessToken.purchase_record_id == purchase_record_id,
                AccessToken.used.is_(False),
                AccessToken.expires_at > now,
            )
            .values(used=True, used_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
