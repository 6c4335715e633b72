"""Tests for one-time access tokens: hashing, URL format, single consumption."""
from datetime import datetime, timedelta, timezone

from groupshare.models import AccessToken, PurchaseRecord
from groupshare.services.access_tokens.service import AccessTokenService, build_access_url, hash_token


def _purchase(db, make_user, make_offer):
    offer = make_offer(make_user("Owner"))
    purchase = PurchaseRecord(user_id=make_user("Buyer").id, group_sub_id=offer.id)
    db.add(purchase)
    db.commit()
    return purchase


class TestHelpers:
    def test_hash_is_salted_sha256(self):
        assert hash_token("abc") != hash_token("abd")
        assert hash_token("abc") == hash_token("abc")
        assert len(hash_token("abc")) == 64
        assert hash_token("abc") != "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

    def test_access_url(self):
        url = build_access_url("p-1", "t0k3n")
        assert url == "https://groupshare.test/access?id=p-1&token=t0k3n"


class TestAccessTokenService:
    def test_issue_stores_hash_with_ttl(self, db, make_user, make_offer):
        purchase = _purchase(db, make_user, make_offer)
        now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

        raw = AccessTokenService(db).issue(purchase.id, now=now)
        db.commit()

        assert len(raw) == 64
        token = db.query(AccessToken).one()
        assert token.token_hash == hash_token(raw)
        assert token.expires_at.replace(tzinfo=None) == datetime(2026, 1, 1, 12, 30)

    def test_consume_once(self, db, make_user, make_offer):
        purchase = _purchase(db, make_user, make_offer)
        svc = AccessTokenService(db)
        raw = svc.issue(purchase.id)
        db.commit()

        assert svc.consume(purchase.id, raw) is True
        db.commit()
        assert svc.consume(purchase.id, raw) is False

        token = db.query(AccessToken).one()
        assert token.used is True
        assert token.used_at is not None

    def test_consume_after_expiry(self, db, make_user, make_offer):
        purchase = _purchase(db, make_user, make_offer)
        svc = AccessTokenService(db)
        issued_at = datetime.now(timezone.utc)
        raw = svc.issue(purchase.id, now=issued_at)
        db.commit()

        assert svc.consume(purchase.id, raw, now=issued_at + timedelta(minutes=31)) is False
        assert svc.consume(purchase.id, raw, now=issued_at + timedelta(minutes=29)) is True

    def test_consume_empty_token(self, db, make_user, make_offer):
        purchase = _purchase(db, make_user, make_offer)
        assert AccessTokenService(db).consume(purchase.id, "") is False
