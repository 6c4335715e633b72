"""Tests for settings validation, JSON logging, rate limiting and idempotency helpers."""
import json
import logging
from unittest.mock import MagicMock, patch

import pytest
import redis
from pydantic import ValidationError

from groupshare.core.config import Settings
from groupshare.core.errors import ExhaustedError, GroupShareError, PaymentError, UnavailableError
from groupshare.core.logging import JsonFormatter
from groupshare.services.idempotency import IdempotencyStore
from groupshare.services.rate_limit import check_purchase_rate_limit

REQUIRED = {
    "database_url": "sqlite://",
    "redis_url": "redis://localhost:6379/0",
    "identity_jwt_secret": "secret",
}


class TestSettings:
    def test_defaults(self):
        s = Settings(**REQUIRED)
        assert s.access_token_ttl_minutes == 30
        assert s.dispute_resolution_days == 3

    def test_unknown_payment_provider(self):
        with pytest.raises(ValidationError):
            Settings(**REQUIRED, payment_provider="paypal")

    def test_short_salt_rejected_in_production(self):
        with pytest.raises(ValidationError):
            Settings(**REQUIRED, app_env="production", token_salt="short")
        assert Settings(**REQUIRED, app_env="production", token_salt="x" * 32).token_salt == "x" * 32

    def test_cors_origins_list(self):
        s = Settings(**REQUIRED, cors_origins="https://a.test, https://b.test,")
        assert s.cors_origins_list == ["https://a.test", "https://b.test"]


class TestErrors:
    def test_status_codes(self):
        assert UnavailableError("x").status_code == 400
        assert ExhaustedError("x").status_code == 409
        assert PaymentError("x").status_code == 500
        assert isinstance(UnavailableError("x"), GroupShareError)

    def test_details(self):
        err = UnavailableError("Offer not available", offer_id="o1")
        assert err.details == {"offer_id": "o1"}
        assert str(err) == "Offer not available"


class TestJsonFormatter:
    def test_includes_known_extra_fields(self):
        record = logging.LogRecord("groupshare", logging.INFO, __file__, 1, "purchase_completed", None, None)
        record.purchase_id = "p1"
        record.password = "nope"
        payload = json.loads(JsonFormatter().format(record))
        assert payload["message"] == "purchase_completed"
        assert payload["purchase_id"] == "p1"
        assert "password" not in payload


class TestPurchaseRateLimit:
    @patch("groupshare.services.rate_limit.redis.Redis.from_url")
    def test_allows_until_limit(self, from_url):
        client = MagicMock()
        client.incr.side_effect = [1, 5, 6]
        from_url.return_value = client
        assert check_purchase_rate_limit("u1") is True
        client.expire.assert_called_once()
        assert check_purchase_rate_limit("u1") is True
        assert check_purchase_rate_limit("u1") is False

    @patch("groupshare.services.rate_limit.redis.Redis.from_url")
    def test_fails_open(self, from_url):
        from_url.return_value.incr.side_effect = redis.ConnectionError("down")
        assert check_purchase_rate_limit("u1") is True


class TestIdempotencyStore:
    @patch("groupshare.services.idempotency.redis.Redis.from_url")
    def test_check_and_set(self, from_url):
        client = from_url.return_value
        client.set.side_effect = [True, None]
        store = IdempotencyStore()
        assert store.check_and_set("payment:u1:k") is True
        assert store.check_and_set("payment:u1:k") is False
        client.set.assert_called_with("idempotency:payment:u1:k", "1", nx=True, ex=300)
