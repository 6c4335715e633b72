"""Tests for payment processors: HTTP gateway error mapping, simulated processor, factory."""
import json
from decimal import Decimal
from unittest.mock import patch

import httpx
import pybreaker
import pytest

from groupshare.core.errors import PaymentError
from groupshare.services.payments.base import PaymentRequest
from groupshare.services.payments.factory import get_payment_processor
from groupshare.services.payments.gateway import HttpPaymentGateway
from groupshare.services.payments.simulated import SimulatedPaymentProcessor


def _request() -> PaymentRequest:
    return PaymentRequest(
        payment_id="pmt_1",
        user_id="u1",
        offer_id="o1",
        amount=Decimal("19.99"),
        currency="PLN",
        payment_method="card",
    )


def _gateway(handler) -> HttpPaymentGateway:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HttpPaymentGateway(base_url="https://pay.test/", api_key="sk_test", provider_name="payco", client=client)


@pytest.fixture(autouse=True)
def in_memory_breaker():
    breaker = pybreaker.CircuitBreaker(fail_max=2, reset_timeout=60)
    with patch("groupshare.services.circuit_breaker.get_circuit_breaker", return_value=breaker):
        yield breaker


class TestHttpPaymentGateway:
    def test_successful_charge(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "ch_9", "status": "pending"})

        result = _gateway(handler).charge(_request())

        assert result.payment_id == "ch_9"
        assert result.status == "pending"
        assert result.provider == "payco"
        assert seen["url"] == "https://pay.test/charges"
        assert seen["auth"] == "Bearer sk_test"
        assert seen["body"]["amount"] == "19.99"
        assert seen["body"]["payment_id"] == "pmt_1"

    def test_declined_uses_provider_message(self):
        def handler(request):
            return httpx.Response(402, json={"error": {"message": "Card declined"}})

        with pytest.raises(PaymentError) as exc:
            _gateway(handler).charge(_request())
        assert exc.value.message == "Card declined"

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(PaymentError) as exc:
            _gateway(handler).charge(_request())
        assert exc.value.message == "Failed to process payment"

    def test_open_circuit(self, in_memory_breaker):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503, json={"error": "down"})

        gateway = _gateway(handler)
        for _ in range(3):
            with pytest.raises(PaymentError):
                gateway.charge(_request())

        assert in_memory_breaker.current_state == pybreaker.STATE_OPEN
        assert len(calls) == 2

    def test_not_configured(self):
        gateway = HttpPaymentGateway(base_url="", api_key="")
        with pytest.raises(PaymentError):
            gateway.charge(_request())


class TestSimulatedProcessor:
    def test_accepts_as_pending(self):
        result = SimulatedPaymentProcessor("stripe").charge(_request())
        assert result.payment_id == "pmt_1"
        assert result.status == "pending"
        assert result.provider == "stripe"


class TestFactory:
    @patch("groupshare.services.payments.factory.settings")
    def test_simulated(self, settings):
        settings.payment_provider = "simulated"
        settings.payment_provider_name = "stripe"
        assert isinstance(get_payment_processor(), SimulatedPaymentProcessor)

    @patch("groupshare.services.payments.factory.settings")
    def test_http(self, settings):
        settings.payment_provider = "http"
        assert isinstance(get_payment_processor(), HttpPaymentGateway)

    @patch("groupshare.services.payments.factory.settings")
    def test_unknown(self, settings):
        settings.payment_provider = "paypal"
        with pytest.raises(ValueError):
            get_payment_processor()
