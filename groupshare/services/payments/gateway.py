"""
HTTP payment gateway using httpx sync client, guarded by a Redis-backed circuit breaker.
"""
import logging
import time

import httpx
import pybreaker

from groupshare.core.config import settings
from groupshare.core.errors import PaymentError
from groupshare.services.circuit_breaker import with_circuit_breaker
from groupshare.services.payments.base import PaymentProcessor, PaymentRequest, PaymentResult
from groupshare.utils.metrics import payment_gateway_duration_seconds

logger = logging.getLogger(__name__)


class HttpPaymentGateway(PaymentProcessor):
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        provider_name: str | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = (base_url or settings.payment_provider_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.payment_provider_api_key
        self.name = provider_name or settings.payment_provider_name
        self._client = client

    @property
    def client(self) -> httpx.Client:
        """Lazy initialization of httpx client."""
        if self._client is None:
            self._client = httpx.Client(timeout=settings.http_client_timeout)
        return self._client

    @with_circuit_breaker("payment_gateway")
    def _post_charge(self, payload: dict) -> dict:
        resp = self.client.post(
            f"{self.base_url}/charges",
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        resp.raise_for_status()
        return resp.json()

    def charge(self, request: PaymentRequest) -> PaymentResult:
        if not self.base_url:
            raise PaymentError("Payment provider is not configured")
        payload = {
            "payment_id": request.payment_id,
            "customer_id": request.user_id,
            "reference": request.offer_id,
            "amount": str(request.amount),
            "currency": request.currency,
            "payment_method": request.payment_method,
        }
        start = time.time()
        try:
            data = self._post_charge(payload)
        except pybreaker.CircuitBreakerError:
            logger.error("payment_gateway_circuit_open", extra={"payment_id": request.payment_id})
            raise PaymentError("Payment provider temporarily unavailable")
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response) or f"Payment provider returned {e.response.status_code}"
            logger.warning(
                "payment_gateway_rejected",
                extra={"payment_id": request.payment_id, "status_code": e.response.status_code, "error": message},
            )
            raise PaymentError(message)
        except httpx.HTTPError as e:
            logger.error("payment_gateway_error", extra={"payment_id": request.payment_id, "error": str(e)})
            raise PaymentError("Failed to process payment")
        finally:
            payment_gateway_duration_seconds.observe(time.time() - start)

        return PaymentResult(
            payment_id=data.get("payment_id") or data.get("id") or request.payment_id,
            status=data.get("status", "pending"),
            provider=self.name,
        )


def _error_message(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return error.get("message")
        return error or body.get("message")
    return None
