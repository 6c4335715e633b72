"""
Payment provider webhook.
Always acknowledges with 200 so the provider does not retry-storm us;
only a hard persistence failure answers 500.
"""
import hashlib
import hmac
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.concurrency import run_in_threadpool

from groupshare.api.deps import get_workflow
from groupshare.core.config import settings
from groupshare.core.errors import AuthenticationError, ValidationError
from groupshare.schemas.webhooks import PaymentWebhookIn, WebhookAck
from groupshare.services.purchases.service import PurchaseWorkflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def verify_signature(body: bytes, signature: str | None) -> bool:
    if not settings.payment_webhook_secret:
        return True
    if not signature:
        return False
    expected = hmac.new(settings.payment_webhook_secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


@router.post("/payment", response_model=WebhookAck)
async def payment_webhook(request: Request, workflow: PurchaseWorkflow = Depends(get_workflow)):
    body = await request.body()
    if not verify_signature(body, request.headers.get("X-Payment-Signature")):
        logger.warning("webhook_invalid_signature")
        raise AuthenticationError("Invalid signature")
    try:
        event = PaymentWebhookIn.model_validate_json(body)
    except PydanticValidationError:
        raise ValidationError("Invalid webhook payload")

    try:
        await run_in_threadpool(
            workflow.complete_from_webhook, event.transaction_id, event.status, event.payment_id
        )
    except SQLAlchemyError as e:
        workflow.db.rollback()
        logger.exception("webhook_persistence_failed", extra={"transaction_id": event.transaction_id, "error": str(e)})
        return JSONResponse(status_code=500, content={"error": "Database error"})
    return WebhookAck(received=True)
