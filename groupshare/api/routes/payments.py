from fastapi import APIRouter, Depends, Header

from groupshare.api.deps import get_idempotency, get_workflow
from groupshare.core.errors import ConflictError
from groupshare.schemas.purchases import PaymentIn, PaymentOut
from groupshare.services.auth.identity import CallerContext, require_caller
from groupshare.services.idempotency import IdempotencyStore
from groupshare.services.purchases.service import PurchaseWorkflow


router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("", response_model=PaymentOut)
def process_payment(
    body: PaymentIn,
    caller: CallerContext = Depends(require_caller),
    workflow: PurchaseWorkflow = Depends(get_workflow),
    idempotency: IdempotencyStore = Depends(get_idempotency),
    idempotency_key: str | None = Header(None, alias="Idempotency-Key"),
) -> PaymentOut:
    """
    Charges the buyer for a pending purchase and returns a one-time access URL.
    A repeated Idempotency-Key from the same caller is rejected with 409.
    """
    if idempotency_key and not idempotency.check_and_set(f"payment:{caller.user_id}:{idempotency_key}"):
        raise ConflictError("Duplicate payment request")
    outcome = workflow.process_payment(caller.user_id, body.purchase_id, body.payment_method)
    return PaymentOut(
        purchase_id=outcome.purchase_id,
        transaction_id=outcome.transaction_id,
        access_url=outcome.access_url,
        token_issued=outcome.token_issued,
    )
