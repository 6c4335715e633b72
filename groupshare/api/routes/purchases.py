from fastapi import APIRouter, Depends

from groupshare.api.deps import get_workflow
from groupshare.schemas.purchases import (
    ConfirmAccessIn,
    ConfirmAccessOut,
    PurchaseOut,
    RedeemAccessIn,
    RedeemAccessOut,
)
from groupshare.services.auth.identity import CallerContext, require_caller
from groupshare.services.purchases.service import PurchaseWorkflow


router = APIRouter(prefix="/purchases", tags=["purchases"])


@router.get("", response_model=list[PurchaseOut])
def list_purchases(
    caller: CallerContext = Depends(require_caller),
    workflow: PurchaseWorkflow = Depends(get_workflow),
) -> list[PurchaseOut]:
    return [PurchaseOut.model_validate(p) for p in workflow.list_purchases(caller.user_id)]


@router.get("/{purchase_id}", response_model=PurchaseOut)
def get_purchase(
    purchase_id: str,
    caller: CallerContext = Depends(require_caller),
    workflow: PurchaseWorkflow = Depends(get_workflow),
) -> PurchaseOut:
    return PurchaseOut.model_validate(workflow.get_owned_purchase(caller.user_id, purchase_id))


@router.post("/{purchase_id}/redeem-access", response_model=RedeemAccessOut)
def redeem_access(
    purchase_id: str,
    body: RedeemAccessIn,
    caller: CallerContext = Depends(require_caller),
    workflow: PurchaseWorkflow = Depends(get_workflow),
) -> RedeemAccessOut:
    """Target of the one-time access URL: consumes the token and reveals the instructions."""
    instructions = workflow.redeem_access(caller.user_id, purchase_id, body.token)
    return RedeemAccessOut(purchase_id=purchase_id, instructions=instructions)


@router.post("/{purchase_id}/confirm-access", response_model=ConfirmAccessOut, response_model_exclude_none=True)
def confirm_access(
    purchase_id: str,
    body: ConfirmAccessIn,
    caller: CallerContext = Depends(require_caller),
    workflow: PurchaseWorkflow = Depends(get_workflow),
) -> ConfirmAccessOut:
    result = workflow.confirm_access(caller.user_id, purchase_id, body.is_working)
    if result.dispute_created is None:
        return ConfirmAccessOut(message="Access confirmed successfully", confirmed=True)
    if not result.dispute_created:
        return ConfirmAccessOut(
            message="Access confirmation successful, but failed to create dispute record",
            confirmed=True,
            dispute_created=False,
        )
    return ConfirmAccessOut(
        message="Access confirmation and dispute filed successfully",
        confirmed=True,
        dispute_created=True,
        dispute_id=result.dispute.id,
    )
