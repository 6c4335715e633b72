"""
Offer routes: public listing/details, owner CRUD, purchase initiation.
"""
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status

from groupshare.api.deps import get_offer_service, get_workflow
from groupshare.schemas.offers import OfferCreate, OfferOut, OfferUpdate
from groupshare.schemas.purchases import PurchaseEnvelope, PurchaseOut
from groupshare.services.auth.identity import CallerContext, require_caller
from groupshare.services.offers.service import OfferService
from groupshare.services.purchases.service import PurchaseWorkflow


router = APIRouter(prefix="/offers", tags=["offers"])


@router.get("", response_model=list[OfferOut])
def list_offers(
    platform_id: str | None = Query(None, alias="platformId"),
    min_price: Decimal | None = Query(None, alias="minPrice"),
    max_price: Decimal | None = Query(None, alias="maxPrice"),
    available_slots: bool = Query(True, alias="availableSlots"),
    order_by: str = Query("created_at", alias="orderBy"),
    ascending: bool = Query(False),
    limit: int = Query(10),
    offset: int = Query(0),
    service: OfferService = Depends(get_offer_service),
) -> list[OfferOut]:
    offers = service.list_offers(
        platform_id=platform_id,
        min_price=min_price,
        max_price=max_price,
        available_only=available_slots,
        order_by=order_by,
        ascending=ascending,
        limit=limit,
        offset=offset,
    )
    return [OfferOut.model_validate(o) for o in offers]


@router.post("", response_model=OfferOut, status_code=status.HTTP_201_CREATED)
def create_offer(
    body: OfferCreate,
    caller: CallerContext = Depends(require_caller),
    service: OfferService = Depends(get_offer_service),
) -> OfferOut:
    offer = service.create_offer(
        owner_id=caller.user_id,
        group_id=body.group_id,
        platform_id=body.platform_id,
        slots_total=body.slots_total,
        price_per_slot=body.price_per_slot,
        access_instructions=body.access_instructions,
        currency=body.currency,
    )
    return OfferOut.model_validate(offer)


@router.get("/{offer_id}", response_model=OfferOut)
def get_offer(offer_id: str, service: OfferService = Depends(get_offer_service)) -> OfferOut:
    return OfferOut.model_validate(service.get_offer(offer_id))


@router.patch("/{offer_id}", response_model=OfferOut)
def update_offer(
    offer_id: str,
    body: OfferUpdate,
    caller: CallerContext = Depends(require_caller),
    service: OfferService = Depends(get_offer_service),
) -> OfferOut:
    offer = service.update_offer(
        caller.user_id,
        offer_id,
        status=body.status,
        price_per_slot=body.price_per_slot,
        slots_total=body.slots_total,
        slots_available=body.slots_available,
        currency=body.currency,
        access_instructions=body.access_instructions,
    )
    return OfferOut.model_validate(offer)


@router.delete("/{offer_id}")
def delete_offer(
    offer_id: str,
    caller: CallerContext = Depends(require_caller),
    service: OfferService = Depends(get_offer_service),
) -> dict:
    service.deactivate_offer(caller.user_id, offer_id)
    return {"message": "Subscription offer deleted successfully"}


@router.post("/{offer_id}/purchase", response_model=PurchaseEnvelope, status_code=status.HTTP_201_CREATED)
def initiate_purchase(
    offer_id: str,
    caller: CallerContext = Depends(require_caller),
    workflow: PurchaseWorkflow = Depends(get_workflow),
) -> PurchaseEnvelope:
    """Creates a pending_payment purchase record if the offer still has free slots."""
    purchase = workflow.initiate(caller.user_id, offer_id)
    return PurchaseEnvelope(purchase=PurchaseOut.model_validate(purchase))
