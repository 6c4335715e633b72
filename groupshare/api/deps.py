from fastapi import Depends
from sqlalchemy.orm import Session

from groupshare.db.session import get_db
from groupshare.services.idempotency import IdempotencyStore, get_idempotency_store
from groupshare.services.offers.service import OfferService
from groupshare.services.payments.base import PaymentProcessor
from groupshare.services.payments.factory import get_payment_processor
from groupshare.services.purchases.service import PurchaseWorkflow


def get_offer_service(db: Session = Depends(get_db)) -> OfferService:
    return OfferService(db)


def get_workflow(
    db: Session = Depends(get_db),
    processor: PaymentProcessor = Depends(get_payment_processor),
) -> PurchaseWorkflow:
    return PurchaseWorkflow(db, processor)


def get_idempotency() -> IdempotencyStore:
    return get_idempotency_store()
