"""
OfferService: slot inventory for subscription offers.

Responsibilities:
- Offer CRUD for group owners
- reserve_slot: availability check at purchase initiation (no hold)
- decrement_slot: atomic conditional decrement at payment completion
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from sqlalchemy import update
from sqlalchemy.orm import Session

from groupshare.core.config import settings
from groupshare.core.errors import (
    AuthorizationError,
    ExhaustedError,
    NotFoundError,
    UnavailableError,
    ValidationError,
)
from groupshare.models.group import Group
from groupshare.models.offer import OFFER_ACTIVE, OFFER_INACTIVE, AccessInstructions, Offer
from groupshare.utils.metrics import slot_decrements_total

logger = logging.getLogger(__name__)

ORDERABLE_FIELDS = {
    "created_at": Offer.created_at,
    "price_per_slot": Offer.price_per_slot,
    "slots_available": Offer.slots_available,
}


def _positive_price(value) -> Decimal:
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("Price per slot must be a positive number")
    if not price.is_finite() or price <= 0:
        raise ValidationError("Price per slot must be a positive number")
    return price


def _positive_int(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    return value


class OfferService:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, offer_id: str) -> Offer | None:
        return self.db.query(Offer).filter(Offer.id == offer_id).one_or_none()

    def get_offer(self, offer_id: str) -> Offer:
        offer = self.get(offer_id)
        if not offer:
            raise NotFoundError("Subscription offer not found", offer_id=offer_id)
        return offer

    def list_offers(
        self,
        platform_id: str | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
        available_only: bool = True,
        order_by: str = "created_at",
        ascending: bool = False,
        limit: int = 10,
        offset: int = 0,
    ) -> list[Offer]:
        """Active offers with optional filters, newest first by default."""
        if order_by not in ORDERABLE_FIELDS:
            raise ValidationError(f"Cannot order by {order_by}")
        if limit <= 0 or limit > settings.offers_page_max_limit:
            raise ValidationError(f"limit must be between 1 and {settings.offers_page_max_limit}")
        if offset < 0:
            raise ValidationError("offset must not be negative")

        query = self.db.query(Offer).filter(Offer.status == OFFER_ACTIVE)
        if platform_id:
            query = query.filter(Offer.platform_id == platform_id)
        if min_price is not None:
            query = query.filter(Offer.price_per_slot >= min_price)
        if max_price is not None:
            query = query.filter(Offer.price_per_slot <= max_price)
        if available_only:
            query = query.filter(Offer.slots_available > 0)

        column = ORDERABLE_FIELDS[order_by]
        query = query.order_by(column.asc() if ascending else column.desc())
        return query.offset(offset).limit(limit).all()

    def get_access_instructions(self, offer_id: str) -> AccessInstructions | None:
        return (
            self.db.query(AccessInstructions)
            .filter(AccessInstructions.group_sub_id == offer_id)
            .one_or_none()
        )

    # ------------------------------------------------------------------
    # Owner operations
    # ------------------------------------------------------------------

    def _owned_offer(self, owner_id: str, offer_id: str) -> Offer:
        offer = self.get_offer(offer_id)
        if offer.group.owner_id != owner_id:
            raise AuthorizationError("You do not have permission to modify this offer")
        return offer

    def create_offer(
        self,
        owner_id: str,
        group_id: str,
        platform_id: str,
        slots_total,
        price_per_slot,
        access_instructions: str,
        currency: str | None = None,
    ) -> Offer:
        slots_total = _positive_int(slots_total, "Slots total")
        price = _positive_price(price_per_slot)
        if not access_instructions:
            raise ValidationError("Missing required field: accessInstructions")

        group = self.db.query(Group).filter(Group.id == group_id).one_or_none()
        if not group:
            raise NotFoundError("Group not found", group_id=group_id)
        if group.owner_id != owner_id:
            raise AuthorizationError("You do not have permission to create offers for this group")

        offer = Offer(
            group_id=group_id,
            platform_id=platform_id,
            status=OFFER_ACTIVE,
            slots_total=slots_total,
            slots_available=slots_total,
            price_per_slot=price,
            currency=(currency or settings.default_currency).upper(),
        )
        self.db.add(offer)
        self.db.flush()
        self.db.add(AccessInstructions(group_sub_id=offer.id, instructions=access_instructions))
        self.db.commit()
        self.db.refresh(offer)

        logger.info("offer_created", extra={"offer_id": offer.id, "user_id": owner_id})
        return offer

    def update_offer(
        self,
        owner_id: str,
        offer_id: str,
        status: str | None = None,
        price_per_slot=None,
        slots_total=None,
        slots_available=None,
        currency: str | None = None,
        access_instructions: str | None = None,
    ) -> Offer:
        offer = self._owned_offer(owner_id, offer_id)

        if status is not None:
            if status not in (OFFER_ACTIVE, OFFER_INACTIVE):
                raise ValidationError("status must be 'active' or 'inactive'")
            offer.status = status
        if price_per_slot is not None:
            offer.price_per_slot = _positive_price(price_per_slot)
        if slots_total is not None:
            offer.slots_total = _positive_int(slots_total, "Slots total")
        if slots_available is not None:
            if isinstance(slots_available, bool) or not isinstance(slots_available, int):
                raise ValidationError("Slots available must be an integer")
            offer.slots_available = slots_available
        if not 0 <= offer.slots_available <= offer.slots_total:
            self.db.rollback()
            raise ValidationError("Slots available must be between 0 and slots total")
        if currency is not None:
            offer.currency = currency.upper()

        if access_instructions:
            instructions = self.get_access_instructions(offer.id)
            if instructions:
                instructions.instructions = access_instructions
            else:
                self.db.add(AccessInstructions(group_sub_id=offer.id, instructions=access_instructions))

        self.db.commit()
        self.db.refresh(offer)
        logger.info("offer_updated", extra={"offer_id": offer.id, "user_id": owner_id})
        return offer

    def deactivate_offer(self, owner_id: str, offer_id: str) -> Offer:
        """Offers are never hard-deleted: purchase records keep pointing at them."""
        offer = self._owned_offer(owner_id, offer_id)
        offer.status = OFFER_INACTIVE
        self.db.commit()
        self.db.refresh(offer)
        logger.info("offer_deactivated", extra={"offer_id": offer.id, "user_id": owner_id})
        return offer

    # ------------------------------------------------------------------
    # Slot accounting
    # ------------------------------------------------------------------

    def reserve_slot(self, offer_id: str) -> Offer:
        """
        Availability check before a purchase record is created.
        Does not decrement and does not hold capacity: the count only drops
        when the payment webhook completes (see decrement_slot).
        """
        offer = self.get(offer_id)
        if not offer:
            raise NotFoundError("Offer not found", offer_id=offer_id)
        if offer.status != OFFER_ACTIVE or offer.slots_available <= 0:
            raise UnavailableError("Offer not available or no slots left", offer_id=offer_id)
        return offer

    def decrement_slot(self, offer_id: str) -> None:
        """
        UPDATE ... SET slots_available = slots_available - 1
        WHERE id = :id AND slots_available > 0

        Single statement, so concurrent completions cannot both take the last slot.
        Does not commit; runs inside the caller's unit of work.
        """
        result = self.db.execute(
            update(Offer)
            .where(Offer.id == offer_id, Offer.slots_available > 0)
            .values(
                slots_available=Offer.slots_available - 1,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            if self.get(offer_id) is None:
                raise NotFoundError("Offer not found", offer_id=offer_id)
            slot_decrements_total.labels(result="exhausted").inc()
            raise ExhaustedError("No slots left to decrement", offer_id=offer_id)
        slot_decrements_total.labels(result="ok").inc()
        logger.info("slot_decremented", extra={"offer_id": offer_id})
