from datetime import datetime
from decimal import Decimal
from typing import Any

from groupshare.schemas.base import ApiModel


class OfferCreate(ApiModel):
    group_id: str
    platform_id: str
    # Validated in OfferService so bad values answer 400 with a precise message.
    slots_total: Any
    price_per_slot: Any
    access_instructions: str
    currency: str | None = None


class OfferUpdate(ApiModel):
    status: str | None = None
    price_per_slot: Any = None
    slots_total: Any = None
    slots_available: Any = None
    currency: str | None = None
    access_instructions: str | None = None


class OfferOut(ApiModel):
    id: str
    group_id: str
    platform_id: str
    status: str
    slots_total: int
    slots_available: int
    price_per_slot: Decimal
    currency: str
    created_at: datetime
    updated_at: datetime
