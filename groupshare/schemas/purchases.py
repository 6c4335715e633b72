from datetime import datetime

from pydantic import StrictBool

from groupshare.schemas.base import ApiModel


class PurchaseOut(ApiModel):
    id: str
    user_id: str
    group_sub_id: str
    status: str
    access_provided: bool
    access_confirmed: bool
    access_confirmed_at: datetime | None = None
    created_at: datetime


class PurchaseEnvelope(ApiModel):
    purchase: PurchaseOut


class PaymentIn(ApiModel):
    purchase_id: str
    payment_method: str


class PaymentOut(ApiModel):
    success: bool = True
    message: str = "Payment processed successfully"
    purchase_id: str
    transaction_id: str
    access_url: str | None
    token_issued: bool


class RedeemAccessIn(ApiModel):
    token: str


class RedeemAccessOut(ApiModel):
    purchase_id: str
    access_provided: bool = True
    instructions: str


class ConfirmAccessIn(ApiModel):
    is_working: StrictBool | None = None


class ConfirmAccessOut(ApiModel):
    message: str
    confirmed: bool
    dispute_created: bool | None = None
    dispute_id: str | None = None
