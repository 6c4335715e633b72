from groupshare.schemas.base import ApiModel


class PaymentWebhookIn(ApiModel):
    transaction_id: str
    status: str
    payment_id: str | None = None


class WebhookAck(ApiModel):
    received: bool = True
