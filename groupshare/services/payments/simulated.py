import logging

from groupshare.services.payments.base import PaymentProcessor, PaymentRequest, PaymentResult

logger = logging.getLogger(__name__)


class SimulatedPaymentProcessor(PaymentProcessor):
    """
    Local/dev processor: accepts every charge.
    Completion still has to come through POST /webhooks/payment.
    """

    def __init__(self, provider_name: str = "stripe") -> None:
        self.name = provider_name

    def charge(self, request: PaymentRequest) -> PaymentResult:
        logger.info(
            "simulated_charge_accepted",
            extra={"payment_id": request.payment_id, "user_id": request.user_id, "offer_id": request.offer_id},
        )
        return PaymentResult(payment_id=request.payment_id, status="pending", provider=self.name)
