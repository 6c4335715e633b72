"""
Factory for the configured payment processor.
"""
import logging

from groupshare.core.config import settings
from groupshare.services.payments.base import PaymentProcessor
from groupshare.services.payments.gateway import HttpPaymentGateway
from groupshare.services.payments.simulated import SimulatedPaymentProcessor

logger = logging.getLogger(__name__)

PROCESSORS = {
    "simulated": SimulatedPaymentProcessor,
    "http": HttpPaymentGateway,
}


def get_payment_processor() -> PaymentProcessor:
    processor_class = PROCESSORS.get(settings.payment_provider)
    if not processor_class:
        available = ", ".join(PROCESSORS.keys())
        raise ValueError(f"Unknown payment provider: {settings.payment_provider}. Available: {available}")
    if processor_class is SimulatedPaymentProcessor:
        return SimulatedPaymentProcessor(settings.payment_provider_name)
    return processor_class()
