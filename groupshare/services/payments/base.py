"""
Payment processor capability used by the purchase workflow.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass
class PaymentRequest:
    """Charge request for one slot."""
    payment_id: str
    user_id: str
    offer_id: str
    amount: Decimal
    currency: str
    payment_method: str


@dataclass
class PaymentResult:
    """Processor answer. status is "pending" until the provider webhook arrives."""
    payment_id: str
    status: str
    provider: str


class PaymentProcessor(ABC):
    name: str = "base"

    @abstractmethod
    def charge(self, request: PaymentRequest) -> PaymentResult:
        """Charge the buyer. Raises PaymentError on any failure."""
