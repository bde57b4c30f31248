# smartwings/payments.py
from __future__ import annotations
import logging
import uuid
from typing import Optional, Protocol

from pydantic import BaseModel

from .models import PricingSummary

logger = logging.getLogger("SmartWings-Payments")


class PaymentResult(BaseModel):
    success: bool
    reference: Optional[str] = None
    reason: Optional[str] = None


class PaymentGateway(Protocol):
    def charge(self, card_holder: str, card_number: str, expiry: str, cvv: str, amount: PricingSummary) -> PaymentResult:
        ...


class SimulatedPaymentGateway:
    """Approves every charge. Replace with a real gateway adapter in production."""

    def charge(self, card_holder, card_number, expiry, cvv, amount):
        reference = f"PAY-{uuid.uuid4().hex[:10].upper()}"
        logger.info(f"Simulated charge of {amount.total:.2f} {amount.currency} approved ({reference})")
        return PaymentResult(success=True, reference=reference)
