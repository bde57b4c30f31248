# smartwings/store.py
from __future__ import annotations
import logging
from datetime import datetime
from typing import List, Optional

from .errors import GuardViolation
from .models import (
    BookingRecord, BookingStatus, FlightOffer, Passenger, PaymentInfo, PaymentStatus,
    PricingSummary, SearchParams,
)
from .pricing import can_be_cancelled

logger = logging.getLogger("SmartWings-Store")


class BookingStateStore:
    """
    Owns the single BookingRecord of one wizard session.

    Each stage writes only its own fields through the setters below. Writing an
    upstream field drops everything derived from it, so nothing stale survives a
    revisit.
    """

    def __init__(self, record: Optional[BookingRecord] = None):
        self.record = record or BookingRecord()

    def _ensure_open(self) -> None:
        if self.record.is_finalized:
            raise RuntimeError("Booking is finalized and read-only")

    def set_search(self, params: SearchParams, offers: List[FlightOffer]) -> None:
        self._ensure_open()
        self.record.search_params = params
        self.record.offers = list(offers)
        self.record.selected_flight = None
        self.record.passengers = []
        self.record.pricing = None
        self.record.payment = None

    def select_flight(self, offer: FlightOffer) -> None:
        self._ensure_open()
        if self.record.selected_flight is not None and self.record.selected_flight.id != offer.id:
            logger.info(f"Selection changed {self.record.selected_flight.id} → {offer.id}; pricing invalidated")
        self.record.selected_flight = offer
        self.record.pricing = None
        self.record.payment = None

    def set_passengers(self, passengers: List[Passenger]) -> None:
        self._ensure_open()
        self.record.passengers = list(passengers)
        self.record.pricing = None

    def set_pricing(self, pricing: PricingSummary) -> None:
        self._ensure_open()
        self.record.pricing = pricing

    def set_payment(self, payment: PaymentInfo) -> None:
        self._ensure_open()
        self.record.payment = payment

    def finalize(self, confirmation_code: str, at: datetime) -> None:
        self._ensure_open()
        if self.record.payment is None:
            raise RuntimeError("Cannot finalize a booking without payment")
        self.record.confirmation_code = confirmation_code
        self.record.status = BookingStatus.CONFIRMED
        self.record.payment_status = PaymentStatus.COMPLETED
        self.record.confirmed_at = at

    def cancel(self, at: datetime) -> None:
        """Only a confirmed booking more than 24h before departure can be cancelled. It stays read-only afterwards."""
        if not can_be_cancelled(self.record, at):
            raise GuardViolation("This booking can no longer be cancelled", code="CANCEL_NOT_ALLOWED")
        self.record.status = BookingStatus.CANCELLED
        logger.info(f"Booking {self.record.confirmation_code} cancelled")

    def find_offer(self, offer_id: str) -> Optional[FlightOffer]:
        for o in self.record.offers:
            if o.id == offer_id:
                return o
        return None
