# smartwings/delivery.py
from __future__ import annotations
import logging
from typing import Any, Dict, Protocol

from .consts import AIRLINE_NAME
from .models import BookingRecord

logger = logging.getLogger("SmartWings-Delivery")


def ticket_payload(record: BookingRecord) -> Dict[str, Any]:
    return {
        "airline": AIRLINE_NAME,
        "confirmation_code": record.confirmation_code,
        "flight": record.selected_flight.model_dump(mode="json") if record.selected_flight else None,
        "passengers": [p.model_dump(mode="json") for p in record.passengers],
        "total": record.pricing.total if record.pricing else None,
    }


class TicketDelivery(Protocol):
    def download(self, record: BookingRecord) -> None:
        ...

    def email(self, record: BookingRecord, address: str) -> None:
        ...


class LoggingTicketDelivery:
    """Records the request only; no document is produced and nothing is sent."""

    def download(self, record):
        logger.info(f"Downloading ticket: {ticket_payload(record)}")

    def email(self, record, address):
        logger.info(f"Sending ticket {record.confirmation_code} to: {address}")
