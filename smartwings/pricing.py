# smartwings/pricing.py
from __future__ import annotations
from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from .consts import CANCELLATION_CUTOFF_HOURS, CURRENCY, MODIFICATION_CUTOFF_HOURS, REFUND_TIERS, TAX_RATE
from .models import BookingRecord, BookingStatus, FlightOffer, PricingSummary, TravelClass


def round_half_up(value: Decimal) -> Decimal:
    """Whole currency units, halves away from zero (amounts here are never negative)."""
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def compute_summary(flight: FlightOffer, travel_class: TravelClass, passenger_count: int) -> PricingSummary:
    """
    Price breakdown for `passenger_count` seats in `travel_class`.

    base = unit price * passengers, tax = round_half_up(base * 15%), total = base + tax.
    Pure: same inputs, same summary.
    """
    if passenger_count is None or passenger_count <= 0:
        raise ValueError(f"passenger_count must be positive, got {passenger_count!r}")
    try:
        travel_class = TravelClass(travel_class)
    except ValueError:
        raise ValueError(f"Unknown travel class {travel_class!r}") from None
    if travel_class not in flight.price:
        raise ValueError(f"Flight {flight.flight_number} does not offer {travel_class.value}")

    unit = Decimal(str(flight.price[travel_class]))
    base = unit * passenger_count
    tax = round_half_up(base * TAX_RATE)
    total = base + tax
    return PricingSummary(
        travel_class=travel_class,
        unit_price=float(unit),
        passenger_count=passenger_count,
        base_fare=float(base),
        tax=float(tax),
        total=float(total),
        currency=CURRENCY,
    )


# ---- Cancellation quotes ----
def departure_datetime(record: BookingRecord) -> Optional[datetime]:
    if record.search_params is None or record.selected_flight is None:
        return None
    hours, minutes = (int(p) for p in record.selected_flight.departure.time.split(":"))
    day = record.search_params.departure_date
    return datetime(day.year, day.month, day.day, hours, minutes, tzinfo=timezone.utc)


def can_be_cancelled(record: BookingRecord, now: datetime) -> bool:
    departs = departure_datetime(record)
    if record.status != BookingStatus.CONFIRMED or departs is None:
        return False
    return departs > now + timedelta(hours=CANCELLATION_CUTOFF_HOURS)


def can_be_modified(record: BookingRecord, now: datetime) -> bool:
    departs = departure_datetime(record)
    if record.status != BookingStatus.CONFIRMED or departs is None:
        return False
    return departs > now + timedelta(hours=MODIFICATION_CUTOFF_HOURS)


def refund_quote(record: BookingRecord, now: datetime) -> float:
    """Refundable share of the amount paid; 0 when the booking can no longer be cancelled."""
    if not can_be_cancelled(record, now) or record.pricing is None:
        return 0.0
    # whole hours, partial hours dropped
    hours_left = int((departure_datetime(record) - now).total_seconds() // 3600)
    paid = Decimal(str(record.pricing.total))
    for threshold, share in REFUND_TIERS:
        if hours_left > threshold:
            return float((paid * share).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
    return 0.0
