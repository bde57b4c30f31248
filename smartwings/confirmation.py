# smartwings/confirmation.py
from __future__ import annotations
import json
import logging
import re
from typing import Callable, Optional, Protocol, Sequence, Set

from .consts import CONFIRMATION_PATTERN
from .errors import GuardViolation
from .models import BookingRecord, ConfirmationArtifact
from .utils import format_long_date, gen_confirmation_code

logger = logging.getLogger("SmartWings-Confirmation")

_CODE_RE = re.compile(CONFIRMATION_PATTERN)


class CodeImageGenerator(Protocol):
    """Renders a scannable image for a JSON payload string."""

    def render(self, payload: str) -> bytes:
        ...


def fallback_text(code: str) -> str:
    return f"Confirmation: {code}"


class ConfirmationIssuer:
    """Issues booking codes that never repeat within one session."""

    def __init__(
        self,
        image_generator: Optional[CodeImageGenerator] = None,
        max_attempts: int = 10,
        choice: Optional[Callable[[Sequence[str]], str]] = None,
    ):
        self.image_generator = image_generator
        self.max_attempts = max(1, max_attempts)
        self._choice = choice
        self._issued: Set[str] = set()

    @property
    def issued_codes(self) -> Set[str]:
        return set(self._issued)

    def _generate(self, prefix: str) -> str:
        if self._choice is None:
            return gen_confirmation_code(prefix)
        return gen_confirmation_code(prefix, self._choice)

    def issue(self, record: BookingRecord) -> str:
        if record.selected_flight is None or record.pricing is None:
            raise GuardViolation("Cannot confirm a booking without a priced flight", code="CONFIRM_NOT_READY")
        prefix = record.selected_flight.carrier_code
        for attempt in range(1, self.max_attempts + 1):
            code = self._generate(prefix)
            if not _CODE_RE.match(code):
                raise ValueError(f"Carrier prefix {prefix!r} cannot form a confirmation code")
            if code not in self._issued:
                self._issued.add(code)
                logger.info(f"Issued confirmation {code} for {record.selected_flight.flight_number}")
                return code
            logger.warning(f"Confirmation code collision on attempt {attempt}: {code}")
        raise RuntimeError(f"Could not issue a unique confirmation code after {self.max_attempts} attempts")

    def image_payload(self, record: BookingRecord) -> str:
        lead = record.passengers[0].full_name if record.passengers else ""
        return json.dumps({
            "confirmationCode": record.confirmation_code,
            "flightNumber": record.selected_flight.flight_number,
            "passengerName": lead,
            "date": record.search_params.departure_date.isoformat(),
        })

    def build_artifact(self, record: BookingRecord) -> ConfirmationArtifact:
        flight = record.selected_flight
        params = record.search_params
        artifact = ConfirmationArtifact(
            confirmation_code=record.confirmation_code,
            flight_number=flight.flight_number,
            route=f"{flight.departure.city} → {flight.arrival.city}",
            date=format_long_date(params.departure_date),
            time=f"{flight.departure.time} - {flight.arrival.time}",
            passenger_count=params.passenger_count,
            total_paid=record.pricing.total,
        )
        if self.image_generator is None:
            artifact.code_image_fallback = fallback_text(record.confirmation_code)
            return artifact
        try:
            artifact.code_image = self.image_generator.render(self.image_payload(record))
        except Exception as e:
            logger.error(f"Code image generation failed: {e}")
            artifact.code_image_fallback = fallback_text(record.confirmation_code)
        return artifact
