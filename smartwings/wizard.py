# smartwings/wizard.py
"""
Booking wizard state machine.

Stages run strictly in order: SEARCH → SELECT → PASSENGERS → REVIEW → CONFIRMATION.
Every forward move goes through `advance()`, which checks the guard of the
current stage first. Entering PASSENGERS builds the passenger slots, entering
REVIEW reprices from the current selection, entering CONFIRMATION issues the
booking code.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from . import consts
from .catalog import CatalogProvider, StaticCatalogProvider
from .config import Settings
from .confirmation import ConfirmationIssuer
from .errors import FormValidationError, GuardViolation, NotFoundError, PaymentDeclinedError, SessionClosedError
from .models import (
    BookingRecord, ConfirmationArtifact, FlightOffer, MealPreference, Passenger, PassengerSlot,
    PassengerType, PaymentInfo, PricingSummary, SearchParams, SpecialRequests, TravelClass, TripType, WizardStage,
)
from .payments import PaymentGateway, SimulatedPaymentGateway
from .pricing import compute_summary, refund_quote
from .store import BookingStateStore
from .utils import approx_age, coerce_date, mask_card_number, normalize, now_utc
from .validation import is_present, is_valid_card, is_valid_cvv, is_valid_expiry, is_valid_name

logger = logging.getLogger("SmartWings-Wizard")


# ---------------------------
# Search guard
# ---------------------------
def check_search_params(params: Optional[SearchParams], today: date) -> None:
    if params is None or not params.origin.strip() or not params.destination.strip():
        raise GuardViolation(consts.MSG_REQUIRED, code="SEARCH_MISSING_FIELDS")
    if normalize(params.origin) == normalize(params.destination):
        raise GuardViolation(consts.MSG_SAME_ROUTE, code="SEARCH_SAME_ROUTE")
    if params.departure_date < today:
        raise GuardViolation(consts.MSG_PAST_DEPARTURE, code="SEARCH_PAST_DEPARTURE")
    if min(params.adults, params.children, params.infants) < 0:
        raise GuardViolation(consts.MSG_NEGATIVE_COUNT, code="SEARCH_NEGATIVE_COUNT")
    if params.adults < 1:
        raise GuardViolation(consts.MSG_NO_ADULT, code="SEARCH_NO_ADULT")
    if params.infants > params.adults:
        raise GuardViolation(consts.MSG_INFANTS_EXCEED, code="SEARCH_INFANTS_EXCEED")
    if params.trip_type == TripType.ROUND_TRIP:
        if params.return_date is None:
            raise GuardViolation(consts.MSG_RETURN_REQUIRED, code="SEARCH_RETURN_REQUIRED")
        if params.return_date < params.departure_date:
            raise GuardViolation(consts.MSG_RETURN_BEFORE_DEPARTURE, code="SEARCH_RETURN_BEFORE_DEPARTURE")


# ---------------------------
# Passenger slots
# ---------------------------
def passenger_type_at(position: int, params: SearchParams) -> PassengerType:
    """Positional typing: adults first, then children, infants last (0-based position)."""
    if position < params.adults:
        return PassengerType.ADULT
    if position < params.adults + params.children:
        return PassengerType.CHILD
    return PassengerType.INFANT


def build_passenger_slots(params: SearchParams) -> List[PassengerSlot]:
    slots: List[PassengerSlot] = []
    for i in range(params.passenger_count):
        ptype = passenger_type_at(i, params)
        needs_passport = ptype != PassengerType.INFANT
        fields = list(consts.PASSENGER_REQUIRED_FIELDS)
        if needs_passport:
            fields += consts.PASSPORT_FIELDS
        slots.append(PassengerSlot(
            index=i + 1,
            passenger_type=ptype,
            requires_passport=needs_passport,
            required_fields=fields,
            values={f: "" for f in fields},
        ))
    return slots


def _special_requests(raw: Any) -> SpecialRequests:
    if not isinstance(raw, dict):
        return SpecialRequests()
    meal = raw.get("meal") or MealPreference.NONE.value
    return SpecialRequests(
        wheelchair=bool(raw.get("wheelchair")),
        meal=str(meal).lower(),
        extra_legroom=bool(raw.get("extra_legroom")),
    )


def validate_passenger_entry(slot: PassengerSlot, entry: Dict[str, Any], travel_date: date, today: date):
    """Returns (Passenger or None, issues). Issues use the slot's 1-based index."""
    issues: List[Dict[str, Any]] = []

    def _issue(field, message):
        issues.append({"index": slot.index, "field": field, "message": message})

    for field in slot.required_fields:
        if not is_present(entry.get(field)):
            _issue(field, consts.MSG_FIELD_REQUIRED)

    for field in ("first_name", "last_name"):
        value = entry.get(field)
        if is_present(value) and not is_valid_name(value):
            _issue(field, consts.MSG_NAME_TOO_SHORT if len(str(value)) < 2 else consts.MSG_NAME_CHARSET)

    dob = coerce_date(entry.get("dob"), today)
    if is_present(entry.get("dob")):
        if dob is None:
            _issue("dob", "Date of birth is not a valid date")
        elif dob > today:
            _issue("dob", "Date of birth cannot be in the future")
        elif slot.passenger_type == PassengerType.INFANT and approx_age(dob, travel_date) >= consts.INFANT_MAX_AGE:
            _issue("dob", f"Infants must be under {consts.INFANT_MAX_AGE} on the travel date")

    passport_expiry = coerce_date(entry.get("passport_expiry"), today)
    if slot.requires_passport and is_present(entry.get("passport_expiry")):
        if passport_expiry is None:
            _issue("passport_expiry", "Passport expiry is not a valid date")
        elif passport_expiry < travel_date:
            _issue("passport_expiry", "Passport must be valid on the travel date")

    if issues:
        return None, issues

    def _lower(key):
        value = entry.get(key)
        return value.strip().lower() if isinstance(value, str) else value

    try:
        passenger = Passenger(
            title=_lower("title"),
            first_name=entry["first_name"].strip(),
            last_name=entry["last_name"].strip(),
            dob=dob,
            gender=_lower("gender"),
            nationality=_lower("nationality"),
            passenger_type=slot.passenger_type,
            passport_number=entry.get("passport_number") if slot.requires_passport else None,
            passport_expiry=passport_expiry if slot.requires_passport else None,
            special_requests=_special_requests(entry.get("special_requests")),
        )
    except ValidationError as e:
        for err in e.errors():
            field = str(err["loc"][0]) if err.get("loc") else "passenger"
            _issue(field, err["msg"])
        return None, issues
    return passenger, issues


# ---------------------------
# Select guard
# ---------------------------
def check_class_offered(offer: FlightOffer, travel_class: TravelClass) -> None:
    if travel_class not in offer.price or travel_class not in offer.seats:
        raise GuardViolation(
            f"Flight {offer.flight_number} has no {TravelClass(travel_class).value} cabin",
            code="SELECT_CLASS_UNAVAILABLE",
        )


# ---------------------------
# Payment guard
# ---------------------------
def check_payment_fields(card_holder: str, card_number: str, expiry: str, cvv: str) -> None:
    if not is_valid_card(card_number):
        raise GuardViolation(consts.MSG_INVALID_CARD, code="PAYMENT_INVALID_CARD")
    if not is_valid_expiry(expiry):
        raise GuardViolation(consts.MSG_INVALID_EXPIRY, code="PAYMENT_INVALID_EXPIRY")
    if not is_valid_cvv(cvv):
        raise GuardViolation(consts.MSG_INVALID_CVV, code="PAYMENT_INVALID_CVV")
    if not is_present(card_holder):
        raise GuardViolation(consts.MSG_MISSING_CARD_HOLDER, code="PAYMENT_MISSING_CARD_HOLDER")


class WizardController:
    """Drives one booking session. Not shared between sessions."""

    def __init__(
        self,
        catalog: Optional[CatalogProvider] = None,
        issuer: Optional[ConfirmationIssuer] = None,
        payment_gateway: Optional[PaymentGateway] = None,
        settings: Optional[Settings] = None,
        store: Optional[BookingStateStore] = None,
        today: Callable[[], date] = date.today,
    ):
        self.settings = settings or Settings.from_env()
        self.catalog = catalog or StaticCatalogProvider()
        self.issuer = issuer or ConfirmationIssuer(max_attempts=self.settings.code_attempts)
        self.payment_gateway = payment_gateway or SimulatedPaymentGateway()
        self.store = store or BookingStateStore()
        self.today = today
        self.stage = WizardStage.SEARCH
        self.artifact: Optional[ConfirmationArtifact] = None
        self._slots: List[PassengerSlot] = []
        self._pending: Optional[asyncio.Future] = None
        self._closed = False

    @property
    def record(self) -> BookingRecord:
        return self.store.record

    @property
    def closed(self) -> bool:
        return self._closed

    # ---- lifecycle ----
    def close(self) -> None:
        """Tear the session down. A pending search/payment delay is cancelled and never completes."""
        self._closed = True
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        logger.info(f"Session closed at stage {self.stage.name}")

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError("Booking session was closed")

    def _ensure_idle(self) -> None:
        if self._pending is not None:
            raise GuardViolation("Another request is still processing", code="STAGE_BUSY")

    def _require_stage(self, stage: WizardStage) -> None:
        self._ensure_open()
        self._ensure_idle()
        if self.stage != stage:
            raise GuardViolation(
                f"Action belongs to stage {stage.name.lower()}, wizard is at {self.stage.name.lower()}",
                code="STAGE_MISMATCH",
            )

    async def _simulate_latency(self, seconds: float) -> None:
        self._ensure_open()
        self._ensure_idle()
        self._pending = asyncio.ensure_future(asyncio.sleep(max(0.0, seconds)))
        try:
            await self._pending
        except asyncio.CancelledError:
            if self._closed:
                raise SessionClosedError("Booking session was closed") from None
            raise
        finally:
            self._pending = None
        self._ensure_open()

    # ---- transitions ----
    def _check_guard(self, stage: WizardStage) -> None:
        record = self.record
        if stage == WizardStage.SEARCH:
            check_search_params(record.search_params, self.today())
        elif stage == WizardStage.SELECT:
            chosen = record.selected_flight
            if chosen is None or self.store.find_offer(chosen.id) is None:
                raise NotFoundError(consts.MSG_FLIGHT_NOT_FOUND, code="SELECT_FLIGHT_NOT_FOUND")
            check_class_offered(chosen, record.search_params.travel_class)
        elif stage == WizardStage.PASSENGERS:
            if len(record.passengers) != len(self._slots):
                raise GuardViolation(
                    f"Expected {len(self._slots)} passenger(s), got {len(record.passengers)}",
                    code="PASSENGERS_INCOMPLETE",
                )
        elif stage == WizardStage.REVIEW:
            if record.payment is None:
                raise GuardViolation("Payment has not been completed", code="PAYMENT_REQUIRED")
        else:
            raise GuardViolation("Booking is already confirmed", code="BOOKING_FINALIZED")

    def advance(self) -> WizardStage:
        self._ensure_open()
        self._ensure_idle()
        try:
            self._check_guard(self.stage)
        except (GuardViolation, NotFoundError) as e:
            logger.warning(f"Advance blocked at {self.stage.name}: {e.message}")
            raise
        previous = self.stage
        self.stage = WizardStage(previous + 1)
        try:
            self._on_enter(self.stage)
        except Exception:
            logger.exception(f"Entering {self.stage.name} failed, staying at {previous.name}")
            self.stage = previous
            raise
        logger.info(f"Entered stage {int(self.stage)} ({self.stage.name})")
        return self.stage

    def _on_enter(self, stage: WizardStage) -> None:
        if stage == WizardStage.PASSENGERS:
            self._slots = build_passenger_slots(self.record.search_params)
        elif stage == WizardStage.REVIEW:
            self.reprice()
        elif stage == WizardStage.CONFIRMATION:
            code = self.issuer.issue(self.record)
            self.store.finalize(code, now_utc())
            self.artifact = self.issuer.build_artifact(self.record)

    def revisit(self, stage: WizardStage) -> WizardStage:
        """Step back to an earlier stage to change its data. Not possible once confirmed."""
        self._ensure_open()
        self._ensure_idle()
        stage = WizardStage(stage)
        if self.record.is_finalized:
            raise GuardViolation("Booking is already confirmed", code="BOOKING_FINALIZED")
        if stage >= self.stage:
            raise GuardViolation(f"Cannot revisit {stage.name.lower()} from {self.stage.name.lower()}",
                                 code="REVISIT_FORWARD")
        logger.info(f"Revisiting stage {stage.name} from {self.stage.name}")
        self.stage = stage
        return self.stage

    # ---- stage actions ----
    async def submit_search(self, params: SearchParams) -> List[FlightOffer]:
        self._require_stage(WizardStage.SEARCH)
        check_search_params(params, self.today())
        await self._simulate_latency(self.settings.search_delay)
        self._require_stage(WizardStage.SEARCH)
        offers = self.catalog.search(params)
        self.store.set_search(params, offers)
        self.advance()
        return list(offers)

    def select_offer(self, offer_id: str) -> FlightOffer:
        self._require_stage(WizardStage.SELECT)
        offer = self.store.find_offer(offer_id)
        if offer is None:
            logger.warning(f"Offer {offer_id} not in last results")
            raise NotFoundError(consts.MSG_FLIGHT_NOT_FOUND, code="SELECT_FLIGHT_NOT_FOUND")
        check_class_offered(offer, self.record.search_params.travel_class)
        self.store.select_flight(offer)
        self.advance()
        return offer

    def passenger_slots(self) -> List[PassengerSlot]:
        return [s.model_copy(deep=True) for s in self._slots]

    def submit_passengers(self, entries: List[Dict[str, Any]]) -> PricingSummary:
        self._require_stage(WizardStage.PASSENGERS)
        issues: List[Dict[str, Any]] = []
        if len(entries) != len(self._slots):
            issues.append({
                "index": None,
                "field": "passengers",
                "message": f"Expected {len(self._slots)} passenger(s), got {len(entries)}",
            })

        today = self.today()
        travel_date = self.record.search_params.departure_date
        passengers: List[Passenger] = []
        for slot, entry in zip(self._slots, entries):
            if entry is not None and not isinstance(entry, dict):
                issues.append({"index": slot.index, "field": "passenger", "message": consts.MSG_PASSENGER_NOT_OBJECT})
                continue
            passenger, slot_issues = validate_passenger_entry(slot, entry or {}, travel_date, today)
            issues.extend(slot_issues)
            if passenger is not None:
                passengers.append(passenger)

        if issues:
            raise FormValidationError(issues, code="PASSENGERS_INVALID")
        self.store.set_passengers(passengers)
        self.advance()
        return self.record.pricing

    def reprice(self) -> PricingSummary:
        record = self.record
        pricing = compute_summary(
            record.selected_flight,
            record.search_params.travel_class,
            record.search_params.passenger_count,
        )
        self.store.set_pricing(pricing)
        return pricing

    async def submit_payment(self, card_holder: str, card_number: str, expiry: str, cvv: str) -> ConfirmationArtifact:
        self._require_stage(WizardStage.REVIEW)
        check_payment_fields(card_holder, card_number, expiry, cvv)
        await self._simulate_latency(self.settings.payment_delay)
        # the wizard may have been moved while the delay ran
        self._require_stage(WizardStage.REVIEW)
        pricing = self.record.pricing or self.reprice()
        result = self.payment_gateway.charge(card_holder, "".join(card_number.split()), expiry, cvv, pricing)
        if not result.success:
            raise PaymentDeclinedError(result.reason or "Payment was declined")
        self.store.set_payment(PaymentInfo(
            card_holder=card_holder.strip(),
            masked_card_number=mask_card_number(card_number),
            expiry=expiry,
        ))
        self.advance()
        return self.artifact

    def cancel_booking(self, now: Optional[datetime] = None) -> float:
        """Cancel the confirmed booking; returns the refund owed at `now`."""
        self._require_stage(WizardStage.CONFIRMATION)
        now = now or now_utc()
        refund = refund_quote(self.record, now)
        self.store.cancel(now)
        return refund
