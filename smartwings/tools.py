# smartwings/tools.py
"""
User-facing actions of the booking site.

Every function returns a response envelope `{ok, code, message, data}` and posts
the message on the session's notification channel. Booking errors are turned
into `ok=False` envelopes here; they never propagate to the caller.
"""
from __future__ import annotations
from typing import Dict, Any, List, Optional
import json
import logging
import datetime as dt

from pydantic import ValidationError

from . import consts
from .config import Settings, configure_logging
from .data import ACTIVE_DATASET
from .delivery import LoggingTicketDelivery, TicketDelivery
from .errors import BookingError, DeliveryError, GuardViolation
from .models import FlightStatusEntry, ResponseEnvelope, SearchParams, User, WizardStage
from .notifications import NotificationChannel
from .pricing import can_be_cancelled, can_be_modified, refund_quote
from .session import SessionStore
from .utils import coerce_date, format_card_number, format_currency, format_expiry, format_long_date, now_utc
from .validation import is_valid_email, is_valid_phone
from .wizard import WizardController

logger = logging.getLogger("SmartWings-Tools")


class BookingSession:
    """Everything one visitor's booking flow needs, wired together."""

    def __init__(
        self,
        wizard: Optional[WizardController] = None,
        channel: Optional[NotificationChannel] = None,
        delivery: Optional[TicketDelivery] = None,
        users: Optional[SessionStore] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or Settings.from_env()
        self.wizard = wizard or WizardController(settings=self.settings)
        self.channel = channel or NotificationChannel()
        self.delivery = delivery or LoggingTicketDelivery()
        self.users = users or SessionStore(self.settings.session_file)


def start_session(settings: Optional[Settings] = None) -> BookingSession:
    """Entry point for a new visitor: settings from the environment, logging configured."""
    settings = settings or Settings.from_env()
    configure_logging(settings)
    return BookingSession(settings=settings)


def _envelope(ok: bool, code: str, message: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return ResponseEnvelope(ok=ok, code=code, message=message, data=data).model_dump(mode="json")

def _fail(session: BookingSession, err: BookingError, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    session.channel.error(err.message)
    data = err.to_data()
    data["stage"] = int(session.wizard.stage)
    if extra:
        data.update(extra)
    return _envelope(False, err.code, err.message, data)

def _ok(session: BookingSession, code: str, message: str, data: Dict[str, Any], severity: str = "success") -> Dict[str, Any]:
    session.channel.post(message, severity)
    data["stage"] = int(session.wizard.stage)
    return _envelope(True, code, message, data)

# -------- helper: parse passengers flexibly --------
def _parse_passengers(
    passengers: Optional[List[Dict[str, Any]]],
    passengers_json: Optional[str],
) -> Dict[str, Any]:
    """
    Returns:
      {
        "passenger_dicts": List[dict],    # raw dicts (may be incomplete)
        "errors": List[str]               # fatal parse errors (e.g., bad JSON)
      }
    """
    errors: List[str] = []
    plist: List[Dict[str, Any]] = []

    if isinstance(passengers, list) and passengers:
        plist = passengers
    elif passengers_json:
        try:
            loaded = json.loads(passengers_json)
            if isinstance(loaded, list):
                plist = loaded
            else:
                errors.append("passengers_json must be a JSON array.")
        except json.JSONDecodeError as e:
            errors.append(f"Invalid passengers_json: {e}")

    bad = [i for i, p in enumerate(plist, start=1) if not isinstance(p, dict)]
    if bad:
        errors.append(f"Passenger #{bad[0]} must be an object with named fields.")

    return {"passenger_dicts": plist, "errors": errors}

def review_summary(session: BookingSession) -> Dict[str, Any]:
    record = session.wizard.record
    flight = record.selected_flight
    params = record.search_params
    pricing = record.pricing
    return {
        "flight": {
            "flight_number": flight.flight_number,
            "route": f"{flight.departure.city} → {flight.arrival.city}",
            "date": format_long_date(params.departure_date),
            "time": f"{flight.departure.time} - {flight.arrival.time}",
            "class": params.travel_class.value.capitalize(),
        },
        "passengers": {"adults": params.adults, "children": params.children, "infants": params.infants},
        "travellers": [
            {
                "name": p.full_name,
                "type": p.passenger_type.value,
                "nationality": consts.NATIONALITIES.get(p.nationality, p.nationality.upper()),
            }
            for p in record.passengers
        ],
        "pricing": pricing.model_dump(mode="json") if pricing else None,
        "display": {
            "base_fare": format_currency(pricing.base_fare),
            "taxes": format_currency(pricing.tax),
            "total": format_currency(pricing.total),
        } if pricing else None,
    }

# ---------------------------
# Stage 1: search
# ---------------------------
async def search_flights(
    session: BookingSession,
    origin: Optional[str] = None,
    destination: Optional[str] = None,
    departure_date: Optional[Any] = None,
    return_date: Optional[Any] = None,
    trip_type: str = "round-trip",
    adults: int = 1,
    children: int = 0,
    infants: int = 0,
    travel_class: str = "economy",
    date: Optional[Any] = None,         # synonyms accepted
    travel_date: Optional[Any] = None,
) -> Dict[str, Any]:
    today = session.wizard.today()
    crit = {
        "origin": origin.strip().upper() if isinstance(origin, str) else origin,
        "destination": destination.strip().upper() if isinstance(destination, str) else destination,
        "departure_date": coerce_date(departure_date or travel_date or date, today),
        "return_date": coerce_date(return_date, today) if trip_type == "round-trip" else None,
        "trip_type": trip_type,
        "adults": adults,
        "children": children,
        "infants": infants,
        "travel_class": (travel_class or "").lower(),
    }
    try:
        params = SearchParams(**crit)
    except ValidationError as e:
        session.channel.error(consts.MSG_REQUIRED)
        return _envelope(False, "SEARCH_INVALID_INPUT", consts.MSG_REQUIRED,
                         {"error": str(e), "criteria": {k: str(v) if v is not None else None for k, v in crit.items()},
                          "stage": int(session.wizard.stage)})

    session.channel.info("Searching for flights...")
    try:
        offers = await session.wizard.submit_search(params)
    except BookingError as e:
        return _fail(session, e, {"criteria": params.model_dump(mode="json")})

    public = [o.to_public(params.travel_class) for o in offers]
    if public:
        code = "SEARCH_OK"
        msg = f"Found {len(public)} flight(s) from {params.origin} to {params.destination}."
    else:
        code = "SEARCH_NO_RESULTS"
        msg = f"No flights found from {params.origin} to {params.destination}."
    return _ok(session, code, msg, {"criteria": params.model_dump(mode="json"), "flights": public}, severity="info")

# ---------------------------
# Stage 2: select
# ---------------------------
def select_flight(session: BookingSession, flight_id: str) -> Dict[str, Any]:
    try:
        offer = session.wizard.select_offer(flight_id)
    except BookingError as e:
        return _fail(session, e, {"flight_id": flight_id})
    slots = [s.model_dump(mode="json") for s in session.wizard.passenger_slots()]
    return _ok(session, "SELECT_OK", "Flight selected successfully", {
        "flight": offer.to_public(session.wizard.record.search_params.travel_class),
        "passenger_forms": slots,
    })

# ---------------------------
# Stage 3: passengers
# ---------------------------
def submit_passengers(
    session: BookingSession,
    passengers: Optional[List[Dict[str, Any]]] = None,
    passengers_json: Optional[str] = None,
) -> Dict[str, Any]:
    parsed = _parse_passengers(passengers, passengers_json)
    if parsed["errors"]:
        message = parsed["errors"][0]
        session.channel.error(message)
        return _envelope(False, "PASSENGERS_PARSE_FAILED", message,
                         {"parse_errors": parsed["errors"], "stage": int(session.wizard.stage)})
    try:
        session.wizard.submit_passengers(parsed["passenger_dicts"])
    except BookingError as e:
        return _fail(session, e)
    return _ok(session, "PASSENGERS_OK", "Passenger details saved. Review your booking.",
               review_summary(session), severity="info")

# ---------------------------
# Stage 4: review / pay
# ---------------------------
async def pay(session: BookingSession, card_holder: str, card_number: str, expiry: str, cvv: str) -> Dict[str, Any]:
    session.channel.info("Processing payment...")
    # same masks the card form applies while typing
    card_number = format_card_number(card_number)
    expiry = format_expiry(expiry)
    try:
        artifact = await session.wizard.submit_payment(card_holder, card_number, expiry, cvv)
    except BookingError as e:
        return _fail(session, e)
    data = artifact.model_dump(mode="json", exclude={"code_image"})
    data["has_code_image"] = artifact.code_image is not None
    data["total_paid_display"] = format_currency(artifact.total_paid)
    return _ok(session, "PAYMENT_OK", "Payment successful!", {"confirmation": data})

def go_back(session: BookingSession, stage: int) -> Dict[str, Any]:
    try:
        current = session.wizard.revisit(WizardStage(stage))
    except ValueError:
        return _fail(session, GuardViolation(f"Unknown stage {stage}", code="REVISIT_UNKNOWN_STAGE"))
    except BookingError as e:
        return _fail(session, e)
    return _ok(session, "REVISIT_OK", f"Back to step {int(current)}", {}, severity="info")

def close_session(session: BookingSession) -> Dict[str, Any]:
    session.wizard.close()
    return _envelope(True, "SESSION_CLOSED", "Booking session closed.", {"stage": int(session.wizard.stage)})

# ---------------------------
# Stage 5: ticket delivery
# ---------------------------
def _require_confirmed(session: BookingSession) -> None:
    if not session.wizard.record.is_finalized:
        raise GuardViolation("Booking is not confirmed yet", code="TICKET_NOT_READY")

def download_ticket(session: BookingSession) -> Dict[str, Any]:
    try:
        _require_confirmed(session)
        try:
            session.delivery.download(session.wizard.record)
        except Exception as e:
            logger.error(f"Ticket download failed: {e}")
            raise DeliveryError("Ticket download failed. Please try again later.") from e
    except BookingError as e:
        return _fail(session, e)
    return _ok(session, "TICKET_DOWNLOAD_STARTED", "E-ticket download will start shortly",
               {"confirmation_code": session.wizard.record.confirmation_code})

def email_ticket(session: BookingSession, email: str) -> Dict[str, Any]:
    try:
        _require_confirmed(session)
        if not is_valid_email(email):
            raise GuardViolation(consts.MSG_INVALID_EMAIL, code="TICKET_INVALID_EMAIL")
        try:
            session.delivery.email(session.wizard.record, email)
        except Exception as e:
            logger.error(f"Ticket email to {email} failed: {e}")
            raise DeliveryError("Could not send the e-ticket. Please try again later.") from e
    except BookingError as e:
        return _fail(session, e, {"email": email})
    return _ok(session, "TICKET_EMAIL_SENT", f"E-ticket will be sent to {email}", {"email": email})

def cancellation_quote(session: BookingSession, now: Optional[dt.datetime] = None) -> Dict[str, Any]:
    record = session.wizard.record
    now = now or now_utc()
    allowed = can_be_cancelled(record, now)
    refund = refund_quote(record, now)
    message = (f"Cancelling now refunds {format_currency(refund)}." if allowed
               else "This booking can no longer be cancelled.")
    return _ok(session, "CANCELLATION_QUOTE", message, {
        "confirmation_code": record.confirmation_code,
        "cancellable": allowed,
        "modifiable": can_be_modified(record, now),
        "refund": refund,
    }, severity="info")

def cancel_booking(session: BookingSession, now: Optional[dt.datetime] = None) -> Dict[str, Any]:
    try:
        refund = session.wizard.cancel_booking(now)
    except BookingError as e:
        return _fail(session, e)
    record = session.wizard.record
    return _ok(session, "BOOKING_CANCELLED", f"Booking {record.confirmation_code} cancelled. Refund: {format_currency(refund)}.", {
        "confirmation_code": record.confirmation_code,
        "status": record.status.value,
        "refund": refund,
    })

# ---------------------------
# Landing page extras
# ---------------------------
def get_flight_status(flight_number: Optional[str] = None) -> Dict[str, Any]:
    board = [FlightStatusEntry(**row) for row in ACTIVE_DATASET.get("status_board", [])]
    if flight_number:
        board = [e for e in board if e.flight.upper() == flight_number.strip().upper()]
        if not board:
            return _envelope(False, "STATUS_NOT_FOUND", consts.MSG_FLIGHT_NOT_FOUND, {"flight": flight_number})
    return _envelope(True, "STATUS_OK", f"{len(board)} flight(s) on the board.",
                     {"flights": [e.model_dump(mode="json") for e in board]})

def sign_in(session: BookingSession, user_data: Dict[str, Any]) -> Dict[str, Any]:
    try:
        user = User(**user_data)
    except ValidationError as e:
        session.channel.error("Invalid user profile")
        return _envelope(False, "SIGN_IN_INVALID_USER", "Invalid user profile", {"error": str(e)})
    if user.phone and not is_valid_phone(user.phone):
        session.channel.error("Please enter a valid phone number")
        return _envelope(False, "SIGN_IN_INVALID_PHONE", "Please enter a valid phone number", {"phone": user.phone})
    saved = session.users.set_current_user(user)
    return _envelope(True, "SIGN_IN_OK", f"Welcome back, {user.first_name}!",
                     {"user": user.model_dump(mode="json"), "persisted": saved})

def sign_out(session: BookingSession) -> Dict[str, Any]:
    session.users.logout()
    return _envelope(True, "SIGN_OUT_OK", "You have been signed out.", {})
