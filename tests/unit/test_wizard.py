import asyncio
import re

import pytest

from smartwings.catalog import StaticCatalogProvider
from smartwings.config import Settings
from smartwings.errors import FormValidationError, GuardViolation, NotFoundError, PaymentDeclinedError, SessionClosedError
from smartwings.models import PassengerType, WizardStage
from smartwings.payments import PaymentResult, SimulatedPaymentGateway
from smartwings.pricing import compute_summary
from smartwings.wizard import WizardController, build_passenger_slots, check_search_params

from tests.conftest import TODAY, make_params, make_passenger

VALID_CARD = {"card_holder": "John Doe", "card_number": "4111 1111 1111 1111", "expiry": "08/31", "cvv": "123"}


async def _to_passengers(wizard, params=None, offer_id="SW101-001"):
    await wizard.submit_search(params or make_params())
    wizard.select_offer(offer_id)


async def _to_review(wizard, params=None, offer_id="SW101-001"):
    params = params or make_params()
    await _to_passengers(wizard, params, offer_id)
    wizard.submit_passengers([make_passenger() for _ in range(params.passenger_count)])


# ---- search guard ----
def test_valid_params_pass_guard():
    check_search_params(make_params(), TODAY)
    check_search_params(make_params(departure_date=TODAY, adults=1, infants=1), TODAY)


@pytest.mark.parametrize("overrides, code, message", [
    ({"destination": "jfk"}, "SEARCH_SAME_ROUTE", "Origin and destination cannot be the same"),
    ({"departure_date": TODAY.replace(day=14)}, "SEARCH_PAST_DEPARTURE", "Departure date cannot be in the past"),
    ({"adults": 0}, "SEARCH_NO_ADULT", "At least one adult is required"),
    ({"children": -1}, "SEARCH_NEGATIVE_COUNT", "Passenger counts cannot be negative"),
    ({"adults": 1, "infants": 2}, "SEARCH_INFANTS_EXCEED", "infants cannot exceed adults"),
    ({"trip_type": "round-trip"}, "SEARCH_RETURN_REQUIRED", "Return date is required"),
    ({"trip_type": "round-trip", "return_date": TODAY}, "SEARCH_RETURN_BEFORE_DEPARTURE", "Return date cannot be before"),
])
def test_each_search_clause_blocks(overrides, code, message):
    with pytest.raises(GuardViolation) as exc:
        check_search_params(make_params(**overrides), TODAY)
    assert exc.value.code == code
    assert message in exc.value.message


@pytest.mark.asyncio
async def test_rejected_search_stays_on_stage_one(wizard):
    with pytest.raises(GuardViolation):
        await wizard.submit_search(make_params(adults=1, infants=2))

    assert wizard.stage == WizardStage.SEARCH
    assert wizard.record.search_params is None


# ---- select ----
@pytest.mark.asyncio
async def test_search_lists_three_offers_and_advances(wizard):
    offers = await wizard.submit_search(make_params())

    assert len(offers) == 3
    assert wizard.stage == WizardStage.SELECT


@pytest.mark.asyncio
async def test_unknown_offer_is_not_found(wizard):
    await wizard.submit_search(make_params())

    with pytest.raises(NotFoundError) as exc:
        wizard.select_offer("SW999-001")
    assert exc.value.message == "Flight not found"
    assert wizard.stage == WizardStage.SELECT


@pytest.mark.asyncio
async def test_actions_out_of_order_are_blocked(wizard):
    with pytest.raises(GuardViolation) as exc:
        wizard.select_offer("SW101-001")
    assert exc.value.code == "STAGE_MISMATCH"


# ---- passengers ----
def test_slots_are_typed_positionally():
    slots = build_passenger_slots(make_params(adults=2, children=1, infants=2))

    assert len(slots) == 5
    assert [s.passenger_type for s in slots] == [
        PassengerType.ADULT, PassengerType.ADULT, PassengerType.CHILD, PassengerType.INFANT, PassengerType.INFANT,
    ]
    assert [s.index for s in slots] == [1, 2, 3, 4, 5]
    for slot in slots:
        assert slot.requires_passport == (slot.passenger_type != PassengerType.INFANT)
        assert ("passport_number" in slot.required_fields) == slot.requires_passport
        assert all(v == "" for v in slot.values.values())


@pytest.mark.asyncio
async def test_entering_passengers_builds_one_slot_per_seat(wizard):
    await _to_passengers(wizard, make_params(adults=2, children=1, infants=1))

    assert wizard.stage == WizardStage.PASSENGERS
    assert len(wizard.passenger_slots()) == 4


@pytest.mark.asyncio
async def test_infant_needs_no_passport(wizard):
    params = make_params(adults=1, infants=1)
    await _to_passengers(wizard, params)

    infant = make_passenger(first_name="Baby", dob="2029-06-01", passport_number="", passport_expiry="")
    wizard.submit_passengers([make_passenger(), infant])

    assert wizard.stage == WizardStage.REVIEW
    assert wizard.record.passengers[1].passenger_type == PassengerType.INFANT
    assert wizard.record.passengers[1].passport_number is None


@pytest.mark.asyncio
async def test_passenger_issues_are_field_level(wizard):
    await _to_passengers(wizard)

    with pytest.raises(FormValidationError) as exc:
        wizard.submit_passengers([
            make_passenger(first_name="J"),
            make_passenger(last_name="D0e", passport_number=""),
        ])

    issues = {(i["index"], i["field"]) for i in exc.value.issues}
    assert issues == {(1, "first_name"), (2, "last_name"), (2, "passport_number")}
    assert wizard.stage == WizardStage.PASSENGERS


@pytest.mark.asyncio
async def test_passenger_count_must_match(wizard):
    await _to_passengers(wizard)

    with pytest.raises(FormValidationError) as exc:
        wizard.submit_passengers([make_passenger()])
    assert exc.value.issues[0]["field"] == "passengers"


@pytest.mark.asyncio
async def test_expired_passport_is_rejected(wizard):
    await _to_passengers(wizard, make_params(adults=1))

    with pytest.raises(FormValidationError) as exc:
        wizard.submit_passengers([make_passenger(passport_expiry="2030-01-01")])
    assert exc.value.issues[0]["field"] == "passport_expiry"


@pytest.mark.asyncio
async def test_infant_must_be_under_two(wizard):
    await _to_passengers(wizard, make_params(adults=1, infants=1))

    toddler = make_passenger(first_name="Baby", dob="2027-03-01", passport_number="", passport_expiry="")
    with pytest.raises(FormValidationError) as exc:
        wizard.submit_passengers([make_passenger(), toddler])
    assert exc.value.issues == [{"index": 2, "field": "dob", "message": "Infants must be under 2 on the travel date"}]


# ---- review / pay ----
@pytest.mark.asyncio
async def test_entering_review_prices_current_selection(wizard):
    await _to_review(wizard)

    pricing = wizard.record.pricing
    assert (pricing.base_fare, pricing.tax, pricing.total) == (598, 90, 688)


@pytest.mark.asyncio
async def test_reselection_invalidates_pricing(wizard):
    await _to_review(wizard)
    assert wizard.record.pricing.total == 688

    wizard.revisit(WizardStage.SELECT)
    wizard.select_offer("SW102-001")
    assert wizard.record.pricing is None

    wizard.submit_passengers([make_passenger(), make_passenger()])
    # 349 * 2 = 698, tax round(104.7) = 105
    assert wizard.record.pricing.base_fare == 698
    assert wizard.record.pricing.total == 803


@pytest.mark.asyncio
@pytest.mark.parametrize("field, value, code", [
    ("card_number", "123", "PAYMENT_INVALID_CARD"),
    ("expiry", "0831", "PAYMENT_INVALID_EXPIRY"),
    ("cvv", "12", "PAYMENT_INVALID_CVV"),
    ("card_holder", "  ", "PAYMENT_MISSING_CARD_HOLDER"),
])
async def test_each_payment_field_blocks(wizard, field, value, code):
    await _to_review(wizard)

    with pytest.raises(GuardViolation) as exc:
        await wizard.submit_payment(**{**VALID_CARD, field: value})
    assert exc.value.code == code
    assert wizard.stage == WizardStage.REVIEW
    assert wizard.record.confirmation_code is None


@pytest.mark.asyncio
async def test_declined_payment_stays_on_review(settings, mocker):
    gateway = mocker.Mock()
    gateway.charge.return_value = PaymentResult(success=False, reason="Card declined")
    wizard = WizardController(settings=settings, payment_gateway=gateway, today=lambda: TODAY)
    await _to_review(wizard)

    with pytest.raises(PaymentDeclinedError):
        await wizard.submit_payment(**VALID_CARD)
    assert wizard.stage == WizardStage.REVIEW
    assert wizard.record.payment is None


# ---- end to end ----
@pytest.mark.asyncio
async def test_full_booking(wizard, mocker):
    issue = mocker.spy(wizard.issuer, "issue")

    offers = await wizard.submit_search(make_params())
    assert len(offers) == 3
    wizard.select_offer("SW101-001")
    pricing = wizard.submit_passengers([make_passenger(), make_passenger(first_name="Jane", title="ms", gender="female")])
    assert (pricing.base_fare, pricing.tax, pricing.total) == (598, 90, 688)

    artifact = await wizard.submit_payment(**VALID_CARD)

    assert wizard.stage == WizardStage.CONFIRMATION
    assert issue.call_count == 1
    assert re.match(r"^[A-Z]{2}[A-Z0-9]{6}$", artifact.confirmation_code)
    assert artifact.confirmation_code == wizard.record.confirmation_code
    assert artifact.total_paid == 688
    assert wizard.record.payment.masked_card_number == "**** **** **** 1111"
    assert "123" not in wizard.record.model_dump_json(include={"payment"})
    assert wizard.record.status.value == "confirmed"


@pytest.mark.asyncio
async def test_confirmed_booking_is_read_only(wizard):
    await _to_review(wizard)
    await wizard.submit_payment(**VALID_CARD)

    with pytest.raises(GuardViolation):
        wizard.revisit(WizardStage.SELECT)
    with pytest.raises(GuardViolation):
        wizard.advance()


# ---- latency / teardown ----
@pytest.mark.asyncio
async def test_close_cancels_pending_search():
    wizard = WizardController(settings=Settings(search_delay=5, payment_delay=0), today=lambda: TODAY)

    task = asyncio.ensure_future(wizard.submit_search(make_params()))
    await asyncio.sleep(0)
    wizard.close()

    with pytest.raises(SessionClosedError):
        await task
    assert wizard.stage == WizardStage.SEARCH
    assert wizard.record.search_params is None
    assert wizard.record.offers == []


@pytest.mark.asyncio
async def test_second_request_while_processing_is_blocked():
    wizard = WizardController(settings=Settings(search_delay=0.05, payment_delay=0), today=lambda: TODAY)

    first = asyncio.ensure_future(wizard.submit_search(make_params()))
    await asyncio.sleep(0)
    with pytest.raises(GuardViolation) as exc:
        await wizard.submit_search(make_params())
    assert exc.value.code == "STAGE_BUSY"

    await first
    assert wizard.stage == WizardStage.SELECT


@pytest.mark.asyncio
async def test_closed_wizard_rejects_actions(wizard):
    wizard.close()

    with pytest.raises(SessionClosedError):
        await wizard.submit_search(make_params())


@pytest.mark.asyncio
async def test_no_stage_moves_while_payment_is_processing(mocker):
    wizard = WizardController(settings=Settings(search_delay=0, payment_delay=0.05), today=lambda: TODAY)
    issue = mocker.spy(wizard.issuer, "issue")
    await _to_review(wizard)

    paying = asyncio.ensure_future(wizard.submit_payment(**VALID_CARD))
    await asyncio.sleep(0)
    with pytest.raises(GuardViolation) as back:
        wizard.revisit(WizardStage.SEARCH)
    with pytest.raises(GuardViolation) as forward:
        wizard.advance()

    artifact = await paying
    assert back.value.code == forward.value.code == "STAGE_BUSY"
    assert wizard.stage == WizardStage.CONFIRMATION
    assert artifact.confirmation_code == wizard.record.confirmation_code
    assert issue.call_count == 1


# ---- malformed input ----
@pytest.mark.asyncio
async def test_non_object_passenger_entry_is_a_form_issue(wizard):
    await _to_passengers(wizard)

    with pytest.raises(FormValidationError) as exc:
        wizard.submit_passengers(["John Doe", make_passenger()])

    assert [(i["index"], i["field"]) for i in exc.value.issues] == [(1, "passenger")]
    assert wizard.stage == WizardStage.PASSENGERS


def _economy_only_catalog():
    return StaticCatalogProvider(raw_offers=[{
        "id": "XY1-001", "flight_number": "XY1", "airline": "SmartWings",
        "departure": {"airport": "JFK", "city": "New York", "time": "09:00", "gate": "A2"},
        "arrival": {"airport": "LAX", "city": "Los Angeles", "time": "12:10", "gate": "B4"},
        "duration": "6h 10m", "price": {"economy": 199}, "seats": {"economy": 30},
        "aircraft": "Airbus A320",
    }])


@pytest.mark.asyncio
async def test_offer_without_requested_cabin_cannot_be_selected(settings):
    wizard = WizardController(settings=settings, catalog=_economy_only_catalog(), today=lambda: TODAY)
    await wizard.submit_search(make_params(travel_class="first"))

    with pytest.raises(GuardViolation) as exc:
        wizard.select_offer("XY1-001")

    assert exc.value.code == "SELECT_CLASS_UNAVAILABLE"
    assert wizard.stage == WizardStage.SELECT
    assert wizard.record.selected_flight is None


@pytest.mark.asyncio
async def test_failed_stage_entry_keeps_previous_stage(wizard, mocker):
    await _to_passengers(wizard)
    mocker.patch.object(wizard, "reprice", side_effect=ValueError("pricing unavailable"))

    with pytest.raises(ValueError):
        wizard.submit_passengers([make_passenger(), make_passenger()])

    assert wizard.stage == WizardStage.PASSENGERS
    assert wizard.record.pricing is None


def test_simulated_gateway_approves_with_reference():
    offer = StaticCatalogProvider().search(make_params())[0]
    result = SimulatedPaymentGateway().charge("John Doe", "4111111111111111", "08/31", "123",
                                             compute_summary(offer, "economy", 1))

    assert isinstance(result, PaymentResult)
    assert result.success is True
    assert result.reference.startswith("PAY-")
    assert result.reason is None
