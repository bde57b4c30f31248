# smartwings/models.py
from __future__ import annotations
from typing import List, Optional, Literal, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, EmailStr, model_validator
from datetime import datetime, date
from enum import Enum, IntEnum

class TravelClass(str, Enum):
    ECONOMY = "economy"
    BUSINESS = "business"
    FIRST = "first"

class TripType(str, Enum):
    ONE_WAY = "one-way"
    ROUND_TRIP = "round-trip"

class PassengerType(str, Enum):
    ADULT = "adult"
    CHILD = "child"
    INFANT = "infant"

class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"

class Title(str, Enum):
    MR = "mr"
    MRS = "mrs"
    MS = "ms"
    DR = "dr"

class MealPreference(str, Enum):
    NONE = "none"
    VEGETARIAN = "vegetarian"
    VEGAN = "vegan"
    KOSHER = "kosher"

class FlightStatus(str, Enum):
    ON_TIME = "On Time"
    DELAYED = "Delayed"
    CANCELLED = "Cancelled"
    LANDED = "Landed"

class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"

class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"

class WizardStage(IntEnum):
    SEARCH = 1
    SELECT = 2
    PASSENGERS = 3
    REVIEW = 4
    CONFIRMATION = 5

class SearchParams(BaseModel):
    """Submitted search form. Route/date/count rules are checked by the search guard."""
    model_config = ConfigDict(frozen=True)

    origin: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    departure_date: date
    return_date: Optional[date] = None
    trip_type: TripType = TripType.ROUND_TRIP
    adults: int = 1
    children: int = 0
    infants: int = 0
    travel_class: TravelClass = TravelClass.ECONOMY

    @property
    def passenger_count(self) -> int:
        return self.adults + self.children + self.infants

class FlightLeg(BaseModel):
    airport: str
    city: str
    time: str  # local "HH:MM"
    gate: str

class FlightOffer(BaseModel):
    id: str
    flight_number: str
    airline: str
    departure: FlightLeg
    arrival: FlightLeg
    duration: str
    price: Dict[TravelClass, float]
    seats: Dict[TravelClass, int]
    aircraft: str

    @model_validator(mode="after")
    def _classes_match(self) -> "FlightOffer":
        if set(self.price) != set(self.seats):
            raise ValueError("price and seats must list the same travel classes")
        return self

    @property
    def carrier_code(self) -> str:
        return self.flight_number[:2].upper()

    @property
    def offered_classes(self) -> List[TravelClass]:
        return [c for c in TravelClass if c in self.price]

    def to_public(self, travel_class: Optional[TravelClass] = None) -> Dict[str, Any]:
        public = {
            "id": self.id,
            "flight_number": self.flight_number,
            "airline": self.airline,
            "aircraft": self.aircraft,
            "from": self.departure.model_dump(),
            "to": self.arrival.model_dump(),
            "duration": self.duration,
            "prices_usd": {c.value: p for c, p in self.price.items()},
            "seats_available": {c.value: s for c, s in self.seats.items()},
        }
        if travel_class is not None and travel_class in self.price:
            public["price_per_person"] = self.price[travel_class]
            public["seats_left"] = self.seats[travel_class]
        return public

class SpecialRequests(BaseModel):
    wheelchair: bool = False
    meal: MealPreference = MealPreference.NONE
    extra_legroom: bool = False

class PassengerSlot(BaseModel):
    index: int  # 1-based, as shown on the form
    passenger_type: PassengerType
    requires_passport: bool
    required_fields: List[str]
    values: Dict[str, Any] = Field(default_factory=dict)

class Passenger(BaseModel):
    title: Title
    first_name: str = Field(..., min_length=2, max_length=80)
    last_name: str = Field(..., min_length=2, max_length=80)
    dob: date
    gender: Gender
    nationality: str
    passenger_type: PassengerType
    passport_number: Optional[str] = None
    passport_expiry: Optional[date] = None
    special_requests: SpecialRequests = Field(default_factory=SpecialRequests)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

class PaymentInfo(BaseModel):
    card_holder: str
    masked_card_number: str
    expiry: str

class PricingSummary(BaseModel):
    travel_class: TravelClass
    unit_price: float
    passenger_count: int
    base_fare: float
    tax: float
    total: float
    currency: str = "USD"

class BookingRecord(BaseModel):
    search_params: Optional[SearchParams] = None
    offers: List[FlightOffer] = Field(default_factory=list)
    selected_flight: Optional[FlightOffer] = None
    passengers: List[Passenger] = Field(default_factory=list)
    payment: Optional[PaymentInfo] = None
    pricing: Optional[PricingSummary] = None
    confirmation_code: Optional[str] = None
    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    confirmed_at: Optional[datetime] = None

    @property
    def is_finalized(self) -> bool:
        return self.confirmation_code is not None

class ConfirmationArtifact(BaseModel):
    confirmation_code: str
    flight_number: str
    route: str
    date: str
    time: str
    passenger_count: int
    total_paid: float
    code_image: Optional[bytes] = None
    code_image_fallback: Optional[str] = None

class User(BaseModel):
    id: int
    email: EmailStr
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: UserRole = UserRole.USER
    is_active: bool = True

class FlightStatusEntry(BaseModel):
    flight: str
    route: str
    status: FlightStatus
    time: str
    gate: str
    terminal: str

class Notification(BaseModel):
    severity: Literal["error", "success", "info"]
    message: str

class ResponseEnvelope(BaseModel):
    ok: bool
    code: str
    message: str
    data: Dict[str, Any]
