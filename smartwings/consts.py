# smartwings/consts.py
from decimal import Decimal

AIRLINE_NAME = "SmartWings"

# Flat rate, no jurisdiction logic.
TAX_RATE = Decimal("0.15")

CURRENCY = "USD"

CONFIRMATION_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
CONFIRMATION_SUFFIX_LENGTH = 6
CONFIRMATION_PATTERN = r"^[A-Z]{2}[A-Z0-9]{6}$"

SESSION_USER_KEY = "currentUser"

# Passenger form fields; passport fields are dropped for infants.
PASSENGER_REQUIRED_FIELDS = ["title", "first_name", "last_name", "dob", "gender", "nationality"]
PASSPORT_FIELDS = ["passport_number", "passport_expiry"]
INFANT_MAX_AGE = 2

NATIONALITIES = {
    "us": "United States",
    "ca": "Canada",
    "mx": "Mexico",
    "uk": "United Kingdom",
    "de": "Germany",
}

# Cancellation / refund tiers (hours before departure -> refunded share)
CANCELLATION_CUTOFF_HOURS = 24
MODIFICATION_CUTOFF_HOURS = 2
REFUND_TIERS = [
    (168, Decimal("0.90")),
    (48, Decimal("0.75")),
    (0, Decimal("0.50")),
]

MSG_REQUIRED = "Please fill in all required fields"
MSG_SAME_ROUTE = "Origin and destination cannot be the same"
MSG_PAST_DEPARTURE = "Departure date cannot be in the past"
MSG_NO_ADULT = "At least one adult is required"
MSG_NEGATIVE_COUNT = "Passenger counts cannot be negative"
MSG_INFANTS_EXCEED = "Number of infants cannot exceed adults"
MSG_RETURN_REQUIRED = "Return date is required for round-trip"
MSG_RETURN_BEFORE_DEPARTURE = "Return date cannot be before departure date"
MSG_FLIGHT_NOT_FOUND = "Flight not found"
MSG_INVALID_CARD = "Please enter a valid 16-digit card number"
MSG_INVALID_EXPIRY = "Please enter expiry date in MM/YY format"
MSG_INVALID_CVV = "Please enter a valid 3-digit CVV"
MSG_MISSING_CARD_HOLDER = "Please enter the name on card"
MSG_INVALID_EMAIL = "Please enter a valid email address"
MSG_NAME_TOO_SHORT = "Name must be at least 2 characters"
MSG_NAME_CHARSET = "Name can only contain letters and spaces"
MSG_FIELD_REQUIRED = "This field is required"
MSG_PASSENGER_NOT_OBJECT = "Passenger details must be a set of named fields"
