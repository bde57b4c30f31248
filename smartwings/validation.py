# smartwings/validation.py
"""Field predicates shared by every form. Each one is total and returns a bool."""
from __future__ import annotations
import re
from typing import Any

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^\+?[\d\s\-()]{10,}$")
_CARD_RE = re.compile(r"^\d{16}$")
# Shape only: "13/99" passes, there is no month range check.
_EXPIRY_RE = re.compile(r"^\d{2}/\d{2}$")
_CVV_RE = re.compile(r"^\d{3}$")
_NAME_RE = re.compile(r"^[a-zA-Z\s]+$")


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def is_valid_email(value: Any) -> bool:
    return bool(_EMAIL_RE.fullmatch(_text(value)))


def is_valid_phone(value: Any) -> bool:
    phone = _text(value)
    digits = re.sub(r"\D", "", phone)
    return bool(_PHONE_RE.fullmatch(phone)) and len(digits) >= 10


def is_valid_card(value: Any) -> bool:
    return bool(_CARD_RE.fullmatch(re.sub(r"\s", "", _text(value))))


def is_valid_expiry(value: Any) -> bool:
    return bool(_EXPIRY_RE.fullmatch(_text(value)))


def is_valid_cvv(value: Any) -> bool:
    return bool(_CVV_RE.fullmatch(_text(value)))


def is_valid_name(value: Any) -> bool:
    name = _text(value)
    return len(name) >= 2 and bool(_NAME_RE.fullmatch(name))
