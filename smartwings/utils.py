# smartwings/utils.py
from __future__ import annotations
from typing import Any, Callable, Optional, Sequence
from datetime import datetime, timezone, date, timedelta
import re
import secrets

from .consts import CONFIRMATION_ALPHABET, CONFIRMATION_SUFFIX_LENGTH

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

def gen_confirmation_code(prefix: str, choice: Callable[[Sequence[str]], str] = secrets.choice) -> str:
    suffix = "".join(choice(CONFIRMATION_ALPHABET) for _ in range(CONFIRMATION_SUFFIX_LENGTH))
    return f"{prefix.upper()}{suffix}"

def normalize(s: str) -> str:
    return " ".join(s.strip().lower().split())

# ---- Flexible date parsing ----
_DATE_PATTERNS = [
    "%Y-%m-%d", "%Y/%m/%d",
    "%d-%m-%Y", "%d/%m/%Y",
    "%m-%d-%Y", "%m/%d/%Y",
    "%d %b %Y", "%d %B %Y",
    "%b %d, %Y", "%B %d, %Y",
]

def parse_date_flexible(value: str, today: Optional[date] = None) -> Optional[date]:
    """
    Accepts:
      - '2026-11-14' / '14-11-2026' / '11/14/2026' / 'Nov 14, 2026'
      - 'today', 'tomorrow'
      - full ISO timestamps: '2026-11-14T18:30:00Z'
    Returns None when nothing matches.
    """
    if not value or not isinstance(value, str):
        return None

    v = value.strip()
    today = today or date.today()
    low = v.lower()

    if low == "today":
        return today
    if low == "tomorrow":
        return today + timedelta(days=1)

    try:
        iso_v = v[:-1] + "+00:00" if v.endswith(("Z", "z")) else v
        return datetime.fromisoformat(iso_v).date()
    except ValueError:
        pass

    for fmt in _DATE_PATTERNS:
        try:
            return datetime.strptime(v, fmt).date()
        except ValueError:
            continue
    return None

def coerce_date(raw: Any, today: Optional[date] = None) -> Optional[date]:
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, str):
        return parse_date_flexible(raw, today)
    return None

def approx_age(dob: date, on: date) -> int:
    years = on.year - dob.year - ((on.month, on.day) < (dob.month, dob.day))
    return max(0, years)

# ---- Display formatting ----
def format_currency(amount: float) -> str:
    return f"${amount:,.2f}"

def format_long_date(d: date) -> str:
    """'Tuesday, October 20, 2026'"""
    return f"{d.strftime('%A, %B')} {d.day}, {d.year}"

def format_card_number(raw: str) -> str:
    """Keep digits only and group them by four, as typed into the card field."""
    digits = re.sub(r"\D", "", raw or "")
    return " ".join(digits[i:i + 4] for i in range(0, len(digits), 4))

def format_expiry(raw: str) -> str:
    digits = re.sub(r"\D", "", raw or "")
    if len(digits) >= 2:
        return digits[:2] + "/" + digits[2:4]
    return digits

def mask_card_number(card_number: str) -> str:
    digits = re.sub(r"\D", "", card_number or "")
    return "**** **** **** " + digits[-4:]
