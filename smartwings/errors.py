# smartwings/errors.py
from __future__ import annotations
from typing import Any, Dict, List, Optional


class BookingError(Exception):
    """Base for every error the wizard surfaces to the user."""

    code = "BOOKING_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_data(self) -> Dict[str, Any]:
        return {"error": self.message}


class FormValidationError(BookingError):
    """Field-level problems; the user corrects them and resubmits the same stage."""

    code = "FORM_VALIDATION_FAILED"

    def __init__(self, issues: List[Dict[str, Any]], message: Optional[str] = None, code: Optional[str] = None):
        super().__init__(message or issues[0]["message"], code)
        self.issues = issues

    def to_data(self) -> Dict[str, Any]:
        return {"error": self.message, "issues": self.issues}


class GuardViolation(BookingError):
    code = "GUARD_VIOLATION"


class PaymentDeclinedError(GuardViolation):
    code = "PAYMENT_DECLINED"


class NotFoundError(BookingError):
    code = "NOT_FOUND"


class SessionClosedError(BookingError):
    code = "SESSION_CLOSED"


class DeliveryError(BookingError):
    code = "DELIVERY_FAILED"
