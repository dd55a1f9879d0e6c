"""
Domain Exceptions

Raised by the service layer when a business rule rejects a request.
The API layer translates them into JSON error responses through a
single exception handler, so services never build HTTP responses.

Every error is terminal: nothing in the service layer retries them.
"""

from enum import Enum
from typing import Optional


class CouponErrorCode(str, Enum):
    """Machine-readable reasons for coupon failures."""
    NOT_FOUND = "not_found"
    OWNER_MISMATCH = "owner_mismatch"
    ALREADY_USED = "already_used"
    EXPIRED = "expired"
    NOT_QUALIFYING = "not_qualifying"
    LIMIT_REACHED = "limit_reached"
    DUPLICATE_OWNER = "duplicate_owner"
    COMBO_ACTIVE = "combo_active"


class OrderingError(Exception):
    """
    Base class for every expected failure.

    Attributes:
        message: Human readable description
        code: Machine-readable reason
        status_code: HTTP status used by the API layer
    """
    status_code: int = 400
    default_code: str = "ordering_error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if isinstance(code, Enum):
            code = code.value
        self.code = code or self.default_code

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": False,
            "error": self.code,
            "detail": self.message,
        }


class ValidationError(OrderingError):
    """Malformed or non-qualifying input."""
    status_code = 400
    default_code = "validation_error"


class OwnershipError(OrderingError):
    """The resource belongs to somebody else."""
    status_code = 403
    default_code = "forbidden"


class NotFoundError(OrderingError):
    """Unknown coupon code, order id or draft id."""
    status_code = 404
    default_code = "not_found"


class ConflictError(OrderingError):
    """The request conflicts with stored state (used coupon, cap reached...)."""
    status_code = 409
    default_code = "conflict"


class ExpiredError(OrderingError):
    """The coupon is past its expiration date."""
    status_code = 410
    default_code = "expired"


class StorageUnavailableError(OrderingError):
    """The document store could not complete an atomic update."""
    status_code = 503
    default_code = "storage_unavailable"
