"""
Pricing and design-configuration exceptions.
"""

from .base import StoreException


class PricingException(StoreException):
    """Base exception for custom design pricing errors."""
    pass


class InvalidSelectionException(PricingException):
    """
    Raised when a design selection cannot be priced.

    Covers unknown option ids ("unknown size: 99x99") and known-incompatible
    material/color pairs. User-correctable, never retried.
    """

    def __init__(self, reason: str, field: str | None = None):
        super().__init__(
            reason,
            details={'field': field} if field else {}
        )
        self.reason = reason
        self.field = field


class PricingTableException(PricingException):
    """Raised when the EUR pricing rule table cannot be loaded or is malformed."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            f"Pricing table {path} is unusable: {reason}",
            details={'path': path, 'reason': reason}
        )
        self.path = path
        self.reason = reason
