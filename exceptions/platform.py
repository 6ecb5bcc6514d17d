"""
Errors raised by the commerce platform's cart workflow.

The platform exposes no stable typed taxonomy: a PlatformException only
carries a coarse type and a message. Specific conditions (duplicate guest
email, missing variant price) are recognized by inspecting the message,
see utils/error_classifier.py.
"""

from .base import StoreException


class PlatformException(StoreException):
    INVALID_DATA = "invalid_data"
    NOT_FOUND = "not_found"
    NOT_ALLOWED = "not_allowed"
    UNEXPECTED_STATE = "unexpected_state"

    def __init__(self, error_type: str, message: str):
        super().__init__(message, details={'type': error_type})
        self.type = error_type
