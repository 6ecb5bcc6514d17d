"""
Cart-related exceptions.
"""

from .base import StoreException


class CartException(StoreException):
    """Base exception for cart-related errors."""
    pass


class CartNotFoundException(CartException):
    """Raised when a cart id does not resolve to a cart."""

    def __init__(self, cart_id: str):
        super().__init__(
            f"Cart {cart_id} not found",
            details={'cart_id': cart_id}
        )
        self.cart_id = cart_id


class CartCompletedException(CartException):
    """Raised when trying to mutate a cart that was already turned into an order."""

    def __init__(self, cart_id: str):
        super().__init__(
            f"Cart {cart_id} is already completed",
            details={'cart_id': cart_id}
        )
        self.cart_id = cart_id


class CartUnavailableException(CartException):
    """Raised when no cart could be reused or created for an add-to-cart request."""

    def __init__(self, reason: str):
        super().__init__(
            f"Unable to resolve cart: {reason}",
            details={'reason': reason}
        )
        self.reason = reason


class InvalidEmailException(CartException):
    """Raised when a cart update carries a malformed email address."""

    def __init__(self, email: str):
        super().__init__(
            "The email is not valid",
            details={'field': 'email'}
        )
        self.email = email
        self.field = 'email'
