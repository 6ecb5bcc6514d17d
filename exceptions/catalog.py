"""
Region and catalog configuration exceptions.

These indicate store misconfiguration rather than bad user input.
"""

from .base import StoreException


class CatalogException(StoreException):
    """Base exception for region/product configuration errors."""
    pass


class NoRegionConfiguredException(CatalogException):
    """Raised when no region exists for the requested currency."""

    def __init__(self, currency_code: str):
        super().__init__(
            f"No {currency_code.upper()} region configured.",
            details={'currency_code': currency_code}
        )
        self.currency_code = currency_code


class DesignProductNotFoundException(CatalogException):
    """Raised when the design-your-own product is missing from the catalog."""

    def __init__(self, handle: str):
        super().__init__(
            "Design Your Own product not found.",
            details={'handle': handle}
        )
        self.handle = handle


class DesignVariantNotFoundException(CatalogException):
    """Raised when the design product has no variant with the configured title."""

    def __init__(self, product_id: str, variant_title: str):
        super().__init__(
            "Custom variant not found.",
            details={'product_id': product_id, 'variant_title': variant_title}
        )
        self.product_id = product_id
        self.variant_title = variant_title
