"""
Custom exceptions for the design store backend.

Exception Hierarchy:
--------------------
StoreException (base)
├── CartException
│   ├── CartNotFoundException
│   ├── CartCompletedException
│   ├── CartUnavailableException
│   └── InvalidEmailException
├── PricingException
│   ├── InvalidSelectionException
│   └── PricingTableException
├── CatalogException
│   ├── NoRegionConfiguredException
│   ├── DesignProductNotFoundException
│   └── DesignVariantNotFoundException
└── PlatformException

Usage:
------
Services raise specific exceptions:
    raise InvalidSelectionException("unknown size: 99x99", field="size")

Routes translate them into {code, message} responses:
    except StoreException as e:
        return error_response(e)
"""

from .base import StoreException
from .cart import (
    CartException,
    CartNotFoundException,
    CartCompletedException,
    CartUnavailableException,
    InvalidEmailException,
)
from .pricing import PricingException, InvalidSelectionException, PricingTableException
from .catalog import (
    CatalogException,
    NoRegionConfiguredException,
    DesignProductNotFoundException,
    DesignVariantNotFoundException,
)
from .platform import PlatformException

__all__ = [
    # Base
    'StoreException',

    # Cart
    'CartException',
    'CartNotFoundException',
    'CartCompletedException',
    'CartUnavailableException',
    'InvalidEmailException',

    # Pricing
    'PricingException',
    'InvalidSelectionException',
    'PricingTableException',

    # Catalog
    'CatalogException',
    'NoRegionConfiguredException',
    'DesignProductNotFoundException',
    'DesignVariantNotFoundException',

    # Platform
    'PlatformException',
]
