"""
Models Package

This file ensures all SQLAlchemy models are imported and registered,
which is required for relationships to work correctly.
"""

from models.base import Base
from models.region import Region
from models.customer import Customer
from models.product import Product, ProductVariant, VariantPrice
from models.cart import Cart
from models.line_item import LineItem
from models.shipping_address import CartShippingAddress

__all__ = [
    'Base',
    'Region',
    'Customer',
    'Product',
    'ProductVariant',
    'VariantPrice',
    'Cart',
    'LineItem',
    'CartShippingAddress',
]
