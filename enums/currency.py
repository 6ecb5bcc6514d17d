from enum import Enum


class Currency(str, Enum):
    """
    Currencies the store can price custom designs in.

    The pricing table is always denominated in EUR; every other currency
    is derived through an FX rate.
    """
    EUR = "EUR"
    USD = "USD"
    GBP = "GBP"
    PLN = "PLN"
