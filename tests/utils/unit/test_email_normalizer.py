"""
Unit Tests: normalize_email
"""

import pytest

from exceptions.cart import InvalidEmailException
from utils.email_normalizer import normalize_email


@pytest.mark.parametrize("raw, expected", [
    ("buyer@example.com", "buyer@example.com"),
    ("  Buyer@Example.COM ", "buyer@example.com"),
    ("first.last+tag@shop.example.de", "first.last+tag@shop.example.de"),
])
def test_normalizes(raw, expected):
    assert normalize_email(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", "buyer", "buyer@", "@example.com", "buyer@example", "a b@example.com", None])
def test_rejects_malformed(raw):
    with pytest.raises(InvalidEmailException) as exc_info:
        normalize_email(raw)

    assert exc_info.value.field == "email"
