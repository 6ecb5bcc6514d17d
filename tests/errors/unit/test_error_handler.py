"""
Unit Tests: error_handler

Tests for utils/error_handler.py covering exception -> (status, code)
mapping and response bodies.
"""

import json
from unittest.mock import patch

import pytest

from exceptions import (
    InvalidSelectionException,
    CartNotFoundException,
    CartCompletedException,
    InvalidEmailException,
    NoRegionConfiguredException,
    DesignProductNotFoundException,
    DesignVariantNotFoundException,
    PlatformException,
)
from utils.error_handler import map_exception, error_response


@pytest.mark.parametrize("exception, expected", [
    (InvalidSelectionException("unknown size: 99x99", field="size"), (400, "invalid_payload")),
    (InvalidEmailException("nope"), (400, "invalid_payload")),
    (CartNotFoundException("cart_1"), (404, "cart_not_found")),
    (CartCompletedException("cart_1"), (409, "cart_completed")),
    (NoRegionConfiguredException("eur"), (500, "no_region")),
    (DesignProductNotFoundException("design-your-own"), (404, "product_not_found")),
    (DesignVariantNotFoundException("prod_1", "Custom"), (500, "variant_not_found")),
    (PlatformException(PlatformException.NOT_FOUND, "Region with id reg_x was not found"), (404, "not_found")),
    (PlatformException(PlatformException.INVALID_DATA, "bad"), (500, "invalid_data")),
    (ValueError("boom"), (500, "server_error")),
])
def test_map_exception(exception, expected):
    assert map_exception(exception) == expected


def test_invalid_selection_body_carries_field():
    response = error_response(InvalidSelectionException("unknown color: purple", field="color"), status_code=422)

    body = json.loads(response.body)
    assert response.status_code == 422
    assert body["code"] == "invalid_payload"
    assert body["message"] == "unknown color: purple"
    assert body["field"] == "color"


def test_unmapped_error_hides_message_but_adds_error_outside_production():
    response = error_response(RuntimeError("database exploded"))

    body = json.loads(response.body)
    assert response.status_code == 500
    assert body["code"] == "server_error"
    assert body["message"] == "Internal error"
    assert body["error"] == "database exploded"


def test_production_omits_error_text():
    with patch("utils.error_handler.config") as config_mock:
        config_mock.IS_PRODUCTION = True
        response = error_response(RuntimeError("database exploded"))

    assert "error" not in json.loads(response.body)


def test_platform_message_hidden_in_production():
    error = PlatformException(
        PlatformException.INVALID_DATA,
        "Customer with email buyer@example.com and has_account: false already exists."
    )

    with patch("utils.error_handler.config") as config_mock:
        config_mock.IS_PRODUCTION = True
        response = error_response(error)

    body = json.loads(response.body)
    assert response.status_code == 500
    assert body == {"code": "invalid_data", "message": "Internal error"}
    assert "buyer@example.com" not in response.body.decode()


def test_platform_message_only_in_error_outside_production():
    error = PlatformException(PlatformException.NOT_FOUND, "Region with id reg_x was not found")

    response = error_response(error)

    body = json.loads(response.body)
    assert response.status_code == 404
    assert body["message"] == "Internal error"
    assert body["error"] == "Region with id reg_x was not found"
