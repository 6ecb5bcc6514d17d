"""
Store API router for the design configurator and carts.

Endpoints:
- GET  /store/designs/config  - configurator options with EUR prices
- POST /store/designs/price   - live price preview
- POST /store/designs/add     - add a custom design to a cart
- GET  /store/carts/{cart_id} - read a cart
- POST /store/carts/{cart_id} - update a cart (region, email, address, ...)

Errors are returned as {code, message} (see utils/error_handler.py).
"""

import logging
import uuid
from datetime import datetime

from fastapi import APIRouter, Request, status

import config
from db import get_db_session
from exceptions.cart import CartNotFoundException
from exceptions.pricing import InvalidSelectionException
from models.cart import CartUpdateDTO
from models.pricing import DesignPriceRequestDTO, DesignAddRequestDTO
from repositories.cart import CartRepository
from services.cart_update import CartUpdateService
from services.design import DesignService
from utils.error_handler import error_response

logger = logging.getLogger(__name__)

store_router = APIRouter(prefix="/store", tags=["store"])

SALES_CHANNEL_HEADER = "X-Sales-Channel-Id"


def generate_correlation_id() -> str:
    """Generate unique correlation ID for request tracing."""
    return f"{datetime.now().strftime('%Y%m%d-%H%M%S')}-{uuid.uuid4().hex[:8]}"


@store_router.get("/designs/config")
async def get_design_config():
    correlation_id = generate_correlation_id()
    try:
        return DesignService.get_config()
    except Exception as e:
        return error_response(e, correlation_id)


@store_router.post("/designs/price")
async def preview_design_price(payload: DesignPriceRequestDTO):
    """
    Live price preview for the configurator.

    Request Body:
        {"size": "21x21", "material": "shadow", "color": "black", "qty": 2, "cartId": "cart_..."}

    Returns:
        200: {currency, unit_price, unit_price_minor, subtotal, subtotal_minor, qty, fx_rate, breakdown}
        422: {code: "invalid_payload", message, field}
    """
    correlation_id = generate_correlation_id()
    async with get_db_session() as session:
        try:
            price = await DesignService.preview_price(payload, payload.cart_id, session)
        except InvalidSelectionException as e:
            return error_response(e, correlation_id, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)
        except Exception as e:
            return error_response(e, correlation_id)
    return price.model_dump()


@store_router.post("/designs/add")
async def add_design_to_cart(request: Request, payload: DesignAddRequestDTO):
    """
    Add a custom design to a cart.

    The sales channel comes from the X-Sales-Channel-Id header, falling back
    to DEFAULT_SALES_CHANNEL_ID.

    Returns:
        200: {cart}
        400: invalid_payload
        404: product_not_found
        500: no_region / variant_not_found / cart_unavailable / server_error
    """
    correlation_id = generate_correlation_id()
    sales_channel_id = request.headers.get(SALES_CHANNEL_HEADER) or config.DEFAULT_SALES_CHANNEL_ID
    logger.info(f"[{correlation_id}] Add design: size={payload.size} material={payload.material} "
                f"color={payload.color} qty={payload.qty} has_cart={bool(payload.cart_id)}")

    async with get_db_session() as session:
        try:
            cart = await DesignService.add_to_cart(payload, sales_channel_id, session)
        except Exception as e:
            return error_response(e, correlation_id)
    logger.info(f"[{correlation_id}] Design added to cart {cart.id}")
    return {"cart": cart.model_dump(mode="json")}


@store_router.get("/carts/{cart_id}")
async def get_cart(cart_id: str):
    correlation_id = generate_correlation_id()
    async with get_db_session() as session:
        try:
            cart = await CartRepository.get_by_id(cart_id, session)
            if cart is None:
                raise CartNotFoundException(cart_id)
        except Exception as e:
            return error_response(e, correlation_id)
    return {"cart": cart.model_dump(mode="json")}


@store_router.post("/carts/{cart_id}")
async def update_cart(cart_id: str, payload: CartUpdateDTO):
    """
    Update a cart, keeping custom-priced items consistent across region changes.

    Request Body (all fields optional):
        {"region_id": "reg_...", "email": "buyer@example.com", "shipping_address": {...}}

    Returns:
        200: {cart}
        400: invalid_payload (malformed email)
        404: cart_not_found / not_found
        409: cart_completed
        500: unrecoverable workflow error
    """
    correlation_id = generate_correlation_id()
    logger.info(f"[{correlation_id}] Updating cart {cart_id}: fields={sorted(payload.model_fields_set)}")

    async with get_db_session() as session:
        try:
            cart = await CartUpdateService.update_cart(cart_id, payload, session)
        except Exception as e:
            return error_response(e, correlation_id)
    return {"cart": cart.model_dump(mode="json")}
