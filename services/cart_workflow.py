"""
Local stand-in for the commerce platform's "update cart" workflow.

Reproduces the platform behaviors the cart pricing core depends on, including
its failure modes: duplicate guest customers and variants without a price in
the new region currency surface as PlatformException with the platform's
messages, and a region change blanks the shipping address down to the
region's first country.

All validation runs before the first write; on any failure the session is
rolled back so a failed workflow run leaves the cart unchanged.
"""

import copy
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_commit, session_rollback
from exceptions.platform import PlatformException
from models.cart import CartDTO
from models.customer import CustomerDTO
from models.line_item import LineItemUpdateDTO
from models.region import RegionDTO
from models.shipping_address import AddressDTO
from repositories.cart import CartRepository
from repositories.customer import CustomerRepository
from repositories.product import ProductRepository
from repositories.region import RegionRepository

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS: frozenset[str] = frozenset({
    "email", "customer_id", "region_id", "shipping_address", "sales_channel_id", "metadata",
})


class CartWorkflowService:

    @staticmethod
    async def _get_open_cart(cart_id: str, session: AsyncSession | Session) -> CartDTO:
        cart = await CartRepository.get_by_id(cart_id, session)
        if cart is None:
            raise PlatformException(PlatformException.NOT_FOUND, f"Cart with id: {cart_id} was not found")
        if cart.completed_at is not None:
            raise PlatformException(PlatformException.NOT_ALLOWED, f"Cart {cart_id} is already completed")
        return cart

    @staticmethod
    async def _resolve_customer(cart: CartDTO, email: str, session: AsyncSession | Session) -> str:
        """
        Customer id to link for email, creating a guest customer if needed.

        Raises:
            PlatformException: invalid_data if a guest customer with this
                email already exists and the cart is not linked to it
        """
        if cart.customer_id:
            current = await CustomerRepository.get_by_id(cart.customer_id, session)
            if current is not None and current.email.lower() == email.lower():
                return current.id

        customers = await CustomerRepository.list_by_email(email, session)
        registered = next((customer for customer in customers if customer.has_account), None)
        if registered is not None:
            return registered.id
        if any(not customer.has_account for customer in customers):
            raise PlatformException(
                PlatformException.INVALID_DATA,
                f"Customer with email {email} and has_account: false already exists."
            )
        return await CustomerRepository.create(CustomerDTO(email=email, has_account=False), session)

    @staticmethod
    async def _validate_region_change(
        cart: CartDTO,
        region_id: str,
        session: AsyncSession | Session
    ) -> tuple[RegionDTO, dict[str, int]]:
        region = await RegionRepository.get_by_id(region_id, session)
        if region is None:
            raise PlatformException(PlatformException.NOT_FOUND, f"Region with id {region_id} was not found")

        variant_ids = list(dict.fromkeys(item.variant_id for item in cart.items if item.variant_id))
        prices = await ProductRepository.get_variant_prices(variant_ids, region.currency_code, session)
        missing = [variant_id for variant_id in variant_ids if variant_id not in prices]
        if missing:
            raise PlatformException(
                PlatformException.INVALID_DATA,
                f"Variants with IDs {', '.join(missing)} do not have a price"
            )
        return region, prices

    @staticmethod
    async def update_cart(cart_id: str, values: dict, session: AsyncSession | Session) -> None:
        """
        Run the update cart workflow.

        Args:
            cart_id: Cart to update
            values: Fields to apply, subset of UPDATABLE_FIELDS; shipping_address
                    may be an AddressDTO, a dict or None
            session: Database session

        Raises:
            PlatformException: not_found / not_allowed / invalid_data, with the
                platform's message
        """
        unknown = set(values) - UPDATABLE_FIELDS
        if unknown:
            raise PlatformException(PlatformException.INVALID_DATA,
                                    f"Unrecognized fields: {', '.join(sorted(unknown))}")

        try:
            cart = await CartWorkflowService._get_open_cart(cart_id, session)
            cart_values: dict = {}

            # Validation
            region = None
            variant_prices: dict[str, int] = {}
            region_id = values.get("region_id")
            if region_id and region_id != cart.region_id:
                region, variant_prices = await CartWorkflowService._validate_region_change(cart, region_id, session)

            email = values.get("email")
            if "customer_id" in values:
                cart_values["customer_id"] = values["customer_id"]
            elif email:
                cart_values["customer_id"] = await CartWorkflowService._resolve_customer(cart, email, session)

            # Writes
            if "email" in values:
                cart_values["email"] = email
            if "sales_channel_id" in values:
                cart_values["sales_channel_id"] = values["sales_channel_id"]
            if values.get("metadata") is not None:
                cart_values["cart_metadata"] = {**cart.metadata, **copy.deepcopy(values["metadata"])}
            if region is not None:
                cart_values["region_id"] = region.id
                cart_values["currency_code"] = region.currency_code.lower()
            if cart_values:
                await CartRepository.update(cart_id, cart_values, session)

            if region is not None:
                catalog_updates = [
                    LineItemUpdateDTO(id=item.id, unit_price=variant_prices[item.variant_id])
                    for item in cart.items
                    if item.variant_id and not item.is_custom_price
                ]
                await CartRepository.update_line_items(cart_id, catalog_updates, session)

            if "shipping_address" in values:
                address = values["shipping_address"]
                if isinstance(address, dict):
                    address = AddressDTO(**address)
                await CartRepository.upsert_shipping_address(cart_id, address, session)
            elif region is not None:
                country_code = region.countries[0] if region.countries else None
                await CartRepository.upsert_shipping_address(cart_id, AddressDTO(country_code=country_code), session)

            await session_commit(session)
        except Exception:
            await session_rollback(session)
            raise

        logger.info(f"[Workflow] Updated cart {cart_id} fields: {', '.join(sorted(values)) or '(none)'}")
