"""
Unit Tests: CartUpdateService

End-to-end tests for the cart update orchestration in services/cart_update.py
against the in-memory store, with the workflow mocked where a platform failure
mode cannot be produced by the local workflow:
- region change keeps custom prices (EUR breakdown repriced, address restored
  unless the request sent its own)
- guest email conflict resolved and retried
- variants without price detached and retried
- unrecoverable errors roll back detached items and propagate unchanged
"""

from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest

from exceptions.cart import CartNotFoundException, CartCompletedException, InvalidEmailException
from exceptions.platform import PlatformException
from models.cart import CartUpdateDTO
from models.customer import CustomerDTO
from models.line_item import LineItemDTO
from models.shipping_address import AddressDTO
from repositories.cart import CartRepository
from services.cart_update import CartUpdateService
from services.cart_workflow import CartWorkflowService
from utils.error_classifier import ErrorClassifier

EU_REGION_ID = "reg_eu"
US_REGION_ID = "reg_us"
PL_REGION_ID = "reg_pl"
DESIGN_VARIANT_ID = "variant_custom"
POSTER_VARIANT_ID = "variant_poster"

GUEST_CONFLICT_MESSAGE = "Customer with email buyer@example.com and has_account: false already exists."


def design_item(variant_id=DESIGN_VARIANT_ID):
    return LineItemDTO(
        title="Custom LED Panel",
        unit_price=6900,
        is_custom_price=True,
        variant_id=variant_id,
        metadata={
            "size": "36x14", "material": "clear", "color": "black", "currency": "EUR", "fx_rate": 1.0,
            "breakdown": {"base_eur": 69.0, "material_eur": 0.0, "color_eur": 0.0, "total_eur": 69.0},
        }
    )


def poster_item():
    return LineItemDTO(title="Poster", unit_price=1500, variant_id=POSTER_VARIANT_ID, product_id="prod_poster")


async def seed_cart(session, items=(), address=None):
    cart_id = await CartRepository.create(EU_REGION_ID, "eur", None, session)
    if items:
        await CartRepository.add_line_items(cart_id, list(items), session)
    if address is not None:
        await CartRepository.upsert_shipping_address(cart_id, address, session)
    await session.commit()
    return cart_id


class TestRegionChange:

    @pytest.mark.asyncio
    async def test_custom_item_repriced_from_eur_breakdown(self, store_data, converter):
        session = store_data
        address = AddressDTO(first_name="Ada", last_name="Lovelace", address_1="Main St 1",
                             city="Berlin", postal_code="10115", country_code="de")
        cart_id = await seed_cart(session, [design_item()], address=address)

        cart = await CartUpdateService.update_cart(
            cart_id, CartUpdateDTO(region_id=US_REGION_ID), session, converter=converter
        )

        item = cart.items[0]
        assert cart.region_id == US_REGION_ID
        assert cart.currency_code == "usd"
        assert item.is_custom_price is True
        assert item.unit_price == 7452
        assert item.variant_id == DESIGN_VARIANT_ID
        assert item.metadata["currency"] == "USD"
        assert item.metadata["fx_rate"] == 1.08
        assert item.metadata["breakdown"]["total_eur"] == 69.0
        assert cart.shipping_address.country_code == "us"
        assert cart.shipping_address.first_name == "Ada"
        assert cart.shipping_address.address_1 == "Main St 1"
        assert cart.shipping_address.postal_code == "10115"

    @pytest.mark.asyncio
    async def test_address_sent_with_region_change_is_kept_as_sent(self, store_data, converter):
        session = store_data
        old_address = AddressDTO(first_name="Ada", company="Old Corp", address_1="Main St 1", address_2="Apt 9",
                                 city="Berlin", postal_code="10115", country_code="de")
        cart_id = await seed_cart(session, [design_item()], address=old_address)
        payload = CartUpdateDTO(
            region_id=US_REGION_ID,
            shipping_address=AddressDTO(address_1="5th Ave 1", city="New York", country_code="us")
        )

        cart = await CartUpdateService.update_cart(cart_id, payload, session, converter=converter)

        address = cart.shipping_address
        assert address.address_1 == "5th Ave 1"
        assert address.city == "New York"
        assert address.country_code == "us"
        assert address.company is None
        assert address.address_2 is None
        assert address.first_name is None
        assert address.postal_code is None
        assert cart.items[0].unit_price == 7452

    @pytest.mark.asyncio
    async def test_repeating_the_update_is_idempotent(self, store_data, converter):
        session = store_data
        cart_id = await seed_cart(session, [design_item()])
        payload = CartUpdateDTO(region_id=PL_REGION_ID)

        first = await CartUpdateService.update_cart(cart_id, payload, session, converter=converter)
        second = await CartUpdateService.update_cart(cart_id, payload, session, converter=converter)

        assert first.items[0].unit_price == 29670
        assert second.items[0].unit_price == 29670
        assert second.items[0].metadata == first.items[0].metadata

    @pytest.mark.asyncio
    async def test_unknown_region_restores_detached_items(self, store_data, converter):
        session = store_data
        cart_id = await seed_cart(session, [design_item()])

        with pytest.raises(PlatformException) as exc_info:
            await CartUpdateService.update_cart(
                cart_id, CartUpdateDTO(region_id="reg_missing"), session, converter=converter
            )

        assert str(exc_info.value) == "Region with id reg_missing was not found"
        cart = await CartRepository.get_by_id(cart_id, session)
        assert cart.region_id == EU_REGION_ID
        assert cart.items[0].is_custom_price is True
        assert cart.items[0].variant_id == DESIGN_VARIANT_ID
        assert cart.items[0].unit_price == 6900

    @pytest.mark.asyncio
    async def test_catalog_item_without_price_is_unrecoverable(self, store_data, converter):
        session = store_data
        cart_id = await seed_cart(session, [design_item(), poster_item()])

        with pytest.raises(PlatformException) as exc_info:
            await CartUpdateService.update_cart(
                cart_id, CartUpdateDTO(region_id=PL_REGION_ID), session, converter=converter
            )

        assert str(exc_info.value) == f"Variants with IDs {POSTER_VARIANT_ID} do not have a price"
        cart = await CartRepository.get_by_id(cart_id, session)
        custom = cart.custom_items
        assert cart.currency_code == "eur"
        assert len(custom) == 1
        assert custom[0].variant_id == DESIGN_VARIANT_ID
        assert custom[0].unit_price == 6900


class TestGuestEmailConflict:

    @pytest.mark.asyncio
    async def test_links_existing_guest_and_retries(self, store_data, guest_customer, converter):
        session = store_data
        cart_id = await seed_cart(session, [design_item()])

        cart = await CartUpdateService.update_cart(
            cart_id, CartUpdateDTO(email="  Buyer@Example.com "), session, converter=converter
        )

        assert cart.email == "buyer@example.com"
        assert cart.customer_id == guest_customer.id
        assert cart.items[0].unit_price == 6900

    @pytest.mark.asyncio
    async def test_no_guest_found_propagates_original_error(self, store_data, converter):
        session = store_data
        cart_id = await seed_cart(session)
        error = PlatformException(PlatformException.INVALID_DATA, GUEST_CONFLICT_MESSAGE)

        with patch.object(CartWorkflowService, "update_cart", new=AsyncMock(side_effect=error)) as workflow_mock, \
                patch("services.cart_update.CustomerRepository.list_by_email", new=AsyncMock(return_value=[])):
            with pytest.raises(PlatformException) as exc_info:
                await CartUpdateService.update_cart(
                    cart_id, CartUpdateDTO(email="buyer@example.com"), session, converter=converter
                )

        assert exc_info.value is error
        assert workflow_mock.await_count == 1

    @pytest.mark.asyncio
    async def test_attempts_are_bounded(self, store_data, converter):
        session = store_data
        cart_id = await seed_cart(session)
        error = PlatformException(PlatformException.INVALID_DATA, GUEST_CONFLICT_MESSAGE)
        guest = CustomerDTO(id="cus_guest", email="buyer@example.com", has_account=False)

        with patch.object(CartWorkflowService, "update_cart", new=AsyncMock(side_effect=error)) as workflow_mock, \
                patch("services.cart_update.CustomerRepository.list_by_email", new=AsyncMock(return_value=[guest])), \
                patch("services.cart_update.CartRepository.update", new=AsyncMock()):
            with pytest.raises(PlatformException):
                await CartUpdateService.update_cart(
                    cart_id, CartUpdateDTO(email="buyer@example.com"), session, converter=converter
                )

        assert workflow_mock.await_count == 3

    @pytest.mark.asyncio
    async def test_classifier_without_rules_does_not_retry(self, store_data, guest_customer, converter):
        session = store_data
        cart_id = await seed_cart(session)

        with pytest.raises(PlatformException) as exc_info:
            await CartUpdateService.update_cart(
                cart_id, CartUpdateDTO(email="buyer@example.com"), session,
                converter=converter, classifier=ErrorClassifier([])
            )

        assert str(exc_info.value) == GUEST_CONFLICT_MESSAGE
        assert (await CartRepository.get_by_id(cart_id, session)).customer_id is None


class TestMissingVariantPrice:

    @pytest.mark.asyncio
    async def test_detaches_offending_variant_and_retries(self, store_data, converter):
        session = store_data
        cart_id = await seed_cart(session, [design_item(variant_id=POSTER_VARIANT_ID)])
        error = PlatformException(PlatformException.INVALID_DATA,
                                  f"Variants with IDs {POSTER_VARIANT_ID} do not have a price")

        with patch.object(CartWorkflowService, "update_cart",
                          new=AsyncMock(side_effect=[error, None])) as workflow_mock:
            cart = await CartUpdateService.update_cart(
                cart_id, CartUpdateDTO(sales_channel_id="sc_web"), session, converter=converter
            )

        item = cart.items[0]
        assert workflow_mock.await_count == 2
        assert item.variant_id is None
        assert item.is_custom_price is True
        assert item.unit_price == 6900
        assert item.metadata["detached_variant_ids"] == [POSTER_VARIANT_ID]

    @pytest.mark.asyncio
    async def test_nothing_left_to_detach_propagates(self, store_data, converter):
        session = store_data
        cart_id = await seed_cart(session, [design_item(variant_id=POSTER_VARIANT_ID)])
        error = PlatformException(PlatformException.INVALID_DATA,
                                  f"Variants with IDs {POSTER_VARIANT_ID} do not have a price")

        with patch.object(CartWorkflowService, "update_cart", new=AsyncMock(side_effect=error)) as workflow_mock:
            with pytest.raises(PlatformException) as exc_info:
                await CartUpdateService.update_cart(
                    cart_id, CartUpdateDTO(sales_channel_id="sc_web"), session, converter=converter
                )

        assert exc_info.value is error
        assert workflow_mock.await_count == 2


class TestPreconditions:

    @pytest.mark.asyncio
    async def test_invalid_email(self, store_data, converter):
        session = store_data
        cart_id = await seed_cart(session)

        with pytest.raises(InvalidEmailException):
            await CartUpdateService.update_cart(cart_id, CartUpdateDTO(email="not-an-email"), session,
                                                converter=converter)

        assert (await CartRepository.get_by_id(cart_id, session)).email is None

    @pytest.mark.asyncio
    async def test_cart_not_found(self, store_data, converter):
        with pytest.raises(CartNotFoundException):
            await CartUpdateService.update_cart("cart_missing", CartUpdateDTO(region_id=US_REGION_ID),
                                                store_data, converter=converter)

    @pytest.mark.asyncio
    async def test_completed_cart(self, store_data, converter):
        session = store_data
        cart_id = await seed_cart(session)
        await CartRepository.update(cart_id, {"completed_at": datetime.now()}, session)
        await session.commit()

        with pytest.raises(CartCompletedException):
            await CartUpdateService.update_cart(cart_id, CartUpdateDTO(region_id=US_REGION_ID), session,
                                                converter=converter)

    @pytest.mark.asyncio
    async def test_unrecoverable_error_not_retried(self, store_data, converter):
        session = store_data
        cart_id = await seed_cart(session, [design_item()])

        with patch.object(CartWorkflowService, "update_cart",
                          new=AsyncMock(side_effect=RuntimeError("platform down"))) as workflow_mock:
            with pytest.raises(RuntimeError, match="platform down"):
                await CartUpdateService.update_cart(cart_id, CartUpdateDTO(region_id=US_REGION_ID), session,
                                                    converter=converter)

        assert workflow_mock.await_count == 1
        item = (await CartRepository.get_by_id(cart_id, session)).items[0]
        assert item.is_custom_price is True
        assert item.variant_id == DESIGN_VARIANT_ID
