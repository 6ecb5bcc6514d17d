"""
Unit Tests: CartRepository.upsert_shipping_address

Replacing and removing a cart's shipping address with both async and
sync sessions.
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.orm import Session

from models.shipping_address import AddressDTO
from repositories.cart import CartRepository

EU_REGION_ID = "reg_eu"


class TestUpsertShippingAddress:

    @pytest.mark.asyncio
    async def test_replaces_whole_address(self, store_data):
        session = store_data
        cart_id = await CartRepository.create(EU_REGION_ID, "eur", None, session)
        await CartRepository.upsert_shipping_address(
            cart_id, AddressDTO(company="Old Corp", city="Berlin", country_code="de"), session
        )

        await CartRepository.upsert_shipping_address(cart_id, AddressDTO(city="Paris", country_code="fr"), session)
        await session.commit()

        address = (await CartRepository.get_by_id(cart_id, session)).shipping_address
        assert address.city == "Paris"
        assert address.country_code == "fr"
        assert address.company is None

    @pytest.mark.asyncio
    async def test_none_removes_address(self, store_data):
        session = store_data
        cart_id = await CartRepository.create(EU_REGION_ID, "eur", None, session)
        await CartRepository.upsert_shipping_address(cart_id, AddressDTO(city="Berlin", country_code="de"), session)
        await session.commit()

        await CartRepository.upsert_shipping_address(cart_id, None, session)
        await session.commit()

        assert (await CartRepository.get_by_id(cart_id, session)).shipping_address is None

    @pytest.mark.asyncio
    async def test_none_removes_address_with_sync_session(self):
        session = MagicMock(spec=Session)
        existing = MagicMock()
        session.execute.return_value.scalar.return_value = existing

        await CartRepository.upsert_shipping_address("cart_1", None, session)

        session.delete.assert_called_once_with(existing)
        session.flush.assert_called_once()
