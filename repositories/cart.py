import copy

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session, selectinload

from db import session_execute, session_flush, session_delete
from models.cart import Cart, CartDTO
from models.line_item import LineItem, LineItemDTO, LineItemUpdateDTO
from models.shipping_address import CartShippingAddress, AddressDTO, ADDRESS_FIELDS


class CartRepository:
    @staticmethod
    async def _get_model(cart_id: str, session: AsyncSession | Session) -> Cart | None:
        # populate_existing: every refetch must reflect the latest stored state,
        # not the identity-map copy from an earlier step of the same request
        stmt = (
            select(Cart)
            .where(Cart.id == cart_id)
            .options(selectinload(Cart.items), selectinload(Cart.shipping_address))
            .execution_options(populate_existing=True)
        )
        cart = await session_execute(stmt, session)
        return cart.scalar()

    @staticmethod
    async def get_by_id(cart_id: str, session: AsyncSession | Session) -> CartDTO | None:
        cart = await CartRepository._get_model(cart_id, session)
        if cart is not None:
            return CartDTO.model_validate(cart, from_attributes=True)
        return None

    @staticmethod
    async def list_open(
        region_id: str,
        sales_channel_id: str | None,
        session: AsyncSession | Session
    ) -> list[CartDTO]:
        stmt = (
            select(Cart)
            .where(Cart.region_id == region_id, Cart.completed_at.is_(None))
            .options(selectinload(Cart.items), selectinload(Cart.shipping_address))
            .order_by(Cart.created_at.desc())
        )
        if sales_channel_id:
            stmt = stmt.where(Cart.sales_channel_id == sales_channel_id)
        carts = await session_execute(stmt, session)
        return [CartDTO.model_validate(cart, from_attributes=True) for cart in carts.scalars().all()]

    @staticmethod
    async def create(
        region_id: str,
        currency_code: str,
        sales_channel_id: str | None,
        session: AsyncSession | Session
    ) -> str:
        cart = Cart(
            region_id=region_id,
            currency_code=currency_code.lower(),
            sales_channel_id=sales_channel_id
        )
        session.add(cart)
        await session_flush(session)
        return cart.id

    @staticmethod
    async def update(cart_id: str, values: dict, session: AsyncSession | Session) -> None:
        """Apply plain column values (region_id, currency_code, email, customer_id, ...)."""
        cart = await CartRepository._get_model(cart_id, session)
        if cart is None:
            return
        for key, value in values.items():
            setattr(cart, key, value)
        await session_flush(session)

    @staticmethod
    async def add_line_items(cart_id: str, items: list[LineItemDTO], session: AsyncSession | Session) -> list[str]:
        created = []
        for item_dto in items:
            data = item_dto.model_dump(exclude={"id", "cart_id", "metadata", "created_at"})
            line_item = LineItem(cart_id=cart_id, item_metadata=copy.deepcopy(item_dto.metadata), **data)
            session.add(line_item)
            created.append(line_item)
        await session_flush(session)
        return [line_item.id for line_item in created]

    @staticmethod
    async def update_line_items(
        cart_id: str,
        updates: list[LineItemUpdateDTO],
        session: AsyncSession | Session
    ) -> list[str]:
        """
        Apply partial updates to line items of one cart.

        Only fields explicitly set on each LineItemUpdateDTO are written, so
        variant_id=None detaches a variant while an unset variant_id keeps it.

        Returns:
            list[str]: ids that were found and updated
        """
        if not updates:
            return []
        ids = [update.id for update in updates]
        stmt = select(LineItem).where(LineItem.cart_id == cart_id, LineItem.id.in_(ids))
        result = await session_execute(stmt, session)
        items_by_id = {item.id: item for item in result.scalars().all()}

        updated = []
        for update in updates:
            line_item = items_by_id.get(update.id)
            if line_item is None:
                continue
            values = update.model_dump(exclude_unset=True, exclude={"id"})
            if "metadata" in values:
                # Reassign instead of mutating in place so the JSON change is tracked
                line_item.item_metadata = copy.deepcopy(values.pop("metadata") or {})
            for key, value in values.items():
                setattr(line_item, key, value)
            updated.append(update.id)
        await session_flush(session)
        return updated

    @staticmethod
    async def upsert_shipping_address(cart_id: str, address: AddressDTO | None, session: AsyncSession | Session) -> None:
        """Replace the cart's shipping address; None removes it."""
        stmt = select(CartShippingAddress).where(CartShippingAddress.cart_id == cart_id)
        result = await session_execute(stmt, session)
        existing = result.scalar()

        if address is None:
            if existing is not None:
                await session_delete(existing, session)
                await session_flush(session)
            return

        values = {field: getattr(address, field) for field in ADDRESS_FIELDS}
        if existing is None:
            session.add(CartShippingAddress(cart_id=cart_id, **values))
        else:
            for key, value in values.items():
                setattr(existing, key, value)
        await session_flush(session)
