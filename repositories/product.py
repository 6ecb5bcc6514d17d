from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session, selectinload

from db import session_execute
from models.product import Product, ProductDTO, VariantPrice


class ProductRepository:
    @staticmethod
    async def get_by_handle(handle: str, session: AsyncSession | Session) -> ProductDTO | None:
        stmt = select(Product).where(Product.handle == handle).options(selectinload(Product.variants))
        product = await session_execute(stmt, session)
        product = product.scalar()
        if product is not None:
            return ProductDTO.model_validate(product, from_attributes=True)
        return None

    @staticmethod
    async def get_variant_prices(
        variant_ids: list[str],
        currency_code: str,
        session: AsyncSession | Session
    ) -> dict[str, int]:
        """
        Catalog prices for the given variants in one currency.

        Returns:
            dict: {variant_id: amount_in_minor_units}; variants without a
                  price in that currency are absent
        """
        if not variant_ids:
            return {}
        stmt = select(VariantPrice).where(
            VariantPrice.variant_id.in_(variant_ids),
            func.lower(VariantPrice.currency_code) == currency_code.lower()
        )
        prices = await session_execute(stmt, session)
        return {price.variant_id: price.amount for price in prices.scalars().all()}
