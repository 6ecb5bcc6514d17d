import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

import config
from db import session_commit
from enums.currency import Currency
from exceptions.cart import CartUnavailableException
from exceptions.catalog import (
    NoRegionConfiguredException,
    DesignProductNotFoundException,
    DesignVariantNotFoundException,
)
from exceptions.pricing import InvalidSelectionException
from models.cart import CartDTO
from models.line_item import LineItemDTO
from models.pricing import DesignSelectionDTO, DesignAddRequestDTO, PriceResultDTO, PricingTableDTO
from repositories.cart import CartRepository
from repositories.product import ProductRepository
from repositories.region import RegionRepository
from services.currency import CurrencyConverter
from services.pricing import PricingService

logger = logging.getLogger(__name__)


class DesignService:
    """Design-your-own entry points: configurator options, price preview, add to cart."""

    @staticmethod
    def _validated_selection(selection: DesignSelectionDTO, table: PricingTableDTO) -> None:
        validation = PricingService.validate_selections(selection, table)
        if not validation.ok:
            raise InvalidSelectionException(validation.reason, field=validation.field)

    @staticmethod
    def get_config() -> dict:
        table = PricingService.load_pricing_table()
        return PricingService.build_design_config(table)

    @staticmethod
    async def preview_price(
        selection: DesignSelectionDTO,
        cart_id: str | None,
        session: AsyncSession | Session,
        converter: CurrencyConverter | None = None
    ) -> PriceResultDTO:
        """
        Live price for the configurator.

        Priced in the cart's currency when cart_id resolves to a cart with a
        supported currency, otherwise in EUR. Quantity is clamped to the
        table's qty bounds.

        Raises:
            InvalidSelectionException: If the selection fails validation
        """
        converter = converter or CurrencyConverter(config.FX_CONFIG)
        table = PricingService.load_pricing_table()
        DesignService._validated_selection(selection, table)

        currency = Currency.EUR
        if cart_id:
            cart = await CartRepository.get_by_id(cart_id, session)
            if cart is not None:
                currency = converter.normalize_currency_code(cart.currency_code) or Currency.EUR

        return PricingService.calculate_price(selection, currency, table, converter)

    @staticmethod
    async def add_to_cart(
        request: DesignAddRequestDTO,
        sales_channel_id: str | None,
        session: AsyncSession | Session,
        converter: CurrencyConverter | None = None
    ) -> CartDTO:
        """
        Add a custom design to a cart as a custom-priced line item.

        Algorithm:
        1. Validate selection
        2. Reuse request.cart_id unless missing or completed
        3. Otherwise pick the first EUR region
        4. Price in cart currency, else region currency, else EUR
        5. Resolve design product (by handle) and its custom variant (by title)
        6. Reuse an open cart in the region/sales channel or create one
        7. Add the line item with size/material/color/file/price metadata

        Returns:
            CartDTO: Cart holding the new line item

        Raises:
            InvalidSelectionException: Selection failed validation
            NoRegionConfiguredException: No EUR region exists
            DesignProductNotFoundException: Design product missing
            DesignVariantNotFoundException: Custom variant missing
            CartUnavailableException: No cart could be reused or created
        """
        converter = converter or CurrencyConverter(config.FX_CONFIG)
        table = PricingService.load_pricing_table()
        DesignService._validated_selection(request, table)

        cart = None
        if request.cart_id:
            cart = await CartRepository.get_by_id(request.cart_id, session)
            if cart is None:
                logger.warning(f"[Design] Provided cart {request.cart_id} not found, resolving another")
            elif cart.completed_at is not None:
                logger.warning(f"[Design] Provided cart {request.cart_id} is completed, resolving another")
                cart = None

        region = None
        if cart is None:
            regions = await RegionRepository.list_by_currency(Currency.EUR.value, session)
            if not regions:
                logger.error("[Design] No EUR region configured")
                raise NoRegionConfiguredException(Currency.EUR.value)
            region = regions[0]

        target_currency = (
            converter.normalize_currency_code(cart.currency_code if cart else None)
            or converter.normalize_currency_code(region.currency_code if region else None)
            or Currency.EUR
        )
        price = PricingService.calculate_price(
            request, target_currency, table, converter,
            qty_bounds=(table.qty.min, config.DESIGN_ADD_MAX_QTY)
        )

        product = await ProductRepository.get_by_handle(config.DESIGN_PRODUCT_HANDLE, session)
        if product is None:
            logger.error(f"[Design] Product not found by handle: {config.DESIGN_PRODUCT_HANDLE}")
            raise DesignProductNotFoundException(config.DESIGN_PRODUCT_HANDLE)
        variant = next((v for v in product.variants if v.title == config.DESIGN_VARIANT_TITLE), None)
        if variant is None:
            logger.error(f"[Design] Variant not found by title: {config.DESIGN_VARIANT_TITLE}")
            raise DesignVariantNotFoundException(product.id, config.DESIGN_VARIANT_TITLE)

        if cart is None:
            open_carts = await CartRepository.list_open(region.id, sales_channel_id, session)
            if open_carts:
                cart = open_carts[0]
                logger.info(f"[Design] Reusing open cart {cart.id}")
            else:
                cart_id = await CartRepository.create(region.id, target_currency.value, sales_channel_id, session)
                cart = await CartRepository.get_by_id(cart_id, session)
                logger.info(f"[Design] Created cart {cart_id} in region {region.id}")
        if cart is None:
            raise CartUnavailableException("no cart could be reused or created")

        line_item = LineItemDTO(
            title=config.DESIGN_LINE_ITEM_TITLE,
            product_id=product.id,
            product_title=product.title,
            subtitle=product.subtitle,
            thumbnail=product.thumbnail,
            variant_id=variant.id,
            variant_title=variant.title,
            quantity=price.qty,
            unit_price=price.unit_price_minor,
            is_custom_price=True,
            sales_channel_id=sales_channel_id,
            metadata={
                "size": request.size,
                "material": request.material,
                "color": request.color,
                "fileName": request.file_name,
                "fileUrl": request.file_url,
                "currency": price.currency,
                "fx_rate": price.fx_rate,
                "breakdown": price.breakdown.model_dump(),
            }
        )
        await CartRepository.add_line_items(cart.id, [line_item], session)
        await session_commit(session)
        logger.info(f"[Design] Added custom item to cart {cart.id}: {request.size}/{request.material}/"
                    f"{request.color} x{price.qty} = {price.unit_price_minor} {price.currency} minor")
        return await CartRepository.get_by_id(cart.id, session)
