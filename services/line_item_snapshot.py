import copy
import logging
import math

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_commit, session_rollback
from models.cart import CartDTO
from models.line_item import LineItemUpdateDTO
from models.shipping_address import ADDRESS_FIELDS
from models.snapshot import LineItemSnapshot, AddressSnapshot, CartSnapshot, RestoreResult, RestoreError
from repositories.cart import CartRepository

logger = logging.getLogger(__name__)


class LineItemSnapshotService:
    """
    Captures custom-priced line items and the shipping address before a
    cart mutation, and puts them back (best-effort) when the mutation fails.
    """

    @staticmethod
    def snapshot(cart: CartDTO) -> tuple[LineItemSnapshot, ...]:
        snapshots = []
        for item in cart.items:
            if not item.is_custom_price or not item.id:
                continue
            quantity = item.quantity if isinstance(item.quantity, int) and item.quantity > 0 else 1
            unit_price = item.unit_price
            if unit_price is not None and not math.isfinite(unit_price):
                unit_price = None
            snapshots.append(LineItemSnapshot(
                id=item.id,
                title=item.title,
                quantity=quantity,
                unit_price=unit_price,
                metadata=copy.deepcopy(item.metadata or {}),
                variant_id=item.variant_id,
                product_id=item.product_id,
                product_title=item.product_title,
                variant_title=item.variant_title,
                thumbnail=item.thumbnail
            ))
        return tuple(snapshots)

    @staticmethod
    def snapshot_shipping_address(cart: CartDTO) -> AddressSnapshot | None:
        """Whitelisted address fields, or None when there is nothing worth keeping."""
        address = cart.shipping_address
        if address is None:
            return None
        values = {}
        for field in ADDRESS_FIELDS:
            value = getattr(address, field, None)
            if isinstance(value, str) and value.strip():
                values[field] = value
        if not values:
            return None
        return AddressSnapshot(**values)

    @staticmethod
    def capture(cart: CartDTO) -> CartSnapshot:
        return CartSnapshot(
            cart_id=cart.id,
            region_id=cart.region_id,
            currency_code=cart.currency_code,
            items=LineItemSnapshotService.snapshot(cart),
            shipping_address=LineItemSnapshotService.snapshot_shipping_address(cart)
        )

    @staticmethod
    async def restore(
        cart_id: str,
        snapshots: tuple[LineItemSnapshot, ...] | list[LineItemSnapshot],
        session: AsyncSession | Session
    ) -> list[RestoreResult]:
        """
        Re-apply custom pricing fields captured in snapshots.

        Each item is restored and committed on its own so one failure does not
        prevent the others. Never raises: every outcome is returned as a
        RestoreResult and failures are logged.

        Args:
            cart_id: Cart the items belong to
            snapshots: Items captured before the mutation
            session: Database session

        Returns:
            list[RestoreResult]: One entry per snapshot, in order
        """
        results = []
        for snapshot in snapshots:
            values = {"id": snapshot.id, "is_custom_price": True, "metadata": copy.deepcopy(snapshot.metadata)}
            if snapshot.variant_id:
                values["variant_id"] = snapshot.variant_id
            if snapshot.unit_price is not None:
                values["unit_price"] = snapshot.unit_price
            update = LineItemUpdateDTO(**values)
            try:
                updated = await CartRepository.update_line_items(cart_id, [update], session)
                await session_commit(session)
            except Exception as e:
                await session_rollback(session)
                logger.warning(f"[Snapshot] Failed to restore line item {snapshot.id} on cart {cart_id}: {e}")
                results.append(RestoreResult.failure(snapshot.id, e))
                continue

            if snapshot.id not in updated:
                logger.warning(f"[Snapshot] Line item {snapshot.id} no longer exists on cart {cart_id}")
                results.append(RestoreResult(
                    item_id=snapshot.id,
                    error=RestoreError(item_id=snapshot.id, error_type="not_found",
                                       message=f"Line item {snapshot.id} not found")
                ))
                continue
            results.append(RestoreResult.success(snapshot.id))

        restored = sum(1 for result in results if result.ok)
        logger.info(f"[Snapshot] Restored {restored}/{len(results)} custom line items on cart {cart_id}")
        return results
