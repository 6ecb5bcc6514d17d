"""
Keeps custom-priced line items consistent across cart region changes.

Sequence around a region change (see CartUpdateService.update_cart):
1. prepare_custom_items_for_region_change - detach custom items so the
   platform does not validate or reprice them against catalog prices
2. platform workflow runs (region, currency and address change)
3. restore_custom_items_for_region_change - reattach and reprice from EUR
4. reprice_custom_items_for_region - catch anything still in a stale currency
5. restore_shipping_address - refill fields the platform blanked out

Steps 3-5 are best-effort: failures are logged and reported as
RestoreResult values, never raised.
"""

import copy
import logging
import math
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from db import session_commit, session_rollback
from enums.currency import Currency
from models.cart import CartDTO
from models.line_item import LineItemUpdateDTO
from models.shipping_address import AddressDTO, ADDRESS_FIELDS, REGION_BOUND_ADDRESS_FIELDS
from models.snapshot import CartSnapshot, AddressSnapshot, ReconcileResultDTO, RestoreResult, LineItemSnapshot
from repositories.cart import CartRepository
from services.currency import CurrencyConverter, to_decimal
from services.line_item_snapshot import LineItemSnapshotService

logger = logging.getLogger(__name__)


def breakdown_total_eur(metadata: dict | None) -> Decimal | None:
    """EUR total stored in metadata.breakdown, or None if absent/invalid."""
    breakdown = (metadata or {}).get("breakdown")
    if not isinstance(breakdown, dict):
        return None
    total = breakdown.get("total_eur")
    if isinstance(total, bool) or not isinstance(total, (int, float, str)):
        return None
    try:
        value = to_decimal(total)
    except ValueError:
        return None
    if not value.is_finite() or value < 0:
        return None
    return value


class RegionChangeReconciler:

    @staticmethod
    async def prepare_custom_items_for_region_change(cart: CartDTO, session: AsyncSession | Session) -> int:
        """
        Detach custom items before a region change.

        Sets is_custom_price=False and variant_id=None; the variant id is
        backed up into metadata.variant_id so it can be reattached later.

        Returns:
            int: Number of detached items
        """
        updates = []
        for item in cart.custom_items:
            metadata = copy.deepcopy(item.metadata or {})
            if item.variant_id:
                metadata["variant_id"] = item.variant_id
            updates.append(LineItemUpdateDTO(id=item.id, is_custom_price=False, variant_id=None, metadata=metadata))

        if not updates:
            return 0
        detached = await CartRepository.update_line_items(cart.id, updates, session)
        await session_commit(session)
        logger.info(f"[Reconciler] Detached {len(detached)} custom items on cart {cart.id}")
        return len(detached)

    @staticmethod
    async def restore_custom_items_for_region_change(
        cart: CartDTO,
        snapshot: CartSnapshot,
        converter: CurrencyConverter,
        session: AsyncSession | Session
    ) -> ReconcileResultDTO:
        """
        Reattach and reprice the custom items captured in snapshot.

        EUR total comes from the snapshot's metadata.breakdown.total_eur, or,
        only when the previous currency was EUR, from unit_price itself.
        Items with no recoverable EUR total are restored naively (previous
        price kept) through LineItemSnapshotService.restore().

        Args:
            cart: Cart as refetched after the region change
            snapshot: Capture taken before the change
            converter: Currency converter
            session: Database session

        Returns:
            ReconcileResultDTO with repriced/naive ids and failures
        """
        result = ReconcileResultDTO()
        current_items = {item.id: item for item in cart.items}
        candidates = [item for item in snapshot.items if item.id in current_items]
        if not candidates:
            return result

        target = converter.normalize_currency_code(cart.currency_code)
        previous = converter.normalize_currency_code(snapshot.currency_code)
        updates: list[LineItemUpdateDTO] = []
        naive: list[LineItemSnapshot] = []

        for item_snapshot in candidates:
            total_eur = breakdown_total_eur(item_snapshot.metadata)
            if total_eur is None and previous == Currency.EUR and item_snapshot.unit_price is not None:
                total_eur = Decimal(item_snapshot.unit_price).scaleb(-converter.precision(Currency.EUR))
            if total_eur is None or target is None:
                logger.warning(f"[Reconciler] Cannot recover EUR total for item {item_snapshot.id} "
                               f"({snapshot.currency_code} -> {cart.currency_code}), restoring previous price")
                naive.append(item_snapshot)
                continue

            current_metadata = current_items[item_snapshot.id].metadata or {}
            detached_variant_ids = list(current_metadata.get("detached_variant_ids") or [])
            metadata = copy.deepcopy(item_snapshot.metadata)
            metadata["currency"] = target.value
            metadata["fx_rate"] = converter.fx_rate(target)
            if detached_variant_ids:
                metadata["detached_variant_ids"] = detached_variant_ids

            values = {
                "id": item_snapshot.id,
                "is_custom_price": True,
                "unit_price": converter.eur_to_minor_units(total_eur, target),
                "metadata": metadata,
            }
            variant_id = item_snapshot.variant_id or metadata.get("variant_id")
            if variant_id and variant_id not in detached_variant_ids:
                values["variant_id"] = variant_id
            updates.append(LineItemUpdateDTO(**values))

        if updates:
            try:
                repriced = await CartRepository.update_line_items(cart.id, updates, session)
                await session_commit(session)
                result.repriced_item_ids.extend(repriced)
            except Exception as e:
                await session_rollback(session)
                logger.warning(f"[Reconciler] Failed to reprice custom items on cart {cart.id}: {e}")
                result.failures.extend(RestoreResult.failure(update.id, e) for update in updates)

        if naive:
            for restore_result in await LineItemSnapshotService.restore(cart.id, naive, session):
                if restore_result.ok:
                    result.naive_restored_item_ids.append(restore_result.item_id)
                else:
                    result.failures.append(restore_result)

        logger.info(f"[Reconciler] Cart {cart.id}: repriced {len(result.repriced_item_ids)}, "
                    f"naive {len(result.naive_restored_item_ids)}, failed {len(result.failures)}")
        return result

    @staticmethod
    async def reprice_custom_items_for_region(
        cart: CartDTO,
        converter: CurrencyConverter,
        session: AsyncSession | Session
    ) -> int:
        """
        Reprice custom items whose metadata currency/fx_rate disagree with the cart.

        Idempotent: a second run over the same cart writes nothing.

        Returns:
            int: Number of repriced items
        """
        target = converter.normalize_currency_code(cart.currency_code)
        if target is None:
            logger.warning(f"[Reconciler] Cart {cart.id} currency {cart.currency_code!r} unsupported, skipping reprice")
            return 0

        fx_rate = converter.fx_rate(target)
        updates = []
        for item in cart.custom_items:
            metadata = item.metadata or {}
            total_eur = breakdown_total_eur(metadata)
            if total_eur is None:
                continue
            stored_currency = converter.normalize_currency_code(metadata.get("currency"))
            stored_rate = metadata.get("fx_rate")
            rate_matches = isinstance(stored_rate, (int, float)) and math.isclose(stored_rate, fx_rate)
            if stored_currency == target and rate_matches:
                continue

            new_metadata = copy.deepcopy(metadata)
            new_metadata["currency"] = target.value
            new_metadata["fx_rate"] = fx_rate
            updates.append(LineItemUpdateDTO(
                id=item.id,
                unit_price=converter.eur_to_minor_units(total_eur, target),
                metadata=new_metadata
            ))

        if not updates:
            return 0
        repriced = await CartRepository.update_line_items(cart.id, updates, session)
        await session_commit(session)
        logger.info(f"[Reconciler] Repriced {len(repriced)} stale custom items on cart {cart.id} to {target.value}")
        return len(repriced)

    @staticmethod
    async def restore_shipping_address(
        cart: CartDTO,
        address_snapshot: AddressSnapshot | None,
        session: AsyncSession | Session
    ) -> bool:
        """
        Fill blank fields of the current shipping address from the snapshot.

        country_code and province follow the new region and are never
        restored. Persists only when at least one field changes.

        Returns:
            bool: True if the address was updated
        """
        if address_snapshot is None:
            return False

        current = cart.shipping_address or AddressDTO()
        merged = current.model_dump()
        changed = False
        for field in ADDRESS_FIELDS:
            if field in REGION_BOUND_ADDRESS_FIELDS:
                continue
            current_value = merged.get(field)
            snapshot_value = getattr(address_snapshot, field)
            if (current_value is None or not str(current_value).strip()) and snapshot_value:
                merged[field] = snapshot_value
                changed = True

        if not changed:
            return False
        await CartRepository.upsert_shipping_address(cart.id, AddressDTO(**merged), session)
        await session_commit(session)
        logger.info(f"[Reconciler] Restored shipping address fields on cart {cart.id}")
        return True
