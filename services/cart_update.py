import copy
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

import config
from db import session_commit, session_rollback
from enums.cart_update_state import CartUpdateState
from enums.error_category import ErrorCategory, ConflictKind
from exceptions.cart import CartNotFoundException, CartCompletedException
from models.cart import CartDTO, CartUpdateDTO
from models.line_item import LineItemUpdateDTO
from models.snapshot import CartSnapshot
from repositories.cart import CartRepository
from repositories.customer import CustomerRepository
from services.cart_workflow import CartWorkflowService
from services.currency import CurrencyConverter
from services.line_item_snapshot import LineItemSnapshotService
from services.region_reconciler import RegionChangeReconciler
from utils.cart_update_state_machine import UpdateStateMachine
from utils.email_normalizer import normalize_email
from utils.error_classifier import ErrorClassifier, ClassifiedError, default_error_classifier, extract_variant_ids

logger = logging.getLogger(__name__)

BASE_MUTATION_ATTEMPTS = 3


class CartUpdateService:
    """
    Store cart update with custom line item protection.

    Flow:
    1. SNAPSHOTTING: capture custom items + shipping address, detach custom
       items if the region is about to change
    2. MUTATING: run the cart workflow, retrying after locally resolved
       conflicts (duplicate guest customer, variant without price)
    3. FAILED: restore detached items from the snapshot, re-raise the original error
    4. RECONCILING: reattach/reprice custom items, restore the address
    5. RESPONDING: return the refetched cart
    """

    @staticmethod
    async def update_cart(
        cart_id: str,
        payload: CartUpdateDTO,
        session: AsyncSession | Session,
        converter: CurrencyConverter | None = None,
        classifier: ErrorClassifier | None = None
    ) -> CartDTO:
        """
        Apply a store cart update.

        Args:
            cart_id: Cart to update
            payload: Update payload, only explicitly sent fields are applied
            session: Database session
            converter: Currency converter (defaults to config.FX_CONFIG rates)
            classifier: Error classifier (defaults to default_error_classifier())

        Returns:
            CartDTO: Cart as stored after the update and reconciliation

        Raises:
            CartNotFoundException: If the cart does not exist
            CartCompletedException: If the cart was already completed
            InvalidEmailException: If payload.email is malformed
            PlatformException: Unrecoverable workflow error, unchanged
        """
        converter = converter or CurrencyConverter(config.FX_CONFIG)
        classifier = classifier or default_error_classifier()

        values = payload.model_dump(exclude_unset=True)
        if "shipping_address" in values:
            values["shipping_address"] = payload.shipping_address
        if values.get("email") is not None:
            values["email"] = normalize_email(values["email"])

        cart = await CartRepository.get_by_id(cart_id, session)
        if cart is None:
            raise CartNotFoundException(cart_id)
        if cart.completed_at is not None:
            raise CartCompletedException(cart_id)

        machine = UpdateStateMachine(cart_id)
        snapshot = LineItemSnapshotService.capture(cart)
        new_region_id = values.get("region_id")
        region_changing = bool(new_region_id) and (cart.region_id is None or new_region_id != cart.region_id)

        detached = 0
        if region_changing and snapshot.items:
            detached = await RegionChangeReconciler.prepare_custom_items_for_region_change(cart, session)

        machine.transition(CartUpdateState.MUTATING)
        max_attempts = BASE_MUTATION_ATTEMPTS + len(snapshot.items)
        attempt = 0
        while True:
            attempt += 1
            try:
                await CartWorkflowService.update_cart(cart_id, values, session)
                break
            except Exception as e:
                classified = classifier.classify(e)
                logger.warning(f"[CartUpdate] Attempt {attempt}/{max_attempts} for cart {cart_id} failed "
                               f"({classified.category.value}): {e}")
                resolved = False
                if classified.category == ErrorCategory.TRANSIENT_CONFLICT and attempt < max_attempts:
                    machine.transition(CartUpdateState.RETRYING)
                    resolved = await CartUpdateService._resolve_conflict(classified, cart_id, values, snapshot, session)

                if not resolved:
                    machine.transition(CartUpdateState.FAILED)
                    if detached:
                        await CartUpdateService._rollback_detach(cart_id, snapshot, session)
                    raise
                machine.transition(CartUpdateState.MUTATING)

        machine.transition(CartUpdateState.SUCCEEDED)
        if region_changing:
            machine.transition(CartUpdateState.RECONCILING)
            # An address sent with the request replaces the old one whole
            restore_address = "shipping_address" not in values
            await CartUpdateService._reconcile(cart_id, snapshot, converter, session, restore_address)

        machine.transition(CartUpdateState.RESPONDING)
        return await CartRepository.get_by_id(cart_id, session)

    @staticmethod
    async def _resolve_conflict(
        classified: ClassifiedError,
        cart_id: str,
        values: dict,
        snapshot: CartSnapshot,
        session: AsyncSession | Session
    ) -> bool:
        """Returns True when the conflict was resolved and the workflow may be retried."""
        try:
            if classified.conflict_kind == ConflictKind.GUEST_EMAIL_CONFLICT:
                return await CartUpdateService._resolve_guest_email_conflict(cart_id, values.get("email"), session)
            if classified.conflict_kind == ConflictKind.MISSING_VARIANT_PRICE:
                variant_ids = extract_variant_ids(str(classified.error))
                return await CartUpdateService._detach_unpriced_variants(cart_id, variant_ids, snapshot, session)
        except Exception as e:
            await session_rollback(session)
            logger.error(f"[CartUpdate] Resolving {classified.conflict_kind} on cart {cart_id} failed: {e}")
        return False

    @staticmethod
    async def _resolve_guest_email_conflict(cart_id: str, email: str | None, session: AsyncSession | Session) -> bool:
        """Link the cart to the existing guest customer that owns email."""
        if not email:
            return False
        customers = await CustomerRepository.list_by_email(email, session)
        guest = next((customer for customer in customers if not customer.has_account), None)
        if guest is None:
            logger.warning(f"[CartUpdate] Guest email conflict on cart {cart_id} but no guest customer found")
            return False

        await CartRepository.update(cart_id, {"customer_id": guest.id, "email": email}, session)
        await session_commit(session)
        logger.info(f"[CartUpdate] Cart {cart_id} linked to existing guest customer {guest.id}")
        return True

    @staticmethod
    async def _detach_unpriced_variants(
        cart_id: str,
        variant_ids: list[str],
        snapshot: CartSnapshot,
        session: AsyncSession | Session
    ) -> bool:
        """
        Unlink variants without a price in the target region from custom items.

        Offending ids are appended to metadata.detached_variant_ids so the
        reconciler does not link them again. Returns False when no custom item
        references any of the variants (nothing left to detach).
        """
        if not variant_ids:
            return False
        cart = await CartRepository.get_by_id(cart_id, session)
        if cart is None:
            return False

        snapshot_ids = {item.id for item in snapshot.items}
        updates = []
        for item in cart.items:
            if not item.is_custom_price and item.id not in snapshot_ids:
                continue
            metadata = copy.deepcopy(item.metadata or {})
            detached_ids = list(metadata.get("detached_variant_ids") or [])
            linked = item.variant_id in variant_ids
            newly_detached = [
                variant_id for variant_id in (item.variant_id, metadata.get("variant_id"))
                if variant_id in variant_ids and variant_id not in detached_ids
            ]
            if not linked and not newly_detached:
                continue
            metadata["detached_variant_ids"] = detached_ids + list(dict.fromkeys(newly_detached))
            values = {"id": item.id, "metadata": metadata}
            if linked:
                values["variant_id"] = None
            updates.append(LineItemUpdateDTO(**values))

        if not updates:
            return False
        await CartRepository.update_line_items(cart_id, updates, session)
        await session_commit(session)
        logger.info(f"[CartUpdate] Detached variants {variant_ids} from {len(updates)} custom items on cart {cart_id}")
        return True

    @staticmethod
    async def _rollback_detach(cart_id: str, snapshot: CartSnapshot, session: AsyncSession | Session) -> None:
        results = await LineItemSnapshotService.restore(cart_id, snapshot.items, session)
        for result in results:
            if not result.ok:
                logger.error(f"[CartUpdate] Rollback of item {result.item_id} on cart {cart_id} failed: "
                             f"{result.error.message}")

    @staticmethod
    async def _reconcile(
        cart_id: str,
        snapshot: CartSnapshot,
        converter: CurrencyConverter,
        session: AsyncSession | Session,
        restore_address: bool = True
    ) -> None:
        """Reattach, reprice and optionally restore the address, each step on a fresh refetch."""
        try:
            cart = await CartRepository.get_by_id(cart_id, session)
            result = await RegionChangeReconciler.restore_custom_items_for_region_change(
                cart, snapshot, converter, session
            )
            for failure in result.failures:
                logger.error(f"[CartUpdate] Reattach of item {failure.item_id} on cart {cart_id} failed: "
                             f"{failure.error.message}")
        except Exception as e:
            await session_rollback(session)
            logger.error(f"[CartUpdate] Reattach step failed on cart {cart_id}: {e}")

        try:
            cart = await CartRepository.get_by_id(cart_id, session)
            await RegionChangeReconciler.reprice_custom_items_for_region(cart, converter, session)
        except Exception as e:
            await session_rollback(session)
            logger.error(f"[CartUpdate] Reprice step failed on cart {cart_id}: {e}")

        if not restore_address:
            return
        try:
            cart = await CartRepository.get_by_id(cart_id, session)
            await RegionChangeReconciler.restore_shipping_address(cart, snapshot.shipping_address, session)
        except Exception as e:
            await session_rollback(session)
            logger.error(f"[CartUpdate] Address restore failed on cart {cart_id}: {e}")
