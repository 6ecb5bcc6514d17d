"""
Cart Update State Machine for tracking one cart update request.

This module implements a finite state machine over CartUpdateState so the
orchestrator cannot skip a phase (e.g. reconcile before a successful
mutation) and every phase change ends up in the logs.
"""

import logging

from enums.cart_update_state import CartUpdateState

logger = logging.getLogger(__name__)


class CartUpdateTransition:
    """Represents a valid state transition with metadata"""

    def __init__(self, from_state: CartUpdateState, to_state: CartUpdateState, description: str = ""):
        self.from_state = from_state
        self.to_state = to_state
        self.description = description

    def __repr__(self):
        return f"{self.from_state.value} -> {self.to_state.value}"


class InvalidStateTransitionError(RuntimeError):
    def __init__(self, cart_id: str, from_state: CartUpdateState, to_state: CartUpdateState):
        super().__init__(f"Invalid cart update transition for {cart_id}: {from_state.value} -> {to_state.value}")
        self.cart_id = cart_id
        self.from_state = from_state
        self.to_state = to_state


class UpdateStateMachine:
    """
    Finite state machine for a single cart update request.

    Valid transitions:
    - SNAPSHOTTING -> MUTATING (snapshot captured, detach done if needed)
    - MUTATING -> SUCCEEDED (platform workflow accepted the update)
    - MUTATING -> RETRYING (transient conflict resolved locally)
    - MUTATING -> FAILED (unrecoverable error or attempts exhausted)
    - RETRYING -> MUTATING (next attempt)
    - RETRYING -> FAILED (conflict resolution itself failed)
    - SUCCEEDED -> RECONCILING (region changed)
    - SUCCEEDED -> RESPONDING (nothing to reconcile)
    - RECONCILING -> RESPONDING

    FAILED and RESPONDING are final.
    """

    VALID_TRANSITIONS: list[CartUpdateTransition] = [
        CartUpdateTransition(CartUpdateState.SNAPSHOTTING, CartUpdateState.MUTATING, "Snapshot captured"),
        CartUpdateTransition(CartUpdateState.MUTATING, CartUpdateState.SUCCEEDED, "Workflow accepted update"),
        CartUpdateTransition(CartUpdateState.MUTATING, CartUpdateState.RETRYING, "Transient conflict"),
        CartUpdateTransition(CartUpdateState.MUTATING, CartUpdateState.FAILED, "Workflow failed"),
        CartUpdateTransition(CartUpdateState.RETRYING, CartUpdateState.MUTATING, "Retrying workflow"),
        CartUpdateTransition(CartUpdateState.RETRYING, CartUpdateState.FAILED, "Conflict resolution failed"),
        CartUpdateTransition(CartUpdateState.SUCCEEDED, CartUpdateState.RECONCILING, "Region changed"),
        CartUpdateTransition(CartUpdateState.SUCCEEDED, CartUpdateState.RESPONDING, "Nothing to reconcile"),
        CartUpdateTransition(CartUpdateState.RECONCILING, CartUpdateState.RESPONDING, "Reconciled"),
    ]

    FINAL_STATES: frozenset[CartUpdateState] = frozenset({CartUpdateState.FAILED, CartUpdateState.RESPONDING})

    _transition_map: dict[CartUpdateState, set[CartUpdateState]] = {}
    _transition_descriptions: dict[tuple, str] = {}

    @classmethod
    def _build_transition_map(cls):
        """Build internal transition maps for performance"""
        if cls._transition_map:
            return  # Already built

        for transition in cls.VALID_TRANSITIONS:
            cls._transition_map.setdefault(transition.from_state, set()).add(transition.to_state)
            cls._transition_descriptions[(transition.from_state, transition.to_state)] = transition.description

    @classmethod
    def is_valid_transition(cls, from_state: CartUpdateState, to_state: CartUpdateState) -> bool:
        cls._build_transition_map()
        return to_state in cls._transition_map.get(from_state, set())

    @classmethod
    def get_valid_transitions(cls, from_state: CartUpdateState) -> list[CartUpdateState]:
        cls._build_transition_map()
        return list(cls._transition_map.get(from_state, set()))

    def __init__(self, cart_id: str):
        self.cart_id = cart_id
        self.state = CartUpdateState.SNAPSHOTTING
        self.history: list[CartUpdateState] = [CartUpdateState.SNAPSHOTTING]

    @property
    def is_final(self) -> bool:
        return self.state in self.FINAL_STATES

    def transition(self, to_state: CartUpdateState) -> None:
        """
        Move to to_state and log the transition.

        Raises:
            InvalidStateTransitionError: If the transition is not allowed
        """
        if not self.is_valid_transition(self.state, to_state):
            logger.error(f"[CartUpdate] Invalid transition for cart {self.cart_id}: "
                         f"{self.state.value} -> {to_state.value}")
            raise InvalidStateTransitionError(self.cart_id, self.state, to_state)

        description = self._transition_descriptions.get((self.state, to_state), "")
        logger.info(f"[CartUpdate] Cart {self.cart_id} {self.state.value} -> {to_state.value}: {description}")
        self.state = to_state
        self.history.append(to_state)
