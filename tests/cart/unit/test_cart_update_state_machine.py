"""
Unit Tests: UpdateStateMachine

Tests for utils/cart_update_state_machine.py.
"""

import pytest

from enums.cart_update_state import CartUpdateState
from utils.cart_update_state_machine import UpdateStateMachine, InvalidStateTransitionError


class TestTransitions:

    def test_happy_path_with_reconcile(self):
        machine = UpdateStateMachine("cart_1")

        for state in (CartUpdateState.MUTATING, CartUpdateState.SUCCEEDED,
                      CartUpdateState.RECONCILING, CartUpdateState.RESPONDING):
            machine.transition(state)

        assert machine.state == CartUpdateState.RESPONDING
        assert machine.is_final
        assert machine.history == [
            CartUpdateState.SNAPSHOTTING,
            CartUpdateState.MUTATING,
            CartUpdateState.SUCCEEDED,
            CartUpdateState.RECONCILING,
            CartUpdateState.RESPONDING,
        ]

    def test_retry_loop_then_fail(self):
        machine = UpdateStateMachine("cart_1")

        machine.transition(CartUpdateState.MUTATING)
        machine.transition(CartUpdateState.RETRYING)
        machine.transition(CartUpdateState.MUTATING)
        machine.transition(CartUpdateState.RETRYING)
        machine.transition(CartUpdateState.FAILED)

        assert machine.is_final
        assert machine.history.count(CartUpdateState.RETRYING) == 2

    @pytest.mark.parametrize("from_state, to_state", [
        (CartUpdateState.SNAPSHOTTING, CartUpdateState.SUCCEEDED),
        (CartUpdateState.MUTATING, CartUpdateState.RECONCILING),
        (CartUpdateState.RETRYING, CartUpdateState.SUCCEEDED),
        (CartUpdateState.FAILED, CartUpdateState.MUTATING),
        (CartUpdateState.RESPONDING, CartUpdateState.MUTATING),
        (CartUpdateState.RECONCILING, CartUpdateState.FAILED),
    ])
    def test_invalid_transitions(self, from_state, to_state):
        assert not UpdateStateMachine.is_valid_transition(from_state, to_state)

    def test_invalid_transition_raises_and_keeps_state(self):
        machine = UpdateStateMachine("cart_1")

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            machine.transition(CartUpdateState.RESPONDING)

        assert exc_info.value.from_state == CartUpdateState.SNAPSHOTTING
        assert exc_info.value.to_state == CartUpdateState.RESPONDING
        assert machine.state == CartUpdateState.SNAPSHOTTING
        assert not machine.is_final

    def test_final_states_have_no_exits(self):
        for state in UpdateStateMachine.FINAL_STATES:
            assert UpdateStateMachine.get_valid_transitions(state) == []

    def test_succeeded_exits(self):
        assert set(UpdateStateMachine.get_valid_transitions(CartUpdateState.SUCCEEDED)) == {
            CartUpdateState.RECONCILING, CartUpdateState.RESPONDING,
        }
