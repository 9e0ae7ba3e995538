import pytest

from backoffice.config import (
    RESTOCK_MANUAL,
    RESTOCK_ON_APPROVAL,
    RESTOCK_ON_PROCESSING,
    ReturnConfig,
)
from backoffice.exceptions import InvalidStateTransition
from backoffice.services.state_machine import (
    DELIVERY_NOTE_MACHINE,
    ORDER_COMPLETION,
    ORDER_NOTE,
    ORDER_REFUND_STATUS,
    ORDER_STATUS,
    PURCHASE_ORDER_MACHINE,
    RESTOCK,
    StateMachine,
    Transition,
    build_return_note_machine,
)


def test_unknown_pair_raises_invalid_transition():
    with pytest.raises(InvalidStateTransition) as exc:
        PURCHASE_ORDER_MACHINE.next("received", "cancel")
    assert exc.value.state == "received"
    assert exc.value.action == "cancel"
    assert exc.value.allowed_actions == []

    with pytest.raises(InvalidStateTransition) as exc:
        PURCHASE_ORDER_MACHINE.next("sent", "send")
    assert exc.value.to_dict()["details"]["allowed_actions"] == [
        "cancel",
        "confirm",
        "receive_all",
        "receive_partial",
    ]
    assert exc.value.code == "INVALID_STATE_TRANSITION"


def test_duplicate_transition_rejected_at_build_time():
    with pytest.raises(ValueError):
        StateMachine("x", [Transition("a", "go", "b"), Transition("a", "go", "c")])


def test_purchase_order_after_receipt_only_cancel():
    assert PURCHASE_ORDER_MACHINE.allowed_actions("partial") == [
        "cancel",
        "receive_all",
        "receive_partial",
    ]
    assert PURCHASE_ORDER_MACHINE.allowed_actions("received") == []
    assert PURCHASE_ORDER_MACHINE.allowed_actions("cancelled") == []


def test_receiving_transitions_carry_restock():
    t = PURCHASE_ORDER_MACHINE.next("confirmed", "receive_all")
    assert t.target == "received"
    assert RESTOCK in t.effects
    assert PURCHASE_ORDER_MACHINE.next("sent", "confirm").effects == frozenset()


def test_delivery_effects():
    done = DELIVERY_NOTE_MACHINE.next("in_transit", "complete_delivery")
    assert done.effects == {ORDER_COMPLETION, ORDER_NOTE}
    partial = DELIVERY_NOTE_MACHINE.next("pending", "start_delivery")
    assert ORDER_COMPLETION not in partial.effects
    assert ORDER_STATUS in partial.effects
    assert DELIVERY_NOTE_MACHINE.allowed_actions("delivered") == []
    assert DELIVERY_NOTE_MACHINE.allowed_actions("cancelled") == []


@pytest.mark.parametrize(
    "policy,approve_restocks,process_restocks",
    [
        (RESTOCK_ON_APPROVAL, True, False),
        (RESTOCK_ON_PROCESSING, False, True),
        (RESTOCK_MANUAL, False, False),
    ],
)
def test_return_restock_policy(policy, approve_restocks, process_restocks):
    machine = build_return_note_machine(ReturnConfig(restock_policy=policy))
    assert (RESTOCK in machine.next("pending", "approve").effects) is approve_restocks
    process = machine.next("approved", "process")
    assert (RESTOCK in process.effects) is process_restocks
    assert {ORDER_REFUND_STATUS, ORDER_NOTE} <= process.effects


@pytest.mark.parametrize("state", ["approved", "rejected", "processed", "cancelled"])
def test_approve_only_from_pending(state):
    machine = build_return_note_machine(ReturnConfig())
    with pytest.raises(InvalidStateTransition):
        machine.next(state, "approve")


def test_terminal_return_states():
    machine = build_return_note_machine(ReturnConfig())
    assert machine.allowed_actions("rejected") == []
    assert machine.allowed_actions("processed") == []
    assert machine.allowed_actions("pending") == ["approve", "cancel", "reject"]
