"""
Finite-state machines for document lifecycles.

Each machine is a transition table (state, action) -> (target, effects).
Any pair missing from the table is rejected with InvalidStateTransition, so
the table is the complete list of legal moves for a document type.
"""

from dataclasses import dataclass
from typing import Iterable

from backoffice.config import RESTOCK_ON_APPROVAL, RESTOCK_ON_PROCESSING, ReturnConfig
from backoffice.exceptions import InvalidStateTransition
from backoffice.schemas.delivery_note import DeliveryNoteStatus
from backoffice.schemas.purchase_order import PurchaseOrderStatus
from backoffice.schemas.return_note import ReturnNoteStatus

# Side-effect identifiers attached to transitions
RESTOCK = "restock"
ORDER_STATUS = "order_status"
ORDER_REFUND_STATUS = "order_refund_status"
ORDER_COMPLETION = "order_completion"
ORDER_NOTE = "order_note"


@dataclass(frozen=True)
class Transition:
    source: str
    action: str
    target: str
    effects: frozenset = frozenset()


class StateMachine:
    def __init__(self, document_type: str, transitions: Iterable[Transition]):
        self.document_type = document_type
        self._table: dict[tuple[str, str], Transition] = {}
        for t in transitions:
            key = (str(t.source), t.action)
            if key in self._table:
                raise ValueError(f"Duplicate transition {key} for {document_type}")
            self._table[key] = t

    def next(self, state, action: str) -> Transition:
        transition = self._table.get((_value(state), action))
        if transition is None:
            raise InvalidStateTransition(
                self.document_type, _value(state), action, self.allowed_actions(state)
            )
        return transition

    def allowed_actions(self, state) -> list[str]:
        return sorted(action for (source, action) in self._table if source == _value(state))


def _value(state) -> str:
    return getattr(state, "value", state)


def _t(source, action, target, *effects) -> Transition:
    return Transition(_value(source), action, _value(target), frozenset(effects))


# ---------- Purchase orders ----------

PO = PurchaseOrderStatus

PURCHASE_ORDER_MACHINE = StateMachine(
    "purchase_order",
    [
        _t(PO.DRAFT, "send", PO.SENT),
        _t(PO.DRAFT, "confirm", PO.CONFIRMED),
        _t(PO.SENT, "confirm", PO.CONFIRMED),
        _t(PO.DRAFT, "cancel", PO.CANCELLED),
        _t(PO.SENT, "cancel", PO.CANCELLED),
        _t(PO.CONFIRMED, "cancel", PO.CANCELLED),
        _t(PO.PARTIAL, "cancel", PO.CANCELLED),
        # receiving outcomes; never offered as direct edits
        *[
            _t(source, action, target, RESTOCK)
            for source in (PO.DRAFT, PO.SENT, PO.CONFIRMED, PO.PARTIAL)
            for action, target in (
                ("receive_partial", PO.PARTIAL),
                ("receive_all", PO.RECEIVED),
            )
        ],
    ],
)

RECEIVING_ACTIONS = frozenset({"receive_partial", "receive_all"})


# ---------- Delivery notes ----------

DN = DeliveryNoteStatus

DELIVERY_NOTE_MACHINE = StateMachine(
    "delivery_note",
    [
        _t(DN.PENDING, "start_delivery", DN.IN_TRANSIT, ORDER_STATUS),
        _t(DN.PENDING, "complete_delivery", DN.DELIVERED, ORDER_COMPLETION, ORDER_NOTE),
        _t(DN.IN_TRANSIT, "complete_delivery", DN.DELIVERED, ORDER_COMPLETION, ORDER_NOTE),
        _t(DN.IN_TRANSIT, "reset_delivery", DN.PENDING),
        _t(DN.PENDING, "cancel", DN.CANCELLED),
        _t(DN.IN_TRANSIT, "cancel", DN.CANCELLED),
    ],
)

DELIVERY_ACTION_FOR_STATUS = {
    DN.PENDING.value: "reset_delivery",
    DN.IN_TRANSIT.value: "start_delivery",
    DN.DELIVERED.value: "complete_delivery",
}


# ---------- Return notes ----------

RN = ReturnNoteStatus


def build_return_note_machine(config: ReturnConfig) -> StateMachine:
    """
    Return-note lifecycle. Where restocking happens depends on the configured
    policy; with the manual policy neither transition restocks.
    """
    approve_effects = [RESTOCK] if config.restock_policy == RESTOCK_ON_APPROVAL else []
    process_effects = [ORDER_REFUND_STATUS, ORDER_NOTE]
    if config.restock_policy == RESTOCK_ON_PROCESSING:
        process_effects.append(RESTOCK)

    return StateMachine(
        "return_note",
        [
            _t(RN.PENDING, "approve", RN.APPROVED, *approve_effects),
            _t(RN.PENDING, "reject", RN.REJECTED),
            _t(RN.APPROVED, "process", RN.PROCESSED, *process_effects),
            _t(RN.PENDING, "cancel", RN.CANCELLED),
            _t(RN.APPROVED, "cancel", RN.CANCELLED),
        ],
    )
