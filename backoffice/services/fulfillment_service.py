"""
Fulfillment tracker: remaining quantities and completeness against an order.

A fulfillment event is any recorded quantity movement against an original
order: a receipt line, a delivered line, or an approved/processed return
line. Cumulative checks always take the full event history, never a single
document, and the history is read from the document store at the moment of
the check.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

import structlog

logger = structlog.get_logger()

# Key for order lines that carry no product reference
UNLINKED = "<unlinked>"


class QuantityLine(Protocol):
    product_ref: Optional[str]
    quantity: int


@dataclass(frozen=True)
class ProductShortfall:
    product_ref: str
    ordered: int
    fulfilled: int

    @property
    def missing(self) -> int:
        return remaining(self.ordered, self.fulfilled)


def remaining(original_qty: int, fulfilled_qty: int) -> int:
    return max(0, original_qty - fulfilled_qty)


def is_line_complete(original_qty: int, fulfilled_qty: int) -> bool:
    return remaining(original_qty, fulfilled_qty) == 0


def is_document_complete(lines: Iterable[tuple[int, int]]) -> bool:
    """lines are (original_qty, fulfilled_qty) pairs."""
    return all(is_line_complete(original, fulfilled) for original, fulfilled in lines)


def clamp_quantity(value: int, upper: int) -> int:
    return max(0, min(value, upper))


def quantity_by_product(lines: Iterable[QuantityLine]) -> dict[str, int]:
    """Sum quantities per product reference; lines without a product are ignored."""
    totals: dict[str, int] = {}
    for line in lines:
        if not line.product_ref:
            continue
        totals[line.product_ref] = totals.get(line.product_ref, 0) + line.quantity
    return totals


def ordered_quantities(order_lines: Iterable[QuantityLine]) -> dict[str, int]:
    """
    Like quantity_by_product, but every order line counts. Lines without a
    product (custom lines) are summed under UNLINKED, which no fulfillment
    event can ever match, so they always stay outstanding.
    """
    totals: dict[str, int] = {}
    for line in order_lines:
        key = line.product_ref or UNLINKED
        totals[key] = totals.get(key, 0) + line.quantity
    return totals


def fulfillment_shortfalls(
    order_lines: Iterable[QuantityLine],
    fulfillment_events: Iterable[QuantityLine],
) -> list[ProductShortfall]:
    ordered = ordered_quantities(order_lines)
    fulfilled = quantity_by_product(fulfillment_events)
    fulfilled.pop(UNLINKED, None)
    return [
        ProductShortfall(product_ref=ref, ordered=qty, fulfilled=fulfilled.get(ref, 0))
        for ref, qty in ordered.items()
        if fulfilled.get(ref, 0) < qty
    ]


def all_original_items_fulfilled(
    order_lines: Iterable[QuantityLine],
    fulfillment_events: Iterable[QuantityLine],
) -> bool:
    """
    True only when every ordered product is covered by the cumulative
    fulfilled quantity across all events. A product with no event counts as
    zero fulfilled. An order with nothing on it is never fulfilled.
    """
    order_lines = list(order_lines)
    if not any(qty > 0 for qty in ordered_quantities(order_lines).values()):
        return False
    return not fulfillment_shortfalls(order_lines, fulfillment_events)


async def cumulative_return_lines(store, order_ref: str, qualifying_statuses, current=None):
    """
    Collect every return line that counts against ``order_ref``.

    Reads the store's current history for the order. ``current`` is the
    return note being transitioned; its in-memory version replaces any stored
    copy so the decision reflects the state being saved.
    """
    history = await store.list_by_order_ref(order_ref)
    notes = {
        doc.id: doc
        for doc in history
        if getattr(doc, "document_type", None) == "return_note"
    }
    if current is not None:
        notes[current.id] = current

    lines = []
    for note in notes.values():
        if note.status in qualifying_statuses:
            lines.extend(note.items)

    logger.debug(
        "return_history_scanned",
        order_ref=order_ref,
        notes=len(notes),
        qualifying_lines=len(lines),
    )
    return lines
