"""
Purchase order receiving workflow.

A receiving run clamps each entry to what is still outstanding on its line,
drops entries that clamp to zero, adds the rest to the running ``received``
counts and lets the purchase-order state machine pick ``partial`` or
``received``. The order and its Receipt record are committed before any stock
increase is requested; stock failures are returned with the result.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

import structlog

from backoffice.config import SideEffectConfig, TaxConfig
from backoffice.exceptions import DocumentNotFound, ValidationError
from backoffice.schemas.common import new_id
from backoffice.schemas.purchase_order import (
    PurchaseOrder,
    PurchaseOrderCreate,
    PurchaseOrderLine,
    PurchaseOrderStatus,
    Receipt,
    ReceiptEntry,
    ReceiptLine,
)
from backoffice.services.document_service import line_field_errors, raise_if_invalid, status_counts
from backoffice.services.fulfillment_service import clamp_quantity, is_document_complete, remaining
from backoffice.services.side_effects import (
    OrderSystem,
    WorkflowResult,
    dispatch_side_effects,
    stock_increase,
)
from backoffice.services.state_machine import PURCHASE_ORDER_MACHINE, RESTOCK, RECEIVING_ACTIONS
from backoffice.services.tax_service import price_lines

logger = structlog.get_logger()

CLOSED_FOR_RECEIVING = (PurchaseOrderStatus.CANCELLED, PurchaseOrderStatus.RECEIVED)


@dataclass
class ReceivingResult(WorkflowResult[PurchaseOrder]):
    receipt: Optional[Receipt] = None


# ---------- Drafts ----------


def build_purchase_order(
    payload: PurchaseOrderCreate, number: str, tax_config: TaxConfig
) -> PurchaseOrder:
    """Validate a draft and compute line taxes and totals. ``number`` is pre-reserved."""
    raise_if_invalid("purchase_order", line_field_errors(payload.items, tax_config))

    lines = [
        PurchaseOrderLine(
            id=item.id or new_id(),
            product_ref=item.product_ref,
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            tax_rate=item.tax_rate if item.tax_rate is not None else tax_config.default_rate,
        )
        for item in payload.items
    ]
    priced, totals = price_lines(lines, tax_config)

    order = PurchaseOrder(
        number=number,
        supplier_id=payload.supplier_id,
        expected_delivery_date=payload.expected_delivery_date,
        items=priced,
        subtotal=totals.subtotal,
        tax=totals.tax,
        total=totals.total,
        notes=payload.notes,
    )
    if payload.date:
        order.date = payload.date
    return order


async def create_purchase_order(
    store, payload: PurchaseOrderCreate, number: str, tax_config: TaxConfig
) -> PurchaseOrder:
    order = build_purchase_order(payload, number, tax_config)
    await store.save(order)
    logger.info("purchase_order_created", po_id=order.id, number=number, total=str(order.total))
    return order


async def load_purchase_order(store, purchase_order_id: str) -> PurchaseOrder:
    order = await store.load(purchase_order_id, "purchase_order")
    if order.document_type != "purchase_order":
        raise DocumentNotFound("purchase_order", purchase_order_id)
    return order


# ---------- Header status ----------


async def change_purchase_order_status(store, purchase_order_id: str, action: str) -> PurchaseOrder:
    """send / confirm / cancel. ``partial`` and ``received`` only come from receiving."""
    order = await load_purchase_order(store, purchase_order_id)
    if action in RECEIVING_ACTIONS:
        raise ValidationError(
            "Receiving status is set by recording a receipt", {"action": "not allowed"}
        )
    transition = PURCHASE_ORDER_MACHINE.next(order.status, action)

    updated = order.model_copy(deep=True)
    updated.status = PurchaseOrderStatus(transition.target)
    await store.save(updated)

    logger.info(
        "purchase_order_status_changed",
        po_id=order.id,
        action=action,
        from_status=transition.source,
        to_status=transition.target,
    )
    return updated


# ---------- Receiving ----------


def apply_receipt(
    order: PurchaseOrder, entries: Iterable[ReceiptEntry]
) -> tuple[PurchaseOrder, list[ReceiptLine], str]:
    """
    Pure part of receiving. Returns (updated order, received lines, action).

    Raises ValidationError without touching ``order`` when the order is closed,
    an entry names an unknown line, or nothing is left to receive.
    """
    if order.status in CLOSED_FOR_RECEIVING:
        raise ValidationError(
            f"Purchase order {order.number} is already {order.status.value}",
            {"status": order.status.value},
        )

    updated = order.model_copy(deep=True)
    lines = {line.id: line for line in updated.items}
    received: dict[str, ReceiptLine] = {}

    for entry in entries:
        line = lines.get(entry.line_id)
        if line is None:
            raise ValidationError(
                f"Line '{entry.line_id}' is not on purchase order {order.number}",
                {"line_id": entry.line_id},
            )
        qty = clamp_quantity(entry.received_now_qty, remaining(line.quantity, line.received))
        if qty != entry.received_now_qty:
            logger.info(
                "receipt_quantity_clamped",
                po_id=order.id,
                line_id=line.id,
                requested=entry.received_now_qty,
                clamped=qty,
            )
        if qty == 0:
            continue

        line.received += qty
        if line.id in received:
            received[line.id].received_now += qty
        else:
            received[line.id] = ReceiptLine(
                line_id=line.id,
                product_ref=line.product_ref,
                ordered=line.quantity,
                received_now=qty,
            )

    if not received:
        raise ValidationError("Nothing to receive", {"items": "no quantity left to receive"})

    if is_document_complete((line.quantity, line.received) for line in updated.items):
        action = "receive_all"
    else:
        action = "receive_partial"
    return updated, list(received.values()), action


async def receive_items(
    store,
    order_system: OrderSystem,
    purchase_order_id: str,
    entries: Iterable[ReceiptEntry],
    receipt_number: str,
    config: SideEffectConfig,
    receive_date: Optional[date] = None,
    notes: Optional[str] = None,
) -> ReceivingResult:
    order = await load_purchase_order(store, purchase_order_id)
    updated, receipt_lines, action = apply_receipt(order, entries)

    transition = PURCHASE_ORDER_MACHINE.next(order.status, action)
    updated.status = PurchaseOrderStatus(transition.target)

    receipt = Receipt(
        number=receipt_number,
        purchase_order_id=order.id,
        items=receipt_lines,
        notes=notes,
    )
    if receive_date:
        receipt.receive_date = receive_date

    await store.save(updated)
    await store.save(receipt)

    logger.info(
        "purchase_order_received",
        po_id=order.id,
        receipt_number=receipt_number,
        lines=len(receipt_lines),
        status=updated.status.value,
    )

    requests = []
    if RESTOCK in transition.effects:
        requests = [
            stock_increase(line.product_ref, line.received_now)
            for line in receipt_lines
            if line.product_ref
        ]
    await store.commit()
    outcomes = await dispatch_side_effects(order_system, requests, config)
    return ReceivingResult(document=updated, side_effects=outcomes, receipt=receipt)


async def list_receipts(store, purchase_order_id: str) -> list[Receipt]:
    await load_purchase_order(store, purchase_order_id)
    history = await store.list_by_order_ref(purchase_order_id)
    return [doc for doc in history if doc.document_type == "receipt"]


def purchase_order_stats(orders: Iterable[PurchaseOrder]):
    return status_counts(orders)
