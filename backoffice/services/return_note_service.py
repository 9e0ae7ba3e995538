"""
Return note processing workflow.

    pending --approve--> approved --process--> processed
    pending --reject---> rejected
    pending/approved --cancel--> cancelled

Refunds are a pure function of the lines: unit_price * quantity * the
condition factor, rounded per line. Only ``new`` lines are ever restocked;
when that happens is decided by the configured restock policy. Processing
asks for the refunded order status only when the approved/processed return
history of the order covers every original line.
"""

from decimal import Decimal
from typing import Iterable, Optional

import structlog

from backoffice.config import ReturnConfig, SideEffectConfig, TaxConfig
from backoffice.exceptions import DocumentNotFound, ValidationError
from backoffice.schemas.common import new_id
from backoffice.schemas.order import ExternalOrder
from backoffice.schemas.return_note import (
    ItemCondition,
    ReturnNote,
    ReturnNoteCreate,
    ReturnNoteLine,
    ReturnNoteStats,
    ReturnNoteStatus,
)
from backoffice.services.document_service import line_field_errors, raise_if_invalid, status_counts
from backoffice.services.fulfillment_service import (
    all_original_items_fulfilled,
    cumulative_return_lines,
)
from backoffice.services.side_effects import (
    OrderSystem,
    WorkflowResult,
    dispatch_side_effects,
    fetch_order,
    order_note,
    order_status,
    stock_increase,
)
from backoffice.services.state_machine import (
    ORDER_NOTE,
    ORDER_REFUND_STATUS,
    RESTOCK,
    build_return_note_machine,
)
from backoffice.services.tax_service import ZERO, nearest_tax_rate, price_lines, round2

logger = structlog.get_logger()

QUALIFYING_STATUSES = (ReturnNoteStatus.APPROVED, ReturnNoteStatus.PROCESSED)


# ---------- Refunds ----------


def condition_factor(condition, config: ReturnConfig) -> Decimal:
    factors = dict(config.condition_factors)
    key = getattr(condition, "value", condition)
    if key not in factors:
        raise ValidationError(f"Unknown item condition '{key}'", {"condition": key})
    return factors[key]


def line_refund(line: ReturnNoteLine, config: ReturnConfig) -> Decimal:
    return round2(
        Decimal(str(line.unit_price)) * line.quantity * condition_factor(line.condition, config)
    )


def compute_refunds(note: ReturnNote, config: ReturnConfig) -> ReturnNote:
    """Return a copy of ``note`` with line and document refund amounts filled in."""
    items = [
        line.model_copy(update={"refund_amount": line_refund(line, config)})
        for line in note.items
    ]
    total = sum((line.refund_amount for line in items), ZERO)
    return note.model_copy(update={"items": items, "refund_amount": total})


# ---------- Drafts ----------


def return_lines_from_order(
    order: ExternalOrder, tax_config: TaxConfig, reason: str = ""
) -> list[ReturnNoteLine]:
    """One ``new`` line per order line at its tax-inclusive unit price."""
    lines = []
    for item in order.line_items:
        if item.quantity <= 0:
            continue
        inclusive_total = item.total + item.total_tax
        lines.append(
            ReturnNoteLine(
                product_ref=item.product_ref,
                description=item.description,
                quantity=item.quantity,
                unit_price=round2(inclusive_total / item.quantity),
                tax_rate=nearest_tax_rate(inclusive_total, item.total_tax, tax_config),
                condition=ItemCondition.NEW,
                reason=reason,
            )
        )
    return lines


def build_return_note(
    payload: ReturnNoteCreate,
    number: str,
    tax_config: TaxConfig,
    config: ReturnConfig,
    order: Optional[ExternalOrder] = None,
) -> ReturnNote:
    """Validate a draft, price its lines and compute refunds. ``number`` is pre-reserved."""
    notes = payload.notes
    if payload.from_order and order is not None:
        lines = return_lines_from_order(order, tax_config, payload.reason)
        if not notes:
            notes = f"Return note generated from order #{order.number or order.order_ref}"
    else:
        lines = None

    errors = {}
    if not payload.customer.name.strip():
        errors["customer.name"] = "customer name is required"
    if not payload.reason.strip():
        errors["reason"] = "reason is required"
    if lines is None:
        errors.update(line_field_errors(payload.items, tax_config, require_reason=True))
    elif not lines:
        errors["items"] = "order has no lines to return"
    raise_if_invalid("return_note", errors)

    if lines is None:
        lines = [
            ReturnNoteLine(
                id=item.id or new_id(),
                product_ref=item.product_ref,
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                tax_rate=item.tax_rate if item.tax_rate is not None else tax_config.default_rate,
                condition=item.condition,
                reason=item.reason,
            )
            for item in payload.items
        ]
    priced, _ = price_lines(lines, tax_config)

    note = ReturnNote(
        number=number,
        order_ref=payload.order_ref,
        invoice_id=payload.invoice_id,
        delivery_note_id=payload.delivery_note_id,
        reason=payload.reason,
        customer=payload.customer,
        items=priced,
        notes=notes,
    )
    if payload.date:
        note.date = payload.date
    return compute_refunds(note, config)


async def create_return_note(
    store,
    order_system: OrderSystem,
    payload: ReturnNoteCreate,
    number: str,
    tax_config: TaxConfig,
    config: ReturnConfig,
    side_effect_config: SideEffectConfig,
) -> WorkflowResult[ReturnNote]:
    order, failed = None, None
    if payload.from_order:
        if not payload.order_ref:
            raise ValidationError(
                "An order reference is required to build a return from an order",
                {"order_ref": "required when from_order is set"},
            )
        order, failed = await fetch_order(order_system, payload.order_ref, side_effect_config)
        if order is None:
            raise ValidationError(
                f"Order {payload.order_ref} could not be loaded: {failed.error}",
                {"order_ref": failed.error},
            )

    note = build_return_note(payload, number, tax_config, config, order)
    await store.save(note)
    logger.info(
        "return_note_created",
        return_note_id=note.id,
        number=number,
        refund_amount=str(note.refund_amount),
    )
    return WorkflowResult(document=note)


async def load_return_note(store, return_note_id: str) -> ReturnNote:
    note = await store.load(return_note_id, "return_note")
    if note.document_type != "return_note":
        raise DocumentNotFound("return_note", return_note_id)
    return note


# ---------- Transitions ----------


def restock_requests(note: ReturnNote) -> list:
    return [
        stock_increase(line.product_ref, line.quantity)
        for line in note.items
        if line.product_ref and line.condition == ItemCondition.NEW
    ]


def processing_note_text(note: ReturnNote) -> str:
    return (
        f"Return note {note.number} processed. "
        f"Reason: {note.reason}. Items returned: {len(note.items)}"
    )


async def approve(
    store,
    order_system: OrderSystem,
    return_note_id: str,
    config: ReturnConfig,
    side_effect_config: SideEffectConfig,
) -> WorkflowResult[ReturnNote]:
    note = await load_return_note(store, return_note_id)
    transition = build_return_note_machine(config).next(note.status, "approve")

    updated = compute_refunds(note.model_copy(deep=True), config)
    updated.status = ReturnNoteStatus(transition.target)
    await store.save(updated)
    logger.info("return_note_approved", return_note_id=note.id, number=note.number)

    requests = restock_requests(updated) if RESTOCK in transition.effects else []
    await store.commit()
    outcomes = await dispatch_side_effects(order_system, requests, side_effect_config)
    return WorkflowResult(document=updated, side_effects=outcomes)


async def reject(
    store, return_note_id: str, config: ReturnConfig, reason: Optional[str] = None
) -> WorkflowResult[ReturnNote]:
    note = await load_return_note(store, return_note_id)
    transition = build_return_note_machine(config).next(note.status, "reject")

    updated = note.model_copy(deep=True)
    updated.status = ReturnNoteStatus(transition.target)
    if reason and reason.strip():
        entry = f"Rejected: {reason.strip()}"
        updated.notes = f"{updated.notes}\n{entry}" if updated.notes else entry
    await store.save(updated)

    logger.info("return_note_rejected", return_note_id=note.id, number=note.number)
    return WorkflowResult(document=updated)


async def _order_fully_returned(store, order_system, note, side_effect_config):
    """(fully returned?, failed lookup outcome or None), read from current history."""
    order, failed = await fetch_order(order_system, note.order_ref, side_effect_config)
    if order is None:
        return False, failed

    returned = await cumulative_return_lines(
        store, note.order_ref, QUALIFYING_STATUSES, current=note
    )
    complete = all_original_items_fulfilled(order.line_items, returned)
    logger.info(
        "return_completeness_checked",
        order_ref=note.order_ref,
        complete=complete,
        returned_lines=len(returned),
    )
    return complete, None


async def process(
    store,
    order_system: OrderSystem,
    return_note_id: str,
    config: ReturnConfig,
    side_effect_config: SideEffectConfig,
) -> WorkflowResult[ReturnNote]:
    note = await load_return_note(store, return_note_id)
    transition = build_return_note_machine(config).next(note.status, "process")

    updated = compute_refunds(note.model_copy(deep=True), config)
    updated.status = ReturnNoteStatus(transition.target)
    await store.save(updated)
    logger.info(
        "return_note_processed",
        return_note_id=note.id,
        number=note.number,
        refund_amount=str(updated.refund_amount),
    )

    requests = []
    lookup_failures = []
    if RESTOCK in transition.effects:
        requests.extend(restock_requests(updated))

    if updated.order_ref:
        if ORDER_REFUND_STATUS in transition.effects and config.update_order_status:
            complete, failed = await _order_fully_returned(
                store, order_system, updated, side_effect_config
            )
            if failed is not None:
                lookup_failures.append(failed)
            elif complete:
                requests.append(order_status(updated.order_ref, config.refunded_order_status))
            else:
                logger.info("order_status_left_unchanged", order_ref=updated.order_ref)
        if ORDER_NOTE in transition.effects:
            requests.append(
                order_note(
                    updated.order_ref,
                    processing_note_text(updated),
                    side_effect_config.customer_visible_notes,
                )
            )

    await store.commit()
    outcomes = await dispatch_side_effects(order_system, requests, side_effect_config)
    return WorkflowResult(document=updated, side_effects=lookup_failures + outcomes)


async def cancel(store, return_note_id: str, config: ReturnConfig) -> WorkflowResult[ReturnNote]:
    note = await load_return_note(store, return_note_id)
    transition = build_return_note_machine(config).next(note.status, "cancel")

    updated = note.model_copy(deep=True)
    updated.status = ReturnNoteStatus(transition.target)
    await store.save(updated)

    logger.info("return_note_cancelled", return_note_id=note.id, number=note.number)
    return WorkflowResult(document=updated)


# ---------- Statistics ----------


def return_note_stats(notes: Iterable[ReturnNote]) -> ReturnNoteStats:
    notes = list(notes)
    refunded = sum(
        (n.refund_amount for n in notes if n.status == ReturnNoteStatus.PROCESSED), ZERO
    )
    return ReturnNoteStats(**status_counts(notes).model_dump(), total_refunded=refunded)
