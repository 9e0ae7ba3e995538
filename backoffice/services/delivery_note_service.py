"""
Delivery note status workflow.

Delivered quantities are clamped to [0, quantity] on every edit and the
status follows from the totals: nothing delivered is ``pending``, some is
``in_transit``, everything is ``delivered``. ``cancelled`` freezes the note.
A delivered note is closed to further quantity edits.
"""

from typing import Iterable, Mapping

import structlog

from backoffice.config import DeliveryConfig, SideEffectConfig, TaxConfig
from backoffice.exceptions import DocumentNotFound, InvalidStateTransition, ValidationError
from backoffice.schemas.common import new_id
from backoffice.schemas.delivery_note import (
    DeliveryNote,
    DeliveryNoteCreate,
    DeliveryNoteLine,
    DeliveryNoteStatus,
)
from backoffice.services.document_service import line_field_errors, raise_if_invalid, status_counts
from backoffice.services.fulfillment_service import clamp_quantity
from backoffice.services.side_effects import (
    OrderSystem,
    WorkflowResult,
    dispatch_side_effects,
    order_note,
    order_status,
)
from backoffice.services.state_machine import (
    DELIVERY_ACTION_FOR_STATUS,
    DELIVERY_NOTE_MACHINE,
    ORDER_COMPLETION,
    ORDER_NOTE,
    ORDER_STATUS,
    Transition,
)
from backoffice.services.tax_service import price_lines

logger = structlog.get_logger()

CLOSED_FOR_EDITS = (DeliveryNoteStatus.CANCELLED, DeliveryNoteStatus.DELIVERED)


def derive_delivery_status(lines: Iterable[DeliveryNoteLine]) -> DeliveryNoteStatus:
    lines = list(lines)
    ordered = sum(line.quantity for line in lines)
    delivered = sum(line.delivered for line in lines)
    if delivered <= 0:
        return DeliveryNoteStatus.PENDING
    if delivered >= ordered:
        return DeliveryNoteStatus.DELIVERED
    return DeliveryNoteStatus.IN_TRANSIT


# ---------- Drafts ----------


def build_delivery_note(
    payload: DeliveryNoteCreate, number: str, tax_config: TaxConfig
) -> DeliveryNote:
    """Validate a draft and price its lines. ``number`` is pre-reserved."""
    errors = {}
    if not payload.customer.name.strip():
        errors["customer.name"] = "customer name is required"
    errors.update(line_field_errors(payload.items, tax_config))
    raise_if_invalid("delivery_note", errors)

    lines = [
        DeliveryNoteLine(
            id=item.id or new_id(),
            product_ref=item.product_ref,
            description=item.description,
            quantity=item.quantity,
            unit_price=item.unit_price,
            tax_rate=item.tax_rate if item.tax_rate is not None else tax_config.default_rate,
        )
        for item in payload.items
    ]
    priced, _ = price_lines(lines, tax_config)

    note = DeliveryNote(
        number=number,
        order_ref=payload.order_ref,
        invoice_id=payload.invoice_id,
        estimated_delivery_date=payload.estimated_delivery_date,
        customer=payload.customer,
        items=priced,
        notes=payload.notes,
    )
    if payload.date:
        note.date = payload.date
    return note


async def create_delivery_note(
    store, payload: DeliveryNoteCreate, number: str, tax_config: TaxConfig
) -> DeliveryNote:
    note = build_delivery_note(payload, number, tax_config)
    await store.save(note)
    logger.info("delivery_note_created", delivery_note_id=note.id, number=number)
    return note


async def load_delivery_note(store, delivery_note_id: str) -> DeliveryNote:
    note = await store.load(delivery_note_id, "delivery_note")
    if note.document_type != "delivery_note":
        raise DocumentNotFound("delivery_note", delivery_note_id)
    return note


# ---------- Quantities ----------


def apply_deliveries(note: DeliveryNote, delivered: Mapping[str, int]) -> DeliveryNote:
    """
    Set cumulative delivered quantities by line id, clamped to [0, quantity].

    Returns an updated copy; the status is not touched here.
    """
    if note.status in CLOSED_FOR_EDITS:
        raise InvalidStateTransition("delivery_note", note.status.value, "update deliveries")

    updated = note.model_copy(deep=True)
    lines = {line.id: line for line in updated.items}
    unknown = sorted(set(delivered) - set(lines))
    if unknown:
        raise ValidationError(
            f"Unknown delivery note line(s): {', '.join(unknown)}",
            {f"delivered.{line_id}": "unknown line" for line_id in unknown},
        )

    for line_id, value in delivered.items():
        line = lines[line_id]
        qty = clamp_quantity(value, line.quantity)
        if qty != value:
            logger.info(
                "delivered_quantity_clamped",
                delivery_note_id=note.id,
                line_id=line_id,
                requested=value,
                clamped=qty,
            )
        line.delivered = qty
    return updated


def _transition_for(note: DeliveryNote, updated: DeliveryNote):
    target = derive_delivery_status(updated.items)
    if target == note.status:
        return None
    return DELIVERY_NOTE_MACHINE.next(note.status, DELIVERY_ACTION_FOR_STATUS[target.value])


def _side_effect_requests(
    note: DeliveryNote,
    transition: Transition,
    config: DeliveryConfig,
    side_effect_config: SideEffectConfig,
) -> list:
    if not note.order_ref:
        return []
    requests = []
    if ORDER_COMPLETION in transition.effects and config.update_order_status:
        requests.append(order_status(note.order_ref, config.completed_order_status))
    if (
        ORDER_STATUS in transition.effects
        and config.update_order_status
        and config.in_transit_order_status
    ):
        requests.append(order_status(note.order_ref, config.in_transit_order_status))
    if ORDER_NOTE in transition.effects:
        requests.append(
            order_note(
                note.order_ref,
                f"Delivery note {note.number} delivered. "
                f"Items delivered: {sum(line.delivered for line in note.items)}",
                side_effect_config.customer_visible_notes,
            )
        )
    return requests


async def _save_deliveries(
    store,
    order_system: OrderSystem,
    note: DeliveryNote,
    updated: DeliveryNote,
    config: DeliveryConfig,
    side_effect_config: SideEffectConfig,
) -> WorkflowResult[DeliveryNote]:
    transition = _transition_for(note, updated)
    if transition is not None:
        updated.status = DeliveryNoteStatus(transition.target)
    await store.save(updated)

    logger.info(
        "delivery_note_quantities_updated",
        delivery_note_id=note.id,
        from_status=note.status.value,
        to_status=updated.status.value,
    )

    requests = []
    if transition is not None:
        requests = _side_effect_requests(updated, transition, config, side_effect_config)
    await store.commit()
    outcomes = await dispatch_side_effects(order_system, requests, side_effect_config)
    return WorkflowResult(document=updated, side_effects=outcomes)


async def record_deliveries(
    store,
    order_system: OrderSystem,
    delivery_note_id: str,
    delivered: Mapping[str, int],
    config: DeliveryConfig,
    side_effect_config: SideEffectConfig,
) -> WorkflowResult[DeliveryNote]:
    note = await load_delivery_note(store, delivery_note_id)
    updated = apply_deliveries(note, delivered)
    return await _save_deliveries(store, order_system, note, updated, config, side_effect_config)


async def mark_all_delivered(
    store,
    order_system: OrderSystem,
    delivery_note_id: str,
    config: DeliveryConfig,
    side_effect_config: SideEffectConfig,
) -> WorkflowResult[DeliveryNote]:
    note = await load_delivery_note(store, delivery_note_id)
    updated = apply_deliveries(note, {line.id: line.quantity for line in note.items})
    return await _save_deliveries(store, order_system, note, updated, config, side_effect_config)


async def cancel(store, delivery_note_id: str) -> WorkflowResult[DeliveryNote]:
    note = await load_delivery_note(store, delivery_note_id)
    transition = DELIVERY_NOTE_MACHINE.next(note.status, "cancel")

    updated = note.model_copy(deep=True)
    updated.status = DeliveryNoteStatus(transition.target)
    await store.save(updated)

    logger.info("delivery_note_cancelled", delivery_note_id=note.id, number=note.number)
    return WorkflowResult(document=updated)


def delivery_note_stats(notes: Iterable[DeliveryNote]):
    return status_counts(notes)
