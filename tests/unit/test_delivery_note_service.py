"""
Unit tests for backoffice/services/delivery_note_service.py
"""

from decimal import Decimal

import pytest

from backoffice.config import DeliveryConfig
from backoffice.exceptions import InvalidStateTransition, ValidationError
from backoffice.schemas.common import Customer, LineItemCreate
from backoffice.schemas.delivery_note import (
    DeliveryNote,
    DeliveryNoteCreate,
    DeliveryNoteLine,
    DeliveryNoteStatus,
)
from backoffice.services import delivery_note_service
from backoffice.services.delivery_note_service import (
    apply_deliveries,
    build_delivery_note,
    derive_delivery_status,
)


def _line(line_id, quantity, delivered=0):
    return DeliveryNoteLine(
        id=line_id, description=f"Item {line_id}", quantity=quantity, delivered=delivered
    )


def _make_note(*lines, status=DeliveryNoteStatus.PENDING, order_ref="42"):
    return DeliveryNote(
        number="BL-000001",
        order_ref=order_ref,
        status=status,
        customer=Customer(name="Jane Doe"),
        items=list(lines),
    )


async def _record(store, order_system, note, delivered, delivery_config, side_effect_config):
    return await delivery_note_service.record_deliveries(
        store, order_system, note.id, delivered, delivery_config, side_effect_config
    )


# ---------------------------------------------------------------------------
# Status derivation
# ---------------------------------------------------------------------------


def test_derive_status_from_totals():
    assert derive_delivery_status([_line("a", 3), _line("b", 2)]) == DeliveryNoteStatus.PENDING
    assert derive_delivery_status([_line("a", 3, 3), _line("b", 2)]) == DeliveryNoteStatus.IN_TRANSIT
    assert derive_delivery_status([_line("a", 3, 3), _line("b", 2, 2)]) == DeliveryNoteStatus.DELIVERED


def test_apply_deliveries_clamps_to_line_quantity():
    note = _make_note(_line("a", 3), _line("b", 2, 1))
    updated = apply_deliveries(note, {"a": 10, "b": -4})
    assert [l.delivered for l in updated.items] == [3, 0]
    assert note.items[0].delivered == 0


def test_apply_deliveries_rejects_unknown_lines():
    with pytest.raises(ValidationError) as exc:
        apply_deliveries(_make_note(_line("a", 3)), {"zz": 1})
    assert "delivered.zz" in exc.value.field_errors


@pytest.mark.parametrize("status", [DeliveryNoteStatus.CANCELLED, DeliveryNoteStatus.DELIVERED])
def test_closed_notes_reject_quantity_edits(status):
    with pytest.raises(InvalidStateTransition):
        apply_deliveries(_make_note(_line("a", 3, 3), status=status), {"a": 1})


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_partial_delivery_never_completes_order(
    store, order_system, delivery_config, side_effect_config
):
    note = store.add(_make_note(_line("a", 3), _line("b", 2)))

    result = await _record(store, order_system, note, {"a": 2}, delivery_config, side_effect_config)

    assert result.document.status == DeliveryNoteStatus.IN_TRANSIT
    assert order_system.calls == []


@pytest.mark.asyncio
async def test_in_transit_status_update_when_configured(store, order_system, side_effect_config):
    config = DeliveryConfig(in_transit_order_status="shipped")
    note = store.add(_make_note(_line("a", 3)))

    await _record(store, order_system, note, {"a": 1}, config, side_effect_config)

    assert order_system.calls == [("set_order_status", "42", "shipped")]


@pytest.mark.asyncio
async def test_full_delivery_completes_order_and_annotates(
    store, order_system, delivery_config, side_effect_config
):
    note = store.add(_make_note(_line("a", 3, 1), _line("b", 2), status=DeliveryNoteStatus.IN_TRANSIT))

    result = await _record(
        store, order_system, note, {"a": 3, "b": 2}, delivery_config, side_effect_config
    )

    assert result.document.status == DeliveryNoteStatus.DELIVERED
    assert order_system.calls_to("set_order_status") == [("set_order_status", "42", "completed")]
    notes = order_system.calls_to("add_order_note")
    assert notes[0][2] == "Delivery note BL-000001 delivered. Items delivered: 5"
    assert (await store.load(note.id)).status == DeliveryNoteStatus.DELIVERED


@pytest.mark.asyncio
async def test_no_order_ref_no_side_effects(store, order_system, delivery_config, side_effect_config):
    note = store.add(_make_note(_line("a", 1), order_ref=None))
    result = await _record(store, order_system, note, {"a": 1}, delivery_config, side_effect_config)
    assert result.document.status == DeliveryNoteStatus.DELIVERED
    assert order_system.calls == []


@pytest.mark.asyncio
async def test_back_to_zero_resets_to_pending(store, order_system, delivery_config, side_effect_config):
    note = store.add(_make_note(_line("a", 3, 2), status=DeliveryNoteStatus.IN_TRANSIT))
    result = await _record(store, order_system, note, {"a": 0}, delivery_config, side_effect_config)
    assert result.document.status == DeliveryNoteStatus.PENDING
    assert order_system.calls == []


@pytest.mark.asyncio
async def test_completion_failure_is_reported(store, order_system, delivery_config, side_effect_config):
    order_system.fail["set_order_status"] = "HTTP 401"
    note = store.add(_make_note(_line("a", 1)))

    result = await delivery_note_service.mark_all_delivered(
        store, order_system, note.id, delivery_config, side_effect_config
    )

    assert result.document.status == DeliveryNoteStatus.DELIVERED
    assert [(f.effect, f.reason) for f in result.failures] == [("set_order_status", "HTTP 401")]
    assert len(order_system.calls_to("add_order_note")) == 1


@pytest.mark.asyncio
async def test_order_completion_waits_for_commit(
    store, order_system, delivery_config, side_effect_config
):
    store.fail_commit = "connection lost"
    note = store.add(_make_note(_line("a", 1)))

    with pytest.raises(RuntimeError):
        await delivery_note_service.mark_all_delivered(
            store, order_system, note.id, delivery_config, side_effect_config
        )

    assert order_system.calls == []


@pytest.mark.asyncio
async def test_cancelled_note_is_frozen(store, order_system, delivery_config, side_effect_config):
    note = store.add(_make_note(_line("a", 3, 1), status=DeliveryNoteStatus.IN_TRANSIT))

    result = await delivery_note_service.cancel(store, note.id)
    assert result.document.status == DeliveryNoteStatus.CANCELLED

    with pytest.raises(InvalidStateTransition):
        await _record(store, order_system, note, {"a": 3}, delivery_config, side_effect_config)
    saved = await store.load(note.id)
    assert saved.status == DeliveryNoteStatus.CANCELLED
    assert saved.items[0].delivered == 1


@pytest.mark.asyncio
async def test_delivered_note_cannot_be_cancelled(store):
    note = store.add(_make_note(_line("a", 1, 1), status=DeliveryNoteStatus.DELIVERED))
    with pytest.raises(InvalidStateTransition):
        await delivery_note_service.cancel(store, note.id)


# ---------------------------------------------------------------------------
# Drafts
# ---------------------------------------------------------------------------


def test_build_delivery_note(tax_config):
    payload = DeliveryNoteCreate(
        order_ref="42",
        customer=Customer(name="Jane Doe"),
        items=[LineItemCreate(description="Chair", quantity=2, unit_price=Decimal("60.00"))],
    )
    note = build_delivery_note(payload, "BL-000002", tax_config)
    assert note.status == DeliveryNoteStatus.PENDING
    assert note.items[0].delivered == 0
    assert note.items[0].line_total == Decimal("120.00")


def test_build_delivery_note_requires_customer(tax_config):
    payload = DeliveryNoteCreate(items=[LineItemCreate(description="Chair", quantity=1)])
    with pytest.raises(ValidationError) as exc:
        build_delivery_note(payload, "BL-000003", tax_config)
    assert exc.value.field_errors == {"customer.name": "customer name is required"}


def test_delivery_note_stats():
    stats = delivery_note_service.delivery_note_stats(
        [_make_note(_line("a", 1)), _make_note(_line("a", 1), status=DeliveryNoteStatus.DELIVERED)]
    )
    assert stats.by_status == {"pending": 1, "delivered": 1}
