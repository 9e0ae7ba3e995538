from fastapi import APIRouter, Depends, status

from backoffice.config import Settings, get_settings
from backoffice.dependencies import get_numbering, get_store, side_effect_payload
from backoffice.schemas.common import StatusCount
from backoffice.schemas.delivery_note import (
    DeliveryNote,
    DeliveryNoteCreate,
    DeliveryNoteResponse,
    DeliveryUpdate,
)
from backoffice.services import delivery_note_service
from backoffice.services.order_system import get_order_system

router = APIRouter()


def _to_response(result) -> DeliveryNoteResponse:
    return DeliveryNoteResponse(delivery_note=result.document, **side_effect_payload(result))


@router.post("", response_model=DeliveryNote, status_code=status.HTTP_201_CREATED)
async def create_delivery_note(
    body: DeliveryNoteCreate,
    store=Depends(get_store),
    numbering=Depends(get_numbering),
    settings: Settings = Depends(get_settings),
):
    number = body.number or await numbering.reserve("delivery_note")
    await numbering.confirm(number)
    note = await delivery_note_service.create_delivery_note(
        store, body, number, settings.tax_config()
    )
    return note


@router.get("/stats", response_model=StatusCount)
async def delivery_note_stats(store=Depends(get_store)):
    notes = await store.list_by_type("delivery_note")
    return delivery_note_service.delivery_note_stats(notes)


@router.get("/{note_id}", response_model=DeliveryNote)
async def get_delivery_note(note_id: str, store=Depends(get_store)):
    return await delivery_note_service.load_delivery_note(store, note_id)


@router.patch("/{note_id}/deliveries", response_model=DeliveryNoteResponse)
async def record_deliveries(
    note_id: str,
    body: DeliveryUpdate,
    store=Depends(get_store),
    order_system=Depends(get_order_system),
    settings: Settings = Depends(get_settings),
):
    result = await delivery_note_service.record_deliveries(
        store,
        order_system,
        note_id,
        body.delivered,
        settings.delivery_config(),
        settings.side_effect_config(),
    )
    return _to_response(result)


@router.post("/{note_id}/deliver-all", response_model=DeliveryNoteResponse)
async def mark_all_delivered(
    note_id: str,
    store=Depends(get_store),
    order_system=Depends(get_order_system),
    settings: Settings = Depends(get_settings),
):
    result = await delivery_note_service.mark_all_delivered(
        store,
        order_system,
        note_id,
        settings.delivery_config(),
        settings.side_effect_config(),
    )
    return _to_response(result)


@router.post("/{note_id}/cancel", response_model=DeliveryNoteResponse)
async def cancel_delivery_note(note_id: str, store=Depends(get_store)):
    result = await delivery_note_service.cancel(store, note_id)
    return _to_response(result)
