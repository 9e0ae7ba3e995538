from typing import Optional

from fastapi import APIRouter, Depends, status

from backoffice.config import Settings, get_settings
from backoffice.dependencies import get_numbering, get_store, side_effect_payload
from backoffice.schemas.return_note import (
    RejectRequest,
    ReturnNote,
    ReturnNoteCreate,
    ReturnNoteResponse,
    ReturnNoteStats,
)
from backoffice.services import return_note_service
from backoffice.services.order_system import get_order_system

router = APIRouter()


def _to_response(result) -> ReturnNoteResponse:
    return ReturnNoteResponse(return_note=result.document, **side_effect_payload(result))


@router.post("", response_model=ReturnNote, status_code=status.HTTP_201_CREATED)
async def create_return_note(
    body: ReturnNoteCreate,
    store=Depends(get_store),
    numbering=Depends(get_numbering),
    order_system=Depends(get_order_system),
    settings: Settings = Depends(get_settings),
):
    number = body.number or await numbering.reserve("return_note")
    await numbering.confirm(number)
    result = await return_note_service.create_return_note(
        store,
        order_system,
        body,
        number,
        settings.tax_config(),
        settings.return_config(),
        settings.side_effect_config(),
    )
    return result.document


@router.get("/stats", response_model=ReturnNoteStats)
async def return_note_stats(store=Depends(get_store)):
    notes = await store.list_by_type("return_note")
    return return_note_service.return_note_stats(notes)


@router.get("/{note_id}", response_model=ReturnNote)
async def get_return_note(note_id: str, store=Depends(get_store)):
    return await return_note_service.load_return_note(store, note_id)


@router.post("/{note_id}/approve", response_model=ReturnNoteResponse)
async def approve_return_note(
    note_id: str,
    store=Depends(get_store),
    order_system=Depends(get_order_system),
    settings: Settings = Depends(get_settings),
):
    result = await return_note_service.approve(
        store, order_system, note_id, settings.return_config(), settings.side_effect_config()
    )
    return _to_response(result)


@router.post("/{note_id}/reject", response_model=ReturnNoteResponse)
async def reject_return_note(
    note_id: str,
    body: Optional[RejectRequest] = None,
    store=Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    result = await return_note_service.reject(
        store, note_id, settings.return_config(), reason=body.reason if body else None
    )
    return _to_response(result)


@router.post("/{note_id}/process", response_model=ReturnNoteResponse)
async def process_return_note(
    note_id: str,
    store=Depends(get_store),
    order_system=Depends(get_order_system),
    settings: Settings = Depends(get_settings),
):
    result = await return_note_service.process(
        store, order_system, note_id, settings.return_config(), settings.side_effect_config()
    )
    return _to_response(result)


@router.post("/{note_id}/cancel", response_model=ReturnNoteResponse)
async def cancel_return_note(
    note_id: str,
    store=Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    result = await return_note_service.cancel(store, note_id, settings.return_config())
    return _to_response(result)
