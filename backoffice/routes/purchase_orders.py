from fastapi import APIRouter, Depends, status

from backoffice.config import Settings, get_settings
from backoffice.dependencies import get_numbering, get_store, side_effect_payload
from backoffice.schemas.common import StatusCount
from backoffice.schemas.purchase_order import (
    PurchaseOrder,
    PurchaseOrderCreate,
    PurchaseOrderResponse,
    PurchaseOrderStatusChange,
    Receipt,
    ReceiveRequest,
)
from backoffice.services import receiving_service
from backoffice.services.order_system import get_order_system

router = APIRouter()


@router.post("", response_model=PurchaseOrder, status_code=status.HTTP_201_CREATED)
async def create_purchase_order(
    body: PurchaseOrderCreate,
    store=Depends(get_store),
    numbering=Depends(get_numbering),
    settings: Settings = Depends(get_settings),
):
    number = body.number or await numbering.reserve("purchase_order")
    await numbering.confirm(number)
    order = await receiving_service.create_purchase_order(
        store, body, number, settings.tax_config()
    )
    return order


@router.get("/stats", response_model=StatusCount)
async def purchase_order_stats(store=Depends(get_store)):
    orders = await store.list_by_type("purchase_order")
    return receiving_service.purchase_order_stats(orders)


@router.get("/{po_id}", response_model=PurchaseOrder)
async def get_purchase_order(po_id: str, store=Depends(get_store)):
    return await receiving_service.load_purchase_order(store, po_id)


@router.post("/{po_id}/status", response_model=PurchaseOrder)
async def change_status(
    po_id: str,
    body: PurchaseOrderStatusChange,
    store=Depends(get_store),
):
    return await receiving_service.change_purchase_order_status(store, po_id, body.action)


@router.post("/{po_id}/receive", response_model=PurchaseOrderResponse)
async def receive_items(
    po_id: str,
    body: ReceiveRequest,
    store=Depends(get_store),
    numbering=Depends(get_numbering),
    order_system=Depends(get_order_system),
    settings: Settings = Depends(get_settings),
):
    receipt_number = body.receipt_number or await numbering.reserve("receipt")
    await numbering.confirm(receipt_number)
    result = await receiving_service.receive_items(
        store,
        order_system,
        po_id,
        body.items,
        receipt_number,
        settings.side_effect_config(),
        receive_date=body.receive_date,
        notes=body.notes,
    )
    return PurchaseOrderResponse(
        purchase_order=result.document,
        receipt=result.receipt,
        **side_effect_payload(result),
    )


@router.get("/{po_id}/receipts", response_model=list[Receipt])
async def list_receipts(po_id: str, store=Depends(get_store)):
    return await receiving_service.list_receipts(store, po_id)
