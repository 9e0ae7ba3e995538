import enum
from datetime import date as date_type
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from backoffice.schemas.common import (
    LineItem,
    LineItemCreate,
    WorkflowSideEffects,
    new_id,
)


class PurchaseOrderStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    CONFIRMED = "confirmed"
    PARTIAL = "partial"
    RECEIVED = "received"
    CANCELLED = "cancelled"


class PurchaseOrderLine(LineItem):
    received: int = Field(0, ge=0)

    @model_validator(mode="after")
    def _received_within_quantity(self):
        if self.received > self.quantity:
            raise ValueError(
                f"received ({self.received}) exceeds ordered quantity ({self.quantity})"
            )
        return self


class PurchaseOrder(BaseModel):
    document_type: Literal["purchase_order"] = "purchase_order"
    id: str = Field(default_factory=new_id)
    number: str
    date: date_type = Field(default_factory=date_type.today)
    expected_delivery_date: Optional[date_type] = None
    status: PurchaseOrderStatus = PurchaseOrderStatus.DRAFT
    supplier_id: Optional[str] = None
    items: List[PurchaseOrderLine] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0.00")
    tax: Decimal = Decimal("0.00")
    total: Decimal = Decimal("0.00")
    notes: Optional[str] = None


class ReceiptLine(BaseModel):
    line_id: str
    product_ref: Optional[str] = None
    ordered: int
    received_now: int


class Receipt(BaseModel):
    """One receiving run against a purchase order."""

    document_type: Literal["receipt"] = "receipt"
    id: str = Field(default_factory=new_id)
    number: str
    purchase_order_id: str
    receive_date: date_type = Field(default_factory=date_type.today)
    items: List[ReceiptLine] = Field(default_factory=list)
    notes: Optional[str] = None


# ---------- Request bodies ----------


class PurchaseOrderCreate(BaseModel):
    number: Optional[str] = None
    supplier_id: Optional[str] = None
    date: Optional[date_type] = None
    expected_delivery_date: Optional[date_type] = None
    items: List[LineItemCreate] = Field(default_factory=list)
    notes: Optional[str] = None


class ReceiptEntry(BaseModel):
    line_id: str
    received_now_qty: int = Field(..., ge=0)


class ReceiveRequest(BaseModel):
    receipt_number: Optional[str] = None
    receive_date: Optional[date_type] = None
    items: List[ReceiptEntry] = Field(..., min_length=1)
    notes: Optional[str] = None


class PurchaseOrderStatusChange(BaseModel):
    action: Literal["send", "confirm", "cancel"]


# ---------- Responses ----------


class PurchaseOrderResponse(WorkflowSideEffects):
    purchase_order: PurchaseOrder
    receipt: Optional[Receipt] = None
