import enum
from datetime import date as date_type
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from backoffice.schemas.common import Customer, LineItem, StatusCount, WorkflowSideEffects, new_id


class ReturnNoteStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PROCESSED = "processed"
    CANCELLED = "cancelled"


class ItemCondition(str, enum.Enum):
    NEW = "new"
    USED = "used"
    DAMAGED = "damaged"


class ReturnNoteLine(LineItem):
    """unit_price is the original (tax-inclusive) selling price."""

    condition: ItemCondition = ItemCondition.NEW
    reason: str = ""
    refund_amount: Decimal = Decimal("0.00")


class ReturnNote(BaseModel):
    document_type: Literal["return_note"] = "return_note"
    id: str = Field(default_factory=new_id)
    number: str
    order_ref: Optional[str] = None
    invoice_id: Optional[str] = None
    delivery_note_id: Optional[str] = None
    date: date_type = Field(default_factory=date_type.today)
    reason: str = ""
    status: ReturnNoteStatus = ReturnNoteStatus.PENDING
    customer: Customer = Field(default_factory=Customer)
    items: List[ReturnNoteLine] = Field(default_factory=list)
    refund_amount: Decimal = Decimal("0.00")
    notes: Optional[str] = None


class ReturnNoteLineCreate(BaseModel):
    id: Optional[str] = None
    product_ref: Optional[str] = None
    description: str = ""
    quantity: int
    unit_price: Decimal = Decimal("0.00")
    tax_rate: Optional[int] = None
    condition: ItemCondition = ItemCondition.NEW
    reason: str = ""


class ReturnNoteCreate(BaseModel):
    number: Optional[str] = None
    order_ref: Optional[str] = None
    invoice_id: Optional[str] = None
    delivery_note_id: Optional[str] = None
    date: Optional[date_type] = None
    reason: str = ""
    customer: Customer = Field(default_factory=Customer)
    items: List[ReturnNoteLineCreate] = Field(default_factory=list)
    from_order: bool = False
    notes: Optional[str] = None


class RejectRequest(BaseModel):
    reason: Optional[str] = None


class ReturnNoteResponse(WorkflowSideEffects):
    return_note: ReturnNote


class ReturnNoteStats(StatusCount):
    """Counts per status plus the refunds of processed notes."""

    total_refunded: Decimal = Decimal("0.00")
