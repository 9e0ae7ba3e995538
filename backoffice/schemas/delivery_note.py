import enum
from datetime import date as date_type
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from backoffice.schemas.common import (
    Customer,
    LineItem,
    LineItemCreate,
    WorkflowSideEffects,
    new_id,
)


class DeliveryNoteStatus(str, enum.Enum):
    PENDING = "pending"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class DeliveryNoteLine(LineItem):
    delivered: int = Field(0, ge=0)

    @model_validator(mode="after")
    def _delivered_within_quantity(self):
        if self.delivered > self.quantity:
            raise ValueError(
                f"delivered ({self.delivered}) exceeds quantity ({self.quantity})"
            )
        return self


class DeliveryNote(BaseModel):
    document_type: Literal["delivery_note"] = "delivery_note"
    id: str = Field(default_factory=new_id)
    number: str
    order_ref: Optional[str] = None
    invoice_id: Optional[str] = None
    date: date_type = Field(default_factory=date_type.today)
    estimated_delivery_date: Optional[date_type] = None
    status: DeliveryNoteStatus = DeliveryNoteStatus.PENDING
    customer: Customer = Field(default_factory=Customer)
    items: List[DeliveryNoteLine] = Field(default_factory=list)
    notes: Optional[str] = None


class DeliveryNoteCreate(BaseModel):
    number: Optional[str] = None
    order_ref: Optional[str] = None
    invoice_id: Optional[str] = None
    date: Optional[date_type] = None
    estimated_delivery_date: Optional[date_type] = None
    customer: Customer = Field(default_factory=Customer)
    items: List[LineItemCreate] = Field(default_factory=list)
    notes: Optional[str] = None


class DeliveryUpdate(BaseModel):
    """Cumulative delivered quantity per line id."""

    delivered: Dict[str, int] = Field(..., min_length=1)


class DeliveryNoteResponse(WorkflowSideEffects):
    delivery_note: DeliveryNote
