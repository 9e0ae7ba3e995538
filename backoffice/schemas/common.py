import uuid
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


def new_id() -> str:
    return str(uuid.uuid4())


class Customer(BaseModel):
    name: str = ""
    email: Optional[str] = None
    company: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class LineItem(BaseModel):
    """Fields shared by every document line. Prices are tax-inclusive."""

    id: str = Field(default_factory=new_id)
    product_ref: Optional[str] = None
    description: str = ""
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Decimal("0.00")
    tax_rate: int = 20
    tax_amount: Decimal = Decimal("0.00")
    line_total: Decimal = Decimal("0.00")


class LineItemCreate(BaseModel):
    id: Optional[str] = None
    product_ref: Optional[str] = None
    description: str = ""
    quantity: int
    unit_price: Decimal = Decimal("0.00")
    tax_rate: Optional[int] = None


class SideEffectResponse(BaseModel):
    effect: str
    target: str
    succeeded: bool
    error: Optional[str] = None


class StatusCount(BaseModel):
    total: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)


class WorkflowSideEffects(BaseModel):
    side_effects: List[SideEffectResponse] = Field(default_factory=list)
    side_effects_failed: int = 0
