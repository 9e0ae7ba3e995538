from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class ExternalOrderLine(BaseModel):
    """A line of an order held by the e-commerce system."""

    line_ref: Optional[str] = None
    product_ref: Optional[str] = None
    description: str = ""
    quantity: int = 0
    unit_price: Decimal = Decimal("0.00")
    total: Decimal = Decimal("0.00")
    total_tax: Decimal = Decimal("0.00")


class ExternalOrder(BaseModel):
    order_ref: str
    number: Optional[str] = None
    status: Optional[str] = None
    line_items: List[ExternalOrderLine] = Field(default_factory=list)
