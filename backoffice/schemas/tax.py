from decimal import Decimal
from typing import List

from pydantic import BaseModel, Field


class TaxLine(BaseModel):
    quantity: int = Field(1, gt=0)
    unit_price: Decimal = Field(..., ge=0)
    tax_rate: int


class TaxBreakdownRequest(BaseModel):
    prices_include_tax: bool = True
    lines: List[TaxLine] = Field(..., min_length=1)


class TaxRateAmount(BaseModel):
    rate: int
    amount: Decimal


class TaxBreakdownResponse(BaseModel):
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    breakdown: List[TaxRateAmount] = Field(default_factory=list)
