from fastapi import APIRouter, Depends

from backoffice.config import Settings, get_settings
from backoffice.schemas.tax import TaxBreakdownRequest, TaxBreakdownResponse, TaxRateAmount
from backoffice.services.tax_service import document_totals, split_line, validate_tax_rate

router = APIRouter()


@router.post("/breakdown", response_model=TaxBreakdownResponse)
async def tax_breakdown(
    body: TaxBreakdownRequest,
    settings: Settings = Depends(get_settings),
):
    config = settings.tax_config()
    splits = [
        split_line(
            line.quantity,
            line.unit_price,
            validate_tax_rate(line.tax_rate, config),
            prices_include_tax=body.prices_include_tax,
        )
        for line in body.lines
    ]
    totals = document_totals(splits)
    return TaxBreakdownResponse(
        subtotal=totals.subtotal,
        tax=totals.tax,
        total=totals.total,
        breakdown=[TaxRateAmount(rate=r, amount=a) for r, a in totals.breakdown.items()],
    )
