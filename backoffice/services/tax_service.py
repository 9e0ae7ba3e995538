"""
Tax calculator: tax-inclusive (TTC) / tax-exclusive (HT) conversion.

Rules:
  inclusive -> exclusive:  exclusive = round2(inclusive / (1 + rate/100))
                           tax       = round2(exclusive * rate/100)
  exclusive -> inclusive:  tax       = round2(exclusive * rate/100)
                           inclusive = round2(exclusive + tax)

round2 is ROUND_HALF_UP to 2 decimal places and is applied per line.
Document totals and the per-rate breakdown are plain sums of the rounded
line values; the aggregate is never rounded on its own.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence

from backoffice.config import TaxConfig
from backoffice.exceptions import ValidationError

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0.00")


@dataclass(frozen=True)
class TaxSplit:
    rate: int
    exclusive: Decimal
    tax: Decimal
    inclusive: Decimal


@dataclass
class DocumentTotals:
    subtotal: Decimal = ZERO
    tax: Decimal = ZERO
    total: Decimal = ZERO
    breakdown: dict[int, Decimal] = field(default_factory=dict)


def round2(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def _rate_fraction(rate: int) -> Decimal:
    if rate < 0:
        raise ValidationError(f"Tax rate cannot be negative: {rate}")
    return Decimal(rate) / HUNDRED


def split_inclusive(inclusive, rate: int) -> TaxSplit:
    fraction = _rate_fraction(rate)
    gross = round2(inclusive)
    exclusive = round2(gross / (1 + fraction))
    tax = round2(exclusive * fraction)
    return TaxSplit(rate=rate, exclusive=exclusive, tax=tax, inclusive=gross)


def split_exclusive(exclusive, rate: int) -> TaxSplit:
    fraction = _rate_fraction(rate)
    net = round2(exclusive)
    tax = round2(net * fraction)
    return TaxSplit(rate=rate, exclusive=net, tax=tax, inclusive=round2(net + tax))


def split_line(
    quantity: int, unit_price, rate: int, prices_include_tax: bool = True
) -> TaxSplit:
    amount = round2(Decimal(str(unit_price)) * quantity)
    if prices_include_tax:
        return split_inclusive(amount, rate)
    return split_exclusive(amount, rate)


def validate_tax_rate(rate: Optional[int], config: TaxConfig) -> int:
    """Return the rate to use for a line, falling back to the configured default."""
    if rate is None:
        return config.default_rate
    if rate not in config.rates:
        raise ValidationError(
            f"Tax rate {rate}% is not allowed (allowed: {', '.join(map(str, config.rates))})",
            {"tax_rate": f"must be one of {list(config.rates)}"},
        )
    return rate


def tax_breakdown(entries: Iterable[tuple[int, Decimal]]) -> dict[int, Decimal]:
    """
    Sum per-line tax amounts by rate.

    entries are (rate, line_tax_amount) pairs. Rates whose summed tax is zero
    are dropped; the result is ordered by ascending rate.
    """
    sums: dict[int, Decimal] = {}
    for rate, amount in entries:
        sums[rate] = sums.get(rate, ZERO) + Decimal(str(amount))
    return {rate: sums[rate] for rate in sorted(sums) if sums[rate] != 0}


def document_totals(splits: Sequence[TaxSplit]) -> DocumentTotals:
    return DocumentTotals(
        subtotal=sum((s.exclusive for s in splits), ZERO),
        tax=sum((s.tax for s in splits), ZERO),
        total=sum((s.inclusive for s in splits), ZERO),
        breakdown=tax_breakdown((s.rate, s.tax) for s in splits),
    )


def price_lines(lines, config: TaxConfig):
    """
    Fill tax_amount and line_total on tax-inclusive document lines.

    Returns (priced_lines, totals). Input lines are not modified.
    """
    priced = []
    splits = []
    for line in lines:
        rate = validate_tax_rate(line.tax_rate, config)
        split = split_line(line.quantity, line.unit_price, rate)
        priced.append(
            line.model_copy(
                update={
                    "tax_rate": rate,
                    "tax_amount": split.tax,
                    "line_total": split.inclusive,
                }
            )
        )
        splits.append(split)
    return priced, document_totals(splits)


def nearest_tax_rate(inclusive_total, tax_amount, config: TaxConfig) -> int:
    """Infer the closest allowed rate from a tax-inclusive total and its tax."""
    tax = Decimal(str(tax_amount))
    if tax == 0:
        return 0 if 0 in config.rates else config.default_rate
    exclusive = Decimal(str(inclusive_total)) - tax
    if exclusive <= 0:
        return config.default_rate
    observed = tax / exclusive * HUNDRED
    best = config.rates[0]
    for rate in config.rates[1:]:
        if abs(rate - observed) < abs(best - observed):
            best = rate
    return best
