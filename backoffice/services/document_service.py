"""Draft validation and statistics shared by every document type."""

from collections import Counter
from typing import Iterable

import structlog

from backoffice.config import TaxConfig
from backoffice.exceptions import ValidationError
from backoffice.schemas.common import StatusCount

logger = structlog.get_logger()


def line_field_errors(items, tax_config: TaxConfig, require_reason: bool = False) -> dict[str, str]:
    """Collect field errors for draft lines, keyed like ``items[0].quantity``."""
    errors: dict[str, str] = {}
    if not items:
        errors["items"] = "at least one line is required"
        return errors

    for i, item in enumerate(items):
        if not item.description or not item.description.strip():
            errors[f"items[{i}].description"] = "description is required"
        if item.quantity is None or item.quantity <= 0:
            errors[f"items[{i}].quantity"] = "quantity must be greater than 0"
        if item.unit_price is not None and item.unit_price < 0:
            errors[f"items[{i}].unit_price"] = "unit price cannot be negative"
        if item.tax_rate is not None and item.tax_rate not in tax_config.rates:
            errors[f"items[{i}].tax_rate"] = f"must be one of {list(tax_config.rates)}"
        if require_reason and not (getattr(item, "reason", "") or "").strip():
            errors[f"items[{i}].reason"] = "reason is required"
    return errors


def raise_if_invalid(document_type: str, errors: dict[str, str]) -> None:
    if errors:
        logger.warning("draft_rejected", document_type=document_type, fields=sorted(errors))
        raise ValidationError(
            f"Invalid {document_type.replace('_', ' ')}: {len(errors)} field error(s)",
            errors,
        )


def status_counts(documents: Iterable) -> StatusCount:
    counter = Counter(getattr(doc.status, "value", doc.status) for doc in documents)
    return StatusCount(total=sum(counter.values()), by_status=dict(counter))
