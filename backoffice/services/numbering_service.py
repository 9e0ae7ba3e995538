"""
Document numbering: reserve / confirm / release.

Numbers are `{prefix}-{sequence:06d}` with one sequence per document type and
year. The next sequence is max(start_number, last + 1). A released number
that was never confirmed is deleted and becomes available again.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from backoffice.config import NumberingConfig
from backoffice.exceptions import ValidationError
from backoffice.models.document_number import DocumentNumber

logger = structlog.get_logger()

RESERVED = "RESERVED"
CONFIRMED = "CONFIRMED"


def format_number(prefix: str, sequence: int) -> str:
    return f"{prefix}-{sequence:06d}"


class NumberingService:
    def __init__(self, session: AsyncSession, config: NumberingConfig):
        self.session = session
        self.config = config

    async def _last_sequence(self, document_type: str, year: int) -> int:
        result = await self.session.execute(
            select(func.max(DocumentNumber.sequence)).where(
                DocumentNumber.document_type == document_type,
                DocumentNumber.year == year,
            )
        )
        return result.scalar() or 0

    async def reserve(self, document_type: str, year: Optional[int] = None) -> str:
        year = year or datetime.utcnow().year
        last = await self._last_sequence(document_type, year)
        sequence = max(self.config.start_number, last + 1)
        number = format_number(self.config.prefix_for(document_type), sequence)

        self.session.add(
            DocumentNumber(
                document_type=document_type,
                number=number,
                year=year,
                sequence=sequence,
                status=RESERVED,
            )
        )
        await self.session.flush()

        logger.info("document_number_reserved", document_type=document_type, number=number)
        return number

    async def _get(self, number: str) -> Optional[DocumentNumber]:
        result = await self.session.execute(
            select(DocumentNumber).where(DocumentNumber.number == number)
        )
        return result.scalar_one_or_none()

    async def confirm(self, number: str) -> None:
        """Mark a reserved number as used by a saved document."""
        row = await self._get(number)
        if row is None:
            raise ValidationError(
                f"Document number '{number}' was never reserved",
                {"number": "unknown document number"},
            )
        if row.status == CONFIRMED:
            raise ValidationError(
                f"Document number '{number}' is already in use",
                {"number": "already used by another document"},
            )
        row.status = CONFIRMED
        await self.session.flush()
        logger.info("document_number_confirmed", number=number)

    async def release(self, number: str) -> bool:
        """Free a reserved number. Confirmed numbers are kept; returns whether it was freed."""
        row = await self._get(number)
        if row is None or row.status == CONFIRMED:
            logger.warning("document_number_not_released", number=number)
            return False
        await self.session.delete(row)
        await self.session.flush()
        logger.info("document_number_released", number=number)
        return True
