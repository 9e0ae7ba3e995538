from unittest.mock import AsyncMock, MagicMock

import pytest

from backoffice.config import NumberingConfig
from backoffice.exceptions import ValidationError
from backoffice.models.document_number import DocumentNumber
from backoffice.services.numbering_service import (
    CONFIRMED,
    RESERVED,
    NumberingService,
    format_number,
)


def _session(scalar=None, row=None):
    session = AsyncMock()
    session.add = MagicMock()
    result = MagicMock()
    result.scalar.return_value = scalar
    result.scalar_one_or_none.return_value = row
    session.execute.return_value = result
    return session


def test_format_number_pads_sequence():
    assert format_number("BC", 7) == "BC-000007"
    assert format_number("BR", 1234567) == "BR-1234567"


@pytest.mark.asyncio
async def test_first_reservation_uses_start_number():
    session = _session(scalar=None)
    service = NumberingService(session, NumberingConfig(start_number=100))

    number = await service.reserve("delivery_note", year=2026)

    assert number == "BL-000100"
    added = session.add.call_args[0][0]
    assert isinstance(added, DocumentNumber)
    assert (added.document_type, added.year, added.sequence, added.status) == (
        "delivery_note",
        2026,
        100,
        RESERVED,
    )
    session.flush.assert_awaited()


@pytest.mark.asyncio
async def test_next_reservation_follows_last_sequence():
    service = NumberingService(_session(scalar=41), NumberingConfig())
    assert await service.reserve("purchase_order", year=2026) == "BC-000042"


@pytest.mark.asyncio
async def test_confirm_marks_number_used():
    row = DocumentNumber(number="BR-000003", status=RESERVED)
    service = NumberingService(_session(row=row), NumberingConfig())

    await service.confirm("BR-000003")

    assert row.status == CONFIRMED


@pytest.mark.asyncio
async def test_confirm_unknown_number_is_rejected():
    service = NumberingService(_session(row=None), NumberingConfig())
    with pytest.raises(ValidationError):
        await service.confirm("BR-999999")


@pytest.mark.asyncio
async def test_release_frees_reserved_number():
    row = DocumentNumber(number="BL-000005", status=RESERVED)
    session = _session(row=row)

    released = await NumberingService(session, NumberingConfig()).release("BL-000005")

    assert released is True
    session.delete.assert_awaited_once_with(row)


@pytest.mark.asyncio
async def test_release_keeps_confirmed_number():
    row = DocumentNumber(number="BL-000006", status=CONFIRMED)
    session = _session(row=row)

    released = await NumberingService(session, NumberingConfig()).release("BL-000006")

    assert released is False
    session.delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_confirm_used_number_is_rejected():
    row = DocumentNumber(number="BC-000004", status=CONFIRMED)
    session = _session(row=row)

    with pytest.raises(ValidationError):
        await NumberingService(session, NumberingConfig()).confirm("BC-000004")
    session.flush.assert_not_awaited()
