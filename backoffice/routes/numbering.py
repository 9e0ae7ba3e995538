from fastapi import APIRouter, Depends, status

from backoffice.dependencies import get_numbering
from backoffice.schemas.numbering import (
    DocumentNumberResponse,
    NumberReservation,
    ReleaseResponse,
)

router = APIRouter()


@router.post("", response_model=DocumentNumberResponse, status_code=status.HTTP_201_CREATED)
async def reserve_number(body: NumberReservation, numbering=Depends(get_numbering)):
    return DocumentNumberResponse(number=await numbering.reserve(body.document_type))


@router.post("/{number}/release", response_model=ReleaseResponse)
async def release_number(number: str, numbering=Depends(get_numbering)):
    """Give back a number whose draft was abandoned. Confirmed numbers are kept."""
    return ReleaseResponse(number=number, released=await numbering.release(number))
