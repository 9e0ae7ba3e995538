from typing import Literal

from pydantic import BaseModel

DocumentType = Literal["purchase_order", "delivery_note", "return_note", "receipt"]


class NumberReservation(BaseModel):
    document_type: DocumentType


class DocumentNumberResponse(BaseModel):
    number: str


class ReleaseResponse(BaseModel):
    number: str
    released: bool
