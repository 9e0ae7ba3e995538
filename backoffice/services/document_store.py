"""
Document store: load / save / list queries / commit over the ORM tables.

Documents travel through the engine as pydantic models; each row owns its
lines as a JSONB array. save() only flushes. commit() ends the request's
transaction; workflows call it once their state is final and before any
external call, and get_db() rolls back whatever was not committed.
"""

import enum
import uuid
from typing import Optional, Protocol, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from backoffice import models
from backoffice.exceptions import DocumentNotFound, ValidationError
from backoffice.schemas.delivery_note import DeliveryNote
from backoffice.schemas.purchase_order import PurchaseOrder, Receipt
from backoffice.schemas.return_note import ReturnNote

logger = structlog.get_logger()

Document = Union[PurchaseOrder, DeliveryNote, ReturnNote, Receipt]

# document_type -> (ORM row class, pydantic document class)
DOCUMENT_TYPES = {
    "purchase_order": (models.PurchaseOrder, PurchaseOrder),
    "delivery_note": (models.DeliveryNote, DeliveryNote),
    "return_note": (models.ReturnNote, ReturnNote),
    "receipt": (models.Receipt, Receipt),
}

_JSON_COLUMNS = {"items", "customer"}
_UUID_COLUMNS = {"purchase_order_id"}
_SKIPPED_COLUMNS = {"created_at", "updated_at"}


class DocumentStore(Protocol):
    async def load(self, document_id: str, document_type: Optional[str] = None) -> Document: ...

    async def save(self, document: Document) -> Document: ...

    async def list_by_order_ref(self, order_ref: str) -> list[Document]: ...

    async def list_by_type(self, document_type: str) -> list[Document]: ...

    async def commit(self) -> None: ...


def _to_uuid(value: Optional[str], field_name: str) -> Optional[uuid.UUID]:
    if value is None:
        return None
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid UUID", {field_name: "must be a valid UUID"}
        )


def _row_values(document) -> dict:
    values = document.model_dump(exclude={"document_type", "id"})
    values.update(document.model_dump(mode="json", include=_JSON_COLUMNS))
    for key, value in values.items():
        if isinstance(value, enum.Enum):
            values[key] = value.value
        elif key in _UUID_COLUMNS:
            values[key] = _to_uuid(value, key)
    return values


def _to_document(row):
    _, document_cls = DOCUMENT_TYPES[_type_of(row)]
    data = {}
    for column in row.__table__.columns:
        if column.key in _SKIPPED_COLUMNS:
            continue
        value = getattr(row, column.key)
        if column.key == "id" or column.key in _UUID_COLUMNS:
            value = str(value) if value is not None else None
        data[column.key] = value
    return document_cls.model_validate(data)


def _type_of(row) -> str:
    for document_type, (row_cls, _) in DOCUMENT_TYPES.items():
        if isinstance(row, row_cls):
            return document_type
    raise TypeError(f"Unknown document row {type(row).__name__}")


class SqlDocumentStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def load(self, document_id: str, document_type: Optional[str] = None) -> Document:
        try:
            pk = uuid.UUID(str(document_id))
        except (ValueError, TypeError):
            raise DocumentNotFound(document_type or "document", document_id)

        types = [document_type] if document_type else list(DOCUMENT_TYPES)
        for name in types:
            row_cls, _ = DOCUMENT_TYPES[name]
            row = await self.session.get(row_cls, pk)
            if row is not None:
                return _to_document(row)
        raise DocumentNotFound(document_type or "document", document_id)

    async def save(self, document: Document) -> Document:
        row_cls, _ = DOCUMENT_TYPES[document.document_type]
        pk = _to_uuid(document.id, "id")
        values = _row_values(document)

        row = await self.session.get(row_cls, pk)
        if row is None:
            row = row_cls(id=pk, **values)
            self.session.add(row)
        else:
            for key, value in values.items():
                setattr(row, key, value)
        await self.session.flush()

        logger.info(
            "document_saved",
            document_type=document.document_type,
            document_id=document.id,
            number=document.number,
        )
        return document

    async def list_by_order_ref(self, order_ref: str) -> list[Document]:
        """Every delivery note, return note and receipt tied to ``order_ref``."""
        documents = []
        for row_cls in (models.DeliveryNote, models.ReturnNote):
            result = await self.session.execute(
                select(row_cls)
                .where(row_cls.order_ref == order_ref)
                .order_by(row_cls.created_at)
            )
            documents.extend(_to_document(row) for row in result.scalars().all())

        # Receipts point at one of our own purchase orders by id
        try:
            po_id = uuid.UUID(str(order_ref))
        except (ValueError, TypeError):
            po_id = None
        if po_id is not None:
            result = await self.session.execute(
                select(models.Receipt)
                .where(models.Receipt.purchase_order_id == po_id)
                .order_by(models.Receipt.created_at)
            )
            documents.extend(_to_document(row) for row in result.scalars().all())

        return documents

    async def list_by_type(self, document_type: str) -> list[Document]:
        row_cls, _ = DOCUMENT_TYPES[document_type]
        result = await self.session.execute(select(row_cls).order_by(row_cls.created_at))
        return [_to_document(row) for row in result.scalars().all()]

    async def commit(self) -> None:
        await self.session.commit()
        logger.debug("documents_committed")
