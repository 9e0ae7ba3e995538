import asyncio
from typing import Optional

import pytest

from backoffice.config import (
    DeliveryConfig,
    NumberingConfig,
    ReturnConfig,
    SideEffectConfig,
    TaxConfig,
)
from backoffice.exceptions import DocumentNotFound, ExternalSideEffectFailure
from backoffice.schemas.order import ExternalOrder


class InMemoryDocumentStore:
    """Document store over a dict; keeps deep copies like a real database would."""

    def __init__(self):
        self.documents = {}
        self.saves = []
        self.commits = 0
        self.fail_commit = None

    async def load(self, document_id: str, document_type: Optional[str] = None):
        doc = self.documents.get(document_id)
        if doc is None or (document_type and doc.document_type != document_type):
            raise DocumentNotFound(document_type or "document", document_id)
        return doc.model_copy(deep=True)

    async def save(self, document):
        self.documents[document.id] = document.model_copy(deep=True)
        self.saves.append(document.id)
        return document

    async def list_by_order_ref(self, order_ref: str):
        found = []
        for doc in self.documents.values():
            ref = getattr(doc, "order_ref", None)
            if doc.document_type == "receipt":
                ref = doc.purchase_order_id
            if ref == order_ref:
                found.append(doc.model_copy(deep=True))
        return found

    async def list_by_type(self, document_type: str):
        return [
            doc.model_copy(deep=True)
            for doc in self.documents.values()
            if doc.document_type == document_type
        ]

    async def commit(self):
        if self.fail_commit:
            raise RuntimeError(self.fail_commit)
        self.commits += 1

    def add(self, document):
        self.documents[document.id] = document.model_copy(deep=True)
        return document


class FakeOrderSystem:
    """Records every call; ``fail`` maps a method name to the reason it should fail."""

    def __init__(self, orders=None):
        self.calls = []
        self.orders = {o.order_ref: o for o in (orders or [])}
        self.fail = {}
        self.delay = 0.0

    async def _maybe_fail(self, method: str, target: str):
        if self.delay:
            await asyncio.sleep(self.delay)
        if method in self.fail:
            raise ExternalSideEffectFailure(method, target, self.fail[method])

    async def increase_stock(self, product_ref: str, quantity: int) -> None:
        self.calls.append(("increase_stock", product_ref, quantity))
        await self._maybe_fail("increase_stock", product_ref)

    async def set_order_status(self, order_ref: str, status: str) -> None:
        self.calls.append(("set_order_status", order_ref, status))
        await self._maybe_fail("set_order_status", order_ref)

    async def add_order_note(self, order_ref: str, text: str, customer_visible: bool = False) -> None:
        self.calls.append(("add_order_note", order_ref, text, customer_visible))
        await self._maybe_fail("add_order_note", order_ref)

    async def fetch_order(self, order_ref: str) -> ExternalOrder:
        self.calls.append(("fetch_order", order_ref))
        await self._maybe_fail("fetch_order", order_ref)
        if order_ref not in self.orders:
            raise ExternalSideEffectFailure("fetch_order", order_ref, "HTTP 404")
        return self.orders[order_ref]

    def calls_to(self, method: str):
        return [c for c in self.calls if c[0] == method]


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def order_system():
    return FakeOrderSystem()


@pytest.fixture
def tax_config():
    return TaxConfig()


@pytest.fixture
def side_effect_config():
    return SideEffectConfig(timeout_seconds=0.5)


@pytest.fixture
def return_config():
    return ReturnConfig()


@pytest.fixture
def delivery_config():
    return DeliveryConfig()


@pytest.fixture
def numbering_config():
    return NumberingConfig()
