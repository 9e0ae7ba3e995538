"""Central model registry: import all models so Alembic autodiscover works."""

from backoffice.database import Base  # noqa: F401

from backoffice.models.purchase_order import PurchaseOrder  # noqa: F401
from backoffice.models.receipt import Receipt  # noqa: F401
from backoffice.models.delivery_note import DeliveryNote  # noqa: F401
from backoffice.models.return_note import ReturnNote  # noqa: F401
from backoffice.models.document_number import DocumentNumber  # noqa: F401
