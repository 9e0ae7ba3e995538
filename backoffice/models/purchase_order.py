import uuid
from datetime import datetime, date as date_type
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    String,
    Numeric,
    DateTime,
    Date,
    Text,
    CheckConstraint,
    Index,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.database import Base


class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    expected_delivery_date: Mapped[Optional[date_type]] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(20), default="draft")
    supplier_id: Mapped[Optional[str]] = mapped_column(String(100))
    # Lines are owned by the order: [{id, product_ref, quantity, received, ...}]
    items: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    tax: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    total: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft','sent','confirmed','partial','received','cancelled')",
            name="chk_po_status",
        ),
        Index("idx_po_status", "status"),
        Index("idx_po_supplier", "supplier_id"),
    )
