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


class ReturnNote(Base):
    __tablename__ = "return_notes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    order_ref: Mapped[Optional[str]] = mapped_column(String(64))
    invoice_id: Mapped[Optional[str]] = mapped_column(String(64))
    delivery_note_id: Mapped[Optional[str]] = mapped_column(String(64))
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), default="pending")
    customer: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    # [{id, product_ref, quantity, condition, reason, unit_price, refund_amount, ...}]
    items: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    refund_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending','approved','rejected','processed','cancelled')",
            name="chk_return_note_status",
        ),
        Index("idx_return_notes_order", "order_ref"),
        Index("idx_return_notes_status", "status"),
    )
