import uuid
from datetime import datetime, date as date_type
from typing import Optional

from sqlalchemy import (
    String,
    DateTime,
    Date,
    Text,
    CheckConstraint,
    Index,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.database import Base


class DeliveryNote(Base):
    __tablename__ = "delivery_notes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    order_ref: Mapped[Optional[str]] = mapped_column(String(64))
    invoice_id: Mapped[Optional[str]] = mapped_column(String(64))
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    estimated_delivery_date: Mapped[Optional[date_type]] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(20), default="pending")
    customer: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    items: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending','in_transit','delivered','cancelled')",
            name="chk_delivery_note_status",
        ),
        Index("idx_delivery_notes_order", "order_ref"),
    )
