from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Numeric, ForeignKey, DateTime, text
from typing import Optional

from .authz import Base


class InvoiceDelivery(Base):
    """Dispatch / delivery tracking for an issued invoice."""
    __tablename__ = 'invoice_deliveries'
    STATUS_PENDING = 'pending'
    STATUS_DISPATCHED = 'dispatched'
    STATUS_DELIVERED = 'delivered'
    ALL_STATUSES = (STATUS_PENDING, STATUS_DISPATCHED, STATUS_DELIVERED)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    invoice_number: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    invoice_date: Mapped[str] = mapped_column(DateTime(timezone=True), nullable=False)
    invoice_value: Mapped[Optional[float]] = mapped_column(Numeric(15, 2, asdecimal=False))
    dispatch_date: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True))
    lr_number: Mapped[Optional[str]] = mapped_column(String(100))
    delivery_partner: Mapped[Optional[str]] = mapped_column(String(255))
    delivered_date: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True))
    customer_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_PENDING, index=True)
    created_by: Mapped[Optional[int]] = mapped_column(ForeignKey('users.id'))
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))
