from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Numeric, ForeignKey, DateTime, text
from typing import Optional

from .authz import Base


class Payment(Base):
    __tablename__ = 'payments'
    STATUS_PENDING = 'pending'
    STATUS_COMPLETED = 'completed'
    STATUS_FAILED = 'failed'
    ALL_STATUSES = (STATUS_PENDING, STATUS_COMPLETED, STATUS_FAILED)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    customer_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    reference: Mapped[Optional[str]] = mapped_column(String(100))
    amount: Mapped[float] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=False)
    method: Mapped[Optional[str]] = mapped_column(String(32))
    paid_at: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True))
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_PENDING)
    created_by: Mapped[Optional[int]] = mapped_column(ForeignKey('users.id'))
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))


class Statement(Base):
    __tablename__ = 'statements'
    STATUS_PENDING = 'pending'
    STATUS_PARTIAL = 'partial'
    STATUS_PAID = 'paid'
    ALL_STATUSES = (STATUS_PENDING, STATUS_PARTIAL, STATUS_PAID)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    customer_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    document_number: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    document_date: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True))
    due_date: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True))
    amount: Mapped[float] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=False)
    balance: Mapped[float] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_PENDING)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))
