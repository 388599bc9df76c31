from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Text, Numeric, ForeignKey, DateTime, text
from typing import Optional

from .authz import Base


class Product(Base):
    __tablename__ = 'products'
    STATUS_ACTIVE = 'active'
    STATUS_INACTIVE = 'inactive'
    ALL_STATUSES = (STATUS_ACTIVE, STATUS_INACTIVE)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    sku: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    description: Mapped[Optional[str]] = mapped_column(Text)
    price: Mapped[Optional[float]] = mapped_column(Numeric(10, 2, asdecimal=False))
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_ACTIVE, index=True)
    created_by: Mapped[Optional[int]] = mapped_column(ForeignKey('users.id'))
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))
