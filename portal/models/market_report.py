from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Text, ForeignKey, DateTime, text
from typing import Optional

from .authz import Base


class MarketReport(Base):
    __tablename__ = 'market_reports'
    STATUS_DRAFT = 'draft'
    STATUS_PUBLISHED = 'published'
    ALL_STATUSES = (STATUS_DRAFT, STATUS_PUBLISHED)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100), index=True)
    summary: Mapped[Optional[str]] = mapped_column(Text)
    content: Mapped[Optional[str]] = mapped_column(Text)
    # NULL = addressed to every customer
    customer_code: Mapped[Optional[str]] = mapped_column(String(50), index=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_DRAFT)
    created_by: Mapped[Optional[int]] = mapped_column(ForeignKey('users.id'))
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))
