from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Text, ForeignKey, DateTime, text
from typing import Optional

from .authz import Base


class News(Base):
    __tablename__ = 'news'
    STATUS_ACTIVE = 'active'
    STATUS_INACTIVE = 'inactive'
    ALL_STATUSES = (STATUS_ACTIVE, STATUS_INACTIVE)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    news_number: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(250), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(500))
    short_description: Mapped[Optional[str]] = mapped_column(Text)
    long_description: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_ACTIVE, index=True)
    # Lower shows first
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by: Mapped[Optional[int]] = mapped_column(ForeignKey('users.id'))
    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'))
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))
