from __future__ import annotations
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, Text, JSON, ForeignKey, DateTime, text
from typing import Optional, List, Any

from .authz import Base


class MeetingMinute(Base):
    __tablename__ = 'meeting_minutes'
    STATUS_DRAFT = 'draft'
    STATUS_FINALIZED = 'finalized'
    STATUS_ARCHIVED = 'archived'
    ALL_STATUSES = (STATUS_DRAFT, STATUS_FINALIZED, STATUS_ARCHIVED)
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    mom_number: Mapped[Optional[str]] = mapped_column(String(50), unique=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_code: Mapped[Optional[str]] = mapped_column(String(50), index=True)
    meeting_date: Mapped[Optional[str]] = mapped_column(DateTime(timezone=True))
    attendees: Mapped[List[Any]] = mapped_column(JSON, default=list)
    agenda: Mapped[Optional[str]] = mapped_column(Text)
    discussion: Mapped[Optional[str]] = mapped_column(Text)
    action_items: Mapped[List[Any]] = mapped_column(JSON, default=list)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=STATUS_DRAFT)
    created_by: Mapped[int] = mapped_column(ForeignKey('users.id'), nullable=False)
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))
