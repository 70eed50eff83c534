from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class Company(Base):
    """
    Company record owned by the dashboard's company store.

    The contact pipeline only reads identity columns and writes the
    website / emails / selected_email / career_site_url / has_contact_form /
    notes columns.
    """
    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), index=True)

    name: Mapped[str] = mapped_column(String(300))
    city: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    registry_id: Mapped[str] = mapped_column(String(32))  # SIREN
    activity_code: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    activity_label: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)

    website_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    emails: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    selected_email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    career_site_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    has_contact_form: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_companies_user_selected", "user_id", "selected_email"),
    )


class RateLimitLog(Base):
    """Append-only log; one row per accepted call, counted over a trailing window."""
    __tablename__ = "rate_limits"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64))
    action: Mapped[str] = mapped_column(String(100))
    count: Mapped[int] = mapped_column(Integer, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("ix_rate_limits_user_action_created", "user_id", "action", "created_at"),
    )


class CompanyBlacklist(Base):
    __tablename__ = "company_blacklist"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    registry_id: Mapped[str] = mapped_column(String(32))
    company_name: Mapped[Optional[str]] = mapped_column(String(300), nullable=True)
    blacklist_reason: Mapped[str] = mapped_column(String(32))  # no_email_found|api_error|invalid_company
    is_permanent: Mapped[bool] = mapped_column(Boolean, default=False)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    hit_count: Mapped[int] = mapped_column(Integer, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (UniqueConstraint("registry_id", name="uq_company_blacklist_registry_id"),)


class LlmCall(Base):
    __tablename__ = "llm_calls"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    context_type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    model_name: Mapped[str] = mapped_column(String(100))
    input_text: Mapped[str] = mapped_column(Text())
    output_text: Mapped[Optional[str]] = mapped_column(Text(), nullable=True)
    company_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    success: Mapped[bool] = mapped_column(Boolean, default=True)
    latency_ms: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
