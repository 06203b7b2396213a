"""SQLAlchemy models for contacts, call records and voice profiles."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Contact(Base):
    """Caller identity keyed by a unique phone number."""

    __tablename__ = "contacts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    phone: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(128))
    whatsapp: Mapped[str | None] = mapped_column(String(64), default=None)
    attributes: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow)


class CallRecord(Base):
    """One telephony session and its enrichment results."""

    __tablename__ = "call_records"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    session_id: Mapped[str | None] = mapped_column(String(64), unique=True, index=True)
    contact_id: Mapped[int | None] = mapped_column(
        ForeignKey("contacts.id", ondelete="SET NULL"), index=True
    )
    direction: Mapped[str] = mapped_column(String(16))
    status: Mapped[str] = mapped_column(String(32))
    transcript: Mapped[str | None] = mapped_column(Text(), default=None)
    summary: Mapped[str | None] = mapped_column(Text(), default=None)
    sentiment_label: Mapped[str | None] = mapped_column(String(32), default=None)
    sentiment_score: Mapped[float | None] = mapped_column(Float(), default=None)
    highlights: Mapped[list[str]] = mapped_column(JSON, default=list)
    recording_url: Mapped[str | None] = mapped_column(Text(), default=None)
    duration_seconds: Mapped[int | None] = mapped_column(default=None)
    created_at: Mapped[datetime] = mapped_column(default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(default=_utcnow, onupdate=_utcnow)


class BiometricProfile(Base):
    """Enrolled voice signature, at most one per contact."""

    __tablename__ = "biometric_profiles"

    contact_id: Mapped[int] = mapped_column(
        ForeignKey("contacts.id", ondelete="CASCADE"), primary_key=True
    )
    voice_signature: Mapped[list[float]] = mapped_column(JSON)
    sample_rate: Mapped[int] = mapped_column()
    label: Mapped[str] = mapped_column(String(128))
    enrolled_at: Mapped[datetime] = mapped_column(default=_utcnow)
