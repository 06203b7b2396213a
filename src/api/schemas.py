"""API-facing Pydantic models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ContactRequest(BaseModel):
    phone: str = Field(min_length=3, max_length=32)
    name: str | None = Field(default=None, max_length=128)
    whatsapp: str | None = Field(default=None, max_length=64)
    metadata: dict[str, Any] | None = None


class ContactResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    phone: str
    name: str
    whatsapp: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="attributes")


class CallRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    session_id: str | None
    contact_id: int | None
    direction: str
    status: str
    transcript: str | None = None
    summary: str | None = None
    sentiment_label: str | None = None
    sentiment_score: float | None = None
    highlights: list[str] = Field(default_factory=list)
    recording_url: str | None = None
    duration_seconds: int | None = None
    created_at: datetime


class OutboundCallRequest(BaseModel):
    contact_id: int | None = None
    phone: str | None = None
    agent_prompt: str = Field(min_length=1, max_length=1000)
    metadata: dict[str, Any] | None = None


class OutboundCallResponse(BaseModel):
    session_id: str
    call_id: int


class EnrichmentJobRequest(BaseModel):
    call_id: int
    recording_url: str = Field(min_length=1)


class EnrollmentRequest(BaseModel):
    contact_id: int
    audio_base64: str = Field(min_length=1, description="Base64-encoded 16-bit PCM WAV.")
    label: str | None = Field(default=None, max_length=128)


class EnrollmentResponse(BaseModel):
    contact_id: int
    label: str
    sample_rate: int
    signature_length: int
    enrolled_at: datetime


class VerificationRequest(BaseModel):
    contact_id: int
    audio_base64: str = Field(min_length=1, description="Base64-encoded 16-bit PCM WAV.")
    threshold: float | None = Field(default=None, ge=0.0, le=1.0)


class VerificationResponse(BaseModel):
    match: bool
    similarity: float
    distance: float
    threshold: float
