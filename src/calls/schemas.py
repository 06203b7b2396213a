"""Pydantic schemas for call lifecycle events."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

LOGGER = logging.getLogger(__name__)

Direction = Literal["inbound", "outbound"]

CALL_STATUSES: tuple[str, ...] = (
    "initiated",
    "ringing",
    "answered",
    "in-progress",
    "completed",
    "busy",
    "failed",
    "no-answer",
    "canceled",
    "processed",
)

TERMINAL_TELEPHONY_STATUSES = frozenset({"completed", "failed", "no-answer", "canceled", "busy"})

PROCESSED_STATUS = "processed"

# Signed 64-bit bounds of an INTEGER column.
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

# Provider vocabulary -> canonical status. Keys are lowercase.
PROVIDER_STATUS_MAP: dict[str, str] = {
    "queued": "initiated",
    "initiated": "initiated",
    "ringing": "ringing",
    "answered": "answered",
    "inprogress": "in-progress",
    "in-progress": "in-progress",
    "completed": "completed",
    "busy": "busy",
    "failed": "failed",
    "noanswer": "no-answer",
    "no-answer": "no-answer",
    "canceled": "canceled",
    "cancelled": "canceled",
}


def normalize_status(raw: str | None) -> str | None:
    """Map a provider status token to the canonical vocabulary.

    Unknown tokens are returned verbatim; the provider is authoritative.
    """

    if raw is None:
        return None
    token = raw.strip()
    if not token:
        return None
    return PROVIDER_STATUS_MAP.get(token.lower(), token)


def parse_int(raw: Any) -> int | None:
    """Lenient integer parse; values the store cannot hold count as unparsable."""

    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return _within_int64(raw)
    text = str(raw).strip()
    if not text:
        return None
    try:
        return _within_int64(int(text))
    except ValueError:
        pass
    try:
        value = float(text)
    except ValueError:
        LOGGER.debug("Dropping unparsable integer field value %r", raw)
        return None
    if not math.isfinite(value):
        return None
    return _within_int64(int(value))


def _within_int64(value: int) -> int | None:
    if INT64_MIN <= value <= INT64_MAX:
        return value
    LOGGER.debug("Dropping out-of-range integer field value %s", value)
    return None


def parse_float(raw: Any) -> float | None:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(str(raw).strip())
    except ValueError:
        LOGGER.debug("Dropping unparsable numeric field value %r", raw)
        return None
    if not math.isfinite(value):
        return None
    return value


class CallUpdate(BaseModel):
    """Sparse update for a call record.

    Only fields explicitly set on the instance are written. An omitted field is
    left unchanged; an explicit None clears it.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    status: str | None = None
    transcript: str | None = None
    sentiment_score: float | None = None
    duration_seconds: int | None = Field(default=None, ge=0)
    recording_url: str | None = None

    def changes(self) -> dict[str, Any]:
        """Return only the explicitly supplied fields, ready for a merge write."""

        return {name: getattr(self, name) for name in self.model_fields_set}

    @classmethod
    def from_provider_fields(cls, fields: Mapping[str, Any]) -> CallUpdate:
        """Build an update from loosely typed provider fields.

        Accepts canonical keys (`status`, `duration_seconds`, ...). Status is
        normalized, numeric values that fail to parse are dropped and empty
        strings count as absent.
        """

        values: dict[str, Any] = {}

        status = normalize_status(_text_or_none(fields.get("status")))
        if status is not None:
            values["status"] = status

        transcript = _text_or_none(fields.get("transcript"))
        if transcript is not None:
            values["transcript"] = transcript

        if "sentiment_score" in fields:
            score = parse_float(fields["sentiment_score"])
            if score is not None:
                values["sentiment_score"] = score

        if "duration_seconds" in fields:
            duration = parse_int(fields["duration_seconds"])
            if duration is not None and duration >= 0:
                values["duration_seconds"] = duration

        recording_url = _text_or_none(fields.get("recording_url"))
        if recording_url is not None:
            values["recording_url"] = recording_url

        return cls(**values)


def _text_or_none(raw: Any) -> str | None:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


class SpeechCapture(BaseModel):
    """Recognized caller utterance delivered by the provider."""

    session_id: str
    transcript: str
    confidence: float | None = None
