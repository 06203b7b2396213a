"""Applies provider callback events to call records."""

from __future__ import annotations

import logging

from calls.schemas import PROCESSED_STATUS, TERMINAL_TELEPHONY_STATUSES, CallUpdate, SpeechCapture
from db.models import CallRecord
from db.repository import CallRecordRepository

LOGGER = logging.getLogger(__name__)

# Statuses a late telephony event should not normally move a record out of.
SETTLED_STATUSES = TERMINAL_TELEPHONY_STATUSES | {PROCESSED_STATUS}


class CallStateMachine:
    """Merges sparse provider events into the call record for a session.

    Events may arrive duplicated or out of order. Applying the same event twice
    yields the same record, and a late status such as `ringing` after
    `completed` is written as delivered rather than rejected.
    """

    def __init__(self, repository: CallRecordRepository | None = None) -> None:
        self._repo = repository or CallRecordRepository()

    async def apply_event(self, session_id: str, update: CallUpdate) -> CallRecord | None:
        """Merge `update` into the record for `session_id`.

        Returns None when no record matches; callers acknowledge that case to the
        provider instead of failing.
        """

        record = await self._repo.get_by_session_id(session_id)
        if record is None:
            LOGGER.info("Ignoring event for unknown session %s", session_id)
            return None

        changes = update.changes()
        if not changes:
            return record

        new_status = changes.get("status")
        if (
            new_status is not None
            and record.status in SETTLED_STATUSES
            and new_status != record.status
            and new_status != PROCESSED_STATUS
        ):
            LOGGER.warning(
                "Session %s moving from settled status %s to %s",
                session_id,
                record.status,
                new_status,
            )

        updated = await self._repo.update(record.id, changes)
        if updated is None:
            LOGGER.info("Call record %s vanished before update", record.id)
        return updated

    async def apply_speech(self, capture: SpeechCapture) -> CallRecord | None:
        """Record a captured utterance and mark the call as in progress."""

        fields: dict[str, object] = {"transcript": capture.transcript, "status": "in-progress"}
        if capture.confidence is not None:
            fields["sentiment_score"] = capture.confidence
        return await self.apply_event(capture.session_id, CallUpdate(**fields))
