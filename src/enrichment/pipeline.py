"""Post-call enrichment: transcript, summary and sentiment for a recorded call."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from calls.schemas import PROCESSED_STATUS
from common.errors import NotFoundError, UpstreamError, ValidationError
from config.settings import Settings
from db.models import CallRecord
from db.repository import CallRecordRepository
from enrichment.summarizer import CallSummarizer, SentimentAssessment
from speech.transcriber import RecordingTranscriber

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class EnrichmentPipeline:
    """Transcribes a recording, derives summary and sentiment, then commits once.

    All collaborator calls finish before anything is written, so a failure leaves
    the call record exactly as it was. Resubmitting the same call and recording
    is safe because every run overwrites the enrichment fields as a whole.
    """

    def __init__(
        self,
        *,
        transcriber: RecordingTranscriber,
        summarizer: CallSummarizer,
        repository: CallRecordRepository | None = None,
        timeout_seconds: float = 120.0,
    ) -> None:
        self._transcriber = transcriber
        self._summarizer = summarizer
        self._repo = repository or CallRecordRepository()
        self._timeout = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> EnrichmentPipeline:
        # Lazy imports keep provider SDKs out of module import time.
        from llm.factory import build_llm_client
        from speech.transcriber import build_transcriber

        return cls(
            transcriber=build_transcriber(settings),
            summarizer=CallSummarizer(build_llm_client(settings)),
            timeout_seconds=settings.enrichment_timeout_seconds,
        )

    async def enrich(self, call_id: int, recording_url: str) -> CallRecord:
        recording_url = (recording_url or "").strip()
        if not recording_url:
            raise ValidationError("A recording URL is required.")

        record = await self._repo.get(call_id)
        if record is None:
            raise NotFoundError("Call record not found.")

        LOGGER.info("Enriching call %s from %s", call_id, recording_url)
        transcript = await self._call("transcription", self._transcriber.transcribe(recording_url))
        transcript = (transcript or "").strip()

        if transcript:
            summary = await self._call("summarization", self._summarizer.summarize(transcript))
            sentiment = await self._call(
                "sentiment analysis", self._summarizer.analyze_sentiment(transcript)
            )
        else:
            LOGGER.info("Call %s produced an empty transcript", call_id)
            summary = ""
            sentiment = SentimentAssessment(label="neutral", score=0.0, highlights=[])

        updated = await self._repo.update(
            call_id,
            {
                "transcript": transcript,
                "summary": summary,
                "sentiment_label": sentiment.label,
                "sentiment_score": sentiment.score,
                "highlights": list(sentiment.highlights),
                "status": PROCESSED_STATUS,
            },
        )
        if updated is None:
            raise NotFoundError("Call record not found.")
        LOGGER.info("Call %s enriched (sentiment=%s)", call_id, sentiment.label)
        return updated

    async def _call(self, step: str, operation: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(operation, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            LOGGER.error("Enrichment %s timed out after %.0fs", step, self._timeout)
            raise UpstreamError(f"{step.capitalize()} timed out.") from exc
        except Exception as exc:
            LOGGER.exception("Enrichment %s failed: %s", step, exc)
            raise UpstreamError(f"{step.capitalize()} failed: {exc}") from exc
