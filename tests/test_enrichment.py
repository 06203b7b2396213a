from __future__ import annotations

import asyncio
import json

import pytest

from common.errors import NotFoundError, UpstreamError, ValidationError
from db.repository import CallRecordRepository
from enrichment.pipeline import EnrichmentPipeline
from enrichment.summarizer import CallSummarizer, SentimentAssessment, SummaryFormatError, parse_sentiment
from llm.base import BaseLLMClient
from speech.transcriber import RecordingTranscriber

ENRICHMENT_FIELDS = ("transcript", "summary", "sentiment_label", "sentiment_score", "highlights", "status")


class FakeTranscriber(RecordingTranscriber):
    def __init__(self, text: str = "", *, fail: bool = False, delay: float = 0.0) -> None:
        self._text = text
        self._fail = fail
        self._delay = delay
        self.urls: list[str] = []

    async def transcribe(self, recording_url: str) -> str:
        self.urls.append(recording_url)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._fail:
            raise RuntimeError("transcription backend unavailable")
        return self._text


class FakeLLM(BaseLLMClient):
    def __init__(self, *, summary: str, sentiment: str, fail_sentiment: bool = False) -> None:
        self._summary = summary
        self._sentiment = sentiment
        self._fail_sentiment = fail_sentiment
        self.calls: list[bool] = []

    async def chat(self, messages, *, temperature: float = 0.1, json_response: bool = False) -> str:
        self.calls.append(json_response)
        if json_response:
            if self._fail_sentiment:
                raise RuntimeError("rate limited")
            return self._sentiment
        return self._summary


def _run(coro):
    return asyncio.run(coro)


def _seed_call():
    repo = CallRecordRepository()
    record = _run(repo.create(session_id="CA-enrich", direction="outbound", status="completed"))
    return _run(repo.update(record.id, {"duration_seconds": 95}))


def _fields(record) -> dict:
    return {name: getattr(record, name) for name in ENRICHMENT_FIELDS}


SENTIMENT_JSON = json.dumps(
    {"sentiment": "Positive", "score": 0.6, "highlights": ["Refund approved", "Caller thanked agent"]}
)


def test_enrich_commits_all_fields_and_marks_processed():
    record = _seed_call()
    llm = FakeLLM(summary="Caller asked for a refund; approved.", sentiment=SENTIMENT_JSON)
    pipeline = EnrichmentPipeline(
        transcriber=FakeTranscriber("I would like a refund please."),
        summarizer=CallSummarizer(llm),
    )

    updated = _run(pipeline.enrich(record.id, "https://media.example.com/RE9.mp3"))

    assert updated.transcript == "I would like a refund please."
    assert updated.summary == "Caller asked for a refund; approved."
    assert updated.sentiment_label == "positive"
    assert updated.sentiment_score == pytest.approx(0.6)
    assert updated.highlights == ["Refund approved", "Caller thanked agent"]
    assert updated.status == "processed"
    assert updated.duration_seconds == 95
    assert llm.calls == [False, True]


def test_collaborator_failure_commits_nothing():
    record = _seed_call()
    pipeline = EnrichmentPipeline(
        transcriber=FakeTranscriber("Some words."),
        summarizer=CallSummarizer(FakeLLM(summary="summary", sentiment="{}", fail_sentiment=True)),
    )

    with pytest.raises(UpstreamError):
        _run(pipeline.enrich(record.id, "https://media.example.com/RE9.mp3"))

    after = _run(CallRecordRepository().get(record.id))
    assert _fields(after) == _fields(record)
    assert after.status == "completed"


def test_transcription_failure_surfaces_upstream_error():
    record = _seed_call()
    pipeline = EnrichmentPipeline(
        transcriber=FakeTranscriber(fail=True),
        summarizer=CallSummarizer(FakeLLM(summary="unused", sentiment=SENTIMENT_JSON)),
    )

    with pytest.raises(UpstreamError) as excinfo:
        _run(pipeline.enrich(record.id, "https://media.example.com/RE9.mp3"))

    assert "Transcription failed" in excinfo.value.detail
    assert _run(CallRecordRepository().get(record.id)).transcript is None


def test_malformed_sentiment_reply_is_an_upstream_error():
    record = _seed_call()
    pipeline = EnrichmentPipeline(
        transcriber=FakeTranscriber("Hello there."),
        summarizer=CallSummarizer(FakeLLM(summary="ok", sentiment="not json")),
    )

    with pytest.raises(UpstreamError):
        _run(pipeline.enrich(record.id, "https://media.example.com/RE9.mp3"))


def test_slow_collaborator_times_out():
    record = _seed_call()
    pipeline = EnrichmentPipeline(
        transcriber=FakeTranscriber("late", delay=1.0),
        summarizer=CallSummarizer(FakeLLM(summary="unused", sentiment=SENTIMENT_JSON)),
        timeout_seconds=0.05,
    )

    with pytest.raises(UpstreamError) as excinfo:
        _run(pipeline.enrich(record.id, "https://media.example.com/RE9.mp3"))

    assert "timed out" in excinfo.value.detail


def test_empty_transcript_skips_llm():
    record = _seed_call()
    llm = FakeLLM(summary="unused", sentiment=SENTIMENT_JSON)
    pipeline = EnrichmentPipeline(transcriber=FakeTranscriber("   "), summarizer=CallSummarizer(llm))

    updated = _run(pipeline.enrich(record.id, "https://media.example.com/RE9.mp3"))

    assert llm.calls == []
    assert updated.status == "processed"
    assert updated.sentiment_label == "neutral"
    assert updated.sentiment_score == 0.0
    assert updated.highlights == []


def test_resubmission_overwrites_with_fresh_snapshot():
    record = _seed_call()
    first = EnrichmentPipeline(
        transcriber=FakeTranscriber("first take"),
        summarizer=CallSummarizer(FakeLLM(summary="first", sentiment=SENTIMENT_JSON)),
    )
    second = EnrichmentPipeline(
        transcriber=FakeTranscriber("second take"),
        summarizer=CallSummarizer(
            FakeLLM(summary="second", sentiment=json.dumps({"sentiment": "negative", "score": -0.4}))
        ),
    )

    _run(first.enrich(record.id, "https://media.example.com/RE9.mp3"))
    updated = _run(second.enrich(record.id, "https://media.example.com/RE9.mp3"))

    assert updated.transcript == "second take"
    assert updated.summary == "second"
    assert updated.sentiment_label == "negative"
    assert updated.highlights == []


def test_unknown_call_raises_not_found():
    pipeline = EnrichmentPipeline(
        transcriber=FakeTranscriber("text"),
        summarizer=CallSummarizer(FakeLLM(summary="s", sentiment=SENTIMENT_JSON)),
    )

    with pytest.raises(NotFoundError):
        _run(pipeline.enrich(12345, "https://media.example.com/RE9.mp3"))


def test_missing_recording_url_is_a_validation_error():
    record = _seed_call()
    transcriber = FakeTranscriber("text")
    pipeline = EnrichmentPipeline(
        transcriber=transcriber,
        summarizer=CallSummarizer(FakeLLM(summary="s", sentiment=SENTIMENT_JSON)),
    )

    with pytest.raises(ValidationError):
        _run(pipeline.enrich(record.id, " "))
    assert transcriber.urls == []


def test_parse_sentiment_clamps_score_and_trims_highlights():
    assessment = parse_sentiment(
        {"sentiment": "negative", "score": -3, "highlights": [" late delivery ", "", "a", "b", "c", "d", "e"]}
    )

    assert assessment == SentimentAssessment(
        label="negative", score=-1.0, highlights=["late delivery", "a", "b", "c", "d"]
    )


def test_parse_sentiment_rejects_unknown_label():
    with pytest.raises(SummaryFormatError):
        parse_sentiment({"sentiment": "ecstatic", "score": 0.9})
