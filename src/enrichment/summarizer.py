"""LLM-backed call summaries and sentiment assessment."""

from __future__ import annotations

import json
import logging
import math
from typing import Any

from pydantic import BaseModel, Field

from llm.base import BaseLLMClient
from prompts.loader import load_prompt

LOGGER = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = load_prompt("summary_system.txt")
SENTIMENT_SYSTEM_PROMPT = load_prompt("sentiment_system.txt")

SENTIMENT_LABELS = frozenset({"positive", "neutral", "negative"})
MAX_HIGHLIGHTS = 5


class SentimentAssessment(BaseModel):
    label: str
    score: float = Field(ge=-1.0, le=1.0)
    highlights: list[str] = Field(default_factory=list)


class SummaryFormatError(ValueError):
    """The LLM reply could not be read as a sentiment assessment."""


class CallSummarizer:
    """Derives a summary and a sentiment assessment from a transcript."""

    def __init__(self, llm_client: BaseLLMClient) -> None:
        self._llm = llm_client

    async def summarize(self, transcript: str) -> str:
        messages = [
            {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
            {"role": "user", "content": "Transcript:\n" + transcript},
        ]
        response = await self._llm.chat(messages, temperature=0.2)
        return response.strip()

    async def analyze_sentiment(self, transcript: str) -> SentimentAssessment:
        messages = [
            {"role": "system", "content": SENTIMENT_SYSTEM_PROMPT},
            {"role": "user", "content": "Transcript:\n" + transcript},
        ]
        raw_response = await self._llm.chat(messages, temperature=0.0, json_response=True)
        try:
            payload = json.loads(raw_response)
        except json.JSONDecodeError as exc:
            LOGGER.error("Sentiment analysis returned invalid JSON: %s", raw_response)
            raise SummaryFormatError("Invalid sentiment JSON") from exc
        if not isinstance(payload, dict):
            raise SummaryFormatError("Sentiment reply is not a JSON object")
        return parse_sentiment(payload)


def parse_sentiment(payload: dict[str, Any]) -> SentimentAssessment:
    """Coerce a loosely shaped sentiment reply into a `SentimentAssessment`."""

    label = str(payload.get("sentiment") or payload.get("label") or "").strip().lower()
    if label not in SENTIMENT_LABELS:
        raise SummaryFormatError(f"Unknown sentiment label: {label!r}")

    try:
        score = float(payload.get("score", 0.0))
    except (TypeError, ValueError) as exc:
        raise SummaryFormatError("Sentiment score is not numeric") from exc
    if not math.isfinite(score):
        raise SummaryFormatError("Sentiment score is not finite")
    score = max(-1.0, min(1.0, score))

    raw_highlights = payload.get("highlights") or []
    if isinstance(raw_highlights, str):
        raw_highlights = [raw_highlights]
    highlights = [str(item).strip() for item in raw_highlights if str(item).strip()]

    return SentimentAssessment(label=label, score=score, highlights=highlights[:MAX_HIGHLIGHTS])
