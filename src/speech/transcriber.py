"""Transcription of finished call recordings."""

from __future__ import annotations

import asyncio
import io
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass

import httpx

from config.settings import Settings, get_settings

LOGGER = logging.getLogger(__name__)


@dataclass
class TranscriptionSegment:
    """Structured representation of a Whisper transcription segment."""

    start: float
    end: float
    text: str
    logprob: float


def merge_segments(segments: Iterable[TranscriptionSegment]) -> str:
    """Merge segments into a single string."""

    return " ".join(segment.text for segment in segments).strip()


class RecordingTranscriber(ABC):
    """Turns a recording location into transcript text."""

    @abstractmethod
    async def transcribe(self, recording_url: str) -> str:
        """Return the transcript of the recording at `recording_url`."""


def _recording_auth(settings: Settings) -> httpx.BasicAuth | None:
    # Twilio serves recordings behind HTTP basic auth when media protection is on.
    if settings.twilio_account_sid and settings.twilio_auth_token:
        return httpx.BasicAuth(settings.twilio_account_sid, settings.twilio_auth_token)
    return None


class WhisperRecordingTranscriber(RecordingTranscriber):
    """Downloads the recording and transcribes it locally with faster-whisper."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._model = None

    def _load_model(self):
        if self._model is None:
            # Lazy import to avoid importing heavy ML dependencies at module import time.
            from faster_whisper import WhisperModel

            self._model = WhisperModel(
                model_size_or_path=self._settings.whisper_model_size,
                device=self._settings.whisper_device,
                compute_type=self._settings.whisper_compute_type,
            )
        return self._model

    async def download(self, recording_url: str) -> bytes:
        async with httpx.AsyncClient(
            timeout=self._settings.recording_download_timeout_seconds,
            follow_redirects=True,
            auth=_recording_auth(self._settings),
        ) as client:
            response = await client.get(recording_url)
        response.raise_for_status()
        return response.content

    def transcribe_bytes(self, audio_bytes: bytes) -> list[TranscriptionSegment]:
        model = self._load_model()
        segments, _info = model.transcribe(
            io.BytesIO(audio_bytes),
            beam_size=5,
            task="transcribe",
            condition_on_previous_text=True,
            temperature=0.0,
        )

        results: list[TranscriptionSegment] = []
        for segment in segments:
            text = segment.text.strip()
            if not text:
                continue
            results.append(
                TranscriptionSegment(
                    start=segment.start,
                    end=segment.end,
                    text=text,
                    logprob=segment.avg_logprob,
                )
            )
        return results

    async def transcribe(self, recording_url: str) -> str:
        audio_bytes = await self.download(recording_url)
        segments = await asyncio.to_thread(self.transcribe_bytes, audio_bytes)
        return merge_segments(segments)


class AssemblyAITranscriber(RecordingTranscriber):
    """Hosted transcription: submit the recording URL, then poll for the result."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        if not self._settings.assemblyai_api_key:
            raise ValueError("AssemblyAI API key must be configured.")
        self._base_url = self._settings.assemblyai_base_url.rstrip("/")
        self._poll_interval = self._settings.assemblyai_poll_interval_seconds
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": self._settings.assemblyai_api_key or "",
            "Content-Type": "application/json",
        }

    async def transcribe(self, recording_url: str) -> str:
        async with httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers(),
            timeout=30,
            transport=self._transport,
        ) as client:
            response = await client.post("/transcript", json={"audio_url": recording_url})
            response.raise_for_status()
            transcript_id = response.json()["id"]

            while True:
                response = await client.get(f"/transcript/{transcript_id}")
                response.raise_for_status()
                data = response.json()
                status = data.get("status")
                if status == "completed":
                    return (data.get("text") or "").strip()
                if status == "error":
                    raise RuntimeError(f"AssemblyAI transcription failed: {data.get('error')}")
                LOGGER.debug("Transcript %s is %s; polling again", transcript_id, status)
                await asyncio.sleep(self._poll_interval)


def build_transcriber(settings: Settings | None = None) -> RecordingTranscriber:
    """Instantiate the configured recording transcriber."""

    settings = settings or get_settings()
    if settings.transcription_provider == "whisper":
        return WhisperRecordingTranscriber(settings)
    if settings.transcription_provider == "assemblyai":
        return AssemblyAITranscriber(settings)
    raise ValueError(f"Unsupported transcription_provider: {settings.transcription_provider}")
