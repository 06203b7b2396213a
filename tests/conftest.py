from __future__ import annotations

import asyncio
import io
import os
import sys
import tempfile
from pathlib import Path

import numpy as np
import pytest
import soundfile as sf
from fastapi.testclient import TestClient

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

_RUNTIME_DIR = Path(tempfile.mkdtemp(prefix="voice-ai-tests-"))

# Must be set before importing modules that create the SQLAlchemy engine.
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{(_RUNTIME_DIR / 'voice_ai_test.db').as_posix()}"
os.environ["DATA_DIR"] = str(_RUNTIME_DIR)
os.environ["AUTO_CREATE_DB_SCHEMA"] = "true"
os.environ["PUBLIC_BASE_URL"] = "https://voice.example.com"
for _name in (
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
    "TWILIO_FROM_NUMBER",
    "TWILIO_WORKFLOW_SID",
    "LLM_PROVIDER",
    "TRANSCRIPTION_PROVIDER",
):
    os.environ.pop(_name, None)


def run(coro):
    return asyncio.run(coro)


@pytest.fixture(autouse=True)
def fresh_db():
    from db.base import Base, engine
    import db.models  # noqa: F401

    async def _reset():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)

    run(_reset())
    yield


@pytest.fixture(scope="session")
def app():
    import main

    return main.app


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def synth_voice(
    *,
    duration_s: float = 1.0,
    sample_rate: int = 16000,
    fundamental: float = 140.0,
    amplitude: float = 0.5,
    offset_samples: int = 0,
    seed: int = 7,
) -> np.ndarray:
    """Harmonic tone with a little noise, shaped roughly like a voiced vowel."""

    rng = np.random.default_rng(seed)
    total = int(duration_s * sample_rate) + offset_samples
    t = np.arange(total) / sample_rate
    signal = np.zeros(total)
    for harmonic in range(1, 9):
        signal += np.sin(2 * np.pi * fundamental * harmonic * t) / harmonic
    signal += 0.02 * rng.standard_normal(total)
    signal = signal[offset_samples:]
    return amplitude * signal / np.max(np.abs(signal))


def wav_bytes(
    samples: np.ndarray,
    sample_rate: int = 16000,
    *,
    subtype: str = "PCM_16",
    file_format: str = "WAV",
) -> bytes:
    buffer = io.BytesIO()
    sf.write(buffer, samples, sample_rate, subtype=subtype, format=file_format)
    return buffer.getvalue()


@pytest.fixture()
def voice_wav():
    def _build(**kwargs) -> bytes:
        sample_rate = kwargs.get("sample_rate", 16000)
        return wav_bytes(synth_voice(**kwargs), sample_rate)

    return _build


@pytest.fixture()
def synth():
    return synth_voice


@pytest.fixture()
def encode_wav():
    return wav_bytes
