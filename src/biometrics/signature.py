"""One-way voice signature extraction from WAV audio."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

import numpy as np
import soundfile as sf

from common.errors import InsufficientSamplesError, UnsupportedFormatError

LOGGER = logging.getLogger(__name__)

SUPPORTED_FORMATS = frozenset({"WAV", "WAVEX"})
SUPPORTED_SUBTYPES = frozenset({"PCM_16"})


@dataclass(frozen=True)
class VoiceSignature:
    """Fixed-length spectral summary of a voice sample.

    The vector is a band-pooled, frame-averaged magnitude spectrum: phase and
    timing are discarded, so it cannot be turned back into audio.
    """

    vector: tuple[float, ...]
    sample_rate: int

    def __len__(self) -> int:
        return len(self.vector)


class SignatureExtractor:
    """Reduces a 16-bit PCM WAV payload to a `VoiceSignature`."""

    def __init__(
        self,
        *,
        signature_length: int = 64,
        frame_size: int = 1024,
        min_duration_ms: int = 300,
    ) -> None:
        if signature_length < 1:
            raise ValueError("signature_length must be positive.")
        if frame_size < 2 or frame_size % 2:
            raise ValueError("frame_size must be an even number of samples.")
        if frame_size // 2 + 1 < signature_length:
            raise ValueError("frame_size is too small for the requested signature_length.")
        self._signature_length = signature_length
        self._frame_size = frame_size
        self._hop = frame_size // 2
        self._min_duration_ms = min_duration_ms
        self._window = np.hanning(frame_size).astype(np.float64)

    @property
    def signature_length(self) -> int:
        return self._signature_length

    def extract(self, audio_bytes: bytes) -> VoiceSignature:
        samples, sample_rate = self.decode(audio_bytes)

        duration_ms = 1000.0 * samples.size / sample_rate
        if duration_ms < self._min_duration_ms or samples.size < self._frame_size:
            raise InsufficientSamplesError(
                f"Audio sample is {duration_ms:.0f} ms long; "
                f"at least {self._min_duration_ms} ms is required."
            )

        vector = self._features(samples)
        return VoiceSignature(vector=tuple(float(v) for v in vector), sample_rate=sample_rate)

    def decode(self, audio_bytes: bytes) -> tuple[np.ndarray, int]:
        """Decode WAV bytes into mono float64 samples at the native rate."""

        if not audio_bytes:
            raise UnsupportedFormatError("Audio payload is empty.")

        try:
            with sf.SoundFile(io.BytesIO(audio_bytes), mode="r") as audio_file:
                if audio_file.format not in SUPPORTED_FORMATS or audio_file.subtype not in SUPPORTED_SUBTYPES:
                    raise UnsupportedFormatError(
                        f"Unsupported audio encoding {audio_file.format}/{audio_file.subtype}; "
                        "expected 16-bit PCM WAV."
                    )
                sample_rate = int(audio_file.samplerate)
                audio_array = audio_file.read(dtype="float64", always_2d=True)
        except sf.LibsndfileError as exc:
            raise UnsupportedFormatError(f"Audio payload is not a readable WAV file: {exc}") from exc

        # Convert to mono.
        samples = np.mean(audio_array, axis=1)
        return samples, sample_rate

    def _features(self, samples: np.ndarray) -> np.ndarray:
        samples = samples - np.mean(samples)

        frame_count = 1 + (samples.size - self._frame_size) // self._hop
        offsets = np.arange(frame_count)[:, None] * self._hop
        frames = samples[offsets + np.arange(self._frame_size)[None, :]] * self._window

        spectrum = np.abs(np.fft.rfft(frames, axis=1)).mean(axis=0)
        bands = np.array(
            [band.mean() for band in np.array_split(spectrum, self._signature_length)],
            dtype=np.float64,
        )

        # Unit norm before the log keeps the vector independent of input gain.
        norm = np.linalg.norm(bands)
        if norm == 0.0:
            LOGGER.debug("Silent audio sample produced an all-zero signature")
            return np.zeros(self._signature_length, dtype=np.float64)
        return np.log1p(1000.0 * bands / norm)
