"""Static similarity comparison between voice signatures."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from biometrics.signature import VoiceSignature

DEFAULT_MATCH_THRESHOLD = 0.78


@dataclass(frozen=True)
class Comparison:
    similarity: float
    distance: float


@dataclass(frozen=True)
class VerificationDecision:
    match: bool
    similarity: float
    distance: float
    threshold: float


def resample_vector(vector: Sequence[float], length: int) -> np.ndarray:
    """Linearly resample `vector` onto `length` evenly spaced points."""

    values = np.asarray(vector, dtype=np.float64)
    if values.size == length:
        return values
    if values.size == 0:
        return np.zeros(length, dtype=np.float64)
    if values.size == 1:
        return np.full(length, values[0], dtype=np.float64)
    positions = np.linspace(0.0, values.size - 1, num=length)
    return np.interp(positions, np.arange(values.size), values)


class SignatureComparator:
    """Cosine similarity and Euclidean distance over two signatures.

    Vectors of equal length are compared as is. When the lengths differ both
    are resampled to `canonical_length` first, so profiles enrolled with an
    older extractor configuration stay comparable.
    """

    def __init__(
        self,
        *,
        canonical_length: int = 64,
        default_threshold: float = DEFAULT_MATCH_THRESHOLD,
    ) -> None:
        self._canonical_length = canonical_length
        self._default_threshold = default_threshold

    @property
    def default_threshold(self) -> float:
        return self._default_threshold

    def compare(
        self,
        a: VoiceSignature | Sequence[float],
        b: VoiceSignature | Sequence[float],
    ) -> Comparison:
        left, right = self._aligned(_vector_of(a), _vector_of(b))

        distance = float(np.linalg.norm(left - right))
        norms = float(np.linalg.norm(left)) * float(np.linalg.norm(right))
        if norms == 0.0:
            similarity = 0.0
        else:
            similarity = float(np.clip(np.dot(left, right) / norms, -1.0, 1.0))
        return Comparison(similarity=similarity, distance=distance)

    def decide(self, comparison: Comparison, threshold: float | None = None) -> VerificationDecision:
        effective = self._default_threshold if threshold is None else threshold
        return VerificationDecision(
            match=comparison.similarity >= effective,
            similarity=comparison.similarity,
            distance=comparison.distance,
            threshold=effective,
        )

    def verify(
        self,
        candidate: VoiceSignature | Sequence[float],
        enrolled: VoiceSignature | Sequence[float],
        threshold: float | None = None,
    ) -> VerificationDecision:
        return self.decide(self.compare(candidate, enrolled), threshold)

    def _aligned(self, left: Sequence[float], right: Sequence[float]) -> tuple[np.ndarray, np.ndarray]:
        if len(left) == len(right):
            return np.asarray(left, dtype=np.float64), np.asarray(right, dtype=np.float64)
        return (
            resample_vector(left, self._canonical_length),
            resample_vector(right, self._canonical_length),
        )


def _vector_of(value: VoiceSignature | Sequence[float]) -> Sequence[float]:
    if isinstance(value, VoiceSignature):
        return value.vector
    return value
