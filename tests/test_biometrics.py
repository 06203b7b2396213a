from __future__ import annotations

import math

import numpy as np
import pytest

from biometrics.comparator import SignatureComparator, resample_vector
from biometrics.signature import SignatureExtractor, VoiceSignature
from common.errors import DecodeError, InsufficientSamplesError, UnsupportedFormatError


@pytest.fixture()
def extractor() -> SignatureExtractor:
    return SignatureExtractor(signature_length=64, frame_size=1024, min_duration_ms=300)


@pytest.fixture()
def comparator() -> SignatureComparator:
    return SignatureComparator(canonical_length=64, default_threshold=0.78)


def test_extract_returns_fixed_length_vector_and_native_rate(extractor, voice_wav):
    signature = extractor.extract(voice_wav(sample_rate=8000))

    assert isinstance(signature, VoiceSignature)
    assert len(signature.vector) == 64
    assert signature.sample_rate == 8000
    assert all(math.isfinite(value) for value in signature.vector)


def test_signature_is_stable_under_amplitude_change(extractor, comparator, voice_wav):
    loud = extractor.extract(voice_wav(amplitude=0.8))
    quiet = extractor.extract(voice_wav(amplitude=0.2))

    assert comparator.compare(loud, quiet).similarity > 0.999


def test_signature_is_stable_under_small_time_offset(extractor, comparator, voice_wav):
    original = extractor.extract(voice_wav())
    shifted = extractor.extract(voice_wav(offset_samples=733))

    assert comparator.compare(original, shifted).similarity > 0.99


def test_different_voices_score_lower_than_same_voice(extractor, comparator, voice_wav):
    enrolled = extractor.extract(voice_wav(fundamental=120.0))
    same = extractor.extract(voice_wav(fundamental=120.0, seed=11))
    other = extractor.extract(voice_wav(fundamental=310.0))

    assert comparator.compare(enrolled, same).similarity > comparator.compare(enrolled, other).similarity


def test_stereo_audio_is_mixed_down(extractor, synth, encode_wav):
    mono = synth()
    stereo = np.column_stack([mono, mono])

    signature = extractor.extract(encode_wav(stereo))

    assert len(signature.vector) == 64


def test_short_audio_raises_insufficient_samples(extractor, voice_wav):
    with pytest.raises(InsufficientSamplesError):
        extractor.extract(voice_wav(duration_s=0.1))


def test_non_wav_payload_raises_unsupported_format(extractor):
    with pytest.raises(UnsupportedFormatError):
        extractor.extract(b"definitely not audio")


def test_empty_payload_raises_unsupported_format(extractor):
    with pytest.raises(UnsupportedFormatError):
        extractor.extract(b"")


def test_float_wav_is_rejected(extractor, synth, encode_wav):
    payload = encode_wav(synth(), subtype="FLOAT")

    with pytest.raises(UnsupportedFormatError):
        extractor.extract(payload)


def test_decode_errors_share_one_taxonomy():
    assert issubclass(UnsupportedFormatError, DecodeError)
    assert issubclass(InsufficientSamplesError, DecodeError)
    assert InsufficientSamplesError().status_code == 422


def test_compare_vector_with_itself(comparator):
    vector = [0.3, 1.2, 4.5, 0.0, 2.2]

    result = comparator.compare(vector, vector)

    assert result.similarity == pytest.approx(1.0)
    assert result.distance == pytest.approx(0.0)


def test_compare_is_symmetric(comparator):
    a = [1.0, 2.0, 3.0, 0.5]
    b = [0.2, 2.5, 1.0, 4.0]

    assert comparator.compare(a, b) == comparator.compare(b, a)


def test_compare_is_symmetric_across_lengths(comparator):
    a = list(np.linspace(0.0, 1.0, 40))
    b = list(np.linspace(1.0, 0.0, 64))

    assert comparator.compare(a, b) == comparator.compare(b, a)


def test_compare_resamples_mismatched_lengths(comparator):
    short = np.linspace(0.0, 1.0, 32)
    long = np.linspace(0.0, 1.0, 64)

    result = comparator.compare(list(short), list(long))

    assert result.similarity == pytest.approx(1.0)
    assert result.distance == pytest.approx(0.0, abs=1e-9)


def test_resample_vector_keeps_endpoints():
    resampled = resample_vector([1.0, 3.0], 5)

    assert list(resampled) == pytest.approx([1.0, 1.5, 2.0, 2.5, 3.0])


def test_zero_vector_has_zero_similarity(comparator):
    result = comparator.compare([0.0, 0.0, 0.0], [1.0, 2.0, 3.0])

    assert result.similarity == 0.0
    assert result.distance == pytest.approx(math.sqrt(14.0))


def test_threshold_decision_keeps_same_scores(comparator):
    a = [1.0, 0.0]
    b = [0.81, math.sqrt(1 - 0.81**2)]
    comparison = comparator.compare(a, b)
    assert comparison.similarity == pytest.approx(0.81)

    lenient = comparator.decide(comparison, 0.78)
    strict = comparator.decide(comparison, 0.85)

    assert lenient.match is True
    assert strict.match is False
    assert lenient.similarity == strict.similarity
    assert lenient.distance == strict.distance
    assert (lenient.threshold, strict.threshold) == (0.78, 0.85)


def test_default_threshold_is_used_without_override(comparator):
    decision = comparator.verify([1.0, 0.0], [1.0, 0.0])

    assert decision.threshold == 0.78
    assert decision.match is True
