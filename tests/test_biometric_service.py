from __future__ import annotations

import asyncio

import pytest

from biometrics.comparator import SignatureComparator
from biometrics.service import BiometricService
from biometrics.signature import SignatureExtractor
from common.errors import InsufficientSamplesError, NotFoundError
from db.repository import BiometricProfileRepository, ContactRepository


def _run(coro):
    return asyncio.run(coro)


@pytest.fixture()
def service() -> BiometricService:
    return BiometricService(
        extractor=SignatureExtractor(signature_length=64, frame_size=1024, min_duration_ms=300),
        comparator=SignatureComparator(canonical_length=64, default_threshold=0.78),
    )


@pytest.fixture()
def contact():
    return _run(ContactRepository().upsert(phone="+15550100", name="Ada Caller"))


def test_enroll_stores_profile_with_contact_label(service, contact, voice_wav):
    profile = _run(service.enroll(contact.id, voice_wav()))

    assert profile.contact_id == contact.id
    assert profile.label == "Ada Caller"
    assert profile.sample_rate == 16000
    assert len(profile.voice_signature) == 64


def test_enrolling_twice_keeps_only_the_second_profile(service, contact, voice_wav):
    first_audio = voice_wav(fundamental=120.0)
    second_audio = voice_wav(fundamental=240.0, sample_rate=8000)

    _run(service.enroll(contact.id, first_audio, label="first"))
    _run(service.enroll(contact.id, second_audio, label="second"))

    profiles = BiometricProfileRepository()
    stored = _run(profiles.get(contact.id))
    expected = SignatureExtractor().extract(second_audio)

    assert _run(profiles.count(contact.id)) == 1
    assert stored.label == "second"
    assert stored.sample_rate == 8000
    assert stored.voice_signature == list(expected.vector)


def test_short_enrollment_audio_writes_nothing(service, contact, voice_wav):
    with pytest.raises(InsufficientSamplesError):
        _run(service.enroll(contact.id, voice_wav(duration_s=0.1)))

    assert _run(BiometricProfileRepository().get(contact.id)) is None


def test_enroll_unknown_contact_raises_not_found(service, voice_wav):
    with pytest.raises(NotFoundError):
        _run(service.enroll(999, voice_wav()))


def test_verify_without_profile_raises_not_found(service, contact, voice_wav):
    with pytest.raises(NotFoundError):
        _run(service.verify(contact.id, voice_wav()))


def test_verify_matches_same_voice_and_does_not_touch_profile(service, contact, voice_wav):
    _run(service.enroll(contact.id, voice_wav(fundamental=150.0)))
    before = _run(BiometricProfileRepository().get(contact.id))

    decision = _run(service.verify(contact.id, voice_wav(fundamental=150.0, seed=3)))
    after = _run(BiometricProfileRepository().get(contact.id))

    assert decision.match is True
    assert decision.threshold == 0.78
    assert decision.similarity > 0.95
    assert after.voice_signature == before.voice_signature
    assert after.enrolled_at == before.enrolled_at


def test_verify_threshold_override_changes_only_the_decision(service, contact, voice_wav):
    _run(service.enroll(contact.id, voice_wav(fundamental=150.0)))
    sample = voice_wav(fundamental=150.0, seed=3)

    lenient = _run(service.verify(contact.id, sample, threshold=0.0))
    strict = _run(service.verify(contact.id, sample, threshold=1.0))

    assert lenient.match is True
    assert lenient.similarity == strict.similarity
    assert lenient.distance == strict.distance
    assert strict.threshold == 1.0
