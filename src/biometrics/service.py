"""Voice enrollment and verification against stored profiles."""

from __future__ import annotations

import asyncio
import logging

from biometrics.comparator import SignatureComparator, VerificationDecision
from biometrics.signature import SignatureExtractor
from common.errors import NotFoundError
from config.settings import Settings
from db.models import BiometricProfile
from db.repository import BiometricProfileRepository, ContactRepository

LOGGER = logging.getLogger(__name__)


class BiometricService:
    def __init__(
        self,
        *,
        extractor: SignatureExtractor,
        comparator: SignatureComparator,
        contacts: ContactRepository | None = None,
        profiles: BiometricProfileRepository | None = None,
    ) -> None:
        self._extractor = extractor
        self._comparator = comparator
        self._contacts = contacts or ContactRepository()
        self._profiles = profiles or BiometricProfileRepository()

    @classmethod
    def from_settings(cls, settings: Settings) -> BiometricService:
        return cls(
            extractor=SignatureExtractor(
                signature_length=settings.signature_length,
                frame_size=settings.signature_frame_size,
                min_duration_ms=settings.min_audio_duration_ms,
            ),
            comparator=SignatureComparator(
                canonical_length=settings.signature_length,
                default_threshold=settings.biometric_match_threshold,
            ),
        )

    async def enroll(
        self,
        contact_id: int,
        audio_bytes: bytes,
        *,
        label: str | None = None,
    ) -> BiometricProfile:
        """Extract a signature and replace the contact's profile with it.

        Nothing is written when the contact is unknown or the audio is rejected.
        """

        contact = await self._contacts.get(contact_id)
        if contact is None:
            raise NotFoundError("Contact not found.")

        signature = await asyncio.to_thread(self._extractor.extract, audio_bytes)
        profile = await self._profiles.put(
            contact.id,
            voice_signature=signature.vector,
            sample_rate=signature.sample_rate,
            label=label or contact.name,
        )
        LOGGER.info(
            "Enrolled voice profile for contact %s (%s Hz, %s features)",
            contact.id,
            signature.sample_rate,
            len(signature),
        )
        return profile

    async def verify(
        self,
        contact_id: int,
        audio_bytes: bytes,
        *,
        threshold: float | None = None,
    ) -> VerificationDecision:
        profile = await self._profiles.get(contact_id)
        if profile is None:
            raise NotFoundError("Enrolled biometric profile not found for contact.")

        signature = await asyncio.to_thread(self._extractor.extract, audio_bytes)
        decision = self._comparator.verify(signature, profile.voice_signature, threshold)
        LOGGER.info(
            "Voice verification for contact %s: match=%s similarity=%.3f threshold=%.2f",
            contact_id,
            decision.match,
            decision.similarity,
            decision.threshold,
        )
        return decision
