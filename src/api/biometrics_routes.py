"""Voice enrollment and verification endpoints."""

from __future__ import annotations

import base64
import binascii

from fastapi import APIRouter, Depends

from api.dependencies import get_biometric_service
from api.schemas import EnrollmentRequest, EnrollmentResponse, VerificationRequest, VerificationResponse
from biometrics.service import BiometricService
from common.errors import ValidationError

router = APIRouter(prefix="/biometrics", tags=["biometrics"])


def _decode_audio(audio_base64: str) -> bytes:
    payload = audio_base64.strip()
    # Browsers send data URLs, e.g. "data:audio/wav;base64,...".
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("audio_base64 is not valid base64.") from exc


@router.post("/enroll", response_model=EnrollmentResponse)
async def enroll_voice(
    payload: EnrollmentRequest,
    service: BiometricService = Depends(get_biometric_service),
) -> EnrollmentResponse:
    audio = _decode_audio(payload.audio_base64)
    profile = await service.enroll(payload.contact_id, audio, label=payload.label)
    return EnrollmentResponse(
        contact_id=profile.contact_id,
        label=profile.label,
        sample_rate=profile.sample_rate,
        signature_length=len(profile.voice_signature),
        enrolled_at=profile.enrolled_at,
    )


@router.post("/verify", response_model=VerificationResponse)
async def verify_voice(
    payload: VerificationRequest,
    service: BiometricService = Depends(get_biometric_service),
) -> VerificationResponse:
    audio = _decode_audio(payload.audio_base64)
    decision = await service.verify(payload.contact_id, audio, threshold=payload.threshold)
    return VerificationResponse(
        match=decision.match,
        similarity=decision.similarity,
        distance=decision.distance,
        threshold=decision.threshold,
    )
