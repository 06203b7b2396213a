"""Domain-specific exceptions shared by call tracking, enrichment and biometrics.

These exceptions are safe to import from API layers without triggering heavy ML imports.
"""

from __future__ import annotations


class VoiceAIError(Exception):
    status_code: int = 500
    default_detail: str = "Voice AI error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class ValidationError(VoiceAIError):
    status_code = 400
    default_detail = "Invalid request payload."


class NotFoundError(VoiceAIError):
    status_code = 404
    default_detail = "Resource not found."


class UpstreamError(VoiceAIError):
    status_code = 502
    default_detail = "Upstream service failed."


class DecodeError(VoiceAIError):
    status_code = 422
    default_detail = "Audio could not be decoded."


class UnsupportedFormatError(DecodeError):
    default_detail = "Audio must be a 16-bit PCM WAV file."


class InsufficientSamplesError(DecodeError):
    default_detail = "Audio sample is too short."
