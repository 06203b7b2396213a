from __future__ import annotations

from dataclasses import dataclass

from common.errors import ValidationError
from config.settings import Settings, get_settings

# Events Twilio posts to the status callback for outbound calls.
STATUS_CALLBACK_EVENTS = ("initiated", "ringing", "answered", "completed")


@dataclass(frozen=True)
class TwilioConfig:
    account_sid: str
    auth_token: str
    from_number: str
    public_base_url: str | None

    def callback_url(self, path: str) -> str | None:
        if not self.public_base_url:
            return None
        return f"{self.public_base_url}/{path.lstrip('/')}"


def get_twilio_config(settings: Settings | None = None) -> TwilioConfig:
    settings = settings or get_settings()
    if not settings.twilio_account_sid or not settings.twilio_auth_token:
        raise ValidationError("Twilio credentials are not configured.")
    if not settings.twilio_from_number:
        raise ValidationError("Twilio from-number is not configured.")

    return TwilioConfig(
        account_sid=settings.twilio_account_sid,
        auth_token=settings.twilio_auth_token,
        from_number=settings.twilio_from_number,
        public_base_url=settings.public_base_url.rstrip("/") if settings.public_base_url else None,
    )


def build_twilio_client():
    from twilio.rest import Client

    cfg = get_twilio_config()
    return Client(cfg.account_sid, cfg.auth_token)
