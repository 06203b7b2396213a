"""Twilio Voice webhooks.

This module provides:
- Inbound call webhook (TwiML greeting plus speech <Gather>).
- Status callback feeding the call state machine.
- Speech handoff callback that records the caller's request and routes the call.

Callbacks for sessions we do not know are acknowledged with 200 so Twilio does
not retry them.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response
from starlette.datastructures import FormData

from api.dependencies import get_call_repository, get_contact_repository, get_state_machine
from calls.schemas import CallUpdate, SpeechCapture, parse_float
from calls.state_machine import CallStateMachine
from common.errors import ValidationError
from config.settings import Settings, get_settings
from db.repository import CallRecordRepository, ContactRepository
from integrations import twiml

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/twilio", tags=["twilio"])


def _form_value(form: FormData, key: str) -> str | None:
    value = form.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _require_call_sid(form: FormData) -> str:
    call_sid = _form_value(form, "CallSid")
    if not call_sid:
        raise ValidationError("CallSid is required.")
    return call_sid


def _twiml_response(xml: str) -> Response:
    # Twilio expects application/xml
    return Response(content=xml, media_type="application/xml")


def _ack() -> Response:
    return Response(content="OK", media_type="text/plain")


def _handoff_url(request: Request, settings: Settings) -> str:
    if settings.public_base_url:
        return f"{settings.public_base_url.rstrip('/')}/api/twilio/handoff"
    return str(request.url_for("twilio_handoff_webhook"))


@router.post("/inbound")
async def twilio_inbound_webhook(
    request: Request,
    contacts: ContactRepository = Depends(get_contact_repository),
    calls: CallRecordRepository = Depends(get_call_repository),
) -> Response:
    settings = get_settings()
    form = await request.form()

    caller = _form_value(form, "From")
    call_sid = _form_value(form, "CallSid")
    if not caller or not call_sid:
        raise ValidationError("Invalid inbound call payload from Twilio.")
    caller_name = _form_value(form, "CallerName") or _form_value(form, "CallerCity") or "Caller"

    contact = await contacts.get_by_phone(caller)
    if contact is None:
        contact = await contacts.upsert(phone=caller, name=caller_name)

    await calls.get_or_create(
        session_id=call_sid,
        direction="inbound",
        status="answered",
        contact_id=contact.id,
    )
    LOGGER.info("Inbound call %s from contact %s", call_sid, contact.id)

    return _twiml_response(
        twiml.inbound_greeting(
            caller_name=caller_name,
            action_url=_handoff_url(request, settings),
            settings=settings,
        )
    )


@router.post("/status")
async def twilio_status_callback(
    request: Request,
    state_machine: CallStateMachine = Depends(get_state_machine),
) -> Response:
    form = await request.form()
    call_sid = _require_call_sid(form)

    fields: dict[str, str | None] = {
        "status": _form_value(form, "CallStatus"),
        "duration_seconds": _form_value(form, "CallDuration"),
    }
    recording_url = _form_value(form, "RecordingUrl")
    if recording_url:
        fields["recording_url"] = f"{recording_url}.mp3"

    update = CallUpdate.from_provider_fields(fields)
    await state_machine.apply_event(call_sid, update)
    return _ack()


@router.post("/handoff")
async def twilio_handoff_webhook(
    request: Request,
    state_machine: CallStateMachine = Depends(get_state_machine),
    calls: CallRecordRepository = Depends(get_call_repository),
) -> Response:
    settings = get_settings()
    form = await request.form()
    call_sid = _require_call_sid(form)

    speech = _form_value(form, "SpeechResult")
    if speech:
        capture = SpeechCapture(
            session_id=call_sid,
            transcript=speech,
            confidence=parse_float(_form_value(form, "Confidence")),
        )
        record = await state_machine.apply_speech(capture)
        if record is None:
            return _ack()
    elif await calls.get_by_session_id(call_sid) is None:
        return _ack()

    return _twiml_response(twiml.handoff(settings))
