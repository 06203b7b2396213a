"""FastAPI routes for contacts, call records, outbound dialing and enrichment jobs."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from pydantic import ValidationError as PydanticValidationError
from twilio.base.exceptions import TwilioRestException

from api import biometrics_routes, twilio_routes
from api.dependencies import get_call_repository, get_contact_repository, get_enrichment_pipeline
from api.schemas import (
    CallRecordResponse,
    ContactRequest,
    ContactResponse,
    EnrichmentJobRequest,
    OutboundCallRequest,
    OutboundCallResponse,
)
from common.errors import NotFoundError, UpstreamError, ValidationError
from config.settings import get_settings
from db.repository import CallRecordRepository, ContactRepository
from enrichment.pipeline import EnrichmentPipeline
from integrations import twiml
from integrations.twilio_client import STATUS_CALLBACK_EVENTS, TwilioConfig, build_twilio_client, get_twilio_config

LOGGER = logging.getLogger(__name__)

router = APIRouter()
router.include_router(twilio_routes.router)
router.include_router(biometrics_routes.router)


def get_twilio_client():
    return build_twilio_client()


def get_twilio_cfg() -> TwilioConfig:
    return get_twilio_config()


@router.get("/contacts", response_model=list[ContactResponse])
async def list_contacts(
    contacts: ContactRepository = Depends(get_contact_repository),
) -> list[ContactResponse]:
    return [ContactResponse.model_validate(contact) for contact in await contacts.list_contacts()]


@router.post("/contacts", response_model=ContactResponse)
async def upsert_contact(
    payload: ContactRequest,
    contacts: ContactRepository = Depends(get_contact_repository),
) -> ContactResponse:
    contact = await contacts.upsert(
        phone=payload.phone,
        name=payload.name or payload.phone,
        whatsapp=payload.whatsapp,
        attributes=payload.metadata,
    )
    return ContactResponse.model_validate(contact)


@router.get("/calls", response_model=list[CallRecordResponse])
async def list_calls(
    limit: int = Query(default=50, ge=1, le=500),
    calls: CallRecordRepository = Depends(get_call_repository),
) -> list[CallRecordResponse]:
    return [CallRecordResponse.model_validate(call) for call in await calls.list_recent(limit=limit)]


@router.get("/calls/{call_id}", response_model=CallRecordResponse)
async def get_call(
    call_id: int,
    calls: CallRecordRepository = Depends(get_call_repository),
) -> CallRecordResponse:
    record = await calls.get(call_id)
    if record is None:
        raise NotFoundError("Call record not found.")
    return CallRecordResponse.model_validate(record)


@router.post("/calls/outbound", response_model=OutboundCallResponse)
async def create_outbound_call(
    payload: OutboundCallRequest,
    contacts: ContactRepository = Depends(get_contact_repository),
    calls: CallRecordRepository = Depends(get_call_repository),
    twilio_client=Depends(get_twilio_client),
    cfg: TwilioConfig = Depends(get_twilio_cfg),
) -> OutboundCallResponse:
    settings = get_settings()

    metadata_name = None
    if payload.metadata and isinstance(payload.metadata.get("name"), str):
        metadata_name = payload.metadata["name"]

    if payload.contact_id is not None:
        contact = await contacts.get(payload.contact_id)
        if contact is None:
            raise NotFoundError("Contact not found.")
    elif payload.phone:
        contact = await contacts.get_by_phone(payload.phone)
        if contact is None:
            contact = await contacts.upsert(
                phone=payload.phone,
                name=metadata_name or payload.phone,
                attributes=payload.metadata,
            )
    else:
        raise ValidationError("A destination phone number is required.")

    options: dict[str, Any] = {
        "to": contact.phone,
        "from_": cfg.from_number,
        "twiml": twiml.outbound_script(
            contact_name=contact.name,
            prompt=payload.agent_prompt,
            recording_callback=cfg.callback_url("/api/calls/transcribe"),
            settings=settings,
        ),
        "record": True,
        "machine_detection": "Enable",
    }
    status_callback = cfg.callback_url("/api/twilio/status")
    if status_callback:
        options["status_callback"] = status_callback
        options["status_callback_method"] = "POST"
        options["status_callback_event"] = list(STATUS_CALLBACK_EVENTS)

    try:
        call = await asyncio.to_thread(twilio_client.calls.create, **options)
    except TwilioRestException as exc:
        LOGGER.error("Twilio rejected outbound call to contact %s: %s", contact.id, exc.msg)
        raise UpstreamError(f"Twilio call creation failed: {exc.msg}") from exc

    record = await calls.get_or_create(
        session_id=str(call.sid),
        direction="outbound",
        status="initiated",
        contact_id=contact.id,
    )
    LOGGER.info("Outbound call %s placed to contact %s", call.sid, contact.id)
    return OutboundCallResponse(session_id=str(call.sid), call_id=record.id)


async def _parse_enrichment_job(request: Request, calls: CallRecordRepository) -> EnrichmentJobRequest:
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            return EnrichmentJobRequest.model_validate(await request.json())
        except (PydanticValidationError, ValueError) as exc:
            raise ValidationError("call_id and recording_url are required.") from exc

    form = await request.form()
    recording_url = str(form.get("RecordingUrl") or "").strip()
    call_sid = str(form.get("CallSid") or "").strip()
    if not recording_url or not call_sid:
        raise ValidationError("RecordingUrl and CallSid are required.")

    record = await calls.get_by_session_id(call_sid)
    if record is None:
        raise NotFoundError("Call log not found for CallSid.")
    return EnrichmentJobRequest(call_id=record.id, recording_url=recording_url)


@router.post("/calls/transcribe", response_model=CallRecordResponse)
async def submit_enrichment_job(
    request: Request,
    calls: CallRecordRepository = Depends(get_call_repository),
    pipeline: EnrichmentPipeline = Depends(get_enrichment_pipeline),
) -> CallRecordResponse:
    job = await _parse_enrichment_job(request, calls)
    record = await pipeline.enrich(job.call_id, job.recording_url)
    return CallRecordResponse.model_validate(record)
