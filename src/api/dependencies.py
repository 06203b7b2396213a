"""Shared FastAPI dependencies.

Separated to avoid circular imports between route modules.
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from biometrics.service import BiometricService
from calls.state_machine import CallStateMachine
from config.settings import get_settings
from db.repository import CallRecordRepository, ContactRepository

if TYPE_CHECKING:  # pragma: no cover
    from enrichment.pipeline import EnrichmentPipeline


def get_contact_repository() -> ContactRepository:
    return ContactRepository()


def get_call_repository() -> CallRecordRepository:
    return CallRecordRepository()


def get_state_machine() -> CallStateMachine:
    return CallStateMachine()


@lru_cache(maxsize=1)
def _biometric_service_factory() -> BiometricService:
    return BiometricService.from_settings(get_settings())


def get_biometric_service() -> BiometricService:
    return _biometric_service_factory()


@lru_cache(maxsize=1)
def _pipeline_factory() -> EnrichmentPipeline:
    # Lazy import to avoid loading transcription and LLM SDKs at module import time.
    from enrichment.pipeline import EnrichmentPipeline

    return EnrichmentPipeline.from_settings(get_settings())


def get_enrichment_pipeline() -> EnrichmentPipeline:
    return _pipeline_factory()
