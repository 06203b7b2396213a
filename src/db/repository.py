"""Repository utilities for persisting contacts, call records and voice profiles."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import desc, func, select
from sqlalchemy.exc import IntegrityError

from db.base import AsyncSessionFactory
from db.models import BiometricProfile, CallRecord, Contact

# Columns an event or enrichment result may write on an existing call record.
MUTABLE_CALL_FIELDS = frozenset(
    {
        "status",
        "transcript",
        "summary",
        "sentiment_label",
        "sentiment_score",
        "highlights",
        "recording_url",
        "duration_seconds",
        "contact_id",
    }
)


class ContactRepository:
    """Async repository for the contact registry."""

    async def get(self, contact_id: int) -> Contact | None:
        async with AsyncSessionFactory() as session:
            return await session.get(Contact, contact_id)

    async def get_by_phone(self, phone: str) -> Contact | None:
        async with AsyncSessionFactory() as session:
            query = select(Contact).where(Contact.phone == phone)
            result = await session.execute(query)
            return result.scalar_one_or_none()

    async def upsert(
        self,
        *,
        phone: str,
        name: str,
        whatsapp: str | None = None,
        attributes: Mapping[str, Any] | None = None,
    ) -> Contact:
        """Create the contact for `phone`, or refresh its label and metadata."""

        async with AsyncSessionFactory() as session:
            query = select(Contact).where(Contact.phone == phone)
            contact = (await session.execute(query)).scalar_one_or_none()
            if contact is None:
                contact = Contact(
                    phone=phone,
                    name=name,
                    whatsapp=whatsapp,
                    attributes=dict(attributes or {}),
                )
                session.add(contact)
            else:
                contact.name = name
                if whatsapp is not None:
                    contact.whatsapp = whatsapp
                if attributes is not None:
                    contact.attributes = {**(contact.attributes or {}), **attributes}
            await session.commit()
            await session.refresh(contact)
            return contact

    async def list_contacts(self, *, limit: int = 100) -> list[Contact]:
        async with AsyncSessionFactory() as session:
            query = select(Contact).order_by(desc(Contact.created_at), desc(Contact.id)).limit(limit)
            result = await session.execute(query)
            return list(result.scalars().all())


class CallRecordRepository:
    """Async repository for call records, keyed by id and by provider session id."""

    async def create(
        self,
        *,
        session_id: str | None,
        direction: str,
        status: str,
        contact_id: int | None = None,
    ) -> CallRecord:
        async with AsyncSessionFactory() as session:
            record = CallRecord(
                session_id=session_id,
                direction=direction,
                status=status,
                contact_id=contact_id,
            )
            session.add(record)
            await session.commit()
            await session.refresh(record)
            return record

    async def get_or_create(
        self,
        *,
        session_id: str,
        direction: str,
        status: str,
        contact_id: int | None = None,
    ) -> CallRecord:
        """Return the record for `session_id`, creating it on first sight.

        Providers redeliver the first webhook of a call; the unique session index
        turns a concurrent duplicate insert into a lookup.
        """

        existing = await self.get_by_session_id(session_id)
        if existing is not None:
            return existing
        try:
            return await self.create(
                session_id=session_id,
                direction=direction,
                status=status,
                contact_id=contact_id,
            )
        except IntegrityError:
            record = await self.get_by_session_id(session_id)
            if record is None:
                raise
            return record

    async def get(self, call_id: int) -> CallRecord | None:
        async with AsyncSessionFactory() as session:
            return await session.get(CallRecord, call_id)

    async def get_by_session_id(self, session_id: str) -> CallRecord | None:
        async with AsyncSessionFactory() as session:
            query = select(CallRecord).where(CallRecord.session_id == session_id)
            result = await session.execute(query)
            return result.scalar_one_or_none()

    async def update(self, call_id: int, changes: Mapping[str, Any]) -> CallRecord | None:
        """Merge `changes` into one record inside a single transaction.

        Keys absent from `changes` are left untouched. Returns None when the
        record does not exist.
        """

        unknown = set(changes) - MUTABLE_CALL_FIELDS
        if unknown:
            raise KeyError(f"Unsupported call record fields: {sorted(unknown)}")

        async with AsyncSessionFactory() as session:
            record = await session.get(CallRecord, call_id, with_for_update=True)
            if record is None:
                return None
            for field_name, value in changes.items():
                if getattr(record, field_name) != value:
                    setattr(record, field_name, value)
            await session.commit()
            await session.refresh(record)
            return record

    async def list_recent(self, *, limit: int = 50) -> Sequence[CallRecord]:
        async with AsyncSessionFactory() as session:
            query = (
                select(CallRecord)
                .order_by(desc(CallRecord.created_at), desc(CallRecord.id))
                .limit(limit)
            )
            result = await session.execute(query)
            return list(result.scalars().all())


class BiometricProfileRepository:
    """One enrolled voice profile per contact; writes replace the whole row."""

    async def get(self, contact_id: int) -> BiometricProfile | None:
        async with AsyncSessionFactory() as session:
            return await session.get(BiometricProfile, contact_id)

    async def put(
        self,
        contact_id: int,
        *,
        voice_signature: Sequence[float],
        sample_rate: int,
        label: str,
    ) -> BiometricProfile:
        async with AsyncSessionFactory() as session:
            async with session.begin():
                profile = await session.get(BiometricProfile, contact_id, with_for_update=True)
                if profile is None:
                    profile = BiometricProfile(contact_id=contact_id)
                    session.add(profile)
                profile.voice_signature = [float(value) for value in voice_signature]
                profile.sample_rate = sample_rate
                profile.label = label
                profile.enrolled_at = datetime.now(timezone.utc)
            await session.refresh(profile)
            return profile

    async def count(self, contact_id: int) -> int:
        async with AsyncSessionFactory() as session:
            query = select(func.count()).select_from(BiometricProfile).where(
                BiometricProfile.contact_id == contact_id
            )
            result = await session.execute(query)
            return int(result.scalar_one())
