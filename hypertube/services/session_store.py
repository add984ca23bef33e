"""
Hypertube API — Session Store Adapter
======================================

What:  Persists session records in the `sessions` collection, keyed by an
       opaque session id.
Why:   The session cookie only carries the id; everything else (who is
       logged in, per-session data) lives server-side.
How:   Every call goes through the DocumentStore retry policy. Failures
       surface as StoreUnavailableError; the session resolver does not retry
       on top of that.

Lifecycle of a session record:
    1. create()  — first request without a valid cookie
    2. touch()   — every request pushes expires_at forward (rolling expiry)
       save()    — login binds identity_ref and saves explicitly
    3. destroy() — explicit logout
    4. sweep_expired() — background task clears records past expires_at

Concurrency:
    Concurrent requests carrying the same id each load, mutate and save
    their own copy. The last save wins; there is no version check.
"""

import asyncio
import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from sqlalchemy import delete, select

from hypertube.exceptions import StoreUnavailableError
from hypertube.models.session import SessionRow
from hypertube.services.lookup import DocumentStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class SessionRecord:
    """In-memory copy of one session, detached from the store."""

    session_id: str
    expires_at: datetime
    created_at: datetime
    identity_ref: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: SessionRow) -> "SessionRecord":
        return cls(
            session_id=row.id,
            identity_ref=row.identity_ref,
            data=dict(row.data or {}),
            expires_at=_as_utc(row.expires_at),
            created_at=_as_utc(row.created_at),
        )


class SessionStore(DocumentStore):
    """
    Session persistence with rolling expiry and a periodic sweep.

    Configuration (from settings):
        session_max_age: lifetime in seconds, renewed on each save
        session_sweep_interval: seconds between two sweeps
    """

    @property
    def max_age(self) -> timedelta:
        return timedelta(seconds=self.settings.session_max_age)

    @staticmethod
    def new_session_id() -> str:
        # 24 random bytes → 32 URL-safe characters, never contains '.'
        return secrets.token_urlsafe(24)

    async def get(self, session_id: str) -> Optional[SessionRecord]:
        """
        Load a live session.

        Returns:
            The record, or None when the id is unknown or expired.

        Raises:
            StoreUnavailableError
        """
        now = _utcnow()

        async def operation():
            async with self.session_factory() as session:
                result = await session.execute(
                    select(SessionRow).where(
                        SessionRow.id == session_id,
                        SessionRow.expires_at > now,
                    )
                )
                return result.scalar_one_or_none()

        row = await self._call(operation)
        return SessionRecord.from_row(row) if row is not None else None

    async def create(self, identity_ref: Optional[str] = None) -> SessionRecord:
        """
        Insert a brand-new session with a fresh random id.

        Raises:
            StoreUnavailableError
        """
        now = _utcnow()
        record = SessionRecord(
            session_id=self.new_session_id(),
            identity_ref=identity_ref,
            created_at=now,
            expires_at=now + self.max_age,
        )

        async def operation():
            async with self.session_factory() as session:
                session.add(
                    SessionRow(
                        id=record.session_id,
                        identity_ref=record.identity_ref,
                        data=record.data,
                        created_at=record.created_at,
                        expires_at=record.expires_at,
                    )
                )
                await session.commit()

        await self._call(operation)
        logger.debug("Session created: %s...", record.session_id[:8])
        return record

    async def save(self, record: SessionRecord) -> SessionRecord:
        """
        Upsert the record and push its expiry forward (last write wins).

        Raises:
            StoreUnavailableError
        """
        return await self._upsert(record)

    async def touch(self, record: SessionRecord) -> SessionRecord:
        """
        Rolling-expiry save with a single attempt and no backoff.

        Raises:
            StoreUnavailableError
        """
        return await self._upsert(record, attempts=1)

    async def _upsert(self, record: SessionRecord, attempts: Optional[int] = None) -> SessionRecord:
        record.expires_at = _utcnow() + self.max_age

        async def operation():
            async with self.session_factory() as session:
                await session.merge(
                    SessionRow(
                        id=record.session_id,
                        identity_ref=record.identity_ref,
                        data=record.data,
                        created_at=record.created_at,
                        expires_at=record.expires_at,
                    )
                )
                await session.commit()

        await self._call(operation, attempts=attempts)
        return record

    async def destroy(self, session_id: str) -> None:
        """Remove a session (logout). Unknown ids are ignored."""

        async def operation():
            async with self.session_factory() as session:
                await session.execute(delete(SessionRow).where(SessionRow.id == session_id))
                await session.commit()

        await self._call(operation)
        logger.debug("Session destroyed: %s...", session_id[:8])

    async def sweep_expired(self) -> int:
        """
        Delete every session past its expiry.

        Returns:
            Number of records removed.
        """
        now = _utcnow()

        async def operation():
            async with self.session_factory() as session:
                result = await session.execute(
                    delete(SessionRow).where(SessionRow.expires_at <= now)
                )
                await session.commit()
                return result.rowcount

        removed = await self._call(operation)
        if removed:
            logger.info("Swept %d expired session(s)", removed)
        return removed

    async def run_sweeper(self, interval: Optional[float] = None) -> None:
        """
        Sweep forever, every `interval` seconds, until cancelled.

        A failed sweep is logged and tried again at the next tick.
        """
        interval = interval or self.settings.session_sweep_interval
        logger.info("Session sweeper started (every %ss)", interval)
        while True:
            await asyncio.sleep(interval)
            try:
                await self.sweep_expired()
            except StoreUnavailableError as e:
                logger.warning("Session sweep failed, retrying next interval: %s", e.message)
