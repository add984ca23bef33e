"""
Hypertube API — Session SQLAlchemy Model
=========================================

What:  ORM model for the `sessions` collection.
Why:   Sessions outlive a single process; they are persisted so any worker
       can resolve the cookie it receives.
How:   One row per opaque session id (primary key, so at most one live record
       per id). `expires_at` is pushed forward on every request and swept
       periodically once it passes.

Query Patterns:
    - Resolve cookie: SELECT ... WHERE id = :sid AND expires_at > now
    - Sweep:          DELETE ... WHERE expires_at <= now  (idx_sessions_expires_at)
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from hypertube.database import Base


class SessionRow(Base):
    """Persisted session record."""

    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    # Id of the logged-in user, None for anonymous sessions
    identity_ref: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, default=None)

    data: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_sessions_expires_at", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<SessionRow(id={self.id[:8]}..., identity_ref={self.identity_ref})>"
