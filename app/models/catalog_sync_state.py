"""Per-marketplace catalog synchronization state."""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UTCDateTime


class SyncOutcome(str, enum.Enum):
    """Outcome of the latest catalog sync."""

    SUCCESS = "success"
    FAILURE = "failure"
    IN_PROGRESS = "in_progress"


class CatalogSyncState(Base, TimestampMixin):
    """Record count and last sync result for one marketplace scope."""

    __tablename__ = "catalog_sync_states"

    marketplace_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    record_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_synced_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime, nullable=True)
    outcome: Mapped[Optional[SyncOutcome]] = mapped_column(
        Enum(SyncOutcome, values_callable=lambda x: [e.value for e in x]),
        nullable=True,
    )
    detail: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    failed_cursor: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
