"""eBay connection and catalog schemas."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from app.models.catalog_sync_state import SyncOutcome
from app.services.ebay.fallback_aspects import AspectValueType


class AuthURLResponse(BaseModel):
    """OAuth consent URL response."""

    authorization_url: str
    state: str


class ConnectionStatusResponse(BaseModel):
    """Stored credential / connection status."""

    model_config = ConfigDict(from_attributes=True)

    connected: bool
    username: Optional[str] = None
    expires_at: Optional[datetime] = None
    is_expired: bool = False
    has_refresh_token: bool = False
    scopes: list[str] = []


class ProbeResponse(BaseModel):
    """Result of a live connectivity probe."""

    ok: bool
    http_status: Optional[int] = None
    detail: str
    needs_reconnect: bool = False


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str


class CatalogStatusResponse(BaseModel):
    """Category cache status for one marketplace."""

    scope: str
    record_count: int
    last_synced_at: Optional[datetime] = None
    outcome: Optional[SyncOutcome] = None
    detail: Optional[str] = None
    needs_sync: bool
    authoritative: bool
    staleness_threshold: int


class SyncReportResponse(BaseModel):
    """Completed catalog sync."""

    scope: str
    records_written: int
    pages_written: int
    duration_ms: int
    record_count: int


class ItemAspectSchema(BaseModel):
    """One item aspect of a category."""

    name: str
    required: bool
    value_type: AspectValueType
    possible_values: Optional[list[str]] = None
    unit: Optional[str] = None


class AspectLookupResponse(BaseModel):
    """Item aspects for a category."""

    category_id: str
    source: Literal["cached", "generated"]
    aspects: list[ItemAspectSchema]
    fallback_version: Optional[str] = None
