"""Database models package."""

from app.models.base import Base
from app.models.marketplace_credential import MarketplaceCredential
from app.models.ebay_category import EbayCategory
from app.models.catalog_sync_state import CatalogSyncState, SyncOutcome

__all__ = [
    "Base",
    "MarketplaceCredential",
    "EbayCategory",
    "CatalogSyncState",
    "SyncOutcome",
]
