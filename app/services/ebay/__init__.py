"""eBay integration services.

This package provides:
- OAuth 2.0 authorization-code and refresh flow
- Credential store and connection health probe
- Category catalog cache and synchronizer
- Background maintenance scheduler
"""

from app.services.ebay.catalog_cache import CatalogCache
from app.services.ebay.catalog_sync import (
    AspectLookup,
    CatalogStatus,
    CatalogSynchronizer,
    PageWritten,
    SyncConflictError,
    SyncError,
    SyncReport,
)
from app.services.ebay.client import EbayAPIError, EbayClient
from app.services.ebay.container import EbayServices, build_ebay_services
from app.services.ebay.health import ConnectionHealthMonitor, ProbeResult
from app.services.ebay.oauth import (
    AuthExchangeError,
    AuthorizationRequest,
    AuthRequestError,
    EbayOAuthError,
    EbayOAuthService,
    RefreshError,
)
from app.services.ebay.publisher import ListingPublisherContext, NotConnectedError
from app.services.ebay.rate_limiter import EbayRateLimiter
from app.services.ebay.scheduler import (
    get_scheduler,
    is_scheduler_running,
    start_scheduler,
    stop_scheduler,
)
from app.services.ebay.taxonomy import (
    EbayTaxonomySource,
    TaxonomyPage,
    TaxonomyParseError,
)
from app.services.ebay.token_store import TokenStore

__all__ = [
    # OAuth
    "EbayOAuthService",
    "EbayOAuthError",
    "AuthRequestError",
    "AuthExchangeError",
    "RefreshError",
    "AuthorizationRequest",
    "TokenStore",
    # Client
    "EbayClient",
    "EbayAPIError",
    "EbayRateLimiter",
    # Health
    "ConnectionHealthMonitor",
    "ProbeResult",
    # Catalog
    "CatalogCache",
    "CatalogSynchronizer",
    "CatalogStatus",
    "AspectLookup",
    "PageWritten",
    "SyncReport",
    "SyncError",
    "SyncConflictError",
    "EbayTaxonomySource",
    "TaxonomyPage",
    "TaxonomyParseError",
    # Publisher boundary
    "ListingPublisherContext",
    "NotConnectedError",
    # Wiring
    "EbayServices",
    "build_ebay_services",
    # Scheduler
    "start_scheduler",
    "stop_scheduler",
    "get_scheduler",
    "is_scheduler_running",
]
