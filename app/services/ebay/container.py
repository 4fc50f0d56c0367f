"""Wiring for the eBay services."""

from dataclasses import dataclass
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.config import Settings, get_settings
from app.services.ebay.catalog_cache import CatalogCache
from app.services.ebay.catalog_sync import CatalogSynchronizer
from app.services.ebay.client import EbayClient
from app.services.ebay.health import ConnectionHealthMonitor
from app.services.ebay.oauth import EbayOAuthService
from app.services.ebay.publisher import ListingPublisherContext
from app.services.ebay.rate_limiter import EbayRateLimiter
from app.services.ebay.taxonomy import EbayTaxonomySource, TaxonomySource
from app.services.ebay.token_store import TokenStore


@dataclass
class EbayServices:
    settings: Settings
    client: EbayClient
    token_store: TokenStore
    oauth: EbayOAuthService
    health: ConnectionHealthMonitor
    catalog_cache: CatalogCache
    synchronizer: CatalogSynchronizer
    publisher: ListingPublisherContext


def build_ebay_services(
    session_maker: async_sessionmaker,
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    taxonomy_source: Optional[TaxonomySource] = None,
) -> EbayServices:
    """Build one set of collaborating services over a session factory."""
    settings = settings or get_settings()

    rate_limiter = EbayRateLimiter(
        max_per_second=settings.EBAY_MAX_CALLS_PER_SECOND,
        max_per_day=settings.EBAY_MAX_CALLS_PER_DAY,
    )
    client = EbayClient(settings, rate_limiter=rate_limiter, transport=transport)
    token_store = TokenStore(session_maker)
    oauth = EbayOAuthService(token_store, client, settings)

    catalog_cache = CatalogCache(session_maker)
    source = taxonomy_source or EbayTaxonomySource(
        client, oauth.get_application_token, settings
    )
    synchronizer = CatalogSynchronizer(
        catalog_cache,
        source,
        staleness_threshold=settings.CATALOG_STALENESS_THRESHOLD,
        page_size=settings.CATALOG_PAGE_SIZE,
    )

    return EbayServices(
        settings=settings,
        client=client,
        token_store=token_store,
        oauth=oauth,
        health=ConnectionHealthMonitor(token_store, client),
        catalog_cache=catalog_cache,
        synchronizer=synchronizer,
        publisher=ListingPublisherContext(
            oauth, synchronizer, default_scope=settings.EBAY_MARKETPLACE_ID
        ),
    )
