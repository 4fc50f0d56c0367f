"""Category catalog synchronization and item aspect lookup."""

import asyncio
import time
from datetime import datetime
from typing import Awaitable, Callable, Literal, NamedTuple, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError

from app.models.catalog_sync_state import SyncOutcome
from app.services.ebay.catalog_cache import CatalogCache
from app.services.ebay.client import EbayAPIError
from app.services.ebay.fallback_aspects import (
    FALLBACK_ASPECTS_VERSION,
    AspectValueType,
    ItemAspect,
    fallback_aspects,
)
from app.services.ebay.oauth import EbayOAuthError
from app.services.ebay.taxonomy import TaxonomyParseError, TaxonomySource

logger = logging.getLogger(__name__)

AspectSource = Literal["cached", "generated"]


class SyncError(Exception):
    """A taxonomy page could not be fetched, parsed or written.

    Pages written before the failure stay in the cache; ``cursor`` is the
    page that failed.
    """

    def __init__(self, message: str, cursor: Optional[str] = None):
        self.message = message
        self.cursor = cursor
        super().__init__(message)


class SyncConflictError(Exception):
    """A sync for the same marketplace scope is already running."""

    def __init__(self, scope: str):
        self.scope = scope
        super().__init__(f"Catalog sync already in progress for {scope}")


class PageWritten(NamedTuple):
    index: int
    cursor: Optional[str]
    records: int
    total_count: int


class SyncReport(NamedTuple):
    scope: str
    records_written: int
    pages_written: int
    duration_ms: int
    record_count: int


class AspectLookup(NamedTuple):
    category_id: str
    aspects: list[ItemAspect]
    source: AspectSource
    fallback_version: Optional[str] = None


class CatalogStatus(NamedTuple):
    scope: str
    record_count: int
    last_synced_at: Optional[datetime]
    outcome: Optional[SyncOutcome]
    detail: Optional[str]
    needs_sync: bool
    # False while a sync runs or the cache is below the threshold
    authoritative: bool


PageCallback = Callable[[PageWritten], Awaitable[None]]


class CatalogSynchronizer:
    """Keep the local category cache populated from the eBay taxonomy."""

    def __init__(
        self,
        cache: CatalogCache,
        source: TaxonomySource,
        staleness_threshold: int = 1000,
        page_size: int = 1000,
    ) -> None:
        self.cache = cache
        self.source = source
        self.staleness_threshold = staleness_threshold
        self.page_size = page_size
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, scope: str) -> asyncio.Lock:
        return self._locks.setdefault(scope, asyncio.Lock())

    def is_syncing(self, scope: str) -> bool:
        return self._lock_for(scope).locked()

    async def needs_sync(self, scope: str) -> bool:
        """True while the cache holds fewer records than the threshold."""
        state = await self.cache.get_state(scope)
        record_count = state.record_count if state else 0
        return record_count < self.staleness_threshold

    async def status(self, scope: str) -> CatalogStatus:
        state = await self.cache.get_state(scope)
        record_count = state.record_count if state else 0
        outcome = state.outcome if state else None
        needs_sync = record_count < self.staleness_threshold
        return CatalogStatus(
            scope=scope,
            record_count=record_count,
            last_synced_at=state.last_synced_at if state else None,
            outcome=outcome,
            detail=state.detail if state else None,
            needs_sync=needs_sync,
            authoritative=not needs_sync and outcome != SyncOutcome.IN_PROGRESS,
        )

    async def sync(
        self,
        scope: str,
        mode: Literal["full"] = "full",
        on_page: Optional[PageCallback] = None,
    ) -> SyncReport:
        """Download the taxonomy for a scope into the cache.

        Args:
            scope: Marketplace id, e.g. ``EBAY_US``
            mode: Only ``full`` is supported
            on_page: Awaited after each page is committed, in page order

        Returns:
            SyncReport for the completed pass

        Raises:
            SyncConflictError: If a sync for the scope is already running
            SyncError: If a page fetch, parse or write fails
        """
        if mode != "full":
            raise ValueError(f"Unsupported sync mode: {mode}")

        lock = self._lock_for(scope)
        if lock.locked():
            raise SyncConflictError(scope)

        async with lock:
            return await self._run_sync(scope, on_page)

    async def _run_sync(
        self,
        scope: str,
        on_page: Optional[PageCallback],
    ) -> SyncReport:
        started = time.monotonic()
        await self.cache.mark_in_progress(scope)
        logger.info(f"Starting full catalog sync for {scope}")

        cursor: Optional[str] = None
        pages_written = 0
        records_written = 0

        try:
            while True:
                try:
                    page = await self.source.fetch_page(scope, cursor, self.page_size)
                    total_count = await self.cache.write_page(scope, page.records)
                except (
                    EbayAPIError,
                    EbayOAuthError,
                    TaxonomyParseError,
                    SQLAlchemyError,
                    AttributeError,
                    KeyError,
                    TypeError,
                    ValueError,
                ) as e:
                    detail = f"Page at cursor {cursor or 'start'} failed: {e}"
                    logger.error(f"Catalog sync for {scope} failed: {detail}")
                    await self.cache.mark_failure(scope, detail, cursor)
                    raise SyncError(detail, cursor) from e

                event = PageWritten(
                    index=pages_written,
                    cursor=cursor,
                    records=len(page.records),
                    total_count=total_count,
                )
                pages_written += 1
                records_written += len(page.records)
                logger.info(
                    f"Catalog page {event.index + 1} for {scope}: "
                    f"{event.records} records, {total_count} cached"
                )
                if on_page is not None:
                    await on_page(event)

                if page.next_cursor is None:
                    break
                cursor = page.next_cursor
        except SyncError:
            raise
        except asyncio.CancelledError:
            logger.warning(f"Catalog sync for {scope} cancelled after {pages_written} pages")
            await self.cache.mark_failure(scope, "Sync cancelled", cursor)
            raise
        except Exception as e:
            await self.cache.mark_failure(scope, f"Sync aborted: {e}", cursor)
            raise

        state = await self.cache.mark_success(scope)
        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            f"Catalog sync for {scope} finished: {records_written} records "
            f"in {pages_written} pages ({duration_ms} ms)"
        )
        return SyncReport(
            scope=scope,
            records_written=records_written,
            pages_written=pages_written,
            duration_ms=duration_ms,
            record_count=state.record_count,
        )

    async def lookup_aspects(self, category_id: str, scope: str) -> AspectLookup:
        """Item aspects for a category.

        Cached categories only carry aspect names, so every cached aspect
        is free text. Uncached categories get a fallback set and
        ``source="generated"``.

        Raises:
            ValueError: If the category id is not numeric
        """
        category_id = str(category_id).strip()
        if not (category_id.isascii() and category_id.isdigit()):
            raise ValueError(f"Invalid eBay category id: {category_id!r}")

        try:
            record = await self.cache.get_category(scope, category_id)
        except SQLAlchemyError as e:
            logger.warning(f"Category cache unavailable, using fallback aspects: {e}")
            record = None

        if record is not None:
            aspects = [
                ItemAspect(name, True, AspectValueType.TEXT)
                for name in record.required_aspects or []
            ] + [
                ItemAspect(name, False, AspectValueType.TEXT)
                for name in record.suggested_aspects or []
            ]
            return AspectLookup(category_id=category_id, aspects=aspects, source="cached")

        aspects = fallback_aspects(category_id)
        logger.info(f"Generated {len(aspects)} fallback aspects for category {category_id}")
        return AspectLookup(
            category_id=category_id,
            aspects=aspects,
            source="generated",
            fallback_version=FALLBACK_ASPECTS_VERSION,
        )
