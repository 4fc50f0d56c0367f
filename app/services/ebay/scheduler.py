"""APScheduler integration for token refresh and catalog checks."""

from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.services.ebay.catalog_sync import SyncConflictError, SyncError
from app.services.ebay.container import EbayServices
from app.services.ebay.oauth import EbayOAuthError, RefreshError

logger = logging.getLogger(__name__)

# Global scheduler instance
_scheduler: Optional[AsyncIOScheduler] = None


async def refresh_expiring_credentials(services: EbayServices) -> int:
    """Background job: refresh credentials that expire within the buffer.

    Returns:
        Number of credentials refreshed
    """
    buffer_time = timedelta(minutes=services.settings.EBAY_TOKEN_REFRESH_BUFFER_MINUTES)
    expiring = await services.token_store.list_expiring(
        datetime.now(timezone.utc) + buffer_time
    )
    if not expiring:
        logger.debug("No eBay credentials due for refresh")
        return 0

    refreshed = 0
    for credential in expiring:
        try:
            await services.oauth.refresh(credential.account_id)
            refreshed += 1
        except RefreshError as e:
            logger.warning(f"eBay account {credential.account_id} must reconnect: {e}")
        except EbayOAuthError as e:
            logger.error(f"Refresh for {credential.account_id} failed, will retry: {e}")

    logger.info(f"Refreshed {refreshed} of {len(expiring)} expiring eBay credentials")
    return refreshed


async def check_catalog(services: EbayServices) -> None:
    """Background job: run a full sync when the cache is below the threshold."""
    scope = services.settings.EBAY_MARKETPLACE_ID
    synchronizer = services.synchronizer

    if not await synchronizer.needs_sync(scope):
        logger.debug(f"Catalog for {scope} is populated; no sync needed")
        return

    try:
        report = await synchronizer.sync(scope)
        logger.info(f"Scheduled catalog sync wrote {report.records_written} records")
    except SyncConflictError:
        logger.info(f"Catalog sync for {scope} already running; skipping")
    except SyncError as e:
        logger.error(f"Scheduled catalog sync failed at cursor {e.cursor}: {e}", exc_info=True)


def get_scheduler() -> AsyncIOScheduler:
    """Get or create the scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler()
    return _scheduler


def start_scheduler(services: EbayServices) -> None:
    """Start the background scheduler with the eBay maintenance jobs."""
    scheduler = get_scheduler()

    if scheduler.running:
        logger.warning("Scheduler already running")
        return

    settings = services.settings

    scheduler.add_job(
        refresh_expiring_credentials,
        trigger=IntervalTrigger(minutes=settings.EBAY_TOKEN_REFRESH_INTERVAL_MINUTES),
        args=[services],
        id="ebay_token_refresh",
        name="Refresh expiring eBay credentials",
        replace_existing=True,
    )

    scheduler.add_job(
        check_catalog,
        trigger=IntervalTrigger(hours=settings.CATALOG_CHECK_INTERVAL_HOURS),
        args=[services],
        id="ebay_catalog_check",
        name="Populate eBay category cache when below threshold",
        replace_existing=True,
        next_run_time=datetime.now(timezone.utc),
    )

    scheduler.start()
    logger.info(
        f"Started eBay scheduler (token refresh every "
        f"{settings.EBAY_TOKEN_REFRESH_INTERVAL_MINUTES} min, catalog check every "
        f"{settings.CATALOG_CHECK_INTERVAL_HOURS} h)"
    )


def stop_scheduler() -> None:
    """Stop the background scheduler gracefully."""
    global _scheduler
    if _scheduler and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Stopped eBay scheduler")
    _scheduler = None


def is_scheduler_running() -> bool:
    return _scheduler is not None and _scheduler.running
