"""Unit tests for the background jobs (mocked)."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.services.ebay.catalog_sync import SyncConflictError, SyncError
from app.services.ebay.oauth import EbayOAuthError, RefreshError
from app.services.ebay.scheduler import check_catalog, refresh_expiring_credentials
from tests.conftest import SCOPE, make_credential


def _make_services(settings) -> MagicMock:
    services = MagicMock()
    services.settings = settings
    services.token_store.list_expiring = AsyncMock(return_value=[])
    services.oauth.refresh = AsyncMock()
    services.synchronizer.needs_sync = AsyncMock(return_value=True)
    services.synchronizer.sync = AsyncMock()
    return services


class TestRefreshExpiringCredentials:
    @pytest.mark.asyncio
    async def test_nothing_to_refresh(self, settings) -> None:
        services = _make_services(settings)

        assert await refresh_expiring_credentials(services) == 0
        services.oauth.refresh.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_the_batch(self, settings) -> None:
        services = _make_services(settings)
        services.token_store.list_expiring.return_value = [
            SimpleNamespace(account_id="ok"),
            SimpleNamespace(account_id="revoked"),
            SimpleNamespace(account_id="outage"),
        ]
        services.oauth.refresh.side_effect = [
            make_credential(),
            RefreshError("invalid_grant", 400),
            EbayOAuthError("503 from eBay", 503),
        ]

        assert await refresh_expiring_credentials(services) == 1
        assert services.oauth.refresh.await_count == 3


class TestCheckCatalog:
    @pytest.mark.asyncio
    async def test_populated_cache_is_left_alone(self, settings) -> None:
        services = _make_services(settings)
        services.synchronizer.needs_sync.return_value = False

        await check_catalog(services)

        services.synchronizer.sync.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sparse_cache_triggers_sync(self, settings) -> None:
        services = _make_services(settings)

        await check_catalog(services)

        services.synchronizer.sync.assert_awaited_once_with(SCOPE)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error", [SyncError("page failed", "2000"), SyncConflictError(SCOPE)]
    )
    async def test_sync_errors_are_logged_not_raised(self, settings, error) -> None:
        services = _make_services(settings)
        services.synchronizer.sync.side_effect = error

        await check_catalog(services)
