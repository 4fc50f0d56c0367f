"""Unit tests for the listing publisher boundary (mocked)."""
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.services.ebay.catalog_sync import AspectLookup
from app.services.ebay.publisher import ListingPublisherContext, NotConnectedError
from tests.conftest import SCOPE, make_credential


class TestListingPublisherContext:
    @pytest.mark.asyncio
    async def test_prepare_returns_credential_and_aspects(self) -> None:
        credential = make_credential()
        lookup = AspectLookup(category_id="15687", aspects=[], source="cached")
        oauth = MagicMock()
        oauth.resolve_credential = AsyncMock(return_value=credential)
        synchronizer = MagicMock()
        synchronizer.lookup_aspects = AsyncMock(return_value=lookup)
        context = ListingPublisherContext(oauth, synchronizer, default_scope=SCOPE)

        result = await context.prepare("acct-1", "15687")

        assert result.credential is credential
        assert result.aspects is lookup
        synchronizer.lookup_aspects.assert_awaited_once_with("15687", SCOPE)

    @pytest.mark.asyncio
    async def test_prepare_requires_connection(self) -> None:
        oauth = MagicMock()
        oauth.resolve_credential = AsyncMock(return_value=None)
        synchronizer = MagicMock()
        synchronizer.lookup_aspects = AsyncMock()
        context = ListingPublisherContext(oauth, synchronizer, default_scope=SCOPE)

        with pytest.raises(NotConnectedError):
            await context.prepare("acct-1", "15687")
        synchronizer.lookup_aspects.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_explicit_scope_overrides_default(self) -> None:
        synchronizer = MagicMock()
        synchronizer.lookup_aspects = AsyncMock()
        context = ListingPublisherContext(MagicMock(), synchronizer, default_scope=SCOPE)

        await context.lookup_aspects("15687", "EBAY_GB")

        synchronizer.lookup_aspects.assert_awaited_once_with("15687", "EBAY_GB")
