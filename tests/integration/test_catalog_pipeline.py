"""End-to-end wiring: OAuth, taxonomy download, cache and publisher over a fake eBay."""
import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.models.catalog_sync_state import SyncOutcome
from app.services.ebay import EbayServices, NotConnectedError, build_ebay_services
from tests.conftest import SCOPE, FakeEbay
from tests.unit.test_taxonomy import ASPECT_DOCUMENT, CATEGORY_TREE


@pytest.fixture()
def services(
    session_maker: async_sessionmaker,
    settings,
    fake_ebay: FakeEbay,
) -> EbayServices:
    fake_ebay.category_tree = CATEGORY_TREE
    fake_ebay.aspect_document = ASPECT_DOCUMENT
    settings = settings.model_copy(
        update={"CATALOG_PAGE_SIZE": 2, "CATALOG_STALENESS_THRESHOLD": 3}
    )
    return build_ebay_services(
        session_maker, settings, transport=httpx.MockTransport(fake_ebay.handler)
    )


class TestCatalogPipeline:
    @pytest.mark.asyncio
    async def test_sync_downloads_tree_into_cache(self, services: EbayServices) -> None:
        assert await services.synchronizer.needs_sync(SCOPE) is True

        report = await services.synchronizer.sync(SCOPE)

        assert report.pages_written == 2
        assert report.record_count == 4
        status = await services.synchronizer.status(SCOPE)
        assert status.outcome == SyncOutcome.SUCCESS
        assert status.needs_sync is False

        lookup = await services.publisher.lookup_aspects("15687")
        assert lookup.source == "cached"
        assert [(a.name, a.required) for a in lookup.aspects] == [
            ("Brand", True),
            ("Color", False),
        ]

    @pytest.mark.asyncio
    async def test_publisher_prepare_after_connecting(
        self,
        services: EbayServices,
    ) -> None:
        with pytest.raises(NotConnectedError):
            await services.publisher.prepare("acct-1", "57989")

        request = services.oauth.begin_authorization("acct-1", "https://shop.example.com")
        await services.oauth.complete_authorization(FakeEbay.VALID_CODE, request.state)

        context = await services.publisher.prepare("acct-1", "57989")

        assert context.credential.access_token == "access-1"
        assert context.aspects.source == "generated"

    @pytest.mark.asyncio
    async def test_probe_after_revocation(
        self,
        services: EbayServices,
        fake_ebay: FakeEbay,
    ) -> None:
        request = services.oauth.begin_authorization("acct-1", "https://shop.example.com")
        await services.oauth.complete_authorization(FakeEbay.VALID_CODE, request.state)
        assert (await services.health.probe("acct-1")).ok is True

        fake_ebay.revoke_all()
        result = await services.health.probe("acct-1")

        assert result.ok is False
        assert result.http_status == 401
        assert await services.oauth.is_connected("acct-1") is True
