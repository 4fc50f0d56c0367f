"""Shared fixtures: SQLite-backed session factory and a fake eBay."""
import asyncio
import gzip
import json
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.config import Settings
from app.models import Base
from app.models.marketplace_credential import MarketplaceCredential
from app.services.ebay.client import EbayClient
from app.services.ebay.oauth import EbayOAuthService
from app.services.ebay.token_store import TokenStore

SCOPE = "EBAY_US"


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        EBAY_CLIENT_ID="client-id",
        EBAY_CLIENT_SECRET="client-secret",
        EBAY_REDIRECT_URI="http://localhost:8000/ebay/callback",
        EBAY_MARKETPLACE_ID=SCOPE,
        EBAY_TOKEN_REFRESH_BUFFER_MINUTES=30,
        CATALOG_STALENESS_THRESHOLD=1000,
        CATALOG_PAGE_SIZE=1000,
        SCHEDULER_ENABLED=False,
    )


@pytest_asyncio.fixture()
async def session_maker(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


class FakeEbay:
    """In-memory stand-in for the eBay token, identity and taxonomy APIs."""

    VALID_CODE = "validcode"

    def __init__(self) -> None:
        self.token_requests: list[dict[str, str]] = []
        self.refresh_exchanges = 0
        self.issued = 0
        self.live_tokens: set[str] = set()
        self.live_refresh_tokens: set[str] = set()
        self.refresh_delay = 0.0
        self.token_status_override: int | None = None
        self.identity_status_override: int | None = None
        self.rotate_refresh_tokens = False
        self.token_body_override: dict | list | None = None
        self.category_tree: dict | list = {"rootCategoryNode": {"childCategoryTreeNodes": []}}
        self.aspect_document: dict = {"categoryAspects": []}

    def _issue(self, with_refresh: bool) -> dict:
        self.issued += 1
        access = f"access-{self.issued}"
        self.live_tokens.add(access)
        body = {"access_token": access, "expires_in": 7200, "token_type": "User Access Token"}
        if with_refresh:
            refresh = f"refresh-{self.issued}"
            self.live_refresh_tokens.add(refresh)
            body["refresh_token"] = refresh
            body["refresh_token_expires_in"] = 47304000
        return body

    def revoke_all(self) -> None:
        self.live_tokens.clear()

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path

        if path == "/identity/v1/oauth2/token":
            return await self._token(request)

        if path == "/commerce/identity/v1/user/":
            if self.identity_status_override is not None:
                return httpx.Response(self.identity_status_override, text="unavailable")
            token = request.headers.get("Authorization", "").removeprefix("Bearer ")
            if token not in self.live_tokens:
                return httpx.Response(401, json={"errors": [{"message": "Invalid access token"}]})
            return httpx.Response(200, json={"userId": "u-1", "username": "seller_one"})

        if path.endswith("/fetch_item_aspects"):
            return httpx.Response(
                200,
                content=gzip.compress(json.dumps(self.aspect_document).encode()),
                headers={"Content-Type": "application/gzip"},
            )

        if path.startswith("/commerce/taxonomy/v1/category_tree/"):
            return httpx.Response(200, json=self.category_tree)

        return httpx.Response(404, text=f"no route for {path}")

    async def _token(self, request: httpx.Request) -> httpx.Response:
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        self.token_requests.append(form)

        if self.token_status_override is not None:
            return httpx.Response(self.token_status_override, text="service unavailable")
        if self.token_body_override is not None:
            return httpx.Response(200, json=self.token_body_override)

        grant = form.get("grant_type")
        if grant == "authorization_code":
            if form.get("code") != self.VALID_CODE:
                return httpx.Response(400, json={"error": "invalid_grant"})
            return httpx.Response(200, json=self._issue(with_refresh=True))

        if grant == "refresh_token":
            self.refresh_exchanges += 1
            if self.refresh_delay:
                await asyncio.sleep(self.refresh_delay)
            if form.get("refresh_token") not in self.live_refresh_tokens:
                return httpx.Response(400, json={"error": "invalid_grant"})
            if self.rotate_refresh_tokens:
                self.live_refresh_tokens.discard(form["refresh_token"])
                return httpx.Response(200, json=self._issue(with_refresh=True))
            return httpx.Response(200, json=self._issue(with_refresh=False))

        if grant == "client_credentials":
            return httpx.Response(200, json=self._issue(with_refresh=False))

        return httpx.Response(400, json={"error": "unsupported_grant_type"})


@pytest.fixture()
def fake_ebay() -> FakeEbay:
    return FakeEbay()


@pytest.fixture()
def ebay_client(settings: Settings, fake_ebay: FakeEbay) -> EbayClient:
    return EbayClient(settings, transport=httpx.MockTransport(fake_ebay.handler))


@pytest.fixture()
def token_store(session_maker: async_sessionmaker) -> TokenStore:
    return TokenStore(session_maker)


@pytest.fixture()
def oauth_service(
    token_store: TokenStore,
    ebay_client: EbayClient,
    settings: Settings,
) -> EbayOAuthService:
    return EbayOAuthService(token_store, ebay_client, settings)


def make_credential(
    access_token: str = "access-0",
    refresh_token: str | None = "refresh-0",
    expires_in: timedelta = timedelta(hours=2),
    **overrides,
) -> MarketplaceCredential:
    values = dict(
        username="seller_one",
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="User Access Token",
        expires_at=datetime.now(timezone.utc) + expires_in,
        refresh_token_expires_at=None,
        scopes=["https://api.ebay.com/oauth/api_scope"],
        fulfillment_policy_id=None,
        payment_policy_id=None,
        return_policy_id=None,
    )
    values.update(overrides)
    return MarketplaceCredential(**values)
