"""Unit tests for the credential store."""
from datetime import datetime, timedelta, timezone

import pytest

from app.services.ebay.token_store import TokenStore
from tests.conftest import make_credential


class TestTokenStore:
    @pytest.mark.asyncio
    async def test_get_returns_none_when_absent(self, token_store: TokenStore) -> None:
        assert await token_store.get("acct-1") is None

    @pytest.mark.asyncio
    async def test_upsert_then_get_round_trips_every_field(self, token_store: TokenStore) -> None:
        credential = make_credential(fulfillment_policy_id="fp-1")

        await token_store.upsert("acct-1", credential)
        stored = await token_store.get("acct-1")

        assert stored is not None
        assert stored.account_id == "acct-1"
        assert stored.provider == "ebay"
        assert stored.access_token == "access-0"
        assert stored.refresh_token == "refresh-0"
        assert stored.fulfillment_policy_id == "fp-1"
        assert stored.scopes == ["https://api.ebay.com/oauth/api_scope"]
        assert stored.expires_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_upsert_overwrites_existing_row(self, token_store: TokenStore) -> None:
        first = await token_store.upsert("acct-1", make_credential(access_token="old"))
        second = await token_store.upsert(
            "acct-1", make_credential(access_token="new", refresh_token=None)
        )

        assert second.id == first.id
        stored = await token_store.get("acct-1")
        assert stored.access_token == "new"
        assert stored.refresh_token is None

    @pytest.mark.asyncio
    async def test_accounts_are_isolated(self, token_store: TokenStore) -> None:
        await token_store.upsert("acct-1", make_credential(access_token="one"))
        await token_store.upsert("acct-2", make_credential(access_token="two"))

        assert (await token_store.get("acct-1")).access_token == "one"
        assert (await token_store.get("acct-2")).access_token == "two"

    @pytest.mark.asyncio
    async def test_clear_reports_whether_a_row_was_deleted(self, token_store: TokenStore) -> None:
        await token_store.upsert("acct-1", make_credential())

        assert await token_store.clear("acct-1") is True
        assert await token_store.get("acct-1") is None
        assert await token_store.clear("acct-1") is False

    @pytest.mark.asyncio
    async def test_list_expiring_skips_credentials_without_refresh_token(
        self, token_store: TokenStore
    ) -> None:
        await token_store.upsert("soon", make_credential(expires_in=timedelta(minutes=5)))
        await token_store.upsert("later", make_credential(expires_in=timedelta(hours=2)))
        await token_store.upsert(
            "no-refresh",
            make_credential(refresh_token=None, expires_in=timedelta(minutes=5)),
        )

        expiring = await token_store.list_expiring(
            datetime.now(timezone.utc) + timedelta(minutes=30)
        )

        assert [c.account_id for c in expiring] == ["soon"]
