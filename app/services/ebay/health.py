"""Probe whether a stored eBay credential still grants API access."""

from typing import NamedTuple, Optional
import logging

from app.services.ebay.client import EbayAPIError, EbayClient
from app.services.ebay.token_store import TokenStore

logger = logging.getLogger(__name__)

AUTH_FAILURE_STATUSES = (401, 403)


class ProbeResult(NamedTuple):
    ok: bool
    http_status: Optional[int]
    detail: str
    # True when the user should reconnect rather than retry later
    needs_reconnect: bool = False


class ConnectionHealthMonitor:
    """Read-only connectivity check against the eBay identity API.

    A failed probe never touches the token store; only a rejected
    refresh invalidates a credential.
    """

    def __init__(self, token_store: TokenStore, client: EbayClient) -> None:
        self.token_store = token_store
        self.client = client

    async def probe(self, account_id: str) -> ProbeResult:
        credential = await self.token_store.get(account_id)
        if credential is None:
            return ProbeResult(
                ok=False,
                http_status=None,
                detail="No eBay account connected",
                needs_reconnect=True,
            )

        try:
            response = await self.client.send(
                "GET", self.client.identity_user_url(), credential.access_token
            )
        except EbayAPIError as e:
            logger.warning(f"eBay probe for {account_id} could not complete: {e}")
            return ProbeResult(ok=False, http_status=e.status_code, detail=e.message)

        if response.is_success:
            return ProbeResult(ok=True, http_status=response.status_code, detail="Connected")

        if response.status_code in AUTH_FAILURE_STATUSES:
            logger.info(f"eBay probe for {account_id} rejected with {response.status_code}")
            return ProbeResult(
                ok=False,
                http_status=response.status_code,
                detail="eBay rejected the stored token",
                needs_reconnect=True,
            )

        logger.warning(f"eBay probe for {account_id} returned {response.status_code}")
        return ProbeResult(
            ok=False,
            http_status=response.status_code,
            detail=f"eBay returned {response.status_code}; try again later",
        )
