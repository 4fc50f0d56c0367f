"""Async HTTP client for eBay REST APIs."""

import base64
import gzip
import json
from typing import Any, Optional
import logging

import httpx

from app.config import Settings, get_settings
from app.services.ebay.rate_limiter import EbayRateLimiter

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"


class EbayAPIError(Exception):
    """Custom exception for eBay API errors.

    ``status_code`` is None when the request never got a response
    (connection failure, timeout).
    """

    def __init__(
        self,
        status_code: Optional[int],
        message: str,
        response_body: Any = None,
    ):
        self.status_code = status_code
        self.message = message
        self.response_body = response_body
        super().__init__(f"eBay API Error {status_code}: {message}")

    @property
    def is_transport_error(self) -> bool:
        return self.status_code is None

    @property
    def is_auth_error(self) -> bool:
        return self.status_code in (401, 403)


class EbayClient:
    """Async HTTP client for eBay.

    Features:
    - OAuth token endpoint calls with client Basic auth
    - Bearer-authenticated REST calls
    - Rate limiting on REST calls
    - Error handling with custom exceptions
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        rate_limiter: Optional[EbayRateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize client.

        Args:
            settings: Application settings (defaults to the cached instance)
            rate_limiter: Optional limiter applied to REST calls
            transport: Optional httpx transport, used to stub eBay in tests
        """
        self.settings = settings or get_settings()
        self.rate_limiter = rate_limiter
        self._transport = transport

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.EBAY_HTTP_TIMEOUT,
            transport=self._transport,
        )

    @property
    def token_url(self) -> str:
        return f"{self.settings.ebay_api_base}/identity/v1/oauth2/token"

    def _basic_auth_header(self) -> str:
        raw = f"{self.settings.EBAY_CLIENT_ID}:{self.settings.EBAY_CLIENT_SECRET}"
        return "Basic " + base64.b64encode(raw.encode("utf-8")).decode("utf-8")

    async def request_token(self, form: dict[str, str]) -> httpx.Response:
        """POST to the OAuth token endpoint.

        The response is returned as-is so the caller can interpret
        provider rejections.

        Raises:
            EbayAPIError: On transport failure
        """
        headers = {
            "Authorization": self._basic_auth_header(),
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }
        try:
            async with self._http() as client:
                return await client.post(self.token_url, data=form, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"eBay token endpoint unreachable: {e}")
            raise EbayAPIError(None, f"Token endpoint unreachable: {e}") from e

    async def send(
        self,
        method: str,
        url: str,
        access_token: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
    ) -> httpx.Response:
        """Make an authenticated request without checking the status.

        Raises:
            EbayAPIError: If the daily limit is exhausted or the transport fails
        """
        if self.rate_limiter and not await self.rate_limiter.acquire():
            raise EbayAPIError(429, "Daily eBay call limit exceeded. Try again tomorrow.")

        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
            "X-EBAY-C-MARKETPLACE-ID": self.settings.EBAY_MARKETPLACE_ID,
        }

        try:
            async with self._http() as client:
                return await client.request(
                    method=method,
                    url=url,
                    headers=headers,
                    params=params,
                    json=json_body,
                )
        except httpx.HTTPError as e:
            logger.error(f"eBay request {method} {url} failed: {e}")
            raise EbayAPIError(None, f"Request failed: {e}") from e

    async def _get(
        self,
        url: str,
        access_token: str,
        params: Optional[dict] = None,
    ) -> httpx.Response:
        response = await self.send("GET", url, access_token, params=params)

        if not response.is_success:
            response_body = None
            try:
                response_body = response.json()
            except ValueError:
                pass

            logger.error(f"eBay API error: {response.status_code} - {response.text[:500]}")
            raise EbayAPIError(
                status_code=response.status_code,
                message=response.text,
                response_body=response_body,
            )

        return response

    async def get_json(
        self,
        url: str,
        access_token: str,
        params: Optional[dict] = None,
    ) -> dict:
        """GET a JSON document.

        Raises:
            EbayAPIError: On non-2xx status or undecodable body
        """
        response = await self._get(url, access_token, params=params)
        try:
            return response.json()
        except ValueError as e:
            raise EbayAPIError(response.status_code, f"Invalid JSON from eBay: {e}") from e

    # Convenience methods for the endpoints this service uses

    def identity_user_url(self) -> str:
        return f"{self.settings.ebay_identity_base}/commerce/identity/v1/user/"

    async def get_user(self, access_token: str) -> dict:
        """Get the eBay user the token belongs to.

        Returns:
            User data including ``userId`` and ``username``
        """
        return await self.get_json(self.identity_user_url(), access_token)

    async def get_default_category_tree_id(
        self,
        marketplace_id: str,
        access_token: str,
    ) -> str:
        data = await self.get_json(
            f"{self.settings.ebay_api_base}/commerce/taxonomy/v1/get_default_category_tree_id",
            access_token,
            params={"marketplace_id": marketplace_id},
        )
        return str(data["categoryTreeId"])

    async def get_category_tree(self, tree_id: str, access_token: str) -> dict:
        """Get the full category tree.

        Returns:
            Tree with ``rootCategoryNode`` and nested ``childCategoryTreeNodes``
        """
        return await self.get_json(
            f"{self.settings.ebay_api_base}/commerce/taxonomy/v1/category_tree/{tree_id}",
            access_token,
        )

    async def fetch_item_aspects(self, tree_id: str, access_token: str) -> dict:
        """Download the bulk aspect file for every leaf category of a tree.

        eBay serves this as a gzip-compressed JSON document.

        Returns:
            Document with a ``categoryAspects`` list
        """
        response = await self._get(
            f"{self.settings.ebay_api_base}/commerce/taxonomy/v1/category_tree/{tree_id}/fetch_item_aspects",
            access_token,
        )
        content = response.content
        try:
            if content[:2] == GZIP_MAGIC:
                content = gzip.decompress(content)
            return json.loads(content)
        except (OSError, ValueError) as e:
            raise EbayAPIError(
                response.status_code, f"Invalid aspect file from eBay: {e}"
            ) from e
