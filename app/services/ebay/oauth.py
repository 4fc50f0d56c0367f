"""eBay OAuth 2.0 authorization-code and refresh flow."""

import secrets
from datetime import datetime, timedelta, timezone
from typing import NamedTuple, Optional
from urllib.parse import urlencode
import logging

import httpx

from app.config import Settings, get_settings
from app.models.marketplace_credential import MarketplaceCredential
from app.services.ebay.client import EbayAPIError, EbayClient
from app.services.ebay.single_flight import SingleFlight
from app.services.ebay.token_store import TokenStore

logger = logging.getLogger(__name__)

PENDING_STATE_TTL = timedelta(minutes=10)
DEFAULT_ACCESS_TOKEN_TTL = 7200

# Token endpoint statuses that mean the grant itself was rejected
REJECTED_GRANT_STATUSES = (400, 401)


class EbayOAuthError(Exception):
    """Base exception for eBay OAuth errors.

    Raised directly for failures that are worth retrying later
    (token endpoint unreachable or failing with 5xx).
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class AuthRequestError(EbayOAuthError):
    """Caller is not signed in to the hosting application."""


class AuthExchangeError(EbayOAuthError):
    """eBay rejected the authorization code or the state is unknown."""


class RefreshError(EbayOAuthError):
    """Refresh token is invalid or revoked; the account must reconnect."""


class AuthorizationRequest(NamedTuple):
    url: str
    state: str


class _PendingAuthorization(NamedTuple):
    account_id: str
    redirect_uri: str
    created_at: datetime


class EbayOAuthService:
    """Drive the eBay OAuth flow for hosting-application accounts."""

    def __init__(
        self,
        token_store: TokenStore,
        client: EbayClient,
        settings: Optional[Settings] = None,
    ) -> None:
        self.token_store = token_store
        self.client = client
        self.settings = settings or get_settings()
        # Pending consent requests keyed by state (single process only)
        self._pending_states: dict[str, _PendingAuthorization] = {}
        self._refresh_flights: SingleFlight[MarketplaceCredential] = SingleFlight()
        self._app_token: Optional[str] = None
        self._app_token_expires_at: Optional[datetime] = None

    def redirect_uri_for(self, return_origin: Optional[str]) -> str:
        if return_origin:
            return f"{return_origin.rstrip('/')}/ebay/callback"
        return self.settings.EBAY_REDIRECT_URI

    def begin_authorization(
        self,
        account_id: Optional[str],
        return_origin: Optional[str] = None,
    ) -> AuthorizationRequest:
        """Build the eBay consent URL for an account.

        Args:
            account_id: Hosting application account starting the flow
            return_origin: Origin of the page the user should come back to

        Returns:
            AuthorizationRequest with the consent URL and its state

        Raises:
            AuthRequestError: If no hosting application account is given
        """
        if not account_id:
            raise AuthRequestError("Sign in before connecting an eBay account", 401)

        state = secrets.token_urlsafe(32)
        redirect_uri = self.redirect_uri_for(return_origin)

        self._cleanup_expired_states()
        self._pending_states[state] = _PendingAuthorization(
            account_id=account_id,
            redirect_uri=redirect_uri,
            created_at=datetime.now(timezone.utc),
        )

        params = {
            "client_id": self.settings.EBAY_CLIENT_ID,
            "response_type": "code",
            "redirect_uri": redirect_uri,
            "scope": self.settings.EBAY_SCOPES,
            "state": state,
        }

        url = f"{self.settings.ebay_auth_base}/oauth2/authorize?{urlencode(params)}"
        logger.info(f"Generated eBay consent URL for account {account_id}, state {state[:8]}...")
        return AuthorizationRequest(url=url, state=state)

    def _cleanup_expired_states(self) -> None:
        """Remove pending states older than the TTL."""
        now = datetime.now(timezone.utc)
        expired = [
            state
            for state, pending in self._pending_states.items()
            if now - pending.created_at > PENDING_STATE_TTL
        ]
        for state in expired:
            del self._pending_states[state]

    def _credential_from_token_data(
        self,
        token_data: dict,
        previous: Optional[MarketplaceCredential] = None,
    ) -> MarketplaceCredential:
        now = datetime.now(timezone.utc)
        expires_in = token_data["expires_in"]

        refresh_token = token_data.get("refresh_token")
        refresh_expires_at = None
        if refresh_token:
            if token_data.get("refresh_token_expires_in"):
                refresh_expires_at = now + timedelta(
                    seconds=token_data["refresh_token_expires_in"]
                )
        elif previous is not None:
            # eBay usually omits the refresh token on refresh; keep the old one
            refresh_token = previous.refresh_token
            refresh_expires_at = previous.refresh_token_expires_at

        scope = token_data.get("scope")
        if scope:
            scopes = scope.split()
        elif previous is not None:
            scopes = list(previous.scopes or [])
        else:
            scopes = self.settings.ebay_scope_list

        return MarketplaceCredential(
            username=previous.username if previous else None,
            access_token=token_data["access_token"],
            refresh_token=refresh_token,
            token_type=token_data.get("token_type", "Bearer"),
            expires_at=now + timedelta(seconds=expires_in),
            refresh_token_expires_at=refresh_expires_at,
            scopes=scopes,
            fulfillment_policy_id=previous.fulfillment_policy_id if previous else None,
            payment_policy_id=previous.payment_policy_id if previous else None,
            return_policy_id=previous.return_policy_id if previous else None,
        )

    @staticmethod
    def _parse_token_response(response: httpx.Response) -> dict:
        """Decode a token response and coerce its lifetimes to ints.

        Raises:
            ValueError: If the body is not a usable token document
        """
        token_data = response.json()
        if not isinstance(token_data, dict) or "access_token" not in token_data:
            raise ValueError("no access_token in token response")

        try:
            token_data["expires_in"] = int(
                token_data.get("expires_in", DEFAULT_ACCESS_TOKEN_TTL)
            )
            if token_data.get("refresh_token_expires_in"):
                token_data["refresh_token_expires_in"] = int(
                    token_data["refresh_token_expires_in"]
                )
        except (TypeError, ValueError) as e:
            raise ValueError(f"invalid token lifetime: {e}") from e
        return token_data

    async def complete_authorization(
        self,
        code: str,
        state: str,
    ) -> MarketplaceCredential:
        """Exchange an authorization code for tokens.

        Args:
            code: Authorization code from the eBay callback
            state: State parameter issued by begin_authorization

        Returns:
            The stored credential

        Raises:
            AuthExchangeError: If the state is unknown or eBay rejects the code
            EbayOAuthError: If the token endpoint cannot be reached
        """
        self._cleanup_expired_states()
        pending = self._pending_states.pop(state, None)
        if pending is None:
            raise AuthExchangeError("Invalid or expired state parameter", 400)

        logger.info(f"Exchanging eBay authorization code for account {pending.account_id}")

        try:
            response = await self.client.request_token(
                {
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": pending.redirect_uri,
                }
            )
        except EbayAPIError as e:
            raise EbayOAuthError(e.message) from e

        if not response.is_success:
            error_msg = f"Token exchange failed: {response.status_code} - {response.text}"
            logger.error(error_msg)
            raise AuthExchangeError(error_msg, response.status_code)

        try:
            token_data = self._parse_token_response(response)
        except ValueError as e:
            raise AuthExchangeError(f"Unexpected token response: {e}", response.status_code) from e

        credential = self._credential_from_token_data(token_data)
        credential.username = await self._lookup_username(credential.access_token)

        stored = await self.token_store.upsert(pending.account_id, credential)
        logger.info(f"Connected eBay account for {pending.account_id}")
        return stored

    async def _lookup_username(self, access_token: str) -> Optional[str]:
        try:
            user = await self.client.get_user(access_token)
        except EbayAPIError as e:
            logger.warning(f"Could not fetch eBay username: {e}")
            return None
        return user.get("username")

    async def refresh(self, account_id: str) -> MarketplaceCredential:
        """Refresh an account's access token.

        Concurrent calls for the same account share one token exchange.

        Raises:
            RefreshError: If the refresh token is missing, invalid or revoked
            EbayOAuthError: If eBay is unreachable or failing; retry later
        """
        return await self._refresh_flights.do(account_id, self._refresh, account_id)

    async def _refresh(self, account_id: str) -> MarketplaceCredential:
        credential = await self.token_store.get(account_id)
        if credential is None:
            raise RefreshError("No eBay account connected", 404)
        if not credential.refresh_token:
            raise RefreshError("No refresh token; reconnect the eBay account", 401)

        logger.info(f"Refreshing eBay access token for account {account_id}")

        try:
            response = await self.client.request_token(
                {
                    "grant_type": "refresh_token",
                    "refresh_token": credential.refresh_token,
                    "scope": " ".join(credential.scopes or self.settings.ebay_scope_list),
                }
            )
        except EbayAPIError as e:
            raise EbayOAuthError(e.message) from e

        if response.status_code in REJECTED_GRANT_STATUSES:
            error_msg = f"Token refresh rejected: {response.status_code} - {response.text}"
            logger.error(error_msg)
            await self.token_store.clear(account_id)
            raise RefreshError(error_msg, response.status_code)

        if not response.is_success:
            error_msg = f"Token refresh failed: {response.status_code} - {response.text}"
            logger.error(error_msg)
            raise EbayOAuthError(error_msg, response.status_code)

        try:
            token_data = self._parse_token_response(response)
        except ValueError as e:
            raise EbayOAuthError(f"Unexpected token response: {e}", response.status_code) from e

        refreshed = self._credential_from_token_data(token_data, previous=credential)
        stored = await self.token_store.upsert(account_id, refreshed)

        logger.info(f"Refreshed eBay access token for account {account_id}")
        return stored

    async def resolve_credential(self, account_id: str) -> Optional[MarketplaceCredential]:
        """Get a usable credential, refreshing if it is about to expire.

        Returns:
            Credential or None if the account is not connected
        """
        credential = await self.token_store.get(account_id)
        if credential is None:
            return None

        buffer_time = timedelta(minutes=self.settings.EBAY_TOKEN_REFRESH_BUFFER_MINUTES)
        if credential.expires_at - datetime.now(timezone.utc) >= buffer_time:
            return credential

        if not credential.refresh_token:
            # Nothing to refresh with; the access token is usable until it expires
            return None if credential.is_expired else credential

        try:
            return await self.refresh(account_id)
        except RefreshError as e:
            logger.error(f"eBay credential for {account_id} needs reconnection: {e}")
            # A rejected grant clears the store; otherwise keep a live token
            if await self.token_store.get(account_id) is None:
                return None
            return None if credential.is_expired else credential
        except EbayOAuthError as e:
            logger.warning(f"Could not refresh eBay credential for {account_id}: {e}")
            return None if credential.is_expired else credential

    async def is_connected(self, account_id: str) -> bool:
        credential = await self.token_store.get(account_id)
        return credential is not None and credential.is_connected

    async def disconnect(self, account_id: str) -> bool:
        """Forget the stored eBay credential for an account.

        Returns:
            True if a credential was deleted, False if none existed
        """
        deleted = await self.token_store.clear(account_id)
        if deleted:
            logger.info(f"Disconnected eBay account for {account_id}")
        return deleted

    async def get_application_token(self) -> str:
        """Get an application access token (client credentials grant).

        Used for account-independent APIs such as the taxonomy.

        Raises:
            EbayOAuthError: If eBay does not issue a token
        """
        now = datetime.now(timezone.utc)
        if self._app_token and self._app_token_expires_at and now < self._app_token_expires_at:
            return self._app_token

        if not self.settings.EBAY_CLIENT_ID or not self.settings.EBAY_CLIENT_SECRET:
            raise EbayOAuthError("eBay client credentials not configured")

        try:
            response = await self.client.request_token(
                {
                    "grant_type": "client_credentials",
                    "scope": "https://api.ebay.com/oauth/api_scope",
                }
            )
        except EbayAPIError as e:
            raise EbayOAuthError(e.message) from e

        if not response.is_success:
            error_msg = f"Application token request failed: {response.status_code} - {response.text}"
            logger.error(error_msg)
            raise EbayOAuthError(error_msg, response.status_code)

        try:
            token_data = self._parse_token_response(response)
        except ValueError as e:
            raise EbayOAuthError(f"Unexpected token response: {e}", response.status_code) from e

        expires_in = token_data["expires_in"]
        self._app_token = token_data["access_token"]
        # Renew a minute early
        self._app_token_expires_at = now + timedelta(seconds=max(expires_in - 60, 0))
        logger.info("Obtained eBay application access token")
        return self._app_token
