"""What the listing publisher gets from the connection and catalog services."""

from typing import NamedTuple, Optional

from app.models.marketplace_credential import MarketplaceCredential
from app.services.ebay.catalog_sync import AspectLookup, CatalogSynchronizer
from app.services.ebay.oauth import EbayOAuthService


class NotConnectedError(Exception):
    """The account has no usable eBay credential."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"No usable eBay connection for account {account_id}")


class ListingContext(NamedTuple):
    credential: MarketplaceCredential
    aspects: AspectLookup


class ListingPublisherContext:
    """Resolve the credential and item aspects a listing submission needs."""

    def __init__(
        self,
        oauth_service: EbayOAuthService,
        synchronizer: CatalogSynchronizer,
        default_scope: str,
    ) -> None:
        self.oauth_service = oauth_service
        self.synchronizer = synchronizer
        self.default_scope = default_scope

    async def resolve_credential(self, account_id: str) -> MarketplaceCredential:
        credential = await self.oauth_service.resolve_credential(account_id)
        if credential is None:
            raise NotConnectedError(account_id)
        return credential

    async def lookup_aspects(
        self,
        category_id: str,
        scope: Optional[str] = None,
    ) -> AspectLookup:
        return await self.synchronizer.lookup_aspects(category_id, scope or self.default_scope)

    async def prepare(
        self,
        account_id: str,
        category_id: str,
        scope: Optional[str] = None,
    ) -> ListingContext:
        """Credential plus aspects for one listing.

        Raises:
            NotConnectedError: If the account must (re)connect first
            ValueError: If the category id is malformed
        """
        credential = await self.resolve_credential(account_id)
        aspects = await self.lookup_aspects(category_id, scope)
        return ListingContext(credential=credential, aspects=aspects)
