"""Persistent store for eBay OAuth credentials."""

from datetime import datetime
from typing import Optional
import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.models.marketplace_credential import EBAY_PROVIDER, MarketplaceCredential

logger = logging.getLogger(__name__)

# Columns copied on upsert; identity columns are never overwritten
_CREDENTIAL_FIELDS = (
    "username",
    "access_token",
    "refresh_token",
    "token_type",
    "expires_at",
    "refresh_token_expires_at",
    "scopes",
    "fulfillment_policy_id",
    "payment_policy_id",
    "return_policy_id",
)


class TokenStore:
    """One credential per (account, provider).

    Every write runs in its own transaction, so a credential is either
    stored completely or not at all.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker,
        provider: str = EBAY_PROVIDER,
    ) -> None:
        self._session_maker = session_maker
        self.provider = provider

    async def get(self, account_id: str) -> Optional[MarketplaceCredential]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(MarketplaceCredential).where(
                    MarketplaceCredential.account_id == account_id,
                    MarketplaceCredential.provider == self.provider,
                )
            )
            return result.scalar_one_or_none()

    async def upsert(
        self,
        account_id: str,
        credential: MarketplaceCredential,
    ) -> MarketplaceCredential:
        """Insert or fully overwrite the credential for an account.

        Args:
            account_id: Hosting application account identifier
            credential: Unsaved credential carrying the new token values

        Returns:
            The persisted credential
        """
        async with self._session_maker() as session:
            async with session.begin():
                result = await session.execute(
                    select(MarketplaceCredential)
                    .where(
                        MarketplaceCredential.account_id == account_id,
                        MarketplaceCredential.provider == self.provider,
                    )
                    .with_for_update()
                )
                stored = result.scalar_one_or_none()

                if stored is None:
                    stored = MarketplaceCredential(
                        account_id=account_id,
                        provider=self.provider,
                    )
                    session.add(stored)

                for field in _CREDENTIAL_FIELDS:
                    setattr(stored, field, getattr(credential, field))

            await session.refresh(stored)

        logger.debug(f"Stored eBay credential for account {account_id}")
        return stored

    async def clear(self, account_id: str) -> bool:
        """Delete the credential for an account.

        Returns:
            True if a credential was deleted
        """
        async with self._session_maker() as session:
            async with session.begin():
                result = await session.execute(
                    delete(MarketplaceCredential).where(
                        MarketplaceCredential.account_id == account_id,
                        MarketplaceCredential.provider == self.provider,
                    )
                )
        deleted = (result.rowcount or 0) > 0
        if deleted:
            logger.info(f"Cleared eBay credential for account {account_id}")
        return deleted

    async def list_expiring(self, before: datetime) -> list[MarketplaceCredential]:
        """Credentials whose access token expires before the given time."""
        async with self._session_maker() as session:
            result = await session.execute(
                select(MarketplaceCredential)
                .where(
                    MarketplaceCredential.provider == self.provider,
                    MarketplaceCredential.expires_at < before,
                    MarketplaceCredential.refresh_token.is_not(None),
                )
                .order_by(MarketplaceCredential.expires_at)
            )
            return list(result.scalars().all())
