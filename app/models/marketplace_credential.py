"""eBay OAuth credential storage model."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UTCDateTime

EBAY_PROVIDER = "ebay"


class MarketplaceCredential(Base, TimestampMixin):
    """OAuth 2.0 credential for one connected account."""

    __tablename__ = "marketplace_credentials"
    __table_args__ = (
        UniqueConstraint("account_id", "provider", name="uq_credential_account_provider"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    provider: Mapped[str] = mapped_column(String(50), default=EBAY_PROVIDER, nullable=False)
    username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    token_type: Mapped[str] = mapped_column(String(50), default="Bearer", nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    refresh_token_expires_at: Mapped[Optional[datetime]] = mapped_column(
        UTCDateTime, nullable=True
    )
    scopes: Mapped[list] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), default=list, nullable=False
    )

    # Seller business policies
    fulfillment_policy_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    payment_policy_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    return_policy_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    @property
    def is_expired(self) -> bool:
        """Check if the access token is expired."""
        return datetime.now(timezone.utc) >= self.expires_at

    @property
    def has_usable_refresh_token(self) -> bool:
        if not self.refresh_token:
            return False
        if self.refresh_token_expires_at is None:
            return True
        return datetime.now(timezone.utc) < self.refresh_token_expires_at

    @property
    def is_connected(self) -> bool:
        """True while the access token is live or can still be refreshed."""
        return not self.is_expired or self.has_usable_refresh_token
