"""Cached eBay taxonomy category model."""

from typing import Optional

from sqlalchemy import JSON, Boolean, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class EbayCategory(Base, TimestampMixin):
    """One node of the eBay category tree for a marketplace."""

    __tablename__ = "ebay_categories"

    marketplace_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    category_id: Mapped[str] = mapped_column(String(32), primary_key=True)

    category_name: Mapped[str] = mapped_column(String(255), nullable=False)
    parent_category_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    category_path: Mapped[str] = mapped_column(Text, nullable=False, default="")
    level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    leaf_category: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Aspect names only, in the order eBay returned them
    required_aspects: Mapped[list] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), default=list, nullable=False
    )
    suggested_aspects: Mapped[list] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), default=list, nullable=False
    )
