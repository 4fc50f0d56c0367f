"""Hand-curated item aspects used when a category is not cached.

Bump FALLBACK_ASPECTS_VERSION whenever a set or a family mapping changes.
"""

import enum
from types import MappingProxyType
from typing import Mapping, NamedTuple, Optional


FALLBACK_ASPECTS_VERSION = "2025.07.1"


class AspectValueType(str, enum.Enum):
    TEXT = "TEXT"
    SELECTION = "SELECTION"
    NUMERIC = "NUMERIC"


class ItemAspect(NamedTuple):
    name: str
    required: bool
    value_type: AspectValueType = AspectValueType.TEXT
    possible_values: Optional[tuple[str, ...]] = None
    unit: Optional[str] = None


class CategoryFamily(str, enum.Enum):
    FOOTWEAR = "footwear"
    APPAREL = "apparel"
    GENERIC = "generic"


FOOTWEAR_ASPECTS = (
    ItemAspect(
        "Brand", True, AspectValueType.SELECTION,
        ("Nike", "Adidas", "New Balance", "ASICS", "Other"),
    ),
    ItemAspect(
        "US Shoe Size (Men's)", True, AspectValueType.SELECTION,
        ("7", "7.5", "8", "8.5", "9", "9.5", "10", "10.5", "11", "11.5", "12"),
    ),
    ItemAspect("Color", True),
    ItemAspect(
        "Material", False, AspectValueType.SELECTION,
        ("Leather", "Synthetic", "Mesh", "Canvas"),
    ),
    ItemAspect("Style", False),
    ItemAspect("Features", False),
)

APPAREL_ASPECTS = (
    ItemAspect("Brand", True),
    ItemAspect(
        "Size (Men's)", True, AspectValueType.SELECTION,
        ("XS", "S", "M", "L", "XL", "XXL"),
    ),
    ItemAspect("Color", True),
    ItemAspect(
        "Material", False, AspectValueType.SELECTION,
        ("Cotton", "Polyester", "Cotton Blend"),
    ),
    ItemAspect(
        "Sleeve Length", False, AspectValueType.SELECTION,
        ("Short Sleeve", "Long Sleeve", "Sleeveless"),
    ),
)

GENERIC_ASPECTS = (
    ItemAspect("Brand", False),
    ItemAspect("Size", False),
    ItemAspect("Color", False),
    ItemAspect(
        "Condition", True, AspectValueType.SELECTION,
        ("New with tags", "New without tags", "Pre-owned"),
    ),
)

FAMILY_ASPECTS: Mapping[CategoryFamily, tuple[ItemAspect, ...]] = MappingProxyType({
    CategoryFamily.FOOTWEAR: FOOTWEAR_ASPECTS,
    CategoryFamily.APPAREL: APPAREL_ASPECTS,
    CategoryFamily.GENERIC: GENERIC_ASPECTS,
})

# eBay US category ids per family
FAMILY_CATEGORY_IDS: Mapping[CategoryFamily, tuple[str, ...]] = MappingProxyType({
    CategoryFamily.FOOTWEAR: (
        "57989",
        "95672",
        "15709",
        "24087",
        "53120",
        "11498",
        "45333",
    ),
    CategoryFamily.APPAREL: (
        "15687",
        "57990",
        "57988",
        "11483",
        "53159",
        "63861",
        "155183",
    ),
})


def _build_family_index() -> Mapping[str, CategoryFamily]:
    index: dict[str, CategoryFamily] = {}
    for family, category_ids in FAMILY_CATEGORY_IDS.items():
        for category_id in category_ids:
            existing = index.setdefault(category_id, family)
            if existing is not family:
                raise ValueError(
                    f"Category {category_id} mapped to both {existing.value} and {family.value}"
                )
    return MappingProxyType(index)


# Resolved once at import
CATEGORY_FAMILY_INDEX = _build_family_index()


def family_for(category_id: str) -> CategoryFamily:
    return CATEGORY_FAMILY_INDEX.get(category_id, CategoryFamily.GENERIC)


def fallback_aspects(category_id: str) -> list[ItemAspect]:
    """Aspect set for an uncached category, chosen by category family."""
    return list(FAMILY_ASPECTS[family_for(category_id)])
