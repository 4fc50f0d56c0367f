"""Paged access to the eBay category taxonomy."""

from typing import Awaitable, Callable, Iterator, NamedTuple, Optional, Protocol
import logging

from app.config import Settings, get_settings
from app.services.ebay.client import EbayClient

logger = logging.getLogger(__name__)

PATH_SEPARATOR = " > "


class TaxonomyParseError(Exception):
    """eBay returned taxonomy data in an unexpected shape."""


class TaxonomyPage(NamedTuple):
    # Dicts of EbayCategory fields (without marketplace_id)
    records: list[dict]
    # None when this was the last page
    next_cursor: Optional[str]


class TaxonomySource(Protocol):
    async def fetch_page(
        self,
        scope: str,
        cursor: Optional[str],
        page_size: int,
    ) -> TaxonomyPage:
        """Fetch the page starting at ``cursor`` (None for the first page)."""
        ...


def parse_aspect_index(document: dict) -> dict[str, tuple[list[str], list[str]]]:
    """Map category id to (required, suggested) aspect names.

    Suggested aspects are the optional ones eBay marks RECOMMENDED.
    """
    index: dict[str, tuple[list[str], list[str]]] = {}
    try:
        for entry in document.get("categoryAspects", []):
            category_id = str(entry["category"]["categoryId"])
            required: list[str] = []
            suggested: list[str] = []
            for aspect in entry.get("aspects", []):
                name = aspect["localizedAspectName"]
                constraint = aspect.get("aspectConstraint", {})
                if constraint.get("aspectRequired"):
                    required.append(name)
                elif constraint.get("aspectUsage") == "RECOMMENDED":
                    suggested.append(name)
            index[category_id] = (required, suggested)
    except (KeyError, TypeError, AttributeError) as e:
        raise TaxonomyParseError(f"Malformed item aspect document: {e!r}") from e
    return index


def _walk(
    node: dict,
    parent_id: Optional[str],
    path: list[str],
) -> Iterator[dict]:
    category = node["category"]
    category_id = str(category["categoryId"])
    name = category["categoryName"]
    children = node.get("childCategoryTreeNodes") or []
    node_path = path + [name]

    yield {
        "category_id": category_id,
        "category_name": name,
        "parent_category_id": parent_id,
        "category_path": PATH_SEPARATOR.join(node_path),
        "level": int(node.get("categoryTreeNodeLevel", len(node_path))),
        "leaf_category": bool(node.get("leafCategoryTreeNode", not children)),
    }

    for child in children:
        yield from _walk(child, category_id, node_path)


def flatten_category_tree(
    tree: dict,
    aspect_index: Optional[dict[str, tuple[list[str], list[str]]]] = None,
) -> list[dict]:
    """Flatten a category tree depth-first into category records.

    The synthetic root node is skipped; branch and leaf nodes are kept.
    """
    if not isinstance(tree, dict):
        raise TaxonomyParseError(f"Category tree is {type(tree).__name__}, not an object")
    root = tree.get("rootCategoryNode") or tree.get("categoryTreeNode")
    if not isinstance(root, dict) or not root:
        raise TaxonomyParseError("Category tree has no root node")

    aspect_index = aspect_index or {}
    records: list[dict] = []
    try:
        for child in root.get("childCategoryTreeNodes") or []:
            for record in _walk(child, None, []):
                required, suggested = aspect_index.get(record["category_id"], ([], []))
                record["required_aspects"] = list(required)
                record["suggested_aspects"] = list(suggested)
                records.append(record)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise TaxonomyParseError(f"Malformed category node: {e!r}") from e
    return records


class EbayTaxonomySource:
    """Serve the eBay category tree in offset-cursor pages.

    eBay publishes the tree as one document, so the first page request
    downloads the tree and the bulk aspect file; later pages are cut
    from that snapshot. A cursor without a snapshot (new process)
    downloads it again, which is safe because page writes are
    idempotent overwrites.
    """

    def __init__(
        self,
        client: EbayClient,
        token_provider: Callable[[], Awaitable[str]],
        settings: Optional[Settings] = None,
    ) -> None:
        self.client = client
        self.token_provider = token_provider
        self.settings = settings or get_settings()
        self._tree_ids: dict[str, str] = {
            self.settings.EBAY_MARKETPLACE_ID: self.settings.EBAY_CATEGORY_TREE_ID,
        }
        self._snapshots: dict[str, list[dict]] = {}

    async def _tree_id(self, scope: str, access_token: str) -> str:
        if scope not in self._tree_ids:
            self._tree_ids[scope] = await self.client.get_default_category_tree_id(
                scope, access_token
            )
        return self._tree_ids[scope]

    async def _load_snapshot(self, scope: str) -> list[dict]:
        access_token = await self.token_provider()
        tree_id = await self._tree_id(scope, access_token)

        logger.info(f"Downloading eBay category tree {tree_id} for {scope}")
        tree = await self.client.get_category_tree(tree_id, access_token)
        aspects = parse_aspect_index(
            await self.client.fetch_item_aspects(tree_id, access_token)
        )

        records = flatten_category_tree(tree, aspects)
        logger.info(
            f"Parsed {len(records)} categories ({len(aspects)} with aspects) for {scope}"
        )
        self._snapshots[scope] = records
        return records

    async def fetch_page(
        self,
        scope: str,
        cursor: Optional[str],
        page_size: int,
    ) -> TaxonomyPage:
        if cursor is None or scope not in self._snapshots:
            records = await self._load_snapshot(scope)
        else:
            records = self._snapshots[scope]

        try:
            offset = int(cursor) if cursor is not None else 0
        except ValueError as e:
            raise TaxonomyParseError(f"Invalid taxonomy cursor {cursor!r}") from e

        end = offset + page_size
        next_cursor = str(end) if end < len(records) else None
        if next_cursor is None:
            # Last page served; drop the snapshot
            self._snapshots.pop(scope, None)
        return TaxonomyPage(records=records[offset:end], next_cursor=next_cursor)
