"""Local cache of the eBay category tree."""

from datetime import datetime, timezone
from typing import Optional
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.catalog_sync_state import CatalogSyncState, SyncOutcome
from app.models.ebay_category import EbayCategory

logger = logging.getLogger(__name__)


class CatalogCache:
    """Category records and sync state per marketplace scope.

    Records are written a page at a time; each page, together with the
    updated record count, is committed in a single transaction.
    """

    def __init__(self, session_maker: async_sessionmaker) -> None:
        self._session_maker = session_maker

    @staticmethod
    async def _count(session: AsyncSession, scope: str) -> int:
        result = await session.execute(
            select(func.count())
            .select_from(EbayCategory)
            .where(EbayCategory.marketplace_id == scope)
        )
        return int(result.scalar_one())

    @staticmethod
    async def _state_for_update(session: AsyncSession, scope: str) -> CatalogSyncState:
        state = await session.get(CatalogSyncState, scope, with_for_update=True)
        if state is None:
            state = CatalogSyncState(marketplace_id=scope, record_count=0)
            session.add(state)
        return state

    async def count(self, scope: str) -> int:
        """Live number of cached categories for a scope."""
        async with self._session_maker() as session:
            return await self._count(session, scope)

    async def get_category(self, scope: str, category_id: str) -> Optional[EbayCategory]:
        async with self._session_maker() as session:
            return await session.get(EbayCategory, (scope, category_id))

    async def get_state(self, scope: str) -> Optional[CatalogSyncState]:
        async with self._session_maker() as session:
            return await session.get(CatalogSyncState, scope)

    async def write_page(self, scope: str, records: list[dict]) -> int:
        """Overwrite a page of category records.

        Args:
            scope: Marketplace id
            records: Dicts of EbayCategory fields, keyed by ``category_id``

        Returns:
            Live record count after the page was written
        """
        # Last occurrence wins if a page repeats an id
        by_id = {record["category_id"]: record for record in records}

        async with self._session_maker() as session:
            async with session.begin():
                if by_id:
                    await session.execute(
                        delete(EbayCategory).where(
                            EbayCategory.marketplace_id == scope,
                            EbayCategory.category_id.in_(list(by_id)),
                        )
                    )
                    session.add_all(
                        EbayCategory(marketplace_id=scope, **record)
                        for record in by_id.values()
                    )
                    await session.flush()

                count = await self._count(session, scope)
                state = await self._state_for_update(session, scope)
                state.record_count = count

        logger.debug(f"Wrote {len(by_id)} categories for {scope}; cache now holds {count}")
        return count

    async def mark_in_progress(self, scope: str) -> None:
        async with self._session_maker() as session:
            async with session.begin():
                state = await self._state_for_update(session, scope)
                state.outcome = SyncOutcome.IN_PROGRESS
                state.started_at = datetime.now(timezone.utc)
                state.detail = None
                state.failed_cursor = None

    async def mark_success(self, scope: str) -> CatalogSyncState:
        async with self._session_maker() as session:
            async with session.begin():
                state = await self._state_for_update(session, scope)
                state.record_count = await self._count(session, scope)
                state.outcome = SyncOutcome.SUCCESS
                state.last_synced_at = datetime.now(timezone.utc)
                state.detail = None
                state.failed_cursor = None
            return state

    async def mark_failure(
        self,
        scope: str,
        detail: str,
        cursor: Optional[str] = None,
    ) -> None:
        async with self._session_maker() as session:
            async with session.begin():
                state = await self._state_for_update(session, scope)
                state.record_count = await self._count(session, scope)
                state.outcome = SyncOutcome.FAILURE
                state.detail = detail
                state.failed_cursor = cursor
