"""
Commander card pool resolution.

Resolves every commander-legal card inside a commander's color identity,
paginating the card database until it runs out of pages. Results are
cached per commander id for a fixed window so repeated builds of the
same commander do not repeat the (slow, rate-limited) pagination.

INVARIANTS:
- Only cards whose color identity is a subset of the commander's are
  requested; colorless commanders request colorless cards only
- A pool larger than the ceiling is an error, never a truncated pool
- Cache hits never touch the card database
"""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from cachetools import TTLCache

from decknexus.config import settings
from decknexus.models.card import COLORS, CardPoolItem
from decknexus.models.failure import KnownError, PoolTooLargeError, UpstreamError
from decknexus.services.scryfall import CardDatabase, build_search_query

logger = logging.getLogger(__name__)

# Pagination progress never reports done; the caller decides when it is
PAGINATION_PROGRESS_CAP = 95.0
# Rough size of a typical multicolor pool, used only to scale progress
EXPECTED_POOL_SIZE = 10_000

ProgressCallback = Callable[[float, str], None]


def build_pool_query(color_identity: list[str]) -> str:
    """
    Build the card database query for a commander's legal pool.

    Colors are emitted in WUBRG order so equal identities produce equal
    queries.
    """
    identity = "".join(color for color in COLORS if color in set(color_identity))
    return build_search_query(legal="commander", color_identity=identity)


class CardPoolResolver:
    """
    Resolves and caches commander-legal card pools.

    Args:
        database: Card database client
        limit: Pool-size ceiling; exceeding it raises PoolTooLargeError
        cache_ttl: Seconds a resolved pool stays cached
        cache_size: Most commanders whose pools are held at once
        clock: Monotonic time source (injectable for tests)
    """

    def __init__(
        self,
        database: CardDatabase,
        limit: int | None = None,
        cache_ttl: float | None = None,
        cache_size: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._database = database
        self.limit = settings.card_pool_limit if limit is None else limit
        self.cache_ttl = settings.card_pool_cache_ttl if cache_ttl is None else cache_ttl
        self._cache: TTLCache[str, list[CardPoolItem]] = TTLCache(
            maxsize=settings.card_pool_cache_size if cache_size is None else cache_size,
            ttl=self.cache_ttl,
            timer=clock,
        )
        self._lock = asyncio.Lock()

    async def _cached(self, commander_id: str) -> list[CardPoolItem] | None:
        async with self._lock:
            return self._cache.get(commander_id)

    async def _store(self, commander_id: str, cards: list[CardPoolItem]) -> None:
        async with self._lock:
            self._cache[commander_id] = cards

    async def clear_cache(self) -> None:
        async with self._lock:
            self._cache.clear()

    async def get_commander(self, commander_id: str) -> dict[str, Any]:
        """
        Fetch the commander card.

        Raises:
            CardNotFoundError: If no card has this id
            UpstreamError: If the card database fails or the card has no
                color identity field
        """
        try:
            commander = await self._database.get_by_id(commander_id)
        except KnownError:
            raise
        except Exception as e:
            raise UpstreamError("Scryfall", f"Failed to fetch commander: {e}") from e

        if commander.get("color_identity") is None:
            raise UpstreamError("Scryfall", "Commander has no color identity")
        return commander

    async def resolve_pool(
        self,
        commander_id: str,
        on_progress: ProgressCallback | None = None,
    ) -> list[CardPoolItem]:
        """
        Return the commander-legal pool for a commander.

        Raises:
            PoolTooLargeError: If the pool exceeds the ceiling
            UpstreamError: If the card database fails
        """
        cached = await self._cached(commander_id)
        if cached is not None:
            logger.info(
                "POOL_CACHE_HIT",
                extra={"commander_id": commander_id, "pool_size": len(cached)},
            )
            return cached

        commander = await self.get_commander(commander_id)
        query = build_pool_query(commander["color_identity"])
        logger.info(
            "POOL_FETCH_START",
            extra={"commander": commander.get("name"), "query": query},
        )

        cards = await self._paginate(query, on_progress)

        await self._store(commander_id, cards)
        logger.info(
            "POOL_FETCH_COMPLETE",
            extra={"commander": commander.get("name"), "pool_size": len(cards)},
        )
        return cards

    async def _paginate(
        self,
        query: str,
        on_progress: ProgressCallback | None,
    ) -> list[CardPoolItem]:
        cards: list[CardPoolItem] = []
        page = 1
        has_more = True

        if on_progress:
            on_progress(0.0, "Fetching commander-legal cards...")

        while has_more:
            try:
                result = await self._database.search(query, page)
            except KnownError:
                raise
            except Exception as e:
                raise UpstreamError("Scryfall", f"Failed to fetch card pool: {e}") from e

            cards.extend(CardPoolItem.from_scryfall(card) for card in result.cards)
            if len(cards) > self.limit:
                raise PoolTooLargeError(self.limit, len(cards))

            has_more = result.has_more
            page += 1

            if on_progress:
                progress = min(PAGINATION_PROGRESS_CAP, len(cards) / EXPECTED_POOL_SIZE * 100)
                on_progress(progress, f"Fetched {len(cards)} cards...")

        return cards

    async def pool_count(self, commander_id: str) -> int:
        return len(await self.resolve_pool(commander_id))
