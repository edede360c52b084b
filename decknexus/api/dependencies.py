"""
Shared service instances for the HTTP layer.

One card database client and one pool resolver live for the whole
process so the rate limiter and the pool cache are shared by every
request. Tests swap them through ``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import HTTPException

from decknexus.config import settings
from decknexus.models.failure import KnownError
from decknexus.services.card_pool import CardPoolResolver
from decknexus.services.deck_builder import DeckBuilder
from decknexus.services.scryfall import ScryfallClient


@lru_cache
def get_card_database() -> ScryfallClient:
    return ScryfallClient()


@lru_cache
def get_resolver() -> CardPoolResolver:
    return CardPoolResolver(get_card_database())


@lru_cache
def get_deck_builder() -> DeckBuilder:
    return DeckBuilder(
        get_resolver(),
        oracle_timeout=settings.oracle_timeout,
        reducer_concurrency=settings.reducer_concurrency,
    )


async def close_services() -> None:
    """Release the shared HTTP client and forget every cached instance."""
    if get_card_database.cache_info().currsize:
        await get_card_database().aclose()
    get_deck_builder.cache_clear()
    get_resolver.cache_clear()
    get_card_database.cache_clear()


def to_http_error(error: KnownError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)
