"""
Scryfall card database client.

All outbound requests pass through one shared RateLimiter so the whole
process stays under Scryfall's 10 requests/second guideline, no matter
how many builds are running. Rate-limit responses and network errors are
retried with exponential backoff before surfacing as UpstreamError.

Query grammar: https://scryfall.com/docs/syntax
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from decknexus.config import settings
from decknexus.models.failure import CardNotFoundError, UpstreamError

logger = logging.getLogger(__name__)

USER_AGENT = "DeckNexus-API/1.0"
SERVICE_NAME = "Scryfall"


@dataclass(frozen=True)
class SearchPage:
    """One page of search results."""

    cards: list[dict[str, Any]]
    has_more: bool
    total: int | None = None


class CardDatabase(Protocol):
    """What the pipeline needs from a card database."""

    async def search(self, query: str, page: int = 1) -> SearchPage: ...

    async def get_by_id(self, card_id: str) -> dict[str, Any]: ...

    async def get_random(self) -> dict[str, Any]: ...


class RateLimiter:
    """
    Serializes requests with a minimum spacing between request starts.

    The wrapped call runs while holding the lock, so retries performed
    inside it also keep later requests waiting.
    """

    def __init__(self, min_interval: float) -> None:
        self.min_interval = min_interval
        self._last_request = 0.0
        self._lock = asyncio.Lock()

    async def throttle(self, fn: Any) -> Any:
        async with self._lock:
            elapsed = time.monotonic() - self._last_request
            if elapsed < self.min_interval:
                await asyncio.sleep(self.min_interval - elapsed)
            self._last_request = time.monotonic()
            return await fn()


_shared_rate_limiter = RateLimiter(settings.scryfall_rate_limit_delay)


def build_search_query(
    name: str | None = None,
    type_: str | None = None,
    colors: str | None = None,
    cmc: str | None = None,
    legal: str | None = None,
    color_identity: str | None = None,
    commander: bool = False,
) -> str:
    """
    Build a Scryfall search query from structured predicates.

    Example:
        >>> build_search_query(name="Edgar", legal="commander", color_identity="WBR")
        'name:"Edgar" legal:commander ci<=WBR'
    """
    parts: list[str] = []

    if name:
        parts.append(f'name:"{name}"')
    if type_:
        parts.append(f"type:{type_}")
    if colors:
        parts.append(f"colors:{colors}")
    if cmc:
        parts.append(f"cmc:{cmc}")
    if legal:
        parts.append(f"legal:{legal}")
    if color_identity is not None:
        # An empty identity means colorless-only
        parts.append(f"ci<={color_identity}" if color_identity else "ci:c")
    if commander:
        parts.append(
            '(type:legendary type:creature OR (type:planeswalker oracle:"can be your commander"))'
        )

    return " ".join(parts)


def is_valid_commander(card: dict[str, Any]) -> bool:
    """Legendary creatures and "can be your commander" planeswalkers, on any face."""
    faces = [card, *(card.get("card_faces") or [])]
    for face in faces:
        type_line = face.get("type_line") or ""
        oracle = (face.get("oracle_text") or "").lower()
        if "Legendary" in type_line and "Creature" in type_line:
            return True
        if "Planeswalker" in type_line and "can be your commander" in oracle:
            return True
    return False


class ScryfallClient:
    """
    Async Scryfall API client.

    Usage:
        async with ScryfallClient() as client:
            page = await client.search("legal:commander ci<=WBR")
    """

    def __init__(
        self,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        rate_limiter: RateLimiter | None = None,
        max_retries: int | None = None,
        initial_retry_delay: float | None = None,
    ) -> None:
        self.base_url = (base_url or settings.scryfall_base_url).rstrip("/")
        self._client = client or httpx.AsyncClient(
            timeout=30.0,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )
        self._rate_limiter = rate_limiter or _shared_rate_limiter
        self.max_retries = settings.scryfall_max_retries if max_retries is None else max_retries
        self.initial_retry_delay = (
            settings.scryfall_initial_retry_delay
            if initial_retry_delay is None
            else initial_retry_delay
        )

    async def __aenter__(self) -> "ScryfallClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        not_found_ok: bool = False,
    ) -> dict[str, Any] | None:
        async def call() -> dict[str, Any] | None:
            return await self._request_with_retry(endpoint, params, not_found_ok)

        result: dict[str, Any] | None = await self._rate_limiter.throttle(call)
        return result

    async def _request_with_retry(
        self,
        endpoint: str,
        params: dict[str, Any] | None,
        not_found_ok: bool,
    ) -> dict[str, Any] | None:
        url = f"{self.base_url}{endpoint}"
        attempt = 0

        while True:
            try:
                response = await self._client.get(url, params=params)
            except httpx.RequestError as e:
                if attempt < self.max_retries:
                    await self._backoff(attempt, reason=f"network error: {e}")
                    attempt += 1
                    continue
                raise UpstreamError(SERVICE_NAME, "Network error") from e

            if response.status_code == 429:
                if attempt < self.max_retries:
                    await self._backoff(attempt, reason="rate limited")
                    attempt += 1
                    continue
                raise UpstreamError(
                    SERVICE_NAME,
                    f"Rate limit exceeded after {self.max_retries} retries",
                )

            if response.status_code == 404 and not_found_ok:
                return None

            if response.is_error:
                raise UpstreamError(SERVICE_NAME, _error_detail(response))

            data: dict[str, Any] = response.json()
            if data.get("object") == "error":
                raise UpstreamError(SERVICE_NAME, str(data.get("details", "Unknown error")))
            return data

    async def _backoff(self, attempt: int, reason: str) -> None:
        delay = self.initial_retry_delay * (2**attempt)
        logger.warning(
            "SCRYFALL_RETRY",
            extra={"attempt": attempt + 1, "delay_s": delay, "reason": reason},
        )
        await asyncio.sleep(delay)

    async def search(self, query: str, page: int = 1) -> SearchPage:
        """
        Run a raw Scryfall search.

        A query matching nothing yields an empty page rather than an error.

        Raises:
            UpstreamError: If Scryfall fails after retries
        """
        data = await self._request(
            "/cards/search",
            params={"q": query, "unique": "cards", "order": "name", "page": page},
            not_found_ok=True,
        )
        if data is None:
            return SearchPage(cards=[], has_more=False, total=0)

        return SearchPage(
            cards=list(data.get("data", [])),
            has_more=bool(data.get("has_more", False)),
            total=data.get("total_cards"),
        )

    async def get_by_id(self, card_id: str) -> dict[str, Any]:
        """
        Fetch one card by Scryfall id.

        Raises:
            CardNotFoundError: If no card has this id
            UpstreamError: If Scryfall fails
        """
        data = await self._request(f"/cards/{card_id}", not_found_ok=True)
        if data is None:
            raise CardNotFoundError(card_id)
        return data

    async def get_random(self) -> dict[str, Any]:
        data = await self._request("/cards/random")
        if data is None:
            raise UpstreamError(SERVICE_NAME, "No random card returned")
        return data

    async def search_commanders(self, name: str) -> list[dict[str, Any]]:
        """
        Search commander-eligible cards by name.

        Results are ordered exact match first, then prefix matches,
        then alphabetically.
        """
        term = name.strip()
        if not term:
            return []

        page = await self.search(build_search_query(name=term, commander=True))
        commanders = [card for card in page.cards if is_valid_commander(card)]

        lowered = term.lower()

        def sort_key(card: dict[str, Any]) -> tuple[int, int, str]:
            card_name = str(card.get("name", "")).lower()
            return (card_name != lowered, not card_name.startswith(lowered), card_name)

        return sorted(commanders, key=sort_key)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or f"HTTP {response.status_code}"
    return str(body.get("details") or response.reason_phrase or f"HTTP {response.status_code}")
