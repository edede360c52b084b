"""
Card lookup endpoints.

Thin wrappers over the card database and the pool resolver, used by the
client to pick a commander before starting a build.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from decknexus.api.dependencies import get_card_database, get_resolver, to_http_error
from decknexus.models.failure import KnownError
from decknexus.services.card_pool import CardPoolResolver
from decknexus.services.scryfall import ScryfallClient

router = APIRouter(prefix="/api/v1/cards", tags=["cards"])


class PoolCountResponse(BaseModel):
    """Size of a commander's legal card pool."""

    commander_id: str
    count: int


class CommanderResponse(BaseModel):
    """A commander-eligible card."""

    id: str
    name: str
    type_line: str = ""
    mana_cost: str = ""
    color_identity: list[str] = Field(default_factory=list)
    image_url: str | None = None

    @classmethod
    def from_scryfall(cls, card: dict[str, Any]) -> "CommanderResponse":
        faces = card.get("card_faces") or [{}]
        images = card.get("image_uris") or faces[0].get("image_uris") or {}
        return cls(
            id=card["id"],
            name=card["name"],
            type_line=card.get("type_line") or faces[0].get("type_line", ""),
            mana_cost=card.get("mana_cost") or faces[0].get("mana_cost", ""),
            color_identity=card.get("color_identity", []),
            image_url=images.get("normal"),
        )


class CommanderListResponse(BaseModel):
    """Commander search results."""

    query: str
    commanders: list[CommanderResponse]
    count: int


@router.get("/pool/{commander_id}", response_model=PoolCountResponse)
async def get_pool_count(
    commander_id: str,
    resolver: Annotated[CardPoolResolver, Depends(get_resolver)],
) -> PoolCountResponse:
    """
    Count the commander-legal cards in a commander's color identity.

    The resolved pool is cached, so a build started right after this call
    does not fetch it again.
    """
    try:
        count = await resolver.pool_count(commander_id)
    except KnownError as e:
        raise to_http_error(e) from e
    return PoolCountResponse(commander_id=commander_id, count=count)


@router.get("/commanders", response_model=CommanderListResponse)
async def search_commanders(
    q: Annotated[str, Query(min_length=1, max_length=100)],
    database: Annotated[ScryfallClient, Depends(get_card_database)],
) -> CommanderListResponse:
    """Search commanders by name: exact match, then prefix matches, then A-Z."""
    try:
        cards = await database.search_commanders(q)
    except KnownError as e:
        raise to_http_error(e) from e

    commanders = [CommanderResponse.from_scryfall(card) for card in cards]
    return CommanderListResponse(query=q, commanders=commanders, count=len(commanders))


@router.get("/random")
async def get_random_card(
    database: Annotated[ScryfallClient, Depends(get_card_database)],
) -> dict[str, Any]:
    try:
        return await database.get_random()
    except KnownError as e:
        raise to_http_error(e) from e
