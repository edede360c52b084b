"""Fakes and card builders shared by the test suite."""

import json
from collections.abc import Callable
from typing import Any

from decknexus.models.card import CardPoolItem
from decknexus.models.failure import CardNotFoundError, OracleError
from decknexus.services.scryfall import SearchPage

EDGAR_MARKOV_ID = "2c8a5ed7-8dc1-4f55-b5bb-59b1a6d4dd27"
COLORLESS_COMMANDER_ID = "9c0f9b59-a47c-4d2f-8d5c-1c0c9f2f5d0a"


# =============================================================================
# Fake oracles
# =============================================================================


class ScriptedOracle:
    """Answers calls in order from a script; Exceptions in the script are raised."""

    name = "scripted"

    def __init__(self, responses: list[str | Exception], available: bool = True) -> None:
        self._responses = list(responses)
        self.available = available
        self.calls: list[list[dict[str, str]]] = []

    async def complete(self, messages: list[dict[str, str]]) -> str:
        self.calls.append(messages)
        if not self._responses:
            raise OracleError("Script exhausted")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def is_available(self) -> bool:
        return self.available


class FunctionOracle:
    """Answers every call by applying a function to the user prompt."""

    name = "function"

    def __init__(self, respond: Callable[[str], str]) -> None:
        self._respond = respond
        self.prompts: list[str] = []

    async def complete(self, messages: list[dict[str, str]]) -> str:
        prompt = messages[-1]["content"]
        self.prompts.append(prompt)
        return self._respond(prompt)

    async def is_available(self) -> bool:
        return True


class UnavailableOracle:
    """Every call fails the way an unreachable server does."""

    name = "unavailable"

    def __init__(self) -> None:
        self.calls = 0

    async def complete(self, messages: list[dict[str, str]]) -> str:
        self.calls += 1
        raise OracleError("Connection refused")

    async def is_available(self) -> bool:
        return False


def as_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload)


# =============================================================================
# Fake card database
# =============================================================================


class FakeCardDatabase:
    """
    In-memory CardDatabase.

    Search results are the scryfall dicts whose color identity fits the
    ``ci<=`` / ``ci:c`` predicate in the query, paged page_size at a time.
    """

    def __init__(
        self,
        commanders: dict[str, dict[str, Any]],
        cards: list[dict[str, Any]],
        page_size: int = 175,
    ) -> None:
        self.commanders = commanders
        self.cards = cards
        self.page_size = page_size
        self.search_calls: list[tuple[str, int]] = []
        self.get_calls: list[str] = []

    def _matching(self, query: str) -> list[dict[str, Any]]:
        if "ci:c" in query.split():
            allowed: set[str] = set()
        else:
            token = next(part for part in query.split() if part.startswith("ci<="))
            allowed = set(token.removeprefix("ci<="))
        return [card for card in self.cards if set(card.get("color_identity", [])) <= allowed]

    async def search(self, query: str, page: int = 1) -> SearchPage:
        self.search_calls.append((query, page))
        matching = self._matching(query)
        start = (page - 1) * self.page_size
        chunk = matching[start : start + self.page_size]
        return SearchPage(
            cards=chunk,
            has_more=start + self.page_size < len(matching),
            total=len(matching),
        )

    async def get_by_id(self, card_id: str) -> dict[str, Any]:
        self.get_calls.append(card_id)
        if card_id not in self.commanders:
            raise CardNotFoundError(card_id)
        return self.commanders[card_id]

    async def get_random(self) -> dict[str, Any]:
        return next(iter(self.commanders.values()))


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# Card builders
# =============================================================================


def make_card(
    name: str,
    type_line: str = "Instant",
    mana_cost: str = "{1}",
    oracle_text: str = "",
    rank: int | None = None,
) -> CardPoolItem:
    return CardPoolItem(
        name=name,
        mana_cost=mana_cost,
        oracle_text=oracle_text,
        type_line=type_line,
        popularity_rank=rank,
    )


def scryfall_card(
    name: str,
    type_line: str,
    color_identity: list[str],
    mana_cost: str = "",
    oracle_text: str = "",
    rank: int | None = None,
) -> dict[str, Any]:
    return {
        "object": "card",
        "id": f"id-{name.lower().replace(' ', '-')}",
        "name": name,
        "type_line": type_line,
        "mana_cost": mana_cost,
        "oracle_text": oracle_text,
        "color_identity": color_identity,
        "edhrec_rank": rank,
        "prices": {"usd": "0.25"},
    }


def edgar_pool_cards() -> list[dict[str, Any]]:
    """A W/B/R card pool plus off-color and colorless cards, ranked by index."""
    cards: list[dict[str, Any]] = [
        scryfall_card("Plains", "Basic Land — Plains", [], oracle_text="({T}: Add {W}.)", rank=1),
        scryfall_card("Swamp", "Basic Land — Swamp", [], oracle_text="({T}: Add {B}.)", rank=2),
        scryfall_card(
            "Mountain", "Basic Land — Mountain", [], oracle_text="({T}: Add {R}.)", rank=3
        ),
        scryfall_card("Wastes", "Basic Land", [], oracle_text="({T}: Add {C}.)"),
        scryfall_card("Island", "Basic Land — Island", ["U"], oracle_text="({T}: Add {U}.)"),
    ]
    rank = 10
    colors = ["W", "B", "R"]
    for i in range(45):
        color = colors[i % 3]
        cards.append(
            scryfall_card(
                f"Vampire Keep {i}",
                "Land",
                [color],
                oracle_text=f"{{T}}: Add {{{color}}} or {{C}}.",
                rank=rank + i,
            )
        )
    for i in range(120):
        color = colors[i % 3]
        cards.append(
            scryfall_card(
                f"Blood Knight {i}",
                "Creature — Vampire Knight",
                [color],
                mana_cost=f"{{{i % 6}}}{{{color}}}",
                oracle_text="Lifelink" if i % 4 == 0 else "",
                rank=rank + 100 + i,
            )
        )
    for i in range(160):
        color = colors[i % 3]
        type_line = ("Instant", "Sorcery", "Artifact", "Enchantment")[i % 4]
        cards.append(
            scryfall_card(
                f"Dark Ritual Variant {i}",
                type_line,
                [color],
                mana_cost=f"{{{i % 5}}}{{{color}}}",
                oracle_text="Destroy target creature." if i % 5 == 0 else "Draw a card.",
                rank=rank + 300 + i,
            )
        )
    for i in range(20):
        cards.append(
            scryfall_card(
                f"Tidal Sage {i}",
                "Creature — Merfolk Wizard",
                ["U"],
                mana_cost="{1}{U}",
            )
        )
    for i in range(10):
        cards.append(
            scryfall_card(f"Sol Trinket {i}", "Artifact", [], mana_cost="{1}", oracle_text="{T}: Add {C}.")
        )
    return cards


EDGAR_MARKOV = {
    "object": "card",
    "id": EDGAR_MARKOV_ID,
    "name": "Edgar Markov",
    "type_line": "Legendary Creature — Vampire Knight",
    "mana_cost": "{3}{R}{W}{B}",
    "oracle_text": (
        "Eminence — Whenever you cast another Vampire spell, if Edgar Markov is in the "
        "command zone or on the battlefield, create a 1/1 black Vampire creature token.\n"
        "First strike, haste\nWhenever Edgar Markov attacks, put a +1/+1 counter on "
        "each Vampire you control."
    ),
    "color_identity": ["B", "R", "W"],
    "power": "4",
    "toughness": "4",
}


KOZILEK = {
    "object": "card",
    "id": COLORLESS_COMMANDER_ID,
    "name": "Kozilek, the Great Distortion",
    "type_line": "Legendary Creature — Eldrazi",
    "mana_cost": "{8}{C}{C}",
    "oracle_text": "When you cast this spell, if you have fewer than seven cards in hand, draw cards.",
    "color_identity": [],
}

