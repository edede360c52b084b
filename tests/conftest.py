from typing import Any

import pytest
from fakes import (
    COLORLESS_COMMANDER_ID,
    EDGAR_MARKOV,
    EDGAR_MARKOV_ID,
    KOZILEK,
    FakeCardDatabase,
    FakeClock,
    edgar_pool_cards,
)

from decknexus.models.card import CardPoolItem
from decknexus.models.deck import Strategy, StrategyPlan


@pytest.fixture
def card_database() -> FakeCardDatabase:
    return FakeCardDatabase(
        commanders={EDGAR_MARKOV_ID: EDGAR_MARKOV, COLORLESS_COMMANDER_ID: KOZILEK},
        cards=edgar_pool_cards(),
    )


@pytest.fixture
def edgar_pool() -> list[CardPoolItem]:
    cards = [CardPoolItem.from_scryfall(card) for card in edgar_pool_cards()]
    allowed = {"W", "B", "R"}
    raw = {card["name"]: card for card in edgar_pool_cards()}
    return [card for card in cards if set(raw[card.name]["color_identity"]) <= allowed]


@pytest.fixture
def edgar_markov() -> dict[str, Any]:
    return dict(EDGAR_MARKOV)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def midrange_plan() -> StrategyPlan:
    return StrategyPlan(
        ranked_strategies=(
            Strategy(
                name="Vampire Tribal",
                description="Go wide with vampire tokens",
                win_conditions=["Combat damage"],
                archetypes=["Midrange"],
                key_themes=["Tokens", "Vampires"],
            ),
            Strategy(
                name="Aristocrats",
                description="Sacrifice tokens for value",
                win_conditions=["Drain"],
                archetypes=["Combo"],
                key_themes=["Sacrifice"],
            ),
            Strategy(
                name="Voltron",
                description="Suit up Edgar",
                win_conditions=["Commander damage"],
                archetypes=["Voltron"],
                key_themes=["Equipment"],
            ),
        )
    )


@pytest.fixture
def aggro_plan(midrange_plan: StrategyPlan) -> StrategyPlan:
    strategies = list(midrange_plan.ranked_strategies)
    strategies[0] = Strategy(
        name="Vampire Rush",
        description="Fast vampire beatdown",
        win_conditions=["Combat damage"],
        archetypes=["Aggro"],
        key_themes=["Haste"],
    )
    return StrategyPlan(ranked_strategies=tuple(strategies))
