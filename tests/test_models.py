"""Tests for card and deck models."""

import pytest
from fakes import make_card
from pydantic import ValidationError

from decknexus.models.card import CardPoolItem, basic_land_for, sort_by_popularity
from decknexus.models.deck import FinalDeck, Strategy, StrategyPlan
from decknexus.models.requests import BuildOptions


class TestCardPoolItem:
    def test_from_scryfall(self) -> None:
        card = CardPoolItem.from_scryfall(
            {
                "name": "Blood Artist",
                "mana_cost": "{1}{B}",
                "type_line": "Creature — Vampire",
                "oracle_text": "Whenever Blood Artist or another creature dies...",
                "power": "0",
                "toughness": "1",
                "prices": {"usd": "1.49"},
                "edhrec_rank": 42,
            }
        )

        assert card.usd_price == pytest.approx(1.49)
        assert card.popularity_rank == 42
        assert card.is_creature
        assert not card.is_land

    def test_double_faced_card_uses_front_face(self) -> None:
        card = CardPoolItem.from_scryfall(
            {
                "name": "Westvale Abbey // Ormendahl, Profane Prince",
                "card_faces": [
                    {"type_line": "Land", "oracle_text": "{T}: Add {C}.", "mana_cost": ""},
                    {"type_line": "Legendary Creature — Demon", "oracle_text": "Flying"},
                ],
                "prices": {"usd": None},
            }
        )

        assert card.type_line == "Land"
        assert card.is_land
        assert card.usd_price is None

    def test_basic_land_detection(self) -> None:
        assert make_card("Snow-Covered Swamp", "Basic Snow Land — Swamp", "").is_basic_land
        assert not make_card("Command Tower", "Land", "").is_basic_land


class TestBasicLands:
    def test_colored(self) -> None:
        plains = basic_land_for("W")

        assert plains.name == "Plains"
        assert plains.is_basic_land
        assert "{W}" in plains.oracle_text

    def test_colorless_is_wastes(self) -> None:
        assert basic_land_for("C").name == "Wastes"


class TestSortByPopularity:
    def test_ranked_first_then_stable(self) -> None:
        a, b, c, d = (
            make_card("A", rank=None),
            make_card("B", rank=50),
            make_card("C", rank=None),
            make_card("D", rank=3),
        )

        assert sort_by_popularity([a, b, c, d]) == [d, b, a, c]


class TestStrategyPlan:
    def test_requires_three(self) -> None:
        with pytest.raises(ValueError):
            StrategyPlan(ranked_strategies=(Strategy(name="Solo", description=""),))

    def test_to_dict_ranks(self, midrange_plan) -> None:
        data = midrange_plan.to_dict()

        assert [s["rank"] for s in data["rankedStrategies"]] == [1, 2, 3]
        assert data["primaryStrategy"]["name"] == "Vampire Tribal"


class TestFinalDeck:
    def test_total_includes_commander(self) -> None:
        deck = FinalDeck(
            commander={"name": "Edgar Markov"},
            lands=[make_card("Plains", "Basic Land — Plains", "")],
            creatures=[make_card("Knight", "Creature")],
            spells=[],
            mana_curve={1: 1},
        )

        assert deck.total_cards == 3
        assert deck.to_dict()["manaCurve"] == {"1": 1}


class TestBuildOptions:
    def test_defaults(self) -> None:
        options = BuildOptions()

        assert options.powerLevel == 7
        assert options.includeCombo

    def test_power_level_bounds(self) -> None:
        with pytest.raises(ValidationError):
            BuildOptions(powerLevel=0)
