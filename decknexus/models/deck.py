"""
Deck construction models.

Each pipeline stage produces exactly one of these results. Results are
plain values: later stages read them, nothing writes back into them.
"""

from dataclasses import dataclass, field
from typing import Any

from decknexus.models.card import CardPoolItem

RANKED_STRATEGY_COUNT = 3


@dataclass(frozen=True)
class Strategy:
    """One candidate game plan for the commander."""

    name: str
    description: str
    win_conditions: list[str] = field(default_factory=list)
    archetypes: list[str] = field(default_factory=list)
    key_themes: list[str] = field(default_factory=list)

    @property
    def is_aggro(self) -> bool:
        return any("aggro" in archetype.lower() for archetype in self.archetypes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "winConditions": list(self.win_conditions),
            "archetypes": list(self.archetypes),
            "keyThemes": list(self.key_themes),
        }


@dataclass(frozen=True)
class StrategyPlan:
    """
    Three ranked strategies; rank 1 drives every later stage.

    Raises:
        ValueError: If not constructed with exactly three strategies
    """

    ranked_strategies: tuple[Strategy, ...]

    def __post_init__(self) -> None:
        if len(self.ranked_strategies) != RANKED_STRATEGY_COUNT:
            raise ValueError(
                f"A strategy plan needs exactly {RANKED_STRATEGY_COUNT} ranked "
                f"strategies, got {len(self.ranked_strategies)}"
            )

    @property
    def primary_strategy(self) -> Strategy:
        return self.ranked_strategies[0]

    @property
    def is_aggro(self) -> bool:
        return self.primary_strategy.is_aggro

    def to_dict(self) -> dict[str, Any]:
        return {
            "rankedStrategies": [
                {"rank": rank, **strategy.to_dict()}
                for rank, strategy in enumerate(self.ranked_strategies, start=1)
            ],
            "primaryStrategy": self.primary_strategy.to_dict(),
        }


@dataclass
class LandSelection:
    """Mana base chosen in the land stage."""

    basics: list[CardPoolItem]
    non_basics: list[CardPoolItem]
    mana_base_by_color: dict[str, int] = field(default_factory=dict)

    @property
    def total_lands(self) -> int:
        return len(self.basics) + len(self.non_basics)

    @property
    def all_lands(self) -> list[CardPoolItem]:
        return [*self.basics, *self.non_basics]

    def to_dict(self) -> dict[str, Any]:
        return {
            "basics": [card.to_dict() for card in self.basics],
            "nonBasics": [card.to_dict() for card in self.non_basics],
            "totalLands": self.total_lands,
            "manaBase": dict(self.mana_base_by_color),
        }


@dataclass
class CreatureSelection:
    """Creature suite chosen in the creature stage."""

    creatures: list[CardPoolItem]
    category_counts: dict[str, int] = field(default_factory=dict)

    @property
    def total_creatures(self) -> int:
        return len(self.creatures)

    def to_dict(self) -> dict[str, Any]:
        return {
            "creatures": [card.to_dict() for card in self.creatures],
            "totalCreatures": self.total_creatures,
            "categoryBreakdown": dict(self.category_counts),
        }


@dataclass
class SpellSelection:
    """
    Noncreature spells chosen in the spell stage.

    overflow is set when lands and creatures already filled every slot,
    leaving the optimization stage to cut back to size.
    """

    spells: list[CardPoolItem]
    category_counts: dict[str, int] = field(default_factory=dict)
    overflow: bool = False

    @property
    def total_spells(self) -> int:
        return len(self.spells)

    def to_dict(self) -> dict[str, Any]:
        return {
            "spells": [card.to_dict() for card in self.spells],
            "totalSpells": self.total_spells,
            "categoryBreakdown": dict(self.category_counts),
        }


@dataclass
class FinalDeck:
    """A finished Commander deck: the commander plus exactly 99 cards."""

    commander: dict[str, Any]
    lands: list[CardPoolItem]
    creatures: list[CardPoolItem]
    spells: list[CardPoolItem]
    mana_curve: dict[int, int] = field(default_factory=dict)
    color_distribution: dict[str, int] = field(default_factory=dict)

    @property
    def total_cards(self) -> int:
        return len(self.lands) + len(self.creatures) + len(self.spells) + 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "commander": self.commander,
            "lands": [card.to_dict() for card in self.lands],
            "creatures": [card.to_dict() for card in self.creatures],
            "spells": [card.to_dict() for card in self.spells],
            "totalCards": self.total_cards,
            "manaCurve": {str(cmc): count for cmc, count in sorted(self.mana_curve.items())},
            "colorDistribution": dict(self.color_distribution),
        }
