"""
Deck statistics.

Pure functions over card lists: mana value, mana curve, color pip
distribution, and the category breakdowns reported with each stage.
"""

import re
from collections.abc import Iterable

from decknexus.models.card import COLORS, CardPoolItem

_MANA_SYMBOL = re.compile(r"\{([^}]+)\}")
_VARIABLE_SYMBOLS = frozenset({"X", "Y", "Z"})

COLOR_TO_WORD = {
    "W": "white",
    "U": "blue",
    "B": "black",
    "R": "red",
    "G": "green",
}

CREATURE_CATEGORIES = ("Early Game", "Mid Game", "Late Game", "Utility")
SPELL_CATEGORIES = ("Removal", "Card Draw", "Ramp", "Protection", "Win Condition", "Utility")

# Keywords that identify a spell's role, checked in category order
SPELL_ROLE_KEYWORDS: dict[str, list[str]] = {
    "Removal": ["destroy", "exile", "counter target"],
    "Card Draw": ["draw"],
    "Ramp": ["add {", "search your library for a basic land", "search your library for a land"],
    "Protection": ["hexproof", "indestructible", "protection from", "phase out"],
    "Win Condition": ["you win the game", "loses the game", "damage to each opponent"],
}

CREATURE_UTILITY_KEYWORDS = ["draw", "search your library", "tutor"]


def mana_value(mana_cost: str) -> int:
    """
    Derive a numeric mana value from mana cost text.

    Generic symbols add their number, X/Y/Z add nothing, and every other
    symbol (colored, hybrid, phyrexian, colorless, snow) adds one. Only
    the front face of a "a // b" cost counts.

    Example:
        >>> mana_value("{2}{W}{B}")
        4
    """
    if not mana_cost:
        return 0
    front = mana_cost.split("//", 1)[0]

    total = 0
    for symbol in _MANA_SYMBOL.findall(front):
        symbol = symbol.upper()
        if symbol.isdigit():
            total += int(symbol)
        elif symbol in _VARIABLE_SYMBOLS:
            continue
        elif symbol[0].isdigit():
            # Twobrid: {2/W}
            total += int(symbol.split("/", 1)[0])
        else:
            total += 1
    return total


def color_pips(mana_cost: str) -> dict[str, int]:
    """Count colored mana symbols in a cost; hybrid symbols count each color."""
    pips: dict[str, int] = {}
    for symbol in _MANA_SYMBOL.findall(mana_cost or ""):
        for color in COLORS:
            if color in symbol.upper().split("/"):
                pips[color] = pips.get(color, 0) + 1
    return pips


def mana_curve(
    creatures: Iterable[CardPoolItem],
    spells: Iterable[CardPoolItem],
) -> dict[int, int]:
    """Mana value -> card count over creatures and spells (lands excluded)."""
    curve: dict[int, int] = {}
    for card in [*creatures, *spells]:
        cmc = mana_value(card.mana_cost)
        curve[cmc] = curve.get(cmc, 0) + 1
    return curve


def color_distribution(
    creatures: Iterable[CardPoolItem],
    spells: Iterable[CardPoolItem],
) -> dict[str, int]:
    """Color -> pip count over creatures and spells."""
    distribution: dict[str, int] = {}
    for card in [*creatures, *spells]:
        for color, count in color_pips(card.mana_cost).items():
            distribution[color] = distribution.get(color, 0) + count
    return distribution


def mana_base_by_color(lands: Iterable[CardPoolItem]) -> dict[str, int]:
    """Color -> number of lands whose text mentions producing it."""
    mana_base: dict[str, int] = {}
    for land in lands:
        text = land.oracle_text.lower()
        for color, word in COLOR_TO_WORD.items():
            if word in text or f"{{{color.lower()}}}" in text:
                mana_base[color] = mana_base.get(color, 0) + 1
    return mana_base


def categorize_creatures(creatures: Iterable[CardPoolItem]) -> dict[str, int]:
    """Bucket creatures by game phase; Utility is counted on top of the phase."""
    categories = dict.fromkeys(CREATURE_CATEGORIES, 0)
    for creature in creatures:
        cmc = mana_value(creature.mana_cost)
        if cmc <= 2:
            categories["Early Game"] += 1
        elif cmc <= 5:
            categories["Mid Game"] += 1
        else:
            categories["Late Game"] += 1

        text = creature.oracle_text.lower()
        if any(keyword in text for keyword in CREATURE_UTILITY_KEYWORDS):
            categories["Utility"] += 1
    return categories


def spell_role(spell: CardPoolItem) -> str:
    """The first matching role for a spell, Utility when nothing matches."""
    text = spell.oracle_text.lower()
    for role, keywords in SPELL_ROLE_KEYWORDS.items():
        if any(keyword in text for keyword in keywords):
            return role
    return "Utility"


def categorize_spells(spells: Iterable[CardPoolItem]) -> dict[str, int]:
    categories = dict.fromkeys(SPELL_CATEGORIES, 0)
    for spell in spells:
        categories[spell_role(spell)] += 1
    return categories
