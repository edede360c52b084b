"""
Card pool models.

CardPoolItem is the flattened projection of a Scryfall card that the
deck-building pipeline reasons about. It is derived once during pool
resolution and never mutated afterward.
"""

from dataclasses import dataclass
from typing import Any

COLORS = ("W", "U", "B", "R", "G")

COLOR_TO_BASIC_LAND = {
    "W": "Plains",
    "U": "Island",
    "B": "Swamp",
    "R": "Mountain",
    "G": "Forest",
}


@dataclass(frozen=True, slots=True)
class CardPoolItem:
    """
    A commander-legal card candidate.

    Attributes:
        name: Canonical card name from Scryfall
        mana_cost: Mana cost text, e.g. "{2}{W}{B}" (empty for lands)
        oracle_text: Rules text
        type_line: Full type line, e.g. "Creature — Vampire Knight"
        power: Printed power for creatures
        toughness: Printed toughness for creatures
        usd_price: Nonfoil USD price, when Scryfall has one
        popularity_rank: EDHREC rank (lower = more popular)
    """

    name: str
    mana_cost: str = ""
    oracle_text: str = ""
    type_line: str = ""
    power: str | None = None
    toughness: str | None = None
    usd_price: float | None = None
    popularity_rank: int | None = None

    @property
    def is_land(self) -> bool:
        return "land" in self.type_line.lower()

    @property
    def is_basic_land(self) -> bool:
        type_line = self.type_line.lower()
        return "land" in type_line and "basic" in type_line

    @property
    def is_creature(self) -> bool:
        return "creature" in self.type_line.lower()

    @classmethod
    def from_scryfall(cls, card: dict[str, Any]) -> "CardPoolItem":
        """
        Project a Scryfall card object onto a pool item.

        Multi-faced cards carry their text on the faces; the front face
        fills in any field missing at the top level.
        """
        front: dict[str, Any] = {}
        faces = card.get("card_faces")
        if faces:
            front = faces[0]

        def pick(key: str) -> Any:
            value = card.get(key)
            if value is None:
                value = front.get(key)
            return value

        prices = card.get("prices") or {}
        usd = prices.get("usd")

        return cls(
            name=card["name"],
            mana_cost=pick("mana_cost") or "",
            oracle_text=pick("oracle_text") or "",
            type_line=pick("type_line") or "",
            power=pick("power"),
            toughness=pick("toughness"),
            usd_price=float(usd) if usd else None,
            popularity_rank=card.get("edhrec_rank"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Wire representation."""
        return {
            "name": self.name,
            "mana_cost": self.mana_cost,
            "oracle_text": self.oracle_text,
            "type_line": self.type_line,
            "power": self.power,
            "toughness": self.toughness,
            "usd_price": self.usd_price,
            "edhrec_rank": self.popularity_rank,
        }


def basic_land_for(color: str) -> CardPoolItem:
    """Build the pool item for the basic land of a color ("C" gives Wastes)."""
    name = COLOR_TO_BASIC_LAND.get(color, "Wastes")
    supertype = "Basic Land" if name == "Wastes" else f"Basic Land — {name}"
    symbol = color if color in COLORS else "C"
    return CardPoolItem(
        name=name,
        type_line=supertype,
        oracle_text=f"({{T}}: Add {{{symbol}}}.)",
    )


def sort_by_popularity(cards: list[CardPoolItem]) -> list[CardPoolItem]:
    """
    Order cards by EDHREC rank.

    Ranked cards come first, ascending. Unranked cards keep their
    original relative order after them.
    """
    ranked = [card for card in cards if card.popularity_rank is not None]
    unranked = [card for card in cards if card.popularity_rank is None]
    ranked.sort(key=lambda card: card.popularity_rank or 0)
    return ranked + unranked
