"""
Card name reconciliation.

Maps a card name written by the oracle back onto a real card from the
current working set. One policy is used everywhere in the pipeline:

    1. exact match, case-insensitive (whitespace normalized)
    2. substring containment, in either direction
    3. fuzzy match: Levenshtein distance within FUZZY_RATIO of the longer
       name's length, never less than one edit

Each tier scans the whole candidate list before the next tier is tried,
so an exact match later in the list beats a substring match earlier in
it. Within a tier the first candidate wins (fuzzy: the closest, ties to
the first). A name that matches nothing returns None.
"""

from collections.abc import Sequence
from enum import Enum
from typing import TypeVar

from Levenshtein import distance as levenshtein_distance

from decknexus.models.card import CardPoolItem

FUZZY_RATIO = 0.3

# Substring matching on tiny fragments ("a", "of") is noise
MIN_SUBSTRING_LENGTH = 3

CardT = TypeVar("CardT", bound=CardPoolItem)


class MatchTier(str, Enum):
    EXACT = "exact"
    SUBSTRING = "substring"
    FUZZY = "fuzzy"


def normalize_name(name: str) -> str:
    """Case-fold and collapse whitespace."""
    return " ".join(name.split()).casefold()


def max_edit_distance(length: int) -> int:
    """
    Largest edit distance accepted for a name of this length.

    Equivalent to ``distance / length < FUZZY_RATIO`` with a floor of one
    edit, so short names still tolerate a single typo.
    """
    allowed = 0
    while (allowed + 1) / max(length, 1) < FUZZY_RATIO:
        allowed += 1
    return max(1, allowed)


def is_fuzzy_match(name: str, candidate: str) -> bool:
    """True if two names are within the fuzzy edit-distance threshold."""
    left, right = normalize_name(name), normalize_name(candidate)
    if not left or not right:
        return False
    limit = max_edit_distance(max(len(left), len(right)))
    return levenshtein_distance(left, right, score_cutoff=limit) <= limit


def match_name_with_tier(
    name: str,
    candidates: Sequence[CardT],
) -> tuple[int, MatchTier] | None:
    """
    Find the index of the card a name refers to, plus the tier that matched.

    Returns:
        (index into candidates, tier), or None if nothing matches
    """
    wanted = normalize_name(name)
    if not wanted or not candidates:
        return None

    normalized = [normalize_name(card.name) for card in candidates]

    for index, card_name in enumerate(normalized):
        if card_name == wanted:
            return index, MatchTier.EXACT

    if len(wanted) >= MIN_SUBSTRING_LENGTH:
        for index, card_name in enumerate(normalized):
            if len(card_name) < MIN_SUBSTRING_LENGTH:
                continue
            if wanted in card_name or card_name in wanted:
                return index, MatchTier.SUBSTRING

    best_index: int | None = None
    best_distance: int | None = None
    for index, card_name in enumerate(normalized):
        if not card_name:
            continue
        limit = max_edit_distance(max(len(wanted), len(card_name)))
        dist = levenshtein_distance(wanted, card_name, score_cutoff=limit)
        if dist <= limit and (best_distance is None or dist < best_distance):
            best_index, best_distance = index, dist

    if best_index is None:
        return None
    return best_index, MatchTier.FUZZY


def match_index(name: str, candidates: Sequence[CardT]) -> int | None:
    """Index of the matching card, or None."""
    result = match_name_with_tier(name, candidates)
    return result[0] if result else None


def match_card(name: str, candidates: Sequence[CardT]) -> CardT | None:
    """The matching card, or None."""
    index = match_index(name, candidates)
    return candidates[index] if index is not None else None
