"""Tests for card name reconciliation."""

from fakes import make_card

from decknexus.services.name_matching import (
    MatchTier,
    is_fuzzy_match,
    match_card,
    match_index,
    match_name_with_tier,
    max_edit_distance,
    normalize_name,
)

CANDIDATES = [
    make_card("Sol Ring"),
    make_card("Swords to Plowshares"),
    make_card("Blood Artist"),
    make_card("Bloodline Keeper"),
    make_card("Vampire Nocturnus"),
]


class TestNormalizeName:
    def test_lowercases_and_trims(self) -> None:
        assert normalize_name("  Sol Ring ") == "sol ring"

    def test_collapses_inner_whitespace(self) -> None:
        assert normalize_name("Swords  to\tPlowshares") == "swords to plowshares"


class TestMaxEditDistance:
    def test_short_names_allow_one_edit(self) -> None:
        assert max_edit_distance(3) == 1

    def test_scales_with_length(self) -> None:
        # 20 characters: 5/20 = 0.25 < 0.3, 6/20 = 0.3 is not
        assert max_edit_distance(20) == 5


class TestMatchTiers:
    def test_exact_match_is_case_insensitive(self) -> None:
        """An exact name always wins, whatever its case."""
        assert match_name_with_tier("sol ring", CANDIDATES) == (0, MatchTier.EXACT)

    def test_exact_beats_earlier_substring(self) -> None:
        """Blood Artist is a substring candidate, but the exact tier is searched first."""
        candidates = [make_card("Blood Artist Token"), make_card("Blood Artist")]
        assert match_name_with_tier("Blood Artist", candidates) == (1, MatchTier.EXACT)

    def test_substring_match(self) -> None:
        assert match_name_with_tier("Nocturnus", CANDIDATES) == (4, MatchTier.SUBSTRING)

    def test_candidate_inside_name(self) -> None:
        result = match_name_with_tier("Sol Ring (Commander Legends)", CANDIDATES)
        assert result == (0, MatchTier.SUBSTRING)

    def test_one_edit_typo_matches(self) -> None:
        assert match_name_with_tier("Blood Artst", CANDIDATES) == (2, MatchTier.FUZZY)

    def test_fuzzy_prefers_closest(self) -> None:
        candidates = [make_card("Bloodline Keepers"), make_card("Bloodline Keeper")]
        assert match_index("Bloodline Keepr", candidates) == 1

    def test_unrelated_name_matches_nothing(self) -> None:
        assert match_card("Lightning Greaves", CANDIDATES) is None

    def test_short_fragment_skips_substring_tier(self) -> None:
        """Two letters are not enough to claim a substring match."""
        assert match_card("Ri", CANDIDATES) is None

    def test_empty_inputs(self) -> None:
        assert match_card("", CANDIDATES) is None
        assert match_card("Sol Ring", []) is None


class TestIsFuzzyMatch:
    def test_within_ratio(self) -> None:
        assert is_fuzzy_match("Swords to Plowshare", "Swords to Plowshares")

    def test_outside_ratio(self) -> None:
        assert not is_fuzzy_match("Sol Ring", "Sol Rings of Power")
