"""
Five-stage Commander deck-building pipeline.

Stages run strictly in order, each consuming earlier results:

    1. processCommander  ranked strategy plan
    2. selectLands       35-37 lands
    3. pickCreatures     26 creatures (30 for aggro)
    4. addSpells         99 - lands - creatures spells
    5. optimizeCuts      cut back to exactly 99, then compute statistics

INVARIANTS:
- No oracle problem is fatal. Every oracle call has a deterministic,
  order-preserving fallback, so a deck is always produced from a usable
  pool.
- The finished deck is exactly 100 cards (99 + commander). Stage 5 is
  the only place this is enforced; if it cannot be met the build fails
  with DeckSizeError rather than returning an off-size deck.
- Stage methods never mutate their inputs. The event sink is the only
  side channel.
"""

import logging
import time
import uuid
from collections.abc import Callable, Sequence
from itertools import cycle, islice
from typing import Any

from decknexus.config import (
    AGGRO_CREATURE_COUNT,
    AGGRO_LAND_COUNT,
    BASIC_LAND_BATCH,
    CREATURE_BATCH,
    DEFAULT_CREATURE_COUNT,
    DEFAULT_LAND_COUNT,
    FALLBACK_BASIC_SHARE,
    MAX_LANDS,
    MIN_LANDS,
    NON_BASIC_LAND_BATCH,
    NON_COMMANDER_SLOTS,
    SPELL_BATCH,
)
from decknexus.models.card import COLORS, CardPoolItem, basic_land_for, sort_by_popularity
from decknexus.models.deck import (
    CreatureSelection,
    FinalDeck,
    LandSelection,
    SpellSelection,
    Strategy,
    StrategyPlan,
)
from decknexus.models.events import BuildStage, ProgressEvent, StageFinishedEvent, StageStartedEvent
from decknexus.models.failure import DeckSizeError, OracleError
from decknexus.models.requests import BuildOptions
from decknexus.services import deck_stats, prompts
from decknexus.services.batch_reducer import BatchReducer, ReduceContext
from decknexus.services.events import EventSink, NullSink
from decknexus.services.name_matching import match_card, match_index
from decknexus.services.oracle import Oracle, consult
from decknexus.services.oracle_json import (
    CutsPayload,
    LandSelectionPayload,
    OracleResponseError,
    StrategyPlanPayload,
    parse_final_selection,
    parse_payload,
)

logger = logging.getLogger(__name__)

BASIC_LAND_GUIDANCE = """LAND EVALUATION PRINCIPLES:
- Basic lands provide reliable mana
- Consider the color requirements of the strategy
- Include basics that support the color identity
"""

NON_BASIC_LAND_GUIDANCE = """LAND EVALUATION PRINCIPLES:
- Prioritize mana fixing and utility
- Look for lands that advance the strategy
- Weigh entering untapped against extra abilities
"""

CREATURE_GUIDANCE = """CREATURE EVALUATION PRINCIPLES:
- Synergy with the commander and the key themes
- A mix of early plays, engines and finishers
- Mana value matters: favor efficient creatures
"""

SPELL_GUIDANCE = """SPELL EVALUATION PRINCIPLES:
- Ramp, card draw, removal and protection are the backbone
- Prefer spells that advance the win conditions
- Favor instant-speed interaction and flexible effects
"""


def fallback_strategy_plan(commander_name: str) -> StrategyPlan:
    """Generic plan used when the oracle cannot produce one."""
    return StrategyPlan(
        ranked_strategies=(
            Strategy(
                name="Value Engine",
                description=(
                    f"Utilize {commander_name}'s abilities to control the game "
                    "and win through incremental advantage"
                ),
                win_conditions=["Combat damage", "Value accumulation"],
                archetypes=["Midrange"],
                key_themes=["Synergy", "Card advantage", "Board presence"],
            ),
            Strategy(
                name="Aggressive",
                description="Fast pressure",
                win_conditions=["Combat damage"],
                archetypes=["Aggro"],
                key_themes=["Speed"],
            ),
            Strategy(
                name="Control",
                description="Late game control",
                win_conditions=["Control win"],
                archetypes=["Control"],
                key_themes=["Card draw"],
            ),
        )
    )


def strategy_plan_from_payload(payload: StrategyPlanPayload) -> StrategyPlan:
    ranked = sorted(payload.ranked_strategies, key=lambda s: s.rank)
    return StrategyPlan(
        ranked_strategies=tuple(
            Strategy(
                name=s.name,
                description=s.description,
                win_conditions=list(s.win_conditions),
                archetypes=list(s.archetypes),
                key_themes=list(s.key_themes),
            )
            for s in ranked
        )
    )


def land_target(plan: StrategyPlan) -> int:
    return AGGRO_LAND_COUNT if plan.is_aggro else DEFAULT_LAND_COUNT


def creature_target(plan: StrategyPlan) -> int:
    return AGGRO_CREATURE_COUNT if plan.is_aggro else DEFAULT_CREATURE_COUNT


def _colored_basics_first(basics: Sequence[CardPoolItem]) -> list[CardPoolItem]:
    """Basics that tap for a color; Wastes only when nothing else exists."""
    colored = [land for land in basics if deck_stats.mana_base_by_color([land])]
    return colored or list(basics)


def extra_basics(basic_candidates: Sequence[CardPoolItem], count: int) -> list[CardPoolItem]:
    """Round-robin copies of the basic candidates. Basics are exempt from singleton."""
    if count <= 0 or not basic_candidates:
        return []
    return list(islice(cycle(_colored_basics_first(basic_candidates)), count))


def fallback_land_selection(
    basic_candidates: Sequence[CardPoolItem],
    non_basic_candidates: Sequence[CardPoolItem],
    target: int,
) -> LandSelection:
    """
    Deterministic mana base: 60% basics / 40% non-basics of target.

    Any shortfall (too few non-basic candidates) becomes extra basics;
    with no basics at all, unused non-basics fill what they can.
    """
    basic_count = round(target * FALLBACK_BASIC_SHARE)
    non_basics = list(non_basic_candidates[: target - basic_count])
    basics = extra_basics(basic_candidates, target - len(non_basics))

    if not basics:
        non_basics = list(non_basic_candidates[:target])

    return LandSelection(
        basics=basics,
        non_basics=non_basics,
        mana_base_by_color=deck_stats.mana_base_by_color([*basics, *non_basics]),
    )


def fill_from(
    selected: list[CardPoolItem],
    candidates: Sequence[CardPoolItem],
    target: int,
) -> list[CardPoolItem]:
    """Top selected up to target with unused candidates, in candidate order."""
    result = list(selected[:target])
    for card in candidates:
        if len(result) >= target:
            break
        if not any(card is chosen for chosen in result):
            result.append(card)
    return result


def without_commander(
    pool: Sequence[CardPoolItem], commander: dict[str, Any]
) -> list[CardPoolItem]:
    """The pool search also returns the commander; it cannot fill one of the 99."""
    name = (commander.get("name") or "").casefold()
    return [card for card in pool if card.name.casefold() != name]


def trim_excess(
    lands: list[CardPoolItem],
    creatures: list[CardPoolItem],
    spells: list[CardPoolItem],
    excess: int,
) -> int:
    """
    Mechanically remove cards from the end: spells, then creatures, then lands.

    Each cut is clamped to what the list holds. Lists are modified in place.

    Returns:
        Cards that still could not be cut (0 on success)
    """
    remaining = excess
    for cards in (spells, creatures, lands):
        cut = min(remaining, len(cards))
        if cut:
            del cards[len(cards) - cut :]
        remaining -= cut
    return remaining


def padding_basics(
    commander: dict[str, Any],
    existing_lands: Sequence[CardPoolItem],
    count: int,
) -> list[CardPoolItem]:
    """
    Basic lands for the commander's colors, used when a pool is too thin
    to fill 99 slots. Colorless commanders get Wastes.
    """
    identity = [color for color in COLORS if color in (commander.get("color_identity") or [])]
    by_name = {land.name: land for land in existing_lands if land.is_basic_land}
    templates = [by_name.get(basic_land_for(color).name) or basic_land_for(color) for color in identity]
    if not templates:
        templates = [by_name.get("Wastes") or basic_land_for("C")]
    return list(islice(cycle(templates), count))


class DeckPipeline:
    """
    Runs the five deck-construction stages for one build.

    Args:
        oracle: Provider for every selection call
        events: Sink for stage and progress events
        reducer: Batch reducer (defaults to one over the same oracle)
        options: Player preferences threaded into prompts
        timeout: Per-call oracle timeout in seconds
        build_id: Identifier carried in log records
    """

    def __init__(
        self,
        oracle: Oracle,
        events: EventSink | None = None,
        reducer: BatchReducer | None = None,
        options: BuildOptions | None = None,
        timeout: float | None = None,
        build_id: str | None = None,
    ) -> None:
        self._oracle = oracle
        self._events: EventSink = events or NullSink()
        self._timeout = timeout
        self._reducer = reducer or BatchReducer(oracle, timeout=timeout)
        self._options = options
        self.build_id = build_id or f"deck-{uuid.uuid4().hex[:12]}"

    # -------------------------------------------------------------------------
    # Orchestration
    # -------------------------------------------------------------------------

    async def run(self, commander: dict[str, Any], pool: Sequence[CardPoolItem]) -> FinalDeck:
        """
        Build a deck from a resolved pool.

        Raises:
            DeckSizeError: If the final deck cannot be brought to 100 cards
        """
        name = commander.get("name", "the commander")
        pool = without_commander(pool, commander)

        plan = await self._stage(
            BuildStage.PROCESS_COMMANDER,
            f"Analyzing {name} and creating strategic plan...",
            self.plan_strategy(commander, pool),
            lambda p: f"Strategy: {p.primary_strategy.description[:100]}",
        )
        lands = await self._stage(
            BuildStage.SELECT_LANDS,
            "Building optimal mana base...",
            self.select_lands(plan, pool),
            lambda r: f"Selected {r.total_lands} lands",
        )
        creatures = await self._stage(
            BuildStage.PICK_CREATURES,
            "Selecting creature suite...",
            self.pick_creatures(plan, lands, pool),
            lambda r: f"Selected {r.total_creatures} creatures",
        )
        spells = await self._stage(
            BuildStage.ADD_SPELLS,
            "Adding spells and support cards...",
            self.add_spells(plan, lands, creatures, pool),
            lambda r: f"Selected {r.total_spells} spells",
        )
        deck = await self._stage(
            BuildStage.OPTIMIZE_CUTS,
            "Optimizing deck and making final cuts...",
            self.optimize_cuts(plan, lands, creatures, spells, commander),
            lambda d: f"Deck complete: {d.total_cards} cards total",
        )
        return deck

    async def _stage(self, stage: BuildStage, start_message: str, work: Any, summary: Callable[[Any], str]) -> Any:
        self._events.emit(StageStartedEvent(stage=stage, message=start_message))
        started = time.perf_counter()

        result = await work

        logger.info(
            "STAGE_FINISHED",
            extra={
                "build_id": self.build_id,
                "stage": stage.value,
                "duration_ms": round((time.perf_counter() - started) * 1000),
            },
        )
        self._events.emit(
            StageFinishedEvent(stage=stage, message=summary(result), result=result.to_dict())
        )
        return result

    def _progress(self, stage: BuildStage, start: float, end: float, label: str) -> Callable[[int, int], None]:
        """Map batch completion onto a slice of the stage's 0-100 range."""

        def report(done: int, total: int) -> None:
            value = start + (end - start) * done / max(total, 1)
            self._events.emit(
                ProgressEvent(
                    stage=stage,
                    progress=round(value, 1),
                    message=f"Evaluated {label} batch {done}/{total}",
                )
            )

        return report

    async def _ask(self, prompt: str) -> str:
        return await consult(self._oracle, prompts.as_messages(prompt), self._timeout)

    # -------------------------------------------------------------------------
    # Stage 1: strategy
    # -------------------------------------------------------------------------

    async def plan_strategy(
        self,
        commander: dict[str, Any],
        pool: Sequence[CardPoolItem],
    ) -> StrategyPlan:
        """Three ranked strategies; a generic plan if the oracle cannot deliver."""
        prompt = prompts.strategy_prompt(commander, len(pool), self._options)
        try:
            payload = parse_payload(await self._ask(prompt), StrategyPlanPayload)
        except (OracleError, OracleResponseError) as e:
            logger.warning(
                "STRATEGY_FALLBACK",
                extra={"build_id": self.build_id, "reason": str(e)},
            )
            return fallback_strategy_plan(commander.get("name", "the commander"))
        return strategy_plan_from_payload(payload)

    # -------------------------------------------------------------------------
    # Stage 2: lands
    # -------------------------------------------------------------------------

    async def select_lands(
        self,
        plan: StrategyPlan,
        pool: Sequence[CardPoolItem],
    ) -> LandSelection:
        land_cards = [card for card in pool if card.is_land]
        basics = sort_by_popularity([card for card in land_cards if card.is_basic_land])
        non_basics = sort_by_popularity([card for card in land_cards if not card.is_basic_land])
        logger.info(
            "Processing %d basic and %d non-basic lands in batches",
            len(basics),
            len(non_basics),
        )

        basic_size, basic_fraction = BASIC_LAND_BATCH
        basic_candidates = await self._reducer.reduce(
            basics,
            basic_size,
            basic_fraction,
            ReduceContext("basic lands", "selectedLands", plan, BASIC_LAND_GUIDANCE, self._options),
            self._progress(BuildStage.SELECT_LANDS, 0, 30, "basic land"),
        )

        non_basic_size, non_basic_fraction = NON_BASIC_LAND_BATCH
        non_basic_candidates = await self._reducer.reduce(
            non_basics,
            non_basic_size,
            non_basic_fraction,
            ReduceContext(
                "non-basic lands", "selectedLands", plan, NON_BASIC_LAND_GUIDANCE, self._options
            ),
            self._progress(BuildStage.SELECT_LANDS, 30, 90, "non-basic land"),
        )

        target = land_target(plan)
        prompt = prompts.final_land_prompt(
            basic_candidates, non_basic_candidates, plan, MIN_LANDS, MAX_LANDS, self._options
        )
        try:
            payload = parse_payload(await self._ask(prompt), LandSelectionPayload)
            selection = self._reconcile_lands(payload, basic_candidates, non_basic_candidates, target)
        except (OracleError, OracleResponseError) as e:
            logger.warning(
                "LAND_SELECTION_FALLBACK",
                extra={"build_id": self.build_id, "reason": str(e)},
            )
            selection = fallback_land_selection(basic_candidates, non_basic_candidates, target)

        return selection

    def _reconcile_lands(
        self,
        payload: LandSelectionPayload,
        basic_candidates: Sequence[CardPoolItem],
        non_basic_candidates: Sequence[CardPoolItem],
        default_target: int,
    ) -> LandSelection:
        """
        Turn the oracle's land choice into real cards within 35-37.

        Raises:
            OracleResponseError: If none of the named lands reconcile
        """
        basics: list[CardPoolItem] = []
        for pick in payload.selected_basics:
            card = match_card(pick.name, basic_candidates)
            if card is not None:
                basics.extend([card] * min(pick.count, MAX_LANDS - len(basics)))

        non_basics: list[CardPoolItem] = []
        for non_basic_pick in payload.selected_non_basics:
            card = match_card(non_basic_pick.name, non_basic_candidates)
            if card is not None and not any(card is chosen for chosen in non_basics):
                non_basics.append(card)

        if not basics and not non_basics:
            raise OracleResponseError("No selected lands matched the candidates")

        target = payload.total_count or default_target
        target = min(max(target, MIN_LANDS), MAX_LANDS)

        # Over the cap: drop basics first, they are the interchangeable ones
        overflow = len(basics) + len(non_basics) - target
        if overflow > 0:
            basic_cut = min(overflow, len(basics))
            del basics[len(basics) - basic_cut :]
            overflow -= basic_cut
            if overflow > 0:
                del non_basics[len(non_basics) - overflow :]

        shortfall = target - len(basics) - len(non_basics)
        if shortfall > 0:
            filler = extra_basics(basic_candidates, shortfall)
            if filler:
                basics.extend(filler)
            else:
                non_basics = fill_from(non_basics, non_basic_candidates, target - len(basics))

        if payload.strategic_reasoning:
            logger.debug("Land selection reasoning: %s", payload.strategic_reasoning)

        return LandSelection(
            basics=basics,
            non_basics=non_basics,
            mana_base_by_color=deck_stats.mana_base_by_color([*basics, *non_basics]),
        )

    # -------------------------------------------------------------------------
    # Stage 3: creatures
    # -------------------------------------------------------------------------

    async def pick_creatures(
        self,
        plan: StrategyPlan,
        lands: LandSelection,
        pool: Sequence[CardPoolItem],
    ) -> CreatureSelection:
        creatures = sort_by_popularity([c for c in pool if c.is_creature and not c.is_land])
        logger.info("Processing %d creatures in batches", len(creatures))

        batch_size, fraction = CREATURE_BATCH
        candidates = await self._reducer.reduce(
            creatures,
            batch_size,
            fraction,
            ReduceContext("creatures", "selectedCreatures", plan, CREATURE_GUIDANCE, self._options),
            self._progress(BuildStage.PICK_CREATURES, 0, 90, "creature"),
        )

        target = creature_target(plan)
        prompt = prompts.final_creature_prompt(candidates, plan, lands, target, self._options)
        chosen = await self._final_selection(prompt, "selectedCreatures", candidates, target)
        return CreatureSelection(
            creatures=chosen,
            category_counts=deck_stats.categorize_creatures(chosen),
        )

    # -------------------------------------------------------------------------
    # Stage 4: spells
    # -------------------------------------------------------------------------

    async def add_spells(
        self,
        plan: StrategyPlan,
        lands: LandSelection,
        creatures: CreatureSelection,
        pool: Sequence[CardPoolItem],
    ) -> SpellSelection:
        open_slots = NON_COMMANDER_SLOTS - lands.total_lands - creatures.total_creatures
        if open_slots <= 0:
            if open_slots < 0:
                logger.warning(
                    "SPELL_SLOTS_OVERFLOW",
                    extra={"build_id": self.build_id, "overflow": -open_slots},
                )
            return SpellSelection(spells=[], category_counts={}, overflow=open_slots < 0)

        spells = sort_by_popularity([c for c in pool if not c.is_land and not c.is_creature])
        logger.info("Processing %d spells in batches for %d slots", len(spells), open_slots)

        batch_size, fraction = SPELL_BATCH
        candidates = await self._reducer.reduce(
            spells,
            batch_size,
            fraction,
            ReduceContext("spells", "selectedSpells", plan, SPELL_GUIDANCE, self._options),
            self._progress(BuildStage.ADD_SPELLS, 0, 90, "spell"),
        )

        prompt = prompts.final_spell_prompt(
            candidates, plan, lands, creatures, open_slots, self._options
        )
        chosen = await self._final_selection(prompt, "selectedSpells", candidates, open_slots)
        return SpellSelection(spells=chosen, category_counts=deck_stats.categorize_spells(chosen))

    async def _final_selection(
        self,
        prompt: str,
        list_key: str,
        candidates: Sequence[CardPoolItem],
        target: int,
    ) -> list[CardPoolItem]:
        """
        Ask for exactly `target` cards from the shortlist.

        Picks are reconciled against the shortlist, capped at target and
        topped up from the shortlist in order. Failure: the first
        `target` candidates.
        """
        if target <= 0 or not candidates:
            return []

        try:
            payload = parse_final_selection(await self._ask(prompt), list_key)
        except (OracleError, OracleResponseError) as e:
            logger.warning(
                "FINAL_SELECTION_FALLBACK",
                extra={"build_id": self.build_id, "list_key": list_key, "reason": str(e)},
            )
            return list(candidates[:target])

        selected: list[CardPoolItem] = []
        for pick in payload.selected:
            card = match_card(pick.name, candidates)
            if card is None:
                logger.debug("Unreconciled pick dropped: %r", pick.name)
                continue
            if not any(card is chosen for chosen in selected):
                selected.append(card)

        if not selected:
            logger.warning(
                "FINAL_SELECTION_FALLBACK",
                extra={"build_id": self.build_id, "list_key": list_key, "reason": "no matches"},
            )
            return list(candidates[:target])

        return fill_from(selected, candidates, target)

    # -------------------------------------------------------------------------
    # Stage 5: cuts and statistics
    # -------------------------------------------------------------------------

    async def optimize_cuts(
        self,
        plan: StrategyPlan,
        lands: LandSelection,
        creatures: CreatureSelection,
        spells: SpellSelection,
        commander: dict[str, Any],
    ) -> FinalDeck:
        """
        Bring the deck to exactly 99 cards plus the commander.

        Raises:
            DeckSizeError: If the excess cannot be removed
        """
        final_lands = lands.all_lands
        final_creatures = list(creatures.creatures)
        final_spells = list(spells.spells)

        total = len(final_lands) + len(final_creatures) + len(final_spells)
        excess = total - NON_COMMANDER_SLOTS

        if excess > 0:
            named = await self._apply_named_cuts(
                plan, final_lands, final_creatures, final_spells, excess
            )
            unremoved = trim_excess(final_lands, final_creatures, final_spells, excess - named)
            if unremoved:
                raise DeckSizeError(
                    requested_size=NON_COMMANDER_SLOTS + 1,
                    actual_size=NON_COMMANDER_SLOTS + 1 + unremoved,
                    detail=f"{unremoved} excess cards could not be cut",
                )
            logger.info(
                "CUTS_APPLIED",
                extra={
                    "build_id": self.build_id,
                    "named_cuts": named,
                    "mechanical_cuts": excess - named,
                },
            )
        elif excess < 0:
            padding = padding_basics(commander, final_lands, -excess)
            logger.warning(
                "DECK_PADDED_WITH_BASICS",
                extra={"build_id": self.build_id, "count": len(padding)},
            )
            final_lands.extend(padding)

        deck = FinalDeck(
            commander=commander,
            lands=final_lands,
            creatures=final_creatures,
            spells=final_spells,
            mana_curve=deck_stats.mana_curve(final_creatures, final_spells),
            color_distribution=deck_stats.color_distribution(final_creatures, final_spells),
        )

        if deck.total_cards != NON_COMMANDER_SLOTS + 1:
            raise DeckSizeError(
                requested_size=NON_COMMANDER_SLOTS + 1,
                actual_size=deck.total_cards,
            )

        logger.info(
            "Final deck composition: %d lands + %d creatures + %d spells + 1 commander",
            len(final_lands),
            len(final_creatures),
            len(final_spells),
        )
        return deck

    async def _apply_named_cuts(
        self,
        plan: StrategyPlan,
        lands: list[CardPoolItem],
        creatures: list[CardPoolItem],
        spells: list[CardPoolItem],
        excess: int,
    ) -> int:
        """
        Ask the oracle what to cut and remove what reconciles, at most `excess`.

        Lists are modified in place.

        Returns:
            Number of cards removed
        """
        prompt = prompts.cuts_prompt(plan, lands, creatures, spells, excess)
        try:
            payload = parse_payload(await self._ask(prompt), CutsPayload)
        except (OracleError, OracleResponseError) as e:
            logger.warning(
                "CUTS_FALLBACK",
                extra={"build_id": self.build_id, "reason": str(e)},
            )
            return 0

        by_type = {"land": lands, "creature": creatures, "spell": spells}
        applied = 0
        for cut in payload.cuts_to_make:
            if applied >= excess:
                break
            tagged = by_type.get(cut.card_type.strip().lower())
            search_order = [tagged] if tagged is not None else [spells, creatures, lands]
            for cards in search_order:
                index = match_index(cut.card_name, cards)
                if index is not None:
                    del cards[index]
                    applied += 1
                    break
            else:
                logger.debug("Unreconciled cut dropped: %r", cut.card_name)

        return applied
