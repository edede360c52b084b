"""
Prompt builders for every oracle call in the pipeline.

Each prompt states the strategic context, lists the cards under
consideration one per line, and ends with the exact JSON shape the
response must take. The shapes are mirrored by the models in
decknexus.services.oracle_json.
"""

from collections.abc import Sequence
from typing import Any

from decknexus.models.card import CardPoolItem
from decknexus.models.deck import CreatureSelection, LandSelection, StrategyPlan
from decknexus.models.requests import BuildOptions
from decknexus.services.deck_stats import mana_value
from decknexus.services.oracle import OracleMessage

SYSTEM_PROMPT = """You are a highly skilled Magic: The Gathering deck building expert \
with deep knowledge of Commander format strategy.

A Commander deck is exactly 100 cards: the commander plus 99 others, all \
singleton except basic lands. A typical composition is:
- Lands: 35-38 (basics plus fixing and utility lands)
- Ramp and mana fixing: 8-12
- Card draw and card advantage: 8-12
- Interaction and removal: 8-12
- Win conditions: 5-8
- Commander synergy and theme: 15-20

Always answer with a single JSON object and nothing else."""


def as_messages(prompt: str) -> list[OracleMessage]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]


def describe_options(options: BuildOptions | None) -> str:
    """Player preferences as prompt text. Empty when there are none."""
    if options is None:
        return ""
    lines = [f"- Target power level: {options.powerLevel}/10"]
    if options.budget is not None:
        lines.append(f"- Budget: about ${options.budget:.0f} for the whole deck")
    lines.append(
        "- Infinite combos are welcome" if options.includeCombo else "- Avoid infinite combos"
    )
    if options.focusTheme:
        lines.append(f"- Focus theme: {options.focusTheme}")
    return "PLAYER PREFERENCES:\n" + "\n".join(lines) + "\n"


def describe_strategy(plan: StrategyPlan) -> str:
    primary = plan.primary_strategy
    return (
        f"PRIMARY STRATEGY: {primary.name}\n"
        f"Description: {primary.description}\n"
        f"Win Conditions: {', '.join(primary.win_conditions)}\n"
        f"Archetypes: {', '.join(primary.archetypes)}\n"
        f"Key Themes: {', '.join(primary.key_themes)}\n"
    )


def describe_card(card: CardPoolItem) -> str:
    """One card as a single prompt line plus its oracle text."""
    parts = [card.name, card.mana_cost or "No cost", card.type_line]
    if not card.is_land:
        parts.append(f"MV: {mana_value(card.mana_cost)}")
    if card.power is not None and card.toughness is not None:
        parts.append(f"{card.power}/{card.toughness}")
    if card.popularity_rank is not None:
        parts.append(f"EDHRank: {card.popularity_rank}")
    if card.usd_price is not None:
        parts.append(f"${card.usd_price:.2f}")
    oracle = card.oracle_text.replace("\n", " ")
    return f"- {' | '.join(parts)}\n  Oracle: \"{oracle}\""


def describe_cards(cards: Sequence[CardPoolItem]) -> str:
    return "\n".join(describe_card(card) for card in cards) or "(none)"


def _names(cards: Sequence[CardPoolItem]) -> str:
    return ", ".join(card.name for card in cards) or "(none)"


def strategy_prompt(
    commander: dict[str, Any],
    pool_size: int,
    options: BuildOptions | None = None,
) -> str:
    identity = ", ".join(commander.get("color_identity") or []) or "Colorless"
    return f"""Analyze this commander and create a strategic plan with RANKED strategies.

Commander: {commander.get("name")}
Type: {commander.get("type_line", "")}
Mana Cost: {commander.get("mana_cost", "")}
Oracle Text: {commander.get("oracle_text", "")}
Color Identity: {identity}
Power/Toughness: {commander.get("power")}/{commander.get("toughness")}

Available card pool: {pool_size} commander-legal cards

{describe_options(options)}
Create exactly 3 ranked strategies (1 = best, 3 = backup). For each, analyze how
the commander's abilities are leveraged, name specific win conditions, pick
archetypes (e.g. Aggro, Midrange, Control, Combo) and list key themes.
The rank 1 strategy drives every later card selection.

Respond with JSON only:
{{
  "rankedStrategies": [
    {{
      "rank": 1,
      "name": "Strategy Name",
      "description": "How this strategy works",
      "winConditions": ["primary win con", "secondary win con"],
      "archetypes": ["primary archetype"],
      "keyThemes": ["theme1", "theme2", "theme3"]
    }},
    {{"rank": 2, "name": "...", "description": "...", "winConditions": [], "archetypes": [], "keyThemes": []}},
    {{"rank": 3, "name": "...", "description": "...", "winConditions": [], "archetypes": [], "keyThemes": []}}
  ]
}}
"""


def batch_prompt(
    kind: str,
    batch: Sequence[CardPoolItem],
    plan: StrategyPlan,
    list_key: str,
    batch_index: int,
    total_batches: int,
    target: int,
    guidance: str = "",
    options: BuildOptions | None = None,
) -> str:
    """Ask for a shortlist of `target` cards from one batch."""
    return f"""Evaluate this batch of {kind} for Commander deck construction.

{describe_strategy(plan)}
{describe_options(options)}{guidance}
AVAILABLE {kind.upper()} (Batch {batch_index + 1}/{total_batches}):
{describe_cards(batch)}

Select the top {target} cards from this batch that best support the PRIMARY STRATEGY.
If nothing in the batch supports the strategy, select none.

Respond with JSON only:
{{
  "{list_key}": [
    {{"name": "exact card name", "reason": "why this card supports the strategy"}}
  ],
  "batchReasoning": "why these cards were chosen from this batch"
}}
"""


def final_land_prompt(
    basic_candidates: Sequence[CardPoolItem],
    non_basic_candidates: Sequence[CardPoolItem],
    plan: StrategyPlan,
    min_lands: int,
    max_lands: int,
    options: BuildOptions | None = None,
) -> str:
    return f"""Build the final mana base for this Commander deck.

{describe_strategy(plan)}
{describe_options(options)}
BASIC LAND CANDIDATES (may be included multiple times):
{describe_cards(basic_candidates)}

NON-BASIC LAND CANDIDATES (one copy each):
{describe_cards(non_basic_candidates)}

Choose between {min_lands} and {max_lands} lands in total. Give a count for each
basic land and list each non-basic land once. Balance colors to the strategy's needs.

Respond with JSON only:
{{
  "selectedBasics": [
    {{"name": "land name", "count": 10, "reason": "why included"}}
  ],
  "selectedNonBasics": [
    {{"name": "land name", "reason": "strategic value"}}
  ],
  "totalCount": {max_lands - 1},
  "strategicReasoning": "overall mana base strategy"
}}
"""


def final_creature_prompt(
    candidates: Sequence[CardPoolItem],
    plan: StrategyPlan,
    lands: LandSelection,
    target: int,
    options: BuildOptions | None = None,
) -> str:
    return f"""Choose the final creature suite for this Commander deck.

{describe_strategy(plan)}
{describe_options(options)}
MANA BASE: {lands.total_lands} lands, colors {lands.mana_base_by_color}

CREATURE CANDIDATES:
{describe_cards(candidates)}

Select exactly {target} creatures with a healthy mana curve that enable the PRIMARY STRATEGY.

Respond with JSON only:
{{
  "selectedCreatures": [
    {{
      "name": "creature name",
      "category": "Early Game|Mid Game|Late Game|Utility",
      "strategicRole": "how this creature enables the primary strategy"
    }}
  ],
  "totalCount": {target},
  "strategicReasoning": "overall creature suite strategy"
}}
"""


def final_spell_prompt(
    candidates: Sequence[CardPoolItem],
    plan: StrategyPlan,
    lands: LandSelection,
    creatures: CreatureSelection,
    target: int,
    options: BuildOptions | None = None,
) -> str:
    return f"""Choose the final noncreature spells for this Commander deck.

{describe_strategy(plan)}
{describe_options(options)}
CURRENT DECK: {lands.total_lands} lands, {creatures.total_creatures} creatures
Creature breakdown: {creatures.category_counts}

SPELL CANDIDATES:
{describe_cards(candidates)}

Select exactly {target} spells. Cover ramp, card draw, removal, protection and win
conditions in proportions that suit the PRIMARY STRATEGY.

Respond with JSON only:
{{
  "selectedSpells": [
    {{
      "name": "spell name",
      "category": "Removal|Card Draw|Ramp|Protection|Win Condition|Utility",
      "strategicRole": "how this spell supports the primary strategy"
    }}
  ],
  "totalCount": {target},
  "strategicReasoning": "overall spell suite strategy"
}}
"""


def cuts_prompt(
    plan: StrategyPlan,
    lands: Sequence[CardPoolItem],
    creatures: Sequence[CardPoolItem],
    spells: Sequence[CardPoolItem],
    excess: int,
) -> str:
    total = len(lands) + len(creatures) + len(spells)
    return f"""This Commander deck has {total} non-commander cards and must have exactly 99.

{describe_strategy(plan)}
LANDS ({len(lands)}): {_names(lands)}

CREATURES ({len(creatures)}): {_names(creatures)}

SPELLS ({len(spells)}): {_names(spells)}

Name exactly {excess} cards to cut, weakest first. Keep the mana base above 34 lands
and keep the cards the PRIMARY STRATEGY depends on.

Respond with JSON only:
{{
  "cutsToMake": [
    {{"cardName": "card to cut", "cardType": "Land|Creature|Spell", "reason": "why"}}
  ],
  "totalCuts": {excess},
  "optimizationReasoning": "overall strategy for these cuts"
}}
"""
