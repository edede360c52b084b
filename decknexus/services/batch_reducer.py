"""
Batch reduction of large candidate sets.

A full card pool does not fit into one oracle prompt, so candidates are
reduced in two phases: this module shortlists a fraction of every
fixed-size batch, and the calling stage makes the final pick from the
shortlist.

INVARIANTS:
- Batches follow input order (callers pre-sort by popularity), and every
  batch is evaluated
- A batch never fails: when the oracle errors, times out, answers with
  unusable JSON, or names nothing that reconciles, the batch contributes
  its first ceil(len * fraction) cards instead
- Output order is batch order, then selection order within the batch;
  a card object appears at most once
"""

import asyncio
import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from decknexus.config import settings
from decknexus.models.card import CardPoolItem
from decknexus.models.deck import StrategyPlan
from decknexus.models.failure import OracleError
from decknexus.models.requests import BuildOptions
from decknexus.services.name_matching import match_card
from decknexus.services.oracle import Oracle, consult
from decknexus.services.oracle_json import OracleResponseError, parse_batch_selection
from decknexus.services.prompts import as_messages, batch_prompt

logger = logging.getLogger(__name__)

BatchProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class ReduceContext:
    """
    What the oracle needs to judge a batch.

    Attributes:
        kind: Plural noun for the cards, e.g. "non-basic lands"
        list_key: JSON key the oracle must put its picks under
        plan: Strategy the picks should serve
        guidance: Extra evaluation principles for this card kind
        options: Player preferences
    """

    kind: str
    list_key: str
    plan: StrategyPlan
    guidance: str = ""
    options: BuildOptions | None = None


def make_batches(items: Sequence[CardPoolItem], batch_size: int) -> list[list[CardPoolItem]]:
    """Split into consecutive chunks of batch_size (the last may be shorter)."""
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    return [list(items[i : i + batch_size]) for i in range(0, len(items), batch_size)]


def batch_target(batch_length: int, select_fraction: float) -> int:
    """How many cards a batch of this length should contribute."""
    return min(batch_length, math.ceil(batch_length * select_fraction))


def fallback_selection(batch: Sequence[CardPoolItem], select_fraction: float) -> list[CardPoolItem]:
    """Deterministic shortlist: the first ceil(len * fraction) cards."""
    return list(batch[: batch_target(len(batch), select_fraction)])


class BatchReducer:
    """
    Shortlists candidates batch by batch with the oracle.

    Args:
        oracle: Provider used for every batch
        timeout: Per-call oracle timeout in seconds
        max_concurrency: Batches evaluated at once; results keep batch order
    """

    def __init__(
        self,
        oracle: Oracle,
        timeout: float | None = None,
        max_concurrency: int | None = None,
    ) -> None:
        self._oracle = oracle
        self._timeout = timeout
        concurrency = settings.reducer_concurrency if max_concurrency is None else max_concurrency
        self._max_concurrency = max(1, concurrency)

    async def reduce(
        self,
        items: Sequence[CardPoolItem],
        batch_size: int,
        select_fraction: float,
        context: ReduceContext,
        on_batch_done: BatchProgressCallback | None = None,
    ) -> list[CardPoolItem]:
        """
        Shortlist select_fraction of every batch.

        Raises:
            ValueError: If batch_size or select_fraction is out of range
        """
        if not 0.0 <= select_fraction <= 1.0:
            raise ValueError(f"select_fraction must be within [0, 1], got {select_fraction}")

        batches = make_batches(items, batch_size)
        if not batches:
            return []

        semaphore = asyncio.Semaphore(self._max_concurrency)
        done = 0

        async def run(index: int, batch: list[CardPoolItem]) -> list[CardPoolItem]:
            nonlocal done
            async with semaphore:
                picks = await self._reduce_batch(
                    batch, index, len(batches), select_fraction, context
                )
            done += 1
            if on_batch_done:
                on_batch_done(done, len(batches))
            return picks

        if self._max_concurrency == 1:
            results = [await run(index, batch) for index, batch in enumerate(batches)]
        else:
            results = await asyncio.gather(
                *(run(index, batch) for index, batch in enumerate(batches))
            )

        candidates: list[CardPoolItem] = []
        seen: set[int] = set()
        for picks in results:
            for card in picks:
                if id(card) not in seen:
                    seen.add(id(card))
                    candidates.append(card)

        logger.info(
            "REDUCE_COMPLETE",
            extra={
                "kind": context.kind,
                "input": len(items),
                "batches": len(batches),
                "candidates": len(candidates),
            },
        )
        return candidates

    async def _reduce_batch(
        self,
        batch: list[CardPoolItem],
        index: int,
        total: int,
        select_fraction: float,
        context: ReduceContext,
    ) -> list[CardPoolItem]:
        target = batch_target(len(batch), select_fraction)
        if target == 0:
            return []

        prompt = batch_prompt(
            kind=context.kind,
            batch=batch,
            plan=context.plan,
            list_key=context.list_key,
            batch_index=index,
            total_batches=total,
            target=target,
            guidance=context.guidance,
            options=context.options,
        )

        try:
            response = await consult(self._oracle, as_messages(prompt), self._timeout)
            payload = parse_batch_selection(response, context.list_key)
        except (OracleError, OracleResponseError) as e:
            logger.warning(
                "BATCH_FALLBACK",
                extra={"kind": context.kind, "batch": index + 1, "reason": str(e)},
            )
            return fallback_selection(batch, select_fraction)

        picks: list[CardPoolItem] = []
        for pick in payload.selected:
            card = match_card(pick.name, batch)
            if card is None:
                logger.debug("Unreconciled %s pick dropped: %r", context.kind, pick.name)
                continue
            if any(card is chosen for chosen in picks):
                continue
            picks.append(card)
            if len(picks) == target:
                break

        if not picks:
            logger.warning(
                "BATCH_FALLBACK",
                extra={"kind": context.kind, "batch": index + 1, "reason": "no reconciled picks"},
            )
            return fallback_selection(batch, select_fraction)

        logger.debug(
            "Batch %d/%d of %s: %d picks (%s)",
            index + 1,
            total,
            context.kind,
            len(picks),
            payload.batch_reasoning,
        )
        return picks
