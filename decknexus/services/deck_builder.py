"""
Deck build service.

Owns one build from request to terminal event: validates the oracle
provider, fetches the commander and its pool, runs the stage pipeline and
reports everything through the build's EventChannel.

Event order for a build:
    connected (once, twice when the provider fell back) ->
    pool progress -> stage events -> complete | error

Every failure ends the stream with exactly one error event. The consumer
disconnecting closes the channel; the build keeps running to completion
but nothing more is delivered.
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable

from decknexus.models.deck import FinalDeck
from decknexus.models.events import BuildStage
from decknexus.models.failure import KnownError
from decknexus.models.requests import BuildRequest
from decknexus.services.batch_reducer import BatchReducer
from decknexus.services.card_pool import CardPoolResolver
from decknexus.services.events import EventChannel
from decknexus.services.oracle import OracleSelection, ProviderName, select_oracle
from decknexus.services.pipeline import DeckPipeline

logger = logging.getLogger(__name__)

OracleSelector = Callable[[ProviderName | None], Awaitable[OracleSelection]]


def new_build_id() -> str:
    return f"deck-{uuid.uuid4().hex[:12]}"


class DeckBuilder:
    """
    Runs deck builds against a shared card pool resolver.

    Args:
        resolver: Commander and pool lookup (shared so its cache is too)
        oracle_selector: Picks the provider for a build
        oracle_timeout: Per-call oracle timeout in seconds
        reducer_concurrency: Batches evaluated at once within one reduce
    """

    def __init__(
        self,
        resolver: CardPoolResolver,
        oracle_selector: OracleSelector = select_oracle,
        oracle_timeout: float | None = None,
        reducer_concurrency: int | None = None,
    ) -> None:
        self._resolver = resolver
        self._select_oracle = oracle_selector
        self._oracle_timeout = oracle_timeout
        self._reducer_concurrency = reducer_concurrency
        self._tasks: set[asyncio.Task[FinalDeck | None]] = set()

    def start(self, request: BuildRequest) -> EventChannel:
        """
        Launch a build in the background and return its event stream.

        The task is held until it finishes so it outlives a disconnected
        consumer.
        """
        channel = EventChannel()
        task = asyncio.create_task(self.build(request, channel))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return channel

    async def build(self, request: BuildRequest, channel: EventChannel) -> FinalDeck | None:
        """
        Run one build to its terminal event.

        Never raises; failures are reported on the channel.

        Returns:
            The finished deck, or None if the build failed
        """
        build_id = new_build_id()
        commander_id = str(request.commanderId)
        started = time.perf_counter()
        logger.info(
            "BUILD_START",
            extra={"build_id": build_id, "commander_id": commander_id, "provider": request.model},
        )

        try:
            selection = await self._select_oracle(request.model)
            channel.connected("Connected to deck builder")
            if selection.fell_back and selection.message:
                channel.connected(selection.message)

            commander = await self._resolver.get_commander(commander_id)

            def pool_progress(progress: float, message: str) -> None:
                channel.progress(BuildStage.PROCESS_COMMANDER, progress, message)

            pool = await self._resolver.resolve_pool(commander_id, pool_progress)
            channel.progress(
                BuildStage.PROCESS_COMMANDER, 100, f"Card pool ready: {len(pool)} cards"
            )

            pipeline = DeckPipeline(
                selection.oracle,
                events=channel,
                reducer=BatchReducer(
                    selection.oracle,
                    timeout=self._oracle_timeout,
                    max_concurrency=self._reducer_concurrency,
                ),
                options=request.options,
                timeout=self._oracle_timeout,
                build_id=build_id,
            )
            deck = await pipeline.run(commander, pool)

        except KnownError as e:
            logger.warning(
                "BUILD_FAILED",
                extra={"build_id": build_id, "kind": e.kind.value, "error": e.message},
            )
            channel.fail(e.message)
            return None
        except Exception as e:
            logger.exception("BUILD_CRASHED", extra={"build_id": build_id})
            channel.fail(f"Deck build failed: {type(e).__name__}")
            return None

        delivered = channel.complete(deck.to_dict())
        logger.info(
            "BUILD_COMPLETE",
            extra={
                "build_id": build_id,
                "total_cards": deck.total_cards,
                "delivered": delivered,
                "duration_ms": round((time.perf_counter() - started) * 1000),
            },
        )
        return deck
