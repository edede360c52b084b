from decknexus.models.card import (
    COLOR_TO_BASIC_LAND,
    COLORS,
    CardPoolItem,
    basic_land_for,
    sort_by_popularity,
)
from decknexus.models.deck import (
    CreatureSelection,
    FinalDeck,
    LandSelection,
    SpellSelection,
    Strategy,
    StrategyPlan,
)
from decknexus.models.events import (
    BuildEvent,
    BuildStage,
    CompleteEvent,
    ConnectedEvent,
    ErrorEvent,
    ProgressEvent,
    StageFinishedEvent,
    StageStartedEvent,
    encode_sse,
    is_terminal,
)
from decknexus.models.failure import (
    CardNotFoundError,
    DeckSizeError,
    FailureKind,
    KnownError,
    OracleError,
    PoolTooLargeError,
    ProviderUnavailableError,
    UpstreamError,
)
from decknexus.models.requests import BuildOptions, BuildRequest

__all__ = [
    "COLORS",
    "COLOR_TO_BASIC_LAND",
    "CardPoolItem",
    "basic_land_for",
    "sort_by_popularity",
    "Strategy",
    "StrategyPlan",
    "LandSelection",
    "CreatureSelection",
    "SpellSelection",
    "FinalDeck",
    "BuildEvent",
    "BuildStage",
    "ConnectedEvent",
    "StageStartedEvent",
    "StageFinishedEvent",
    "ProgressEvent",
    "CompleteEvent",
    "ErrorEvent",
    "encode_sse",
    "is_terminal",
    "CardNotFoundError",
    "FailureKind",
    "KnownError",
    "UpstreamError",
    "PoolTooLargeError",
    "ProviderUnavailableError",
    "DeckSizeError",
    "OracleError",
    "BuildOptions",
    "BuildRequest",
]
