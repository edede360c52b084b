from decknexus.services.batch_reducer import BatchReducer, ReduceContext
from decknexus.services.card_pool import CardPoolResolver, build_pool_query
from decknexus.services.deck_builder import DeckBuilder
from decknexus.services.events import EventChannel, EventSink, NullSink, RecordingSink
from decknexus.services.name_matching import match_card, match_index, match_name_with_tier
from decknexus.services.oracle import (
    LocalOracle,
    Oracle,
    OracleSelection,
    RemoteOracle,
    available_providers,
    consult,
    select_oracle,
)
from decknexus.services.pipeline import DeckPipeline
from decknexus.services.scryfall import CardDatabase, ScryfallClient, SearchPage

__all__ = [
    "BatchReducer",
    "CardDatabase",
    "CardPoolResolver",
    "DeckBuilder",
    "DeckPipeline",
    "EventChannel",
    "EventSink",
    "LocalOracle",
    "NullSink",
    "Oracle",
    "OracleSelection",
    "RecordingSink",
    "ReduceContext",
    "RemoteOracle",
    "ScryfallClient",
    "SearchPage",
    "available_providers",
    "build_pool_query",
    "consult",
    "match_card",
    "match_index",
    "match_name_with_tier",
    "select_oracle",
]
