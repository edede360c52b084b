from decknexus.api.cards import router as cards_router
from decknexus.api.deckbuilder import router as deckbuilder_router
from decknexus.api.health import router as health_router

__all__ = [
    "cards_router",
    "deckbuilder_router",
    "health_router",
]
