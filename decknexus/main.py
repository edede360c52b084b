import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from decknexus.api import cards_router, deckbuilder_router, health_router
from decknexus.api.dependencies import close_services
from decknexus.config import settings


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
    yield
    await close_services()


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("decknexus"),
    lifespan=lifespan,
)

app.include_router(cards_router)
app.include_router(deckbuilder_router)
app.include_router(health_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
