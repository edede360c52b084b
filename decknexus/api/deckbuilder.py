"""
Deck builder API endpoints.

The build endpoint answers with a Server-Sent Events stream. Each event
is one ``data: <json>`` record; the stream ends after the terminal
``complete`` or ``error`` record.
"""

import logging
from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from decknexus.api.dependencies import get_deck_builder
from decknexus.config import settings
from decknexus.models.events import encode_sse
from decknexus.models.requests import BuildRequest
from decknexus.services.deck_builder import DeckBuilder
from decknexus.services.events import EventChannel
from decknexus.services.oracle import available_providers

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/deckbuilder", tags=["deckbuilder"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class ModelsResponse(BaseModel):
    """Oracle providers a build may request."""

    providers: list[str]
    default: str


async def stream_events(channel: EventChannel) -> AsyncIterator[str]:
    """Relay channel events as SSE records; closing early stops delivery."""
    try:
        async for event in channel:
            yield encode_sse(event)
    finally:
        if not channel.terminated:
            logger.info("CLIENT_DISCONNECTED")
            channel.close()


@router.post("/build")
async def build_deck(
    request: BuildRequest,
    builder: Annotated[DeckBuilder, Depends(get_deck_builder)],
) -> StreamingResponse:
    """
    Build a 100-card Commander deck for a commander.

    Progress is streamed while the build runs; the final event carries
    the finished deck or the reason the build failed.
    """
    channel = builder.start(request)
    return StreamingResponse(
        stream_events(channel),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/models", response_model=ModelsResponse)
async def list_models() -> ModelsResponse:
    return ModelsResponse(providers=available_providers(), default=settings.default_provider)
