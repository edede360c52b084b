"""
Build progress events.

One build produces one stream of these records. The stream ends with
exactly one terminal record, either ``complete`` or ``error``.
"""

import json
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field


class BuildStage(str, Enum):
    """The five pipeline stages, in execution order."""

    PROCESS_COMMANDER = "processCommander"
    SELECT_LANDS = "selectLands"
    PICK_CREATURES = "pickCreatures"
    ADD_SPELLS = "addSpells"
    OPTIMIZE_CUTS = "optimizeCuts"


class ConnectedEvent(BaseModel):
    type: Literal["connected"] = "connected"
    message: str


class StageStartedEvent(BaseModel):
    type: Literal["stageStarted"] = "stageStarted"
    stage: BuildStage
    message: str


class StageFinishedEvent(BaseModel):
    type: Literal["stageFinished"] = "stageFinished"
    stage: BuildStage
    message: str
    result: dict[str, Any]


class ProgressEvent(BaseModel):
    type: Literal["progress"] = "progress"
    stage: BuildStage
    progress: float = Field(..., ge=0, le=100)
    message: str


class CompleteEvent(BaseModel):
    type: Literal["complete"] = "complete"
    result: dict[str, Any]


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    error: str


BuildEvent = Annotated[
    ConnectedEvent
    | StageStartedEvent
    | StageFinishedEvent
    | ProgressEvent
    | CompleteEvent
    | ErrorEvent,
    Field(discriminator="type"),
]

TERMINAL_EVENT_TYPES = frozenset({"complete", "error"})


def is_terminal(event: BaseModel) -> bool:
    return getattr(event, "type", None) in TERMINAL_EVENT_TYPES


def encode_sse(event: BaseModel) -> str:
    """Render an event as one server-sent-events record."""
    payload = json.dumps(event.model_dump(mode="json"))
    return f"data: {payload}\n\n"
