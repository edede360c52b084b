from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from decknexus.config import settings


class BuildOptions(BaseModel):
    """Caller preferences. They shape prompts; the pipeline does not enforce them."""

    budget: float | None = Field(default=None, ge=0, le=10000)
    powerLevel: int = Field(default=7, ge=1, le=10)
    includeCombo: bool = True
    focusTheme: str | None = Field(default=None, max_length=100)


class BuildRequest(BaseModel):
    """Request body for a deck build."""

    commanderId: UUID
    model: Literal["local", "remote"] = Field(default_factory=lambda: settings.default_provider)
    options: BuildOptions | None = None
