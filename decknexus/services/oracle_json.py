"""
Parsing of oracle responses.

The oracle answers in free text that should contain one JSON object.
These models describe the shapes each prompt asks for; anything that
does not validate is treated as an unusable response and the caller
takes its fallback path.
"""

import json
import re
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class OracleResponseError(ValueError):
    """The oracle's text did not contain the expected JSON object."""


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class RankedStrategyPayload(_Lenient):
    rank: int
    name: str
    description: str = ""
    win_conditions: list[str] = Field(default_factory=list, alias="winConditions")
    archetypes: list[str] = Field(default_factory=list)
    key_themes: list[str] = Field(default_factory=list, alias="keyThemes")


class StrategyPlanPayload(_Lenient):
    ranked_strategies: list[RankedStrategyPayload] = Field(
        ..., alias="rankedStrategies", min_length=3, max_length=3
    )


class CardPick(_Lenient):
    name: str
    reason: str | None = None
    category: str | None = None
    strategic_role: str | None = Field(default=None, alias="strategicRole")


class BatchSelectionPayload(_Lenient):
    """Per-batch shortlist. The list key varies by stage, see parse_batch_selection."""

    selected: list[CardPick]
    batch_reasoning: str | None = Field(default=None, alias="batchReasoning")


class BasicLandPick(_Lenient):
    name: str
    count: int = Field(default=1, ge=0)
    reason: str | None = None


class LandSelectionPayload(_Lenient):
    selected_basics: list[BasicLandPick] = Field(default_factory=list, alias="selectedBasics")
    selected_non_basics: list[CardPick] = Field(default_factory=list, alias="selectedNonBasics")
    total_count: int | None = Field(default=None, alias="totalCount")
    strategic_reasoning: str | None = Field(default=None, alias="strategicReasoning")


class FinalSelectionPayload(_Lenient):
    selected: list[CardPick]
    total_count: int | None = Field(default=None, alias="totalCount")
    strategic_reasoning: str | None = Field(default=None, alias="strategicReasoning")


class CutPick(_Lenient):
    card_name: str = Field(..., alias="cardName")
    card_type: str = Field(..., alias="cardType")
    reason: str | None = None


class CutsPayload(_Lenient):
    cuts_to_make: list[CutPick] = Field(..., alias="cutsToMake")
    optimization_reasoning: str | None = Field(default=None, alias="optimizationReasoning")


PayloadT = TypeVar("PayloadT", bound=BaseModel)


def extract_json_object(text: str) -> dict[str, object]:
    """
    Pull the outermost JSON object out of free text.

    Handles responses wrapped in prose or markdown code fences.

    Raises:
        OracleResponseError: If no JSON object can be decoded
    """
    match = _JSON_OBJECT.search(text)
    candidate = match.group(0) if match else text
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise OracleResponseError(f"Response is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise OracleResponseError("Response JSON is not an object")
    return data


def parse_payload(text: str, model: type[PayloadT]) -> PayloadT:
    """
    Decode and validate an oracle response.

    Raises:
        OracleResponseError: If the text is not JSON or has the wrong shape
    """
    data = extract_json_object(text)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise OracleResponseError(f"Response has unexpected shape: {e}") from e


def parse_batch_selection(text: str, list_key: str) -> BatchSelectionPayload:
    """Validate a per-batch shortlist whose card list lives under list_key."""
    data = extract_json_object(text)
    try:
        return BatchSelectionPayload.model_validate(
            {"selected": data.get(list_key), "batchReasoning": data.get("batchReasoning")}
        )
    except ValidationError as e:
        raise OracleResponseError(f"Response has unexpected shape: {e}") from e


def parse_final_selection(text: str, list_key: str) -> FinalSelectionPayload:
    """Validate a final selection whose card list lives under list_key."""
    data = extract_json_object(text)
    try:
        return FinalSelectionPayload.model_validate(
            {
                "selected": data.get(list_key),
                "totalCount": data.get("totalCount"),
                "strategicReasoning": data.get("strategicReasoning"),
            }
        )
    except ValidationError as e:
        raise OracleResponseError(f"Response has unexpected shape: {e}") from e
