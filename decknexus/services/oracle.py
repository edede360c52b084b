"""
Oracle providers.

The pipeline talks to a language model through a two-method contract:
``complete(messages)`` and ``is_available()``. Two interchangeable
providers implement it:

- LocalOracle: an LM Studio server exposing the OpenAI-compatible
  chat completions API
- RemoteOracle: the Anthropic Messages API, gated by an API key

Which one a build uses is decided once, up front, by select_oracle().
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Literal, Protocol

import anthropic
import httpx
from anthropic.types import MessageParam, TextBlock

from decknexus.config import settings
from decknexus.models.failure import OracleError, ProviderUnavailableError

logger = logging.getLogger(__name__)

ProviderName = Literal["local", "remote"]

OracleMessage = dict[str, str]

LOCAL_AVAILABILITY_TIMEOUT = 5.0
REMOTE_AVAILABILITY_TIMEOUT = 10.0
TEMPERATURE = 0.7
MAX_TOKENS = 2000


class Oracle(Protocol):
    """Text-completion dependency used for card-selection judgments."""

    name: str

    async def complete(self, messages: list[OracleMessage]) -> str: ...

    async def is_available(self) -> bool: ...


class LocalOracle:
    """LM Studio (or any OpenAI-compatible) server on the local network."""

    name = "local"

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = (base_url or settings.local_ai_base_url).rstrip("/")
        self.model = model or settings.local_ai_model
        request_timeout = settings.oracle_timeout if timeout is None else timeout
        self._client = client or httpx.AsyncClient(timeout=request_timeout)

    async def is_available(self) -> bool:
        try:
            response = await self._client.get(
                f"{self.base_url}/v1/models",
                timeout=LOCAL_AVAILABILITY_TIMEOUT,
            )
        except httpx.HTTPError as e:
            logger.warning("Local oracle unavailable at %s: %s", self.base_url, e)
            return False
        available = response.is_success
        logger.info("Local oracle at %s available=%s", self.base_url, available)
        return available

    async def complete(self, messages: list[OracleMessage]) -> str:
        """
        Run a chat completion.

        Raises:
            OracleError: On transport failure or a non-success response
        """
        started = time.perf_counter()
        try:
            response = await self._client.post(
                f"{self.base_url}/v1/chat/completions",
                json={
                    "model": self.model,
                    "messages": messages,
                    "temperature": TEMPERATURE,
                    "max_tokens": MAX_TOKENS,
                    "stream": False,
                },
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise OracleError(
                f"Local oracle returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise OracleError(f"Local oracle request failed: {e}") from e

        try:
            content = str(response.json()["choices"][0]["message"]["content"] or "")
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise OracleError("Local oracle returned an unexpected payload") from e

        logger.debug(
            "ORACLE_RESPONSE",
            extra={
                "provider": self.name,
                "elapsed_ms": round((time.perf_counter() - started) * 1000),
                "content_length": len(content),
            },
        )
        return content


class RemoteOracle:
    """Anthropic-hosted model. Requires an API key."""

    name = "remote"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        client: anthropic.AsyncAnthropic | None = None,
        timeout: float | None = None,
    ) -> None:
        key = settings.anthropic_api_key if api_key is None else api_key
        if not key and client is None:
            raise ProviderUnavailableError("Remote oracle requires an Anthropic API key")
        self.model = model or settings.remote_model
        request_timeout = settings.oracle_timeout if timeout is None else timeout
        self._client = client or anthropic.AsyncAnthropic(api_key=key, timeout=request_timeout)

    async def is_available(self) -> bool:
        try:
            await self._client.models.list(timeout=REMOTE_AVAILABILITY_TIMEOUT)
        except anthropic.APIError as e:
            logger.warning("Remote oracle unavailable: %s", e)
            return False
        return True

    async def complete(self, messages: list[OracleMessage]) -> str:
        """
        Run a Messages API call.

        System-role messages are folded into the system prompt.

        Raises:
            OracleError: On any API failure
        """
        system_parts = [m["content"] for m in messages if m["role"] == "system"]
        conversation: list[MessageParam] = [
            {"role": "assistant" if m["role"] == "assistant" else "user", "content": m["content"]}
            for m in messages
            if m["role"] != "system"
        ]

        started = time.perf_counter()
        try:
            response = await self._client.messages.create(
                model=self.model,
                max_tokens=MAX_TOKENS,
                temperature=TEMPERATURE,
                system="\n\n".join(system_parts) if system_parts else anthropic.NOT_GIVEN,
                messages=conversation,
            )
        except anthropic.APIError as e:
            raise OracleError(f"Remote oracle error: {e}") from e

        text_content = ""
        for block in response.content:
            if isinstance(block, TextBlock):
                text_content += block.text

        logger.debug(
            "ORACLE_RESPONSE",
            extra={
                "provider": self.name,
                "elapsed_ms": round((time.perf_counter() - started) * 1000),
                "content_length": len(text_content),
            },
        )
        return text_content


@dataclass(frozen=True)
class OracleSelection:
    """The provider a build will use, with a note for the caller if it fell back."""

    oracle: Oracle
    message: str | None = None
    fell_back: bool = False


async def select_oracle(requested: ProviderName | None = None) -> OracleSelection:
    """
    Pick and verify the oracle for a build.

    A remote request without an API key falls back to the local provider.

    Raises:
        ProviderUnavailableError: If no usable provider remains
    """
    provider = requested or settings.default_provider
    logger.info("Validating oracle provider: %s", provider)

    if provider == "remote" and settings.anthropic_api_key:
        return OracleSelection(RemoteOracle(), "Remote AI provider configured")

    local = LocalOracle()
    available = await local.is_available()

    if provider == "remote":
        if not available:
            raise ProviderUnavailableError(
                "Remote AI provider requested but no API key configured, "
                "and local AI service (LM Studio) is not running"
            )
        return OracleSelection(
            local,
            "Remote AI provider requested but no API key configured, falling back to local AI",
            fell_back=True,
        )

    if not available:
        raise ProviderUnavailableError(
            f"Local AI service (LM Studio) is not running on {local.base_url}"
        )
    return OracleSelection(local, "Local AI service available")


def available_providers() -> list[str]:
    """Provider names a caller may request."""
    providers = ["local"]
    if settings.anthropic_api_key:
        providers.append("remote")
    return providers


async def consult(oracle: Oracle, messages: list[OracleMessage], timeout: float | None = None) -> str:
    """
    Call an oracle with a hard time limit.

    Every failure mode (timeout, transport error, provider bug) comes out
    as OracleError so callers have exactly one thing to fall back on.

    Raises:
        OracleError: If the call fails or exceeds the timeout
    """
    limit = settings.oracle_timeout if timeout is None else timeout
    try:
        return await asyncio.wait_for(oracle.complete(messages), timeout=limit)
    except TimeoutError as e:
        raise OracleError(f"Oracle call timed out after {limit:.0f}s") from e
    except OracleError:
        raise
    except Exception as e:
        logger.exception("Unexpected oracle failure from %s", getattr(oracle, "name", oracle))
        raise OracleError(f"Oracle call failed: {e}") from e
