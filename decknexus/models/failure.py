"""
Failure classification.

Every error a caller can observe is a KnownError subclass carrying a
FailureKind, a short user-appropriate message, and the HTTP status the
API layer maps it to. Recoverable oracle problems never reach this
module: the pipeline resolves them with deterministic fallbacks.
"""

from enum import Enum


class FailureKind(str, Enum):
    """Classification of failure types."""

    NOT_FOUND = "not_found"

    POOL_TOO_LARGE = "pool_too_large"
    DECK_SIZE_VIOLATION = "deck_size_violation"

    SERVICE_UNAVAILABLE = "service_unavailable"
    EXTERNAL_API_ERROR = "external_api_error"


class KnownError(Exception):
    """
    Base class for exceptions that represent known, explainable failures.

    Subclass this for errors where the system knows exactly what went wrong.
    """

    def __init__(
        self,
        kind: FailureKind,
        message: str,
        detail: str | None = None,
        suggestion: str | None = None,
        status_code: int = 400,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.suggestion = suggestion
        self.status_code = status_code
        super().__init__(message)


class UpstreamError(KnownError):
    """The card database failed or returned an unrecoverable error."""

    def __init__(self, service: str, detail: str, status_code: int = 502):
        self.service = service
        super().__init__(
            kind=FailureKind.EXTERNAL_API_ERROR,
            message=f"{service} error: {detail}",
            detail=detail,
            suggestion="The card database may be temporarily unavailable. Try again shortly.",
            status_code=status_code,
        )


class CardNotFoundError(KnownError):
    """The card database has no card with the requested id."""

    def __init__(self, card_id: str):
        self.card_id = card_id
        super().__init__(
            kind=FailureKind.NOT_FOUND,
            message=f"Card {card_id} not found",
            suggestion="Check the commander id, or pick a commander from search results.",
            status_code=404,
        )


class PoolTooLargeError(KnownError):
    """The commander's legal card pool exceeded the resolver ceiling."""

    def __init__(self, limit: int, fetched: int):
        self.limit = limit
        self.fetched = fetched
        super().__init__(
            kind=FailureKind.POOL_TOO_LARGE,
            message=(
                f"Card pool too large (>{limit} cards). Please use a more specific commander."
            ),
            detail=f"Fetched {fetched} cards before reaching the limit",
            status_code=422,
        )


class ProviderUnavailableError(KnownError):
    """No oracle provider can serve the build."""

    def __init__(self, message: str):
        super().__init__(
            kind=FailureKind.SERVICE_UNAVAILABLE,
            message=message,
            suggestion="Start the local model server or configure a remote API key.",
            status_code=503,
        )


class DeckSizeError(KnownError):
    """
    The optimization stage could not reach exactly 99 non-commander cards.

    This is a hard failure: an off-size deck is never returned.
    """

    def __init__(self, requested_size: int, actual_size: int, detail: str | None = None):
        self.requested_size = requested_size
        self.actual_size = actual_size
        super().__init__(
            kind=FailureKind.DECK_SIZE_VIOLATION,
            message=(
                f"Unable to construct a {requested_size}-card deck "
                f"({actual_size} cards after cuts)."
            ),
            detail=detail,
            status_code=500,
        )


class OracleError(Exception):
    """
    An oracle call failed at the transport or protocol level.

    Never fatal to a build; the pipeline catches it and takes the
    stage's fallback path.
    """
