"""Tagged generation errors produced at the model-backend boundary.

Provider exceptions are classified once, here, into a GenerationError with
an explicit kind. Callers switch on ``error.kind`` instead of inspecting
message text.
"""

from enum import Enum

import anthropic

# Phrases the Anthropic API uses when a request does not fit the context window
_LENGTH_MARKERS = (
    "prompt is too long",
    "too many tokens",
    "exceed context limit",
    "context window",
    "context length",
    "tokens >",
)


class GenerationErrorKind(Enum):
    """Closed set of generation failure categories.

    TRANSIENT: Connection, timeout, rate limit or server-side failure
    TERMINAL: Request rejected for a reason a retry won't fix
    LENGTH_EXCEEDED: Request content exceeds the model's input limit
    """
    TRANSIENT = "transient"
    TERMINAL = "terminal"
    LENGTH_EXCEEDED = "length_exceeded"


class GenerationError(Exception):
    """A failed generation call."""

    def __init__(
        self,
        message: str,
        kind: GenerationErrorKind = GenerationErrorKind.TERMINAL,
        provider: str | None = None,
    ):
        self.message = message
        self.kind = kind
        self.provider = provider
        super().__init__(message)

    @property
    def is_length_exceeded(self) -> bool:
        return self.kind is GenerationErrorKind.LENGTH_EXCEEDED


def _mentions_length(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in _LENGTH_MARKERS)


def classify_exception(exc: BaseException, provider: str = "anthropic") -> GenerationError:
    """Translate a provider exception into a GenerationError.

    Args:
        exc: Exception raised while creating or consuming a model stream
        provider: Name recorded on the resulting error

    Returns:
        GenerationError carrying the original description and its kind
    """
    if isinstance(exc, GenerationError):
        return exc

    message = str(exc) or exc.__class__.__name__

    if isinstance(
        exc,
        (
            anthropic.APIConnectionError,
            anthropic.RateLimitError,
            anthropic.InternalServerError,
        ),
    ):
        kind = GenerationErrorKind.TRANSIENT
    elif isinstance(exc, anthropic.APIStatusError):
        if exc.status_code in (408, 409, 429, 529) or exc.status_code >= 500:
            kind = GenerationErrorKind.TRANSIENT
        elif exc.status_code in (400, 413) and _mentions_length(message):
            kind = GenerationErrorKind.LENGTH_EXCEEDED
        else:
            kind = GenerationErrorKind.TERMINAL
    else:
        kind = GenerationErrorKind.TERMINAL

    return GenerationError(message, kind=kind, provider=provider)
