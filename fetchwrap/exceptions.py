"""Public exceptions for fetchwrap."""

from typing import Any


class FetchwrapError(Exception):
    """Base exception for all fetchwrap errors."""


class FetchwrapConfigError(FetchwrapError):
    """Configuration error (malformed env vars, invalid service config)."""


class RequestError(FetchwrapError):
    """A request that did not produce a successful response.

    Every failure delivered by a service carries the same shape: a message,
    an optional HTTP status, the response (when one was received), the
    effective request config and a classifier code.
    """

    default_code = "ERR_REQUEST"

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        status_text: str | None = None,
        response: Any = None,
        config: Any = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.status_text = status_text
        self.response = response
        self.config = config
        self.code = code or self.default_code


class BuildError(RequestError):
    """Request could not be built (serialization or request interceptor failure)."""

    default_code = "ERR_BUILD"


class RequestTimeoutError(RequestError):
    """Local timer elapsed before the exchange settled."""

    default_code = "ERR_TIMEOUT"


class NetworkError(RequestError):
    """The exchange primitive failed without producing a response."""

    default_code = "ERR_NETWORK"


class StatusValidationError(RequestError):
    """Response status rejected by the status validator."""

    def __init__(self, message: str, *, status: int, **kwargs: Any) -> None:
        kwargs.setdefault("code", f"ERR_HTTP_{status}")
        super().__init__(message, status=status, **kwargs)


class RequestAbortedError(RequestError):
    """Request cancelled through its handle."""

    default_code = "ERR_CANCELED"


class RequestSupersededError(RequestAbortedError):
    """Request cancelled because an identical request replaced it."""

    default_code = "ERR_SUPERSEDED"
