"""HTTP status helpers, error classifiers, recovery and reporting."""

import asyncio
import sys
from collections.abc import Awaitable, Callable, Collection
from http import HTTPStatus
from typing import Any, TypeVar

from fetchwrap._internal.redaction import redact_url
from fetchwrap.exceptions import (
    NetworkError,
    RequestAbortedError,
    RequestError,
    RequestTimeoutError,
    StatusValidationError,
)
from fetchwrap.models.config import StatusValidator
from fetchwrap.models.response import Response

T = TypeVar("T")

RETRYABLE_STATUSES: frozenset[int] = frozenset({
    HTTPStatus.REQUEST_TIMEOUT,
    HTTPStatus.TOO_MANY_REQUESTS,
    HTTPStatus.INTERNAL_SERVER_ERROR,
    HTTPStatus.BAD_GATEWAY,
    HTTPStatus.SERVICE_UNAVAILABLE,
    HTTPStatus.GATEWAY_TIMEOUT,
})


def status_message(status: int) -> str:
    """Return the standard reason phrase for `status`, or "Unknown Status"."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Unknown Status"


def is_informational(status: int) -> bool:
    return 100 <= status < 200


def is_success(status: int) -> bool:
    return 200 <= status < 300


def is_redirection(status: int) -> bool:
    return 300 <= status < 400


def is_client_error(status: int) -> bool:
    return 400 <= status < 500


def is_server_error(status: int) -> bool:
    return 500 <= status < 600


def is_error(status: int) -> bool:
    return status >= 400


def requires_auth(status: int) -> bool:
    return status == HTTPStatus.UNAUTHORIZED


def is_forbidden(status: int) -> bool:
    return status == HTTPStatus.FORBIDDEN


def is_rate_limited(status: int) -> bool:
    return status == HTTPStatus.TOO_MANY_REQUESTS


def create_status_validator(valid_statuses: Collection[int] | None = None) -> StatusValidator:
    """Build a status validator.

    Args:
        valid_statuses: Explicit set of accepted statuses. When omitted, any
            2xx status is accepted.

    Returns:
        A predicate over the numeric status.
    """
    if valid_statuses is not None:
        accepted = frozenset(valid_statuses)
        return lambda status: status in accepted
    return is_success


def error_from_response(response: Response) -> StatusValidationError:
    """Build the error raised for a response rejected by status validation."""
    status_text = status_message(response.status)
    if status_text == "Unknown Status":
        status_text = response.status_text or "Unknown Error"
    return StatusValidationError(
        f"Request failed with status {response.status}: {status_text}",
        status=response.status,
        status_text=status_text,
        response=response,
        config=response.config,
    )


# =============================================================================
# Error Classifiers
# =============================================================================


def is_network_error(error: BaseException) -> bool:
    return isinstance(error, NetworkError)


def is_timeout_error(error: BaseException) -> bool:
    return isinstance(error, RequestTimeoutError)


def is_cancel_error(error: BaseException) -> bool:
    return isinstance(error, RequestAbortedError)


def is_retryable_error(error: BaseException) -> bool:
    """Network failures, timeouts and transient statuses are worth retrying."""
    if is_network_error(error) or is_timeout_error(error):
        return True
    if isinstance(error, RequestError) and error.status is not None:
        return error.status in RETRYABLE_STATUSES
    return False


def is_auth_error(error: BaseException) -> bool:
    return isinstance(error, RequestError) and error.status in (
        HTTPStatus.UNAUTHORIZED,
        HTTPStatus.FORBIDDEN,
    )


# =============================================================================
# Error Recovery
# =============================================================================


async def _retry_with_delays(
    request_fn: Callable[[], Awaitable[T]],
    max_retries: int,
    delay_for: Callable[[int], float],
) -> T:
    attempt = 0
    while True:
        try:
            return await request_fn()
        except Exception as e:
            if attempt >= max_retries or not is_retryable_error(e):
                raise
        await asyncio.sleep(delay_for(attempt) / 1000)
        attempt += 1


async def retry_with_exponential_backoff(
    request_fn: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay_ms: float = 1000,
) -> T:
    """Re-issue a call with exponentially growing delays.

    Only errors accepted by `is_retryable_error` are retried; anything else
    is raised immediately.

    Args:
        request_fn: Zero-argument factory issuing a fresh call per attempt.
        max_retries: Attempts after the first one.
        base_delay_ms: Delay before the first retry; doubled after each attempt.

    Returns:
        The first successful result.
    """
    return await _retry_with_delays(
        request_fn, max_retries, lambda attempt: base_delay_ms * 2**attempt
    )


async def retry_with_linear_backoff(
    request_fn: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    delay_ms: float = 1000,
) -> T:
    """Re-issue a call with a fixed delay between retryable failures."""
    return await _retry_with_delays(request_fn, max_retries, lambda attempt: delay_ms)


# =============================================================================
# Error Reporting
# =============================================================================

ErrorHandler = Callable[[RequestError], Any]


class ErrorReporter:
    """Fans a failed call out to registered handlers.

    Handlers run in registration order. A failing handler is logged (in
    debug mode) and never prevents the remaining handlers from running.
    """

    def __init__(self, debug: bool = False) -> None:
        self._handlers: list[ErrorHandler] = []
        self._debug = debug

    @property
    def handlers(self) -> list[ErrorHandler]:
        return list(self._handlers)

    def add_handler(self, handler: ErrorHandler) -> None:
        self._handlers.append(handler)

    def remove_handler(self, handler: ErrorHandler) -> None:
        """Remove `handler` if registered; unknown handlers are ignored."""
        if handler in self._handlers:
            self._handlers.remove(handler)

    def report(self, error: RequestError) -> None:
        config = error.config
        self._log_debug(
            f"HTTP error: {error.message} (status={error.status}, "
            f"method={getattr(config, 'method', None)}, "
            f"url={redact_url(config.url) if config is not None else None})"
        )
        for handler in list(self._handlers):
            try:
                handler(error)
            except Exception as e:
                self._log_debug(f"Error handler {handler!r} failed: {e}")

    def _log_debug(self, message: str) -> None:
        if self._debug:
            print(f"[fetchwrap] {message}", file=sys.stderr)


def _warn(message: str) -> None:
    print(f"[fetchwrap] {message}", file=sys.stderr)


def auth_error_handler(error: RequestError) -> None:
    if is_auth_error(error):
        _warn("Authentication failed, please sign in again")


def network_error_handler(error: RequestError) -> None:
    if is_network_error(error):
        _warn("Network connection failed, check the network status")


def server_error_handler(error: RequestError) -> None:
    if error.status is not None and is_server_error(error.status):
        _warn("Server error, please retry later")


def client_error_handler(error: RequestError) -> None:
    if error.status is not None and is_client_error(error.status):
        _warn("Invalid request, check the request parameters")


default_error_handlers: dict[str, ErrorHandler] = {
    "auth": auth_error_handler,
    "network": network_error_handler,
    "server": server_error_handler,
    "client": client_error_handler,
}


def install_default_error_handlers(reporter: ErrorReporter) -> None:
    """Register every handler of `default_error_handlers` on `reporter`."""
    for handler in default_error_handlers.values():
        reporter.add_handler(handler)
