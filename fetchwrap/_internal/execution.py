"""State machine driving one logical call across one or more exchanges.

    BUILDING -> SENDING -> SUCCEEDED
                        -> TIMEOUT_RETRY -> SENDING | FAILED
                        -> RETRY_WAIT    -> SENDING
                        -> FAILED
                        -> ABORTED

The timeout counter and the failure-retry counter are independent. A token
that is already triggered short-circuits to ABORTED before either retry
branch is considered, so a self-inflicted abort never causes a retry. An
abort requested before the call starts settles without running the request
interceptors or claiming the dedup slot.
"""

import asyncio
import json
from enum import Enum
from typing import Any

import httpx

from fetchwrap._internal.abort import AbortCoordinator, AbortReason, AbortToken
from fetchwrap._internal.context import ServiceContext
from fetchwrap._internal.redaction import redact_headers, redact_url
from fetchwrap.exceptions import (
    BuildError,
    FetchwrapError,
    NetworkError,
    RequestAbortedError,
    RequestError,
    RequestSupersededError,
    RequestTimeoutError,
)
from fetchwrap.models.config import EffectiveRequestConfig, ResponseType
from fetchwrap.models.response import ExchangeResult, Response
from fetchwrap.status import error_from_response, is_success
from fetchwrap.transformers import TransformerPipeline


class ExecutionState(str, Enum):
    PENDING = "pending"
    BUILDING = "building"
    SENDING = "sending"
    SUCCEEDED = "succeeded"
    TIMEOUT_RETRY = "timeout_retry"
    RETRY_WAIT = "retry_wait"
    FAILED = "failed"
    ABORTED = "aborted"


def decode_body(body: bytes, response_type: ResponseType) -> Any:
    """Decode a raw response body; JSON falls back to text when unparsable."""
    if response_type == "bytes":
        return body
    text = body.decode("utf-8", errors="replace")
    if response_type == "text":
        return text
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


class Execution:
    """One `send` of a request handle.

    Owns the attempt counters and the abort coordinator for the call. The
    effective config passed in is the resolver's output; request
    interceptors run over it when the execution starts.
    """

    def __init__(self, context: ServiceContext, config: EffectiveRequestConfig) -> None:
        self._context = context
        self._config = config
        self._coordinator = AbortCoordinator()
        self._signature: str | None = None
        self._started = False
        self._settled = False
        self._notified_at: float | None = None

        self.state = ExecutionState.PENDING
        self.history: list[ExecutionState] = []
        self.retries = 0
        self.timeout_retries = 0
        self.exchanges = 0

    @property
    def settled(self) -> bool:
        return self._settled

    @property
    def token(self) -> AbortToken:
        """Token of the current (or next) exchange."""
        return self._coordinator.current

    def abort(self) -> bool:
        """Cancel the call. A no-op once the call has settled.

        Returns:
            True if this call triggered the cancellation.
        """
        if self._settled:
            return False
        return self._coordinator.abort(AbortReason.USER)

    async def run(self) -> Any:
        """Drive the call to completion.

        Returns:
            The output of the response interceptor chain (a `Response` when
            no interceptor replaces it).

        Raises:
            RequestError: The terminal error of the call.
        """
        if self._started:
            raise FetchwrapError("Execution can only be run once")
        self._started = True
        try:
            if self._coordinator.current.aborted:
                raise self._aborted(self._coordinator.current, self._config)
            config = await self._build()
            # An abort during the request interceptors must not take the dedup slot
            if self._coordinator.current.aborted:
                raise self._aborted(self._coordinator.current, config)
            self._claim(config)
            return await self._drive(config)
        finally:
            self._settled = True
            if self._signature is not None:
                self._context.pending.release(self._signature, self._coordinator.current)

    # =========================================================================
    # States
    # =========================================================================

    def _transition(self, state: ExecutionState) -> None:
        self._context.log_debug(
            f"{self._config.method} {redact_url(self._config.url)}: "
            f"{self.state.value} -> {state.value}"
        )
        self.state = state
        self.history.append(state)

    async def _build(self) -> EffectiveRequestConfig:
        self._transition(ExecutionState.BUILDING)
        try:
            config = await self._context.interceptors.request.run(self._config)
            if not isinstance(config, EffectiveRequestConfig):
                raise TypeError(
                    f"request interceptor returned {type(config).__name__}, "
                    "expected EffectiveRequestConfig"
                )
        except Exception as e:
            if isinstance(e, BuildError):
                error = e
            else:
                error = BuildError(f"Request interceptor failed: {e}", config=self._config)
                error.__cause__ = e
            self._transition(ExecutionState.FAILED)
            raise await self._context.interceptors.notify_request_error(error)
        return config

    def _claim(self, config: EffectiveRequestConfig) -> None:
        if not config.cancel_repeated_requests:
            return
        self._signature = config.signature
        superseded = self._context.pending.claim(self._signature, self._coordinator.current)
        if superseded is not None:
            self._context.log_debug(f"Superseded pending request {redact_url(config.url)}")

    async def _drive(self, config: EffectiveRequestConfig) -> Any:
        while True:
            token = self._coordinator.current
            if token.aborted:
                raise self._aborted(token, config)

            self._transition(ExecutionState.SENDING)
            if self.exchanges == 0:
                self._context.log_debug(f"Headers: {redact_headers(config.headers)}")
            self.exchanges += 1
            result, error = await self._exchange(config, token)

            if token.aborted:
                raise self._aborted(token, config)

            if result is None and error is None:
                self._transition(ExecutionState.TIMEOUT_RETRY)
                old, new = self._coordinator.rotate()
                if self._signature is not None:
                    self._context.pending.rebind(self._signature, old, new)
                if config.timeout_retry and self.timeout_retries < config.timeout_retry_count:
                    self.timeout_retries += 1
                    self._context.log_debug(
                        f"{self.timeout_retries} timeout retrying {redact_url(config.url)}"
                    )
                    continue
                raise await self._fail(
                    RequestTimeoutError(
                        f"Request timed out after {config.timeout_ms:g} ms", config=config
                    )
                )

            if result is not None:
                try:
                    response = self._to_response(result, config)
                except RequestError as e:
                    error = e
                else:
                    return await self._succeed(response, config)

            assert error is not None
            if config.retry and self.retries < config.retry_count:
                self.retries += 1
                self._transition(ExecutionState.RETRY_WAIT)
                self._context.log_debug(f"{self.retries} retrying {redact_url(config.url)}")
                await self._pause(config.retry_interval_ms, token)
                continue
            raise await self._fail(error)

    async def _succeed(self, response: Response, config: EffectiveRequestConfig) -> Any:
        try:
            if config.transform_response:
                transform = TransformerPipeline(config.transform_response)
                response = response.model_copy(update={"data": transform(response.data)})
            final = await self._context.interceptors.response.run(response)
        except Exception as e:
            if isinstance(e, RequestError):
                error = e
            else:
                error = RequestError(
                    f"Response handling failed: {e}",
                    status=response.status,
                    status_text=response.status_text,
                    response=response,
                    config=config,
                )
                error.__cause__ = e
            raise await self._fail(error)
        self._transition(ExecutionState.SUCCEEDED)
        return final

    async def _fail(self, error: RequestError) -> BaseException:
        """Enter FAILED and return the error to raise."""
        self._transition(ExecutionState.FAILED)
        now = asyncio.get_running_loop().time()
        window = self._context.config.error_debounce_ms / 1000
        if self._notified_at is not None and now - self._notified_at < window:
            return error
        self._notified_at = now
        return await self._context.interceptors.notify_response_error(error)

    def _aborted(self, token: AbortToken, config: EffectiveRequestConfig) -> RequestAbortedError:
        self._transition(ExecutionState.ABORTED)
        if token.reason is AbortReason.SUPERSEDED:
            return RequestSupersededError(
                "Request superseded by an identical request", config=config
            )
        return RequestAbortedError("Request aborted", config=config)

    # =========================================================================
    # Suspension points
    # =========================================================================

    async def _exchange(
        self, config: EffectiveRequestConfig, token: AbortToken
    ) -> tuple[ExchangeResult | None, RequestError | None]:
        """Run one exchange raced against the token and the timeout.

        Returns:
            (result, None) on settlement, (None, error) on failure and
            (None, None) when the timer fired or the token was triggered.
        """
        exchange = asyncio.ensure_future(self._context.exchange(config, token))
        watcher = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait(
                {exchange, watcher},
                timeout=config.timeout_ms / 1000,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            watcher.cancel()
            if not exchange.done():
                exchange.cancel()

        if exchange not in done:
            return None, None
        if exchange.cancelled():
            return None, NetworkError("Exchange was cancelled", config=config)
        exc = exchange.exception()
        if exc is None:
            return exchange.result(), None
        if isinstance(exc, RequestError):
            return None, exc
        error = NetworkError(f"{type(exc).__name__}: {exc}", config=config)
        error.__cause__ = exc
        return None, error

    async def _pause(self, interval_ms: float, token: AbortToken) -> None:
        """Sleep between retries; wakes early if the token is triggered."""
        try:
            await asyncio.wait_for(token.wait(), timeout=interval_ms / 1000)
        except TimeoutError:
            pass

    def _to_response(self, result: ExchangeResult, config: EffectiveRequestConfig) -> Response:
        response = Response(
            data=decode_body(result.body, config.response_type),
            status=result.status,
            status_text=result.status_text,
            headers=httpx.Headers(result.headers),
            config=config,
        )
        validate = config.validate_status or is_success
        if not validate(result.status):
            raise error_from_response(response)
        return response
