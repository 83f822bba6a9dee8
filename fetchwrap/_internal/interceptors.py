"""Ordered request/response interceptor chains and their error observers."""

import inspect
from collections.abc import Awaitable, Callable
from typing import Any

Interceptor = Callable[[Any], Any | Awaitable[Any]]
ErrorObserver = Callable[[BaseException], Any]


async def _call(fn: Callable[[Any], Any], value: Any) -> Any:
    result = fn(value)
    if inspect.isawaitable(result):
        result = await result
    return result


class InterceptorChain:
    """One direction (request or response) of the interceptor registry."""

    def __init__(self) -> None:
        self.handlers: list[Interceptor] = []
        self.error_handlers: list[ErrorObserver] = []

    def use(self, fn: Interceptor, error_fn: ErrorObserver | None = None) -> None:
        """Append a stage and, optionally, an error observer.

        Stages may be sync or async. Each receives the previous stage's
        output; returning None keeps the previous value.
        """
        self.handlers.append(fn)
        if error_fn is not None:
            self.error_handlers.append(error_fn)

    async def run(self, value: Any) -> Any:
        """Run the stages strictly in registration order."""
        for handler in self.handlers:
            result = await _call(handler, value)
            if result is not None:
                value = result
        return value

    def __len__(self) -> int:
        return len(self.handlers)


class InterceptorRegistry:
    """The four interceptor lists owned by one service.

    Registration is additive only. Register interceptors before issuing any
    sends whose relative ordering matters.
    """

    def __init__(self, log_debug: Callable[[str], None] | None = None) -> None:
        self.request = InterceptorChain()
        self.response = InterceptorChain()
        self._log_debug = log_debug or (lambda message: None)

    async def notify(
        self, observers: list[ErrorObserver], error: BaseException
    ) -> BaseException:
        """Invoke every observer with `error`, isolating their failures.

        Returns:
            The error to propagate: the last exception instance returned by
            an observer, or `error` itself.
        """
        propagated = error
        for observer in list(observers):
            try:
                result = await _call(observer, error)
            except Exception as e:
                self._log_debug(f"Error observer {observer!r} failed: {e}")
                continue
            if isinstance(result, BaseException):
                propagated = result
        return propagated

    async def notify_request_error(self, error: BaseException) -> BaseException:
        return await self.notify(self.request.error_handlers, error)

    async def notify_response_error(self, error: BaseException) -> BaseException:
        return await self.notify(self.response.error_handlers, error)
