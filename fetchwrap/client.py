"""User-facing service built from a global config and an endpoint map.

Example:
    from fetchwrap import create_service

    service = create_service(
        {"base_url": "https://api.example.com", "retry": True, "retry_count": 2},
        {"get_user": {"path": "users", "method": "GET"}},
    )

    handle = service.get_user(path="42")
    response = await handle.send()
    print(response.data)

    # Convenience verbs run through the same execution engine
    created = await service.post("users", {"name": "Ada"})
"""

import asyncio
from collections.abc import Iterator, Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from fetchwrap._internal.context import ServiceContext
from fetchwrap._internal.execution import Execution
from fetchwrap._internal.http import Exchange, HttpxExchange
from fetchwrap._internal.interceptors import InterceptorRegistry
from fetchwrap._internal.join import join_all, race
from fetchwrap._internal.pending import PendingRequestRegistry
from fetchwrap._internal.resolver import resolve_config
from fetchwrap.exceptions import BuildError, FetchwrapConfigError, FetchwrapError
from fetchwrap.models.config import (
    DEFAULT_DATA_TYPE,
    DEFAULT_METHOD,
    CallConfig,
    EndpointConfig,
    GlobalConfig,
    RequestOptions,
)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _coerce(model: type[ModelT], value: ModelT | Mapping[str, Any] | None, **fields: Any) -> ModelT:
    """Validate a model instance or mapping, plus keyword fields, into `model`."""
    if isinstance(value, model) and not fields:
        return value
    if isinstance(value, RequestOptions):
        data: dict[str, Any] = value.explicit()
    elif isinstance(value, BaseModel):
        data = value.model_dump(exclude_unset=True)
    else:
        data = dict(value or {})
    try:
        return model.model_validate({**data, **fields})
    except ValidationError as e:
        raise FetchwrapConfigError(f"Invalid {model.__name__}: {e}") from e


class RequestHandle:
    """One invocation of an endpoint: `send()` it, optionally `abort()` it."""

    def __init__(self, context: ServiceContext, endpoint: EndpointConfig, call: CallConfig) -> None:
        self._context = context
        self._endpoint = endpoint
        self._call = call
        self._execution: Execution | None = None
        self._task: asyncio.Task[Any] | None = None
        self._abort_requested = False

    @property
    def execution(self) -> Execution | None:
        """Execution of the latest `send()`, once it has started."""
        return self._execution

    def send(self, overrides: CallConfig | Mapping[str, Any] | None = None, **fields: Any) -> "asyncio.Task[Any]":
        """Schedule the request and return a task resolving to its result.

        Args:
            overrides: Per-send overrides, shallow-merged over the handle's
                call configuration.
            **fields: Additional override fields.

        Returns:
            A task; awaiting it yields the response or raises a RequestError.
        """
        call = self._call.merged(_coerce(CallConfig, overrides, **fields))
        self._execution = None
        self._abort_requested = False
        self._task = asyncio.ensure_future(self._run(call))
        return self._task

    async def _run(self, call: CallConfig) -> Any:
        try:
            config = resolve_config(self._context.config, self._endpoint, call)
        except BuildError as e:
            raise await self._context.interceptors.notify_request_error(e)
        execution = Execution(self._context, config)
        self._execution = execution
        if self._abort_requested:
            execution.abort()
        return await execution.run()

    def abort(self) -> None:
        """Cancel the in-flight request. A no-op once it has settled.

        Raises:
            FetchwrapError: If called before `send()`.
        """
        if self._task is None:
            raise FetchwrapError("Send the request before aborting it")
        if self._execution is not None:
            self._execution.abort()
        elif not self._task.done():
            self._abort_requested = True


class Endpoint:
    """Callable endpoint template; each call yields a fresh RequestHandle."""

    def __init__(self, context: ServiceContext, name: str, config: EndpointConfig) -> None:
        self._context = context
        self.name = name
        self.config = config

    def __call__(self, call_config: CallConfig | Mapping[str, Any] | None = None, **fields: Any) -> RequestHandle:
        return RequestHandle(self._context, self.config, _coerce(CallConfig, call_config, **fields))

    def __repr__(self) -> str:
        return f"<Endpoint {self.name} {self.config.method} {self.config.path!r}>"


class Service:
    """A set of named endpoints sharing one configuration and one context.

    Endpoints are available by item access (`service["name"]`) and, when
    the name does not clash with a Service attribute, by attribute access.
    """

    all = staticmethod(join_all)
    race = staticmethod(race)

    def __init__(
        self,
        config: GlobalConfig | Mapping[str, Any] | None = None,
        endpoints: Mapping[str, EndpointConfig | Mapping[str, Any]] | None = None,
        *,
        exchange: Exchange | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            config: Global configuration (model or mapping).
            endpoints: Endpoint descriptors keyed by name.
            exchange: Host exchange primitive. Defaults to an httpx-backed
                exchange owned (and closed) by the service.
        """
        self.config = _coerce(GlobalConfig, config)
        self._owned_exchange = HttpxExchange() if exchange is None else None
        self._context = ServiceContext(self.config, exchange or self._owned_exchange)
        self.endpoints: dict[str, Endpoint] = {
            name: Endpoint(self._context, name, self._prepare(descriptor))
            for name, descriptor in (endpoints or {}).items()
        }

    def _prepare(self, descriptor: EndpointConfig | Mapping[str, Any]) -> EndpointConfig:
        """Apply the one-time endpoint defaults."""
        endpoint = _coerce(EndpointConfig, descriptor)
        defaults = {
            "method": DEFAULT_METHOD,
            "data_type": DEFAULT_DATA_TYPE,
            "headers": {},
            "credentials": self.config.credentials,
        }
        return EndpointConfig(**{**defaults, **endpoint.explicit()})

    @property
    def interceptors(self) -> InterceptorRegistry:
        return self._context.interceptors

    @property
    def pending(self) -> PendingRequestRegistry:
        return self._context.pending

    def __getitem__(self, name: str) -> Endpoint:
        return self.endpoints[name]

    def __getattr__(self, name: str) -> Endpoint:
        endpoints = self.__dict__.get("endpoints", {})
        if name in endpoints:
            return endpoints[name]
        raise AttributeError(f"{type(self).__name__!r} has no endpoint or attribute {name!r}")

    def __contains__(self, name: object) -> bool:
        return name in self.endpoints

    def __iter__(self) -> Iterator[str]:
        return iter(self.endpoints)

    # =========================================================================
    # Convenience Methods
    # =========================================================================

    def request(
        self,
        method: str,
        url: str,
        body: Any = None,
        config: CallConfig | Mapping[str, Any] | None = None,
    ) -> "asyncio.Task[Any]":
        """Send an ad-hoc request through the execution engine.

        Args:
            method: HTTP method.
            url: Path relative to the base URL, or an absolute http(s) URL.
            body: Optional request body; replaces any body in `config`.
            config: Per-call configuration.

        Returns:
            A task resolving to the response.
        """
        endpoint = self._prepare({"path": url, "method": method})
        call = _coerce(CallConfig, config)
        if body is not None:
            call = call.merged(CallConfig(body=body))
        return RequestHandle(self._context, endpoint, call).send()

    def get(self, url: str, config: CallConfig | Mapping[str, Any] | None = None) -> "asyncio.Task[Any]":
        return self.request("GET", url, config=config)

    def delete(self, url: str, config: CallConfig | Mapping[str, Any] | None = None) -> "asyncio.Task[Any]":
        return self.request("DELETE", url, config=config)

    def head(self, url: str, config: CallConfig | Mapping[str, Any] | None = None) -> "asyncio.Task[Any]":
        return self.request("HEAD", url, config=config)

    def options(self, url: str, config: CallConfig | Mapping[str, Any] | None = None) -> "asyncio.Task[Any]":
        return self.request("OPTIONS", url, config=config)

    def post(
        self, url: str, body: Any = None, config: CallConfig | Mapping[str, Any] | None = None
    ) -> "asyncio.Task[Any]":
        return self.request("POST", url, body, config)

    def put(
        self, url: str, body: Any = None, config: CallConfig | Mapping[str, Any] | None = None
    ) -> "asyncio.Task[Any]":
        return self.request("PUT", url, body, config)

    def patch(
        self, url: str, body: Any = None, config: CallConfig | Mapping[str, Any] | None = None
    ) -> "asyncio.Task[Any]":
        return self.request("PATCH", url, body, config)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def aclose(self) -> None:
        """Close the default exchange's HTTP client, if the service owns one."""
        if self._owned_exchange is not None:
            await self._owned_exchange.aclose()

    async def __aenter__(self) -> "Service":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def create_service(
    config: GlobalConfig | Mapping[str, Any] | None = None,
    endpoints: Mapping[str, EndpointConfig | Mapping[str, Any]] | None = None,
    *,
    exchange: Exchange | None = None,
) -> Service:
    """Build a service from a global config and an endpoint map.

    This is a convenience function equivalent to constructing `Service`.

    Returns:
        A configured Service instance.
    """
    return Service(config, endpoints, exchange=exchange)
