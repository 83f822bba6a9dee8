"""Host exchange primitive: one network round trip over httpx."""

import asyncio
from typing import Protocol

import httpx

from fetchwrap._internal.abort import AbortToken
from fetchwrap._version import __version__
from fetchwrap.exceptions import NetworkError, RequestAbortedError
from fetchwrap.models.config import EffectiveRequestConfig
from fetchwrap.models.response import ExchangeResult

# Methods sent without a body even when one was resolved
BODYLESS_METHODS = frozenset({"GET", "HEAD"})


class Exchange(Protocol):
    """Performs one exchange, honoring `token` as a best-effort cancel signal."""

    async def __call__(
        self, config: EffectiveRequestConfig, token: AbortToken
    ) -> ExchangeResult: ...


def create_http_client(
    *,
    base_url: str | None = None,
) -> httpx.AsyncClient:
    """Create configured async HTTP client.

    Timeouts are enforced by the execution layer, so the client itself
    never times out.

    Args:
        base_url: Optional base URL for all requests.

    Returns:
        Configured httpx.AsyncClient instance.
    """
    return httpx.AsyncClient(
        timeout=None,
        base_url=base_url or "",
        headers={"User-Agent": f"fetchwrap/{__version__}"},
    )


class HttpxExchange:
    """Default exchange primitive backed by `httpx.AsyncClient`."""

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client or create_http_client()
        self._owns_client = client is None

    async def __call__(
        self, config: EffectiveRequestConfig, token: AbortToken
    ) -> ExchangeResult:
        if token.aborted:
            raise RequestAbortedError("Request aborted before sending", config=config)

        headers, body = config.headers, config.body
        if config.method in BODYLESS_METHODS and body is not None:
            headers = {k: v for k, v in headers.items() if k.lower() != "content-type"}
            body = None
        request = self._client.build_request(
            config.method,
            config.url,
            headers=headers,
            content=body,
        )
        send = asyncio.ensure_future(self._client.send(request))
        watcher = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait({send, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            watcher.cancel()
            if not send.done():
                send.cancel()

        if send.cancelled():
            raise RequestAbortedError("Request aborted", config=config)
        try:
            response = send.result()
        except httpx.HTTPError as e:
            raise NetworkError(f"{type(e).__name__}: {e}", config=config) from e

        return ExchangeResult(
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=dict(response.headers.multi_items()),
            body=response.content,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
