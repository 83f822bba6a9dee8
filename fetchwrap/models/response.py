"""Response-side models: raw exchange results and caller-facing responses."""

from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from fetchwrap.models.config import EffectiveRequestConfig


class ExchangeResult(BaseModel):
    """Outcome of one network round trip, as reported by the host primitive."""

    status: int
    status_text: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""

    @property
    def status_ok(self) -> bool:
        return 200 <= self.status < 300


class Response(BaseModel):
    """Response delivered to callers after a successful call."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    data: Any = None
    status: int
    status_text: str = ""
    headers: httpx.Headers
    config: EffectiveRequestConfig
