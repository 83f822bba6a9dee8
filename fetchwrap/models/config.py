"""Pydantic models for service, endpoint and per-call configuration.

Scopes resolve narrowest-first: call > endpoint > global > built-in default.
On endpoint and call models every field defaults to None, which means
"not set at this scope"; an explicit False or 0 is a real value and wins.
"""

import os
from collections.abc import Callable
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# =============================================================================
# Constants
# =============================================================================

DEFAULT_TIMEOUT_MS = 30000
DEFAULT_ERROR_DEBOUNCE_MS = 2000
DEFAULT_METHOD = "GET"
DEFAULT_DATA_TYPE = "json"
DEFAULT_CREDENTIALS = "same-origin"

CredentialsPolicy = Literal["omit", "same-origin", "include"]
ResponseType = Literal["json", "text", "bytes"]
Transformer = Callable[[Any], Any]
StatusValidator = Callable[[int], bool]

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def _env_flag(name: str) -> bool | None:
    value = os.environ.get(name)
    if value is None:
        return None
    return value.strip().lower() in _TRUTHY


def _env_int(name: str) -> int | None:
    value = os.environ.get(name)
    if value is None:
        return None
    return int(value)


# =============================================================================
# Global Configuration
# =============================================================================


class GlobalConfig(BaseModel):
    """Service-wide defaults, set once when the service is constructed."""

    model_config = ConfigDict(extra="forbid")

    base_url: str = ""
    timeout_ms: float = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    timeout_retry: bool = False
    timeout_retry_count: int = Field(default=0, ge=0)
    retry: bool = False
    retry_count: int = Field(default=0, ge=0)
    retry_interval_ms: float = Field(default=0, ge=0)
    cancel_repeated_requests: bool = False
    credentials: CredentialsPolicy = DEFAULT_CREDENTIALS
    headers: dict[str, str] = Field(default_factory=dict)
    error_debounce_ms: float = Field(default=DEFAULT_ERROR_DEBOUNCE_MS, ge=0)
    debug: bool = False

    @classmethod
    def from_env(cls) -> "GlobalConfig":
        """Create a global configuration from environment variables.

        Recognized environment variables:
            FETCHWRAP_BASE_URL: Base URL prepended to every endpoint path.
            FETCHWRAP_TIMEOUT_MS: Per-exchange timeout in milliseconds.
            FETCHWRAP_TIMEOUT_RETRY: "1"/"true" to re-send timed out exchanges.
            FETCHWRAP_TIMEOUT_RETRY_COUNT: Maximum number of timeout re-sends.
            FETCHWRAP_RETRY: "1"/"true" to retry failed exchanges.
            FETCHWRAP_RETRY_COUNT: Maximum number of failure retries.
            FETCHWRAP_RETRY_INTERVAL_MS: Delay between failure retries.
            FETCHWRAP_CANCEL_REPEATED: "1"/"true" to cancel repeated requests.
            FETCHWRAP_DEBUG: Set to "1" to enable debug logging.

        Unset variables keep their defaults. Malformed integers raise ValueError.

        Returns:
            A GlobalConfig built from the environment.
        """
        values: dict[str, Any] = {
            "base_url": os.environ.get("FETCHWRAP_BASE_URL"),
            "timeout_ms": _env_int("FETCHWRAP_TIMEOUT_MS"),
            "timeout_retry": _env_flag("FETCHWRAP_TIMEOUT_RETRY"),
            "timeout_retry_count": _env_int("FETCHWRAP_TIMEOUT_RETRY_COUNT"),
            "retry": _env_flag("FETCHWRAP_RETRY"),
            "retry_count": _env_int("FETCHWRAP_RETRY_COUNT"),
            "retry_interval_ms": _env_int("FETCHWRAP_RETRY_INTERVAL_MS"),
            "cancel_repeated_requests": _env_flag("FETCHWRAP_CANCEL_REPEATED"),
            "debug": os.environ.get("FETCHWRAP_DEBUG", "") == "1",
        }
        return cls(**{key: value for key, value in values.items() if value is not None})


# =============================================================================
# Endpoint / Call Configuration
# =============================================================================


class RequestOptions(BaseModel):
    """Fields shared by endpoint descriptors and per-call configuration."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    path: str | None = None
    method: str | None = None
    query: dict[str, Any] | None = None
    body: Any = None
    headers: dict[str, str] | None = None
    data_type: str | None = None
    response_type: ResponseType | None = None
    validate_status: StatusValidator | None = None
    transform_request: list[Transformer] | None = None
    transform_response: list[Transformer] | None = None

    # Per-scope overrides of GlobalConfig policy
    base_url: str | None = None
    timeout_ms: float | None = Field(default=None, gt=0)
    timeout_retry: bool | None = None
    timeout_retry_count: int | None = Field(default=None, ge=0)
    retry: bool | None = None
    retry_count: int | None = Field(default=None, ge=0)
    retry_interval_ms: float | None = Field(default=None, ge=0)
    cancel_repeated_requests: bool | None = None
    credentials: CredentialsPolicy | None = None

    @field_validator("method")
    @classmethod
    def method_upper(cls, v: str | None) -> str | None:
        if v is not None:
            if not v.strip():
                raise ValueError("method must not be empty")
            return v.strip().upper()
        return v

    def explicit(self) -> dict[str, Any]:
        """Return the fields that were set to a non-None value."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if getattr(self, name) is not None
        }


class EndpointConfig(RequestOptions):
    """Reusable named template describing one request shape.

    `path` is the endpoint path appended to the base URL; an absolute
    http(s) URL is used as-is.
    """


class CallConfig(RequestOptions):
    """Per-invocation overrides. `path` is appended to the endpoint path."""

    def merged(self, overrides: "CallConfig | None") -> "CallConfig":
        """Shallow-merge explicitly set override fields over this config."""
        if overrides is None:
            return self
        return CallConfig(**{**self.explicit(), **overrides.explicit()})


# =============================================================================
# Effective Configuration
# =============================================================================


class EffectiveRequestConfig(BaseModel):
    """Fully merged, exchange-ready configuration for one logical call.

    Frozen: request interceptors derive new instances with `model_copy`.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    url: str
    method: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: str | bytes | None = None
    content_type: str | None = None
    data_type: str = DEFAULT_DATA_TYPE
    credentials: CredentialsPolicy = DEFAULT_CREDENTIALS

    timeout_ms: float = DEFAULT_TIMEOUT_MS
    timeout_retry: bool = False
    timeout_retry_count: int = 0
    retry: bool = False
    retry_count: int = 0
    retry_interval_ms: float = 0
    cancel_repeated_requests: bool = False

    response_type: ResponseType = "json"
    validate_status: StatusValidator | None = None
    transform_response: list[Transformer] = Field(default_factory=list)

    @property
    def signature(self) -> str:
        """Dedup identity of the request: resolved URL plus method."""
        return f"{self.url}+{self.method}"
