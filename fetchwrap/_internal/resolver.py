"""Resolve global, endpoint and call configuration into one effective config."""

import re
from typing import Any

from fetchwrap._internal.serialization import format_body, serialize_query
from fetchwrap.exceptions import BuildError
from fetchwrap.models.config import (
    DEFAULT_DATA_TYPE,
    DEFAULT_METHOD,
    CallConfig,
    EffectiveRequestConfig,
    EndpointConfig,
    GlobalConfig,
)
from fetchwrap.transformers import TransformerPipeline

_LEADING_SLASHES = re.compile(r"^/+")
_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)

# Policy fields that fall back to GlobalConfig
POLICY_FIELDS = (
    "base_url",
    "timeout_ms",
    "timeout_retry",
    "timeout_retry_count",
    "retry",
    "retry_count",
    "retry_interval_ms",
    "cancel_repeated_requests",
    "credentials",
)


def _first(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def build_url(base_url: str, path: str | None, suffix: str | None, query: str) -> str:
    """Join base URL, endpoint path and call suffix, then append the query."""
    endpoint_path = path or ""
    if _ABSOLUTE_URL.match(endpoint_path):
        url = endpoint_path + (f"/{suffix}" if suffix else "")
    else:
        joined = f"/{endpoint_path}" + (f"/{suffix}" if suffix else "")
        url = base_url + _LEADING_SLASHES.sub("/", joined)
    if query:
        url += ("&" if "?" in url else "?") + query
    return url


def merge_body(endpoint_body: Any, call_body: Any) -> Any:
    """Merge dict bodies per key (call wins); otherwise the call body replaces."""
    if isinstance(endpoint_body, dict) and isinstance(call_body, dict):
        return {**endpoint_body, **call_body}
    return _first(call_body, endpoint_body)


def resolve_config(
    global_config: GlobalConfig,
    endpoint: EndpointConfig,
    call: CallConfig | None = None,
) -> EffectiveRequestConfig:
    """Produce the effective configuration for one call.

    Each field resolves independently: call value if set, else endpoint,
    else global, else the built-in default.

    Raises:
        BuildError: If the body cannot be transformed or serialized.
    """
    call = call or CallConfig()

    policy = {
        name: _first(getattr(call, name), getattr(endpoint, name), getattr(global_config, name))
        for name in POLICY_FIELDS
    }

    query = serialize_query({**(endpoint.query or {}), **(call.query or {})})
    url = build_url(policy.pop("base_url"), endpoint.path, call.path, query)

    data_type = _first(call.data_type, endpoint.data_type, default=DEFAULT_DATA_TYPE)
    body = merge_body(endpoint.body, call.body)
    content_type: str | None = None
    serialized: str | bytes | None = None
    if body is not None:
        transform = TransformerPipeline([
            *(endpoint.transform_request or []),
            *(call.transform_request or []),
        ])
        try:
            body = transform(body)
        except Exception as e:
            raise BuildError(f"Request transformer failed: {e}") from e
        content_type, serialized = format_body(body, data_type)

    headers = {
        **global_config.headers,
        **(endpoint.headers or {}),
        **(call.headers or {}),
    }
    if serialized is not None and content_type:
        headers = {k: v for k, v in headers.items() if k.lower() != "content-type"}
        headers["Content-Type"] = content_type

    return EffectiveRequestConfig(
        url=url,
        method=_first(call.method, endpoint.method, default=DEFAULT_METHOD),
        headers=headers,
        body=serialized,
        content_type=content_type,
        data_type=data_type,
        response_type=_first(call.response_type, endpoint.response_type, default="json"),
        validate_status=_first(call.validate_status, endpoint.validate_status),
        transform_response=[
            *(endpoint.transform_response or []),
            *(call.transform_response or []),
        ],
        **policy,
    )
