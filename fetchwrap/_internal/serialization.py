"""Query-string and body serialization per data type."""

import json
from collections.abc import Callable
from typing import Any
from urllib.parse import quote, urlencode

import httpx

from fetchwrap.exceptions import BuildError

# Placeholder URL; httpx needs one to encode a multipart request body.
_MULTIPART_URL = "http://multipart.invalid/"


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def serialize_query(query: dict[str, Any]) -> str:
    """Serialize a query mapping to `key=value&...` (None values dropped)."""
    parts: list[str] = []
    for key, value in query.items():
        if value is None:
            continue
        values = value if isinstance(value, (list, tuple)) else [value]
        for item in values:
            parts.append(f"{quote(str(key), safe='')}={quote(_stringify(item), safe='')}")
    return "&".join(parts)


def _format_json(body: Any) -> tuple[str, Any]:
    if isinstance(body, (str, bytes)):
        return "application/json;charset=UTF-8", body
    return "application/json;charset=UTF-8", json.dumps(body)


def _format_urlencoded(body: Any) -> tuple[str, Any]:
    content_type = "application/x-www-form-urlencoded;charset=UTF-8"
    if not isinstance(body, dict):
        return content_type, body
    return content_type, urlencode(
        {key: _stringify(value) for key, value in body.items() if value is not None}
    )


def _as_part(value: Any) -> Any:
    # (None, content) encodes a plain field without a filename
    if isinstance(value, tuple):
        return value
    if isinstance(value, bytes):
        return (None, value)
    return (None, _stringify(value))


def _format_form_data(body: Any) -> tuple[str, Any]:
    if not isinstance(body, dict):
        raise BuildError("form-data body must be a mapping")
    request = httpx.Request(
        "POST",
        _MULTIPART_URL,
        files={key: _as_part(value) for key, value in body.items() if value is not None},
    )
    return request.headers["Content-Type"], request.read()


def _format_passthrough(content_type: str) -> Callable[[Any], tuple[str, Any]]:
    return lambda body: (content_type, body)


FORMATTERS: dict[str, Callable[[Any], tuple[str, Any]]] = {
    "json": _format_json,
    "form-urlencoded": _format_urlencoded,
    "form-data": _format_form_data,
    "html": _format_passthrough("text/html;charset=UTF-8"),
    "xml": _format_passthrough("application/xml;charset=UTF-8"),
}


def format_body(body: Any, data_type: str) -> tuple[str, str | bytes]:
    """Serialize `body` for `data_type`.

    Returns:
        The (content type, serialized body) pair.

    Raises:
        BuildError: If the data type is unknown or the body cannot be encoded.
    """
    formatter = FORMATTERS.get(data_type)
    if formatter is None:
        raise BuildError(f"Invalid data type: {data_type!r}")
    try:
        content_type, serialized = formatter(body)
    except (TypeError, ValueError) as e:
        raise BuildError(f"Could not serialize {data_type} body: {e}") from e
    if not isinstance(serialized, (str, bytes)):
        serialized = _stringify(serialized)
    return content_type, serialized
