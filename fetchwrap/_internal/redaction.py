"""Redaction of sensitive header and query values before debug logging."""

from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

REDACT_KEYS: frozenset[str] = frozenset({
    "authorization",
    "proxy-authorization",
    "cookie",
    "set-cookie",
    "x-api-key",
    "api_key",
    "api-key",
    "token",
    "access_token",
    "refresh_token",
    "secret",
    "password",
})

REDACTED_VALUE = "[REDACTED]"


def redact_headers(headers: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of `headers` with sensitive values replaced.

    The original mapping is never mutated. Matching is case-insensitive.
    """
    return {
        key: REDACTED_VALUE if key.lower() in REDACT_KEYS else value
        for key, value in headers.items()
    }


def redact_url(url: str) -> str:
    """Return `url` with sensitive query parameter values replaced."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    pairs = [
        (key, REDACTED_VALUE if key.lower() in REDACT_KEYS else value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(pairs, safe="[]")))
