"""Pure data transformers applied to request and response bodies.

Request transformers run over the merged request body before it is
serialized; response transformers run over the decoded response body.
Every transformer is a unary function. Pipelines apply them left-to-right.
"""

import copy
import json
import re
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any, Literal
from urllib.parse import urlencode

from fetchwrap.models.config import Transformer

_CAMEL_BOUNDARY = re.compile(r"[A-Z]")
_SNAKE_BOUNDARY = re.compile(r"_([a-z])")

DEFAULT_DATE_FIELDS = ("created_at", "updated_at", "date")


class TransformerPipeline:
    """Left-to-right composition of unary transformers."""

    def __init__(self, transformers: Iterable[Transformer] = ()) -> None:
        self._transformers: list[Transformer] = list(transformers)

    def __call__(self, data: Any) -> Any:
        for transformer in self._transformers:
            data = transformer(data)
        return data

    def __len__(self) -> int:
        return len(self._transformers)

    def append(self, transformer: Transformer) -> "TransformerPipeline":
        self._transformers.append(transformer)
        return self


def compose(*transformers: Transformer) -> TransformerPipeline:
    """Compose transformers into a single pipeline."""
    return TransformerPipeline(transformers)


def _each(data: Any, transform: Callable[[dict[str, Any]], Any]) -> Any:
    """Apply a dict transform to a dict or to every item of a list."""
    if isinstance(data, list):
        return [_each(item, transform) for item in data]
    if isinstance(data, dict):
        return transform(data)
    return data


# =============================================================================
# Request Transformers
# =============================================================================


def json_stringify(data: Any) -> Any:
    if data is None or isinstance(data, str):
        return data
    return json.dumps(data)


def url_encoded(data: Any) -> Any:
    if not isinstance(data, dict):
        return data
    return urlencode({key: value for key, value in data.items() if value is not None})


def camel_to_snake(data: Any) -> Any:
    """Rename top-level keys from camelCase to snake_case."""
    if not isinstance(data, dict):
        return data
    return {
        _CAMEL_BOUNDARY.sub(lambda m: f"_{m.group(0).lower()}", key): value
        for key, value in data.items()
    }


def remove_empty(data: Any) -> Any:
    """Drop None and empty-string entries from a dict or list."""
    if isinstance(data, list):
        return [item for item in data if item is not None and item != ""]
    if isinstance(data, dict):
        return {
            key: value for key, value in data.items() if value is not None and value != ""
        }
    return data


def form_data(data: Any) -> Any:
    """Convert a dict to multipart form fields.

    None values are dropped; bytes and `(filename, content[, content_type])`
    tuples are kept as file parts, everything else is stringified.
    """
    if not isinstance(data, dict):
        return data
    return {
        key: value if isinstance(value, (bytes, tuple)) else _form_value(value)
        for key, value in data.items()
        if value is not None
    }


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def flatten_array(data: Any) -> Any:
    """Flatten one level of nested lists."""
    if not isinstance(data, list):
        return data
    flat: list[Any] = []
    for item in data:
        if isinstance(item, list):
            flat.extend(item)
        else:
            flat.append(item)
    return flat


def validate(predicate: Callable[[Any], bool]) -> Transformer:
    """Return a transformer that raises ValueError when `predicate` rejects the data."""

    def _validate(data: Any) -> Any:
        if not predicate(data):
            raise ValueError("Data validation failed")
        return data

    return _validate


# =============================================================================
# Response Transformers
# =============================================================================


def json_parse(data: Any) -> Any:
    if isinstance(data, (str, bytes)):
        try:
            return json.loads(data)
        except ValueError:
            return data
    return data


def extract_data(field: str = "data") -> Transformer:
    """Return a transformer unwrapping `field` from a response envelope."""

    def _extract(data: Any) -> Any:
        if isinstance(data, dict) and field in data:
            return data[field]
        return data

    return _extract


def wrap_array(data: Any) -> list[Any]:
    return data if isinstance(data, list) else [data]


def snake_to_camel(data: Any) -> Any:
    """Recursively rename keys from snake_case to camelCase."""
    if isinstance(data, list):
        return [snake_to_camel(item) for item in data]
    if not isinstance(data, dict):
        return data
    return {
        _SNAKE_BOUNDARY.sub(lambda m: m.group(1).upper(), key): snake_to_camel(value)
        for key, value in data.items()
    }


def parse_dates(fields: Iterable[str] = DEFAULT_DATE_FIELDS) -> Transformer:
    """Return a transformer converting ISO-8601 string fields to datetimes."""
    names = tuple(fields)

    def _convert(record: dict[str, Any]) -> dict[str, Any]:
        converted = dict(record)
        for name in names:
            value = converted.get(name)
            if isinstance(value, str):
                try:
                    converted[name] = datetime.fromisoformat(value.replace("Z", "+00:00"))
                except ValueError:
                    pass  # not a date; leave untouched
        return converted

    return lambda data: _each(data, _convert)


def parse_numbers(fields: Iterable[str]) -> Transformer:
    """Return a transformer converting numeric string fields to int/float."""
    names = tuple(fields)

    def _convert(record: dict[str, Any]) -> dict[str, Any]:
        converted = dict(record)
        for name in names:
            value = converted.get(name)
            if isinstance(value, str):
                try:
                    converted[name] = int(value)
                except ValueError:
                    try:
                        converted[name] = float(value)
                    except ValueError:
                        pass
        return converted

    return lambda data: _each(data, _convert)


def parse_booleans(fields: Iterable[str]) -> Transformer:
    names = tuple(fields)

    def _convert(record: dict[str, Any]) -> dict[str, Any]:
        converted = dict(record)
        for name in names:
            value = converted.get(name)
            if isinstance(value, str):
                converted[name] = value.lower() == "true" or value == "1"
            elif isinstance(value, (int, float)) and not isinstance(value, bool):
                converted[name] = value != 0
        return converted

    return lambda data: _each(data, _convert)


def handle_error(data: Any) -> Any:
    """Raise when the payload is an API error envelope (has an `error` key)."""
    if isinstance(data, dict) and "error" in data:
        raise ValueError(data.get("message") or "API Error")
    return data


def extract_pagination(data: Any) -> Any:
    """Normalize common pagination envelopes to `{items, pagination}`."""
    if not isinstance(data, dict):
        return data
    if "data" in data and "pagination" in data:
        return {"items": data["data"], "pagination": data["pagination"]}
    if "items" in data and "total" in data:
        return {
            "items": data["items"],
            "pagination": {
                "total": data["total"],
                "page": data.get("page") or 1,
                "page_size": data.get("page_size") or data.get("per_page") or 10,
            },
        }
    return data


def handle_nulls(replacement: Any = None) -> Transformer:
    """Return a transformer replacing None values recursively."""

    def _replace(data: Any) -> Any:
        if data is None:
            return replacement
        if isinstance(data, list):
            return [_replace(item) for item in data]
        if isinstance(data, dict):
            return {key: _replace(value) for key, value in data.items()}
        return data

    return _replace


# =============================================================================
# Common Transformers
# =============================================================================


def with_default(default: Any) -> Transformer:
    return lambda data: default if data is None else data


def deep_clone(data: Any) -> Any:
    return copy.deepcopy(data)


def assert_type(predicate: Callable[[Any], bool]) -> Transformer:
    """Return a transformer that raises TypeError when `predicate` rejects the data."""

    def _assert(data: Any) -> Any:
        if not predicate(data):
            raise TypeError("Type assertion failed")
        return data

    return _assert


def conditional(condition: Callable[[Any], bool], transformer: Transformer) -> Transformer:
    """Apply `transformer` only when `condition` holds."""
    return lambda data: transformer(data) if condition(data) else data


def map_items(fn: Callable[[Any], Any]) -> Transformer:
    return lambda data: [fn(item) for item in data] if isinstance(data, list) else data


def filter_items(predicate: Callable[[Any], bool]) -> Transformer:
    def _filter(data: Any) -> Any:
        if not isinstance(data, list):
            return data
        return [item for item in data if predicate(item)]

    return _filter


def sort_items(key: Callable[[Any], Any] | None = None, reverse: bool = False) -> Transformer:
    """Return a transformer sorting a list into a new list."""

    def _sort(data: Any) -> Any:
        if not isinstance(data, list):
            return data
        return sorted(data, key=key, reverse=reverse)

    return _sort


def limit(count: int) -> Transformer:
    return lambda data: data[:count] if isinstance(data, list) else data


def skip(count: int) -> Transformer:
    return lambda data: data[count:] if isinstance(data, list) else data


def field_mapper(mapping: dict[str, str]) -> Transformer:
    """Return a transformer renaming top-level keys per `mapping`."""

    def _map(data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        return {mapping.get(key, key): value for key, value in data.items()}

    return _map


# =============================================================================
# Factories
# =============================================================================

NormalizedType = Literal["string", "number", "boolean", "date"]


def create_validator(rules: dict[str, Callable[[Any], bool]]) -> Transformer:
    """Return a transformer checking present dict fields against per-field rules.

    Raises:
        ValueError: Naming the first field whose rule rejects its value.
    """

    def _validate(data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        for field, rule in rules.items():
            if field in data and not rule(data[field]):
                raise ValueError(f"Validation failed for field: {field}")
        return data

    return _validate


def _to_number(value: Any) -> int | float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        return float(text)


def _to_date(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


_NORMALIZERS: dict[str, Callable[[Any], Any]] = {
    "string": str,
    "number": _to_number,
    "boolean": bool,
    "date": _to_date,
}


def create_normalizer(schema: dict[str, NormalizedType]) -> Transformer:
    """Return a transformer coercing present dict fields to the schema's types.

    Unparsable numbers and dates raise ValueError.
    """

    def _normalize(data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        normalized = dict(data)
        for field, kind in schema.items():
            if field in normalized:
                normalized[field] = _NORMALIZERS[kind](normalized[field])
        return normalized

    return _normalize


# =============================================================================
# Presets
# =============================================================================

standardize_api_response = compose(
    handle_error,
    parse_dates(),
    snake_to_camel,
    handle_nulls(),
)

prepare_json_request = compose(
    remove_empty,
    camel_to_snake,
)

prepare_form_data = compose(
    remove_empty,
    camel_to_snake,
    form_data,
)
