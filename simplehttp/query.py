"""
Query string construction.

Parameters are declared explicitly as QueryParam entries: a name, a value,
a presence check and a formatter. build_url() appends the present ones to a
base URL in declaration order. Dataclasses can declare their parameters with
field metadata instead:

    @dataclass
    class Search:
        name: str = field(default="", metadata={"query": "name"})
        limit: int = field(default=0, metadata={"query": "limit"})

    build_url("/users", Search(name="bob"))  # -> "/users?name=bob"

Keys and values are not percent-encoded. Names and formatted values must
already be URL-safe.
"""

import dataclasses
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .logging_config import get_module_logger

logger = get_module_logger("query")

QUERY_METADATA_KEY = "query"


@dataclass(frozen=True)
class QueryParam:
    """A single query parameter declaration"""

    name: str
    value: Any
    present: Callable[[Any], bool]
    formatter: Callable[[Any], str] = str

    def is_present(self) -> bool:
        return self.present(self.value)

    def render(self) -> str:
        return f"{self.name}={self.formatter(self.value)}"


def _never(_value: Any) -> bool:
    return False


def _positive(value: int | None) -> bool:
    return value is not None and value > 0


def _non_empty(value: str | None) -> bool:
    return bool(value)


def _is_set(value: datetime | None) -> bool:
    return value is not None and value != datetime.min


def format_timestamp(value: datetime) -> str:
    """Format as RFC 3339 in UTC with second precision. Naive values count as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def uint_param(name: str, value: int | None) -> QueryParam:
    """Unsigned integer parameter. Zero means unset."""
    return QueryParam(name, value, _positive)


def str_param(name: str, value: str | None) -> QueryParam:
    """String parameter. The empty string means unset."""
    return QueryParam(name, value, _non_empty)


def time_param(name: str, value: datetime | None) -> QueryParam:
    """Timestamp parameter. None and datetime.min mean unset."""
    return QueryParam(name, value, _is_set, format_timestamp)


def query_param(name: str, value: Any) -> QueryParam:
    """
    Pick the parameter kind from the value's type.

    Unsupported types produce a parameter that is never emitted, and a
    warning is logged instead of failing the URL construction.
    """
    if value is None:
        return QueryParam(name, value, _never)
    # bool is an int subclass but has no query representation here
    if isinstance(value, int) and not isinstance(value, bool):
        return uint_param(name, value)
    if isinstance(value, str):
        return str_param(name, value)
    if isinstance(value, datetime):
        return time_param(name, value)

    logger.warning(f"Unhandled type for {name}: {type(value).__name__}")
    return QueryParam(name, value, _never)


def params_from_dataclass(values: Any) -> list[QueryParam]:
    """
    Build parameters from a dataclass instance.

    Only fields with a "query" metadata entry take part, in field order.
    """
    if not dataclasses.is_dataclass(values) or isinstance(values, type):
        raise TypeError(f"Expected a dataclass instance, got {type(values).__name__}")

    params = []
    for f in dataclasses.fields(values):
        name = f.metadata.get(QUERY_METADATA_KEY)
        if not name:
            continue
        params.append(query_param(name, getattr(values, f.name)))
    return params


def build_url(base_url: str, values: Iterable[QueryParam] | Any) -> str:
    """
    Append present query parameters to a base URL

    Args:
        base_url: URL or path the query string is appended to
        values: Iterable of QueryParam, or a dataclass instance with
                query metadata on its fields

    Returns:
        base_url, followed by "?k1=v1&k2=v2..." when any parameter is present
    """
    if dataclasses.is_dataclass(values) and not isinstance(values, type):
        params: Iterable[QueryParam] = params_from_dataclass(values)
    else:
        params = values

    rendered = [param.render() for param in params if param.is_present()]
    if not rendered:
        return base_url
    return base_url + "?" + "&".join(rendered)
