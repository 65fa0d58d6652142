"""Query-string builder for the ClimaCell endpoints."""
from __future__ import annotations

from typing import Any, List, Mapping
from urllib.parse import quote


def _is_scalar(value: Any) -> bool:
    # bool is an int subclass but is not a valid query value here
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def build_query(request: str, options: Mapping[str, Any]) -> str:
    """Append `options` to `request` as a query string.

    Scalars become `key=value`; lists and tuples become one `key=value` per
    scalar element, in order. Anything else (None, dicts, bools, ...) is
    skipped. Key order follows the mapping.

    >>> build_query("u", {"a": 1, "b": ["x", "y"]})
    'u?a=1&b=x&b=y'
    """
    params: List[str] = []
    for key, value in options.items():
        if _is_scalar(value):
            params.append(f"{key}={quote(str(value), safe='')}")
        elif isinstance(value, (list, tuple)):
            params.extend(f"{key}={quote(str(item), safe='')}" for item in value if _is_scalar(item))
    return f"{request}?{'&'.join(params)}"
