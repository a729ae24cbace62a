"""Query string helpers for route paths.

Route paths carry their query inline (``/search?q=term``). Each matched
step parses the query from its remaining path, and URL builders append
one with ``build_query``.
"""

from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import quote, unquote

from waypoint._internal.types import QueryKeyPattern


def build_query(query_parameters: Mapping[str, Any] | None) -> str:
    """Render ``?key=value&...``, or ``""`` when there is nothing to render.

    Keys and values are percent-encoded.
    """
    if not query_parameters:
        return ""
    pairs = (
        f"{quote(str(key), safe='')}={quote(str(value), safe='')}"
        for key, value in query_parameters.items()
    )
    return "?" + "&".join(pairs)


def parse_query(path: str) -> dict[str, str]:
    """Parse the query part of *path* into a dict.

    Everything after the first ``?`` is split on ``&``, then each pair on
    its first ``=``. Pairs with an empty key are dropped, a pair without
    ``=`` maps to ``""``. Values are percent-decoded; a repeated key keeps
    its last value.
    """
    _, sep, query = path.partition("?")
    if not sep:
        return {}
    params: dict[str, str] = {}
    for pair in query.split("&"):
        key, _, value = pair.partition("=")
        if key:
            params[key] = unquote(value)
    return params


def filter_query_parameters(
    query_parameters: Mapping[str, str],
    watch: Iterable[QueryKeyPattern] | None,
) -> dict[str, str]:
    """Keep only keys matched by a *watch* pattern.

    ``None`` watches everything. A ``str`` pattern matches as a key prefix,
    a compiled regex via ``Pattern.match``.
    """
    if watch is None:
        return dict(query_parameters)
    patterns = tuple(watch)
    return {
        key: value
        for key, value in query_parameters.items()
        if any(_matches_prefix(pattern, key) for pattern in patterns)
    }


def _matches_prefix(pattern: QueryKeyPattern, key: str) -> bool:
    if isinstance(pattern, str):
        return key.startswith(pattern)
    return pattern.match(key) is not None
