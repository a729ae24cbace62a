"""UrlMatcher protocol and the UrlMatch result type.

A matcher owns one edge of the route tree: it consumes a prefix of the
remaining path, reports the parameters it captured, and can render the
same prefix back from parameters. Any object with this shape works —
no base class required::

    class Exact:
        def __init__(self, text: str) -> None:
            self.text = text

        def match(self, path: str) -> UrlMatch | None:
            if path.startswith(self.text):
                return UrlMatch(self.text, path[len(self.text):], {})
            return None

        def reverse(self, parameters=None, tail: str = "") -> str:
            return self.text + tail

        def __lt__(self, other: "Exact") -> bool:
            return len(self.text) > len(other.text)
"""

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from waypoint._internal.types import ParameterMapping, Parameters


@dataclass(frozen=True, slots=True)
class UrlMatch:
    """Result of matching one edge against the start of a path."""

    matched: str
    tail: str
    parameters: Parameters = field(default_factory=dict)


@runtime_checkable
class UrlMatcher(Protocol):
    """Protocol for route edge matchers.

    ``reverse`` must be a right inverse of ``match`` on the parameters it
    produced. ``__lt__`` orders matchers most-specific first; it is only
    consulted when sibling routes are sorted.
    """

    def match(self, path: str) -> UrlMatch | None: ...

    def reverse(self, parameters: ParameterMapping | None = None, tail: str = "") -> str: ...

    def __lt__(self, other: object) -> bool: ...
