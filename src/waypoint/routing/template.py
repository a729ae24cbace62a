"""URL templates — the default UrlMatcher for pattern strings.

Patterns are literal text with ``:name`` placeholders::

    "/path/:id"               -> matches "/path/3", parameters {"id": "3"}
    "/users/:user/posts/:post"
    ""                        -> matches anything, consumes nothing

A template matches a *prefix* of the path. The unconsumed rest becomes
the tail that child routes match against, so the prefix must end on a
boundary: end of input, ``/``, ``?`` or ``#``.
"""

import re
from dataclasses import dataclass

from waypoint._internal.types import ParameterMapping, Parameters
from waypoint.errors import ConfigurationError
from waypoint.routing.matcher import UrlMatch

_PARAM_RE = re.compile(r":([A-Za-z_]\w*)")

# One placeholder never crosses a segment or enters the query/fragment
_PARAM_VALUE = r"[^/?#]+"

_BOUNDARY = r"(?=$|[/?#])"


@dataclass(frozen=True, slots=True)
class TemplateChunk:
    """A parsed piece of a URL template.

    Static:  ``/path/``  (is_param=False)
    Param:   ``:id``     (is_param=True, param_name="id")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None


def parse_template(pattern: str) -> list[TemplateChunk]:
    """Split a template string into static and parameter chunks.

    Examples::

        "/path/:id"  -> [TemplateChunk("/path/"), TemplateChunk(":id", True, "id")]
        "/about"     -> [TemplateChunk("/about")]
        ""           -> []

    Raises ``ConfigurationError`` if a parameter name repeats.
    """
    chunks: list[TemplateChunk] = []
    seen: set[str] = set()
    pos = 0
    for m in _PARAM_RE.finditer(pattern):
        if m.start() > pos:
            chunks.append(TemplateChunk(pattern[pos : m.start()]))
        name = m.group(1)
        if name in seen:
            msg = f"Parameter {name!r} appears twice in template {pattern!r}"
            raise ConfigurationError(msg)
        seen.add(name)
        chunks.append(TemplateChunk(m.group(0), is_param=True, param_name=name))
        pos = m.end()
    if pos < len(pattern):
        chunks.append(TemplateChunk(pattern[pos:]))
    return chunks


class UrlTemplate:
    """Compiled ``:name`` template.

    Usage::

        template = UrlTemplate("/path/:id")
        match = template.match("/path/3/edit")
        # UrlMatch(matched="/path/3", tail="/edit", parameters={"id": "3"})
        template.reverse({"id": "4"}, tail="/edit")
        # "/path/4/edit"
    """

    __slots__ = ("_chunks", "_regex", "_sort_key", "pattern")

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        self._chunks = parse_template(pattern)

        parts = ["^"]
        for chunk in self._chunks:
            if chunk.is_param:
                parts.append(f"(?P<{chunk.param_name}>{_PARAM_VALUE})")
            else:
                parts.append(re.escape(chunk.value))
        if pattern and not pattern.endswith("/"):
            parts.append(_BOUNDARY)
        self._regex = re.compile("".join(parts))

        # Static text before params, longer text first, longer templates first
        key = [(1, 0) if c.is_param else (0, -len(c.value)) for c in self._chunks]
        key.append((2, 0))
        self._sort_key = tuple(key)

    @property
    def parameter_names(self) -> list[str]:
        return [c.param_name for c in self._chunks if c.param_name is not None]

    def match(self, path: str) -> UrlMatch | None:
        m = self._regex.match(path)
        if m is None:
            return None
        parameters: Parameters = m.groupdict()
        return UrlMatch(matched=m.group(0), tail=path[m.end() :], parameters=parameters)

    def reverse(self, parameters: ParameterMapping | None = None, tail: str = "") -> str:
        """Render the template with *parameters*, then append *tail*.

        Raises ``ValueError`` if a placeholder has no value.
        """
        parameters = parameters or {}
        out: list[str] = []
        for chunk in self._chunks:
            if not chunk.is_param:
                out.append(chunk.value)
                continue
            if chunk.param_name not in parameters or parameters[chunk.param_name] is None:
                msg = f"Missing parameter {chunk.param_name!r} for template {self.pattern!r}"
                raise ValueError(msg)
            out.append(str(parameters[chunk.param_name]))
        return "".join(out) + tail

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, UrlTemplate):
            return NotImplemented
        return self._sort_key < other._sort_key

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UrlTemplate):
            return NotImplemented
        return self.pattern == other.pattern

    def __hash__(self) -> int:
        return hash(self.pattern)

    def __repr__(self) -> str:
        return f"UrlTemplate({self.pattern!r})"
