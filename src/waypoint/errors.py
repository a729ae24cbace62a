"""Waypoint exception hierarchy.

Shared across the route tree, the engine, and the navigator so every
module raises and catches the same types.

A vetoed navigation is not an error: ``route()`` resolves to ``False``
and leaves the tree untouched. A lookup miss from ``find_route()`` is
``None``. Only broken configuration and broken bookkeeping raise.
"""


class WaypointError(Exception):
    """Base for all waypoint-specific errors."""


class ConfigurationError(WaypointError):
    """Raised when the route tree or navigator is set up incorrectly.

    Duplicate sibling names, names containing the path separator, a second
    default route, or calling ``Navigator.listen()`` twice. The tree is
    left exactly as it was before the failing call.
    """


class InvariantViolation(WaypointError):  # noqa: N818
    """The active chain does not look the way the caller claims it does.

    Raised when building a URL head from a node whose ancestors are not
    active, or when routing from a starting node that is not on the active
    chain. Indicates a bookkeeping bug; do not swallow it.
    """


class RouteNotFound(WaypointError, LookupError):  # noqa: N818
    """A dot-separated route path names no route.

    Only raised by operations that need a target (``url()``, ``go()``).
    ``find_route()`` returns ``None`` instead.
    """

    def __init__(self, route_path: str) -> None:
        super().__init__(f"Invalid route path: {route_path!r}")
        self.route_path = route_path
