"""Waypoint — hierarchical route resolution with a vetoable lifecycle.

A tree of named routes, each edge a URL-fragment matcher. Routing a path
activates a chain of nodes; listeners can veto leaving or entering, and
URLs are rebuilt from the active chain.

Basic usage::

    from waypoint import RoutingEngine

    engine = RoutingEngine()
    engine.add_route(
        "base",
        "/path/:id",
        mount=lambda route: route.add_route("subpath", "/subpath/:sub"),
    )

    await engine.route("/path/3/subpath/hello")
    engine.find_route("base").parameters   # {"id": "3"}

With a platform history::

    from waypoint import MemoryHistory, Navigator

    navigator = Navigator(MemoryHistory("/path/3"))
    ...
    await navigator.listen()
"""

__version__ = "0.1.0-dev"
__all__ = [
    "ConfigurationError",
    "EnterEvent",
    "EventChannel",
    "History",
    "InvariantViolation",
    "LeaveEvent",
    "MemoryHistory",
    "Navigator",
    "PreEnterEvent",
    "PreLeaveEvent",
    "Routable",
    "RouteHandle",
    "RouteMatch",
    "RouteNode",
    "RouteNotFound",
    "RouteStartEvent",
    "RouterConfig",
    "RoutingEngine",
    "UrlMatch",
    "UrlMatcher",
    "UrlTemplate",
    "WaypointError",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import waypoint`` fast while providing a clean top-level API.
    """
    if name == "RoutingEngine":
        from waypoint.routing.engine import RoutingEngine

        return RoutingEngine

    if name == "RouterConfig":
        from waypoint.config import RouterConfig

        return RouterConfig

    if name in ("RouteNode", "RouteMatch", "Routable"):
        from waypoint.routing import route as _route

        return getattr(_route, name)

    if name == "RouteHandle":
        from waypoint.routing.handle import RouteHandle

        return RouteHandle

    if name in ("UrlMatch", "UrlMatcher"):
        from waypoint.routing import matcher as _matcher

        return getattr(_matcher, name)

    if name == "UrlTemplate":
        from waypoint.routing.template import UrlTemplate

        return UrlTemplate

    if name in (
        "EnterEvent",
        "EventChannel",
        "LeaveEvent",
        "PreEnterEvent",
        "PreLeaveEvent",
        "RouteStartEvent",
    ):
        from waypoint.routing import events as _events

        return getattr(_events, name)

    if name == "Navigator":
        from waypoint.navigation.navigator import Navigator

        return Navigator

    if name in ("History", "MemoryHistory"):
        from waypoint.navigation import history as _history

        return getattr(_history, name)

    if name in ("WaypointError", "ConfigurationError", "InvariantViolation", "RouteNotFound"):
        from waypoint import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
