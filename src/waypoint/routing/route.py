"""RouteNode — one node of the route tree — and RouteMatch.

The tree is built once with ``add_route`` and never pruned. Routing only
moves the active-chain pointers (``current_child``) and the per-node
``last_match`` records.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from waypoint._internal.types import Listener, ParameterMapping, Parameters, QueryKeyPattern
from waypoint.errors import ConfigurationError, InvariantViolation
from waypoint.routing.events import (
    EnterEvent,
    EventChannel,
    LeaveEvent,
    PreEnterEvent,
    PreLeaveEvent,
)
from waypoint.routing.handle import RouteHandle
from waypoint.routing.matcher import UrlMatch, UrlMatcher
from waypoint.routing.template import UrlTemplate

logger = logging.getLogger("waypoint.routing")

PATH_SEPARATOR = "."


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """One step of a tree descent: the node chosen and what it matched."""

    node: "RouteNode"
    url_match: UrlMatch
    query_parameters: dict[str, str] = field(default_factory=dict)

    @property
    def parameters(self) -> Parameters:
        return self.url_match.parameters

    def __str__(self) -> str:
        return str(self.node)


@runtime_checkable
class Routable(Protocol):
    """Anything that can declare child routes on a freshly added node.

    Accepts both functions and objects::

        # Function
        def mount_admin(route: RouteNode) -> None:
            route.add_route("users", "/users")

        # Object
        class AdminModule:
            def configure_route(self, route: RouteNode) -> None:
                route.add_route("users", "/users")
    """

    def configure_route(self, route: "RouteNode") -> None: ...


class _FunctionRoutable:
    __slots__ = ("_func",)

    def __init__(self, func: Callable[["RouteNode"], object]) -> None:
        self._func = func

    def configure_route(self, route: "RouteNode") -> None:
        self._func(route)


def as_routable(mount: "Routable | Callable[[RouteNode], object]") -> Routable:
    """Adapt a mount argument to the ``Routable`` capability."""
    if isinstance(mount, Routable):
        return mount
    if callable(mount):
        return _FunctionRoutable(mount)
    msg = f"mount must be callable or define configure_route(), got {type(mount).__name__}"
    raise ConfigurationError(msg)


def _as_matcher(path: "str | UrlMatcher") -> UrlMatcher:
    if isinstance(path, str):
        return UrlTemplate(path)
    if isinstance(path, UrlMatcher):
        return path
    msg = f"path must be a pattern string or a UrlMatcher, got {type(path).__name__}"
    raise ConfigurationError(msg)


class RouteNode:
    """A node in the route tree. The edge leading to it is ``matcher``.

    Usage::

        root = RouteNode()
        base = root.add_route("base", "/path/:id")
        base.add_route("subpath", "/subpath/:sub")
        root.find_route("base.subpath")
    """

    __slots__ = (
        "children",
        "current_child",
        "default_child",
        "dont_leave_on_param_changes",
        "last_match",
        "matcher",
        "name",
        "on_enter",
        "on_leave",
        "on_pre_enter",
        "on_pre_leave",
        "page_title",
        "parent",
        "watch_query_parameters",
    )

    def __init__(
        self,
        name: str = "",
        matcher: UrlMatcher | None = None,
        parent: "RouteNode | None" = None,
        *,
        dont_leave_on_param_changes: bool = False,
        page_title: str | None = None,
        watch_query_parameters: Iterable[QueryKeyPattern] | None = None,
    ) -> None:
        self.name = name
        self.matcher = matcher
        self.parent = parent
        self.dont_leave_on_param_changes = dont_leave_on_param_changes
        self.page_title = page_title
        self.watch_query_parameters: tuple[QueryKeyPattern, ...] | None = (
            None if watch_query_parameters is None else tuple(watch_query_parameters)
        )

        # Child routes, keyed by name, in declaration order
        self.children: dict[str, RouteNode] = {}
        self.default_child: RouteNode | None = None

        # Active-chain state, written only by the engine's commit phase
        self.current_child: RouteNode | None = None
        self.last_match: RouteMatch | None = None

        self.on_pre_enter: EventChannel[PreEnterEvent] = EventChannel()
        self.on_pre_leave: EventChannel[PreLeaveEvent] = EventChannel()
        self.on_enter: EventChannel[EnterEvent] = EventChannel()
        self.on_leave: EventChannel[LeaveEvent] = EventChannel()

    # -- Tree construction --

    def add_route(
        self,
        name: str,
        path: "str | UrlMatcher",
        *,
        default: bool = False,
        enter: Listener | None = None,
        pre_enter: Listener | None = None,
        pre_leave: Listener | None = None,
        leave: Listener | None = None,
        mount: "Routable | Callable[[RouteNode], object] | None" = None,
        dont_leave_on_param_changes: bool = False,
        page_title: str | None = None,
        watch_query_parameters: Iterable[QueryKeyPattern] | None = None,
    ) -> "RouteNode":
        """Add a child route and return it.

        ``path`` is a ``UrlTemplate`` pattern string or any ``UrlMatcher``.
        ``mount`` runs with the new node before this call returns, so
        nested routes can be declared inline.

        Raises ``ConfigurationError`` for an empty name, a name containing
        ``.``, a name already used by a sibling, or a second default route.
        Nothing is registered if any check or ``mount`` fails.
        """
        if not isinstance(name, str) or not name:
            msg = "name is required for all routes"
            raise ConfigurationError(msg)
        if PATH_SEPARATOR in name:
            msg = f"Route name {name!r} cannot contain {PATH_SEPARATOR!r}"
            raise ConfigurationError(msg)
        if name in self.children:
            msg = f"Route {name!r} already exists under {self}"
            raise ConfigurationError(msg)
        if default and self.default_child is not None:
            msg = (
                f"Only one default route can be added to {self}; "
                f"{self.default_child.name!r} is already the default"
            )
            raise ConfigurationError(msg)

        routable = as_routable(mount) if mount is not None else None
        route = RouteNode(
            name,
            _as_matcher(path),
            self,
            dont_leave_on_param_changes=dont_leave_on_param_changes,
            page_title=page_title,
            watch_query_parameters=watch_query_parameters,
        )

        if pre_enter is not None:
            route.on_pre_enter.subscribe(pre_enter)
        if pre_leave is not None:
            route.on_pre_leave.subscribe(pre_leave)
        if enter is not None:
            route.on_enter.subscribe(enter)
        if leave is not None:
            route.on_leave.subscribe(leave)

        if routable is not None:
            routable.configure_route(route)

        if default:
            self.default_child = route
        self.children[name] = route
        return route

    def find_route(self, route_path: str) -> "RouteNode | None":
        """Resolve a dot-separated name path (``"foo.bar.baz"``) below this node.

        Returns ``None`` if any segment is missing.
        """
        route = self
        for route_name in route_path.split(PATH_SEPARATOR):
            child = route.children.get(route_name)
            if child is None:
                logger.debug("Invalid route name %r under %s", route_name, self)
                return None
            route = child
        return route

    def new_handle(self) -> RouteHandle:
        return RouteHandle(self)

    # -- State --

    @property
    def is_active(self) -> bool:
        """Whether this node is on the active chain. The root always is."""
        return self.parent is None or self.parent.current_child is self

    @property
    def parameters(self) -> Parameters | None:
        """Path parameters of the current match; ``None`` when inactive."""
        if not self.is_active:
            return None
        return {} if self.last_match is None else dict(self.last_match.parameters)

    @property
    def query_parameters(self) -> dict[str, str] | None:
        """Query parameters of the current match; ``None`` when inactive."""
        if not self.is_active:
            return None
        return {} if self.last_match is None else dict(self.last_match.query_parameters)

    @property
    def full_name(self) -> str:
        """Dot-separated path from the root, ``""`` for the root."""
        names: list[str] = []
        node: RouteNode | None = self
        while node is not None and node.parent is not None:
            names.append(node.name)
            node = node.parent
        return PATH_SEPARATOR.join(reversed(names))

    # -- URL building --

    def reverse(self, tail: str = "") -> str:
        """Render this node's edge from its current parameters, then *tail*."""
        if self.matcher is None:
            return tail
        parameters = self.last_match.parameters if self.last_match is not None else {}
        return self.matcher.reverse(parameters, tail)

    def tail_url(self, target: "RouteNode", parameters: ParameterMapping | None = None) -> str:
        """Render the URL from this node down to *target*.

        Each edge is reversed with *parameters* (or, when ``None``, the
        edge node's own parameters) layered over the node's active match.
        """
        tail = ""
        route = target
        while route is not self:
            if route.parent is None or route.matcher is None:
                msg = f"{target} is not below {self}"
                raise InvariantViolation(msg)
            tail = route.matcher.reverse(route._join_parameters(parameters), tail)
            route = route.parent
        return tail

    def head_url(self, tail: str) -> str:
        """Prefix *tail* with the active URL from the root down to this node.

        Raises ``InvariantViolation`` if an ancestor has no current child.
        """
        route = self
        while route.parent is not None:
            current = route.parent.current_child
            if current is None:
                msg = f"Route {route.parent} has no current route"
                raise InvariantViolation(msg)
            tail = current.reverse(tail)
            route = route.parent
        return tail

    def _join_parameters(self, parameters: ParameterMapping | None) -> dict[str, object]:
        explicit = (self.parameters or {}) if parameters is None else parameters
        if self.last_match is None:
            return dict(explicit)
        return {**self.last_match.parameters, **explicit}

    def _deactivate_descendants(self) -> None:
        """Prune the active chain below this node."""
        route = self
        while (child := route.current_child) is not None:
            route.current_child = None
            child.last_match = None
            route = child

    def __repr__(self) -> str:
        return f"RouteNode({self.full_name!r})"

    def __str__(self) -> str:
        return f"[Route: {self.full_name or '<root>'}]"
