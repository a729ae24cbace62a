"""RouteHandle — a discardable view onto a route node.

Components with a shorter lifetime than the route tree take a handle
instead of the node. Everything subscribed through the handle (and the
handles it hands out) is cancelled by one ``discard()`` call::

    handle = router.find_route("users").new_handle()
    handle.on_enter.subscribe(render_users)
    ...
    handle.discard()   # render_users no longer fires
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from waypoint._internal.types import Parameters
from waypoint.errors import ConfigurationError, InvariantViolation
from waypoint.routing.events import (
    EnterEvent,
    EventChannel,
    LeaveEvent,
    PreEnterEvent,
    PreLeaveEvent,
    Subscription,
)

if TYPE_CHECKING:
    from waypoint.routing.route import RouteNode

E = TypeVar("E")


class _HandleChannel(Generic[E]):
    """Subscribe-only view of a node channel that records subscriptions."""

    __slots__ = ("_channel", "_handle")

    def __init__(self, handle: "RouteHandle", channel: EventChannel[E]) -> None:
        self._handle = handle
        self._channel = channel

    def subscribe(self, listener: Callable[[E], object]) -> Subscription[E]:
        self._handle._ensure_live()
        subscription = self._channel.subscribe(listener)
        self._handle._subscriptions.append(subscription)
        return subscription


class RouteHandle:
    """Wraps a ``RouteNode``; tracks subscriptions for bulk cancellation."""

    __slots__ = (
        "_children",
        "_discarded",
        "_host",
        "_subscriptions",
        "on_enter",
        "on_leave",
        "on_pre_enter",
        "on_pre_leave",
    )

    def __init__(self, host: "RouteNode") -> None:
        self._host = host
        self._subscriptions: list[Subscription[Any]] = []
        self._children: list[RouteHandle] = []
        self._discarded = False
        self.on_pre_enter: _HandleChannel[PreEnterEvent] = _HandleChannel(self, host.on_pre_enter)
        self.on_pre_leave: _HandleChannel[PreLeaveEvent] = _HandleChannel(self, host.on_pre_leave)
        self.on_enter: _HandleChannel[EnterEvent] = _HandleChannel(self, host.on_enter)
        self.on_leave: _HandleChannel[LeaveEvent] = _HandleChannel(self, host.on_leave)

    @property
    def host(self) -> "RouteNode":
        return self._host

    @property
    def name(self) -> str:
        return self._host.name

    @property
    def full_name(self) -> str:
        return self._host.full_name

    @property
    def page_title(self) -> str | None:
        return self._host.page_title

    @property
    def is_active(self) -> bool:
        return self._host.is_active

    @property
    def parameters(self) -> Parameters | None:
        return self._host.parameters

    @property
    def query_parameters(self) -> dict[str, str] | None:
        return self._host.query_parameters

    @property
    def discarded(self) -> bool:
        return self._discarded

    def find_route(self, route_path: str) -> "RouteHandle | None":
        """Like ``RouteNode.find_route`` but returns a handle owned by this one."""
        self._ensure_live()
        route = self._host.find_route(route_path)
        if route is None:
            return None
        handle = route.new_handle()
        self._children.append(handle)
        return handle

    def new_handle(self) -> "RouteHandle":
        return self._host.new_handle()

    def add_route(self, *args: object, **kwargs: object) -> None:
        msg = f"Routes cannot be added through a handle; add them to {self._host} directly"
        raise ConfigurationError(msg)

    def discard(self) -> None:
        """Cancel every subscription made through this handle and its children."""
        self._discarded = True
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.cancel()
        children, self._children = self._children, []
        for child in children:
            child.discard()

    def _ensure_live(self) -> None:
        if self._discarded:
            msg = f"Handle for {self._host} has been discarded"
            raise InvariantViolation(msg)

    def __repr__(self) -> str:
        return f"RouteHandle({self._host.full_name!r})"
