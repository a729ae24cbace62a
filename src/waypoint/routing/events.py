"""Route lifecycle events and the channels that deliver them.

Every route node owns four ``EventChannel``s — pre-enter, pre-leave,
enter, leave — and the engine owns one for ``RouteStartEvent``.

Delivery is synchronous: ``publish()`` runs every current subscriber
before it returns, so a pre-event listener has registered its allow
awaitable by the time the engine starts waiting.

Free-threading safety:
    - Event types are frozen dataclasses (the allow lists are append-only)
    - EventChannel uses a Lock to protect the subscriber list
    - publish() iterates a snapshot, so listeners may (un)subscribe freely
"""

import asyncio
import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from waypoint._internal.types import Parameters

if TYPE_CHECKING:
    from waypoint.routing.route import RouteMatch, RouteNode

E = TypeVar("E")


class Subscription(Generic[E]):
    """Handle returned by ``EventChannel.subscribe``. Call ``cancel()`` to stop."""

    __slots__ = ("_channel", "listener")

    def __init__(self, channel: "EventChannel[E]", listener: Callable[[E], object]) -> None:
        self._channel: EventChannel[E] | None = channel
        self.listener = listener

    @property
    def active(self) -> bool:
        return self._channel is not None

    def cancel(self) -> None:
        """Unsubscribe. Safe to call more than once."""
        channel, self._channel = self._channel, None
        if channel is not None:
            channel._remove(self)


class EventChannel(Generic[E]):
    """Synchronous broadcast channel for one event kind.

    Usage::

        channel: EventChannel[EnterEvent] = EventChannel()
        sub = channel.subscribe(lambda event: print(event.parameters))
        channel.publish(event)   # listener has run when this returns
        sub.cancel()

    There is no replay: a listener only sees events published after it
    subscribed. A listener that raises stops delivery and the exception
    propagates to the publisher.
    """

    __slots__ = ("_lock", "_subscriptions")

    def __init__(self) -> None:
        self._subscriptions: list[Subscription[E]] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Callable[[E], object]) -> Subscription[E]:
        subscription = Subscription(self, listener)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def publish(self, event: E) -> None:
        with self._lock:
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            subscription.listener(event)

    def _remove(self, subscription: Subscription[E]) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscriptions)


@dataclass(frozen=True, slots=True)
class RouteEvent:
    """Route enter or leave occurrence."""

    path: str
    parameters: Parameters
    query_parameters: dict[str, str]
    route: "RouteNode"


@dataclass(frozen=True, slots=True)
class PreEnterEvent(RouteEvent):
    """Fired for every route about to be entered, before anything changes.

    ``path`` is the part of the requested path left for descendants.
    A listener may veto by contributing an awaitable that resolves to
    ``False``::

        async def check_permission(parameters) -> bool: ...

        node.on_pre_enter.subscribe(
            lambda event: event.allow_enter(check_permission(event.parameters))
        )
    """

    allow_enter_futures: list[Awaitable[bool]] = field(default_factory=list, repr=False, compare=False)

    @classmethod
    def from_match(cls, match: "RouteMatch") -> "PreEnterEvent":
        return cls(
            path=match.url_match.tail,
            parameters=dict(match.parameters),
            query_parameters=dict(match.query_parameters),
            route=match.node,
        )

    def allow_enter(self, allow: Awaitable[bool]) -> None:
        """Contribute an awaitable; ``False`` blocks the navigation."""
        self.allow_enter_futures.append(allow)


@dataclass(frozen=True, slots=True)
class EnterEvent(RouteEvent):
    """Fired once the route is active, before its children are entered."""

    @classmethod
    def from_match(cls, match: "RouteMatch") -> "EnterEvent":
        return cls(
            path=match.url_match.matched,
            parameters=dict(match.parameters),
            query_parameters=dict(match.query_parameters),
            route=match.node,
        )


@dataclass(frozen=True, slots=True)
class PreLeaveEvent(RouteEvent):
    """Fired for every active route about to be left, before anything changes.

    Veto with ``event.allow_leave(awaitable)`` resolving to ``False``.
    """

    allow_leave_futures: list[Awaitable[bool]] = field(default_factory=list, repr=False, compare=False)

    @classmethod
    def for_route(cls, route: "RouteNode") -> "PreLeaveEvent":
        return cls(path="", parameters={}, query_parameters={}, route=route)

    def allow_leave(self, allow: Awaitable[bool]) -> None:
        """Contribute an awaitable; ``False`` blocks the navigation."""
        self.allow_leave_futures.append(allow)


@dataclass(frozen=True, slots=True)
class LeaveEvent(RouteEvent):
    """Fired as the route is left, children before parents."""

    @classmethod
    def for_route(cls, route: "RouteNode") -> "LeaveEvent":
        return cls(path="", parameters={}, query_parameters={}, route=route)


@dataclass(frozen=True, slots=True)
class RouteStartEvent:
    """Emitted when ``route()`` is invoked.

    ``completed`` resolves to the call's outcome: ``True`` committed,
    ``False`` vetoed. It carries the exception if the call raised.
    """

    uri: str
    completed: asyncio.Future[bool]
