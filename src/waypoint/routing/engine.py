"""RoutingEngine — matches paths against the route tree and drives the lifecycle.

A ``route()`` call runs four phases over the nodes that change:

    1. pre-leave   child → parent, listeners may veto
    2. pre-enter   parent → child, listeners may veto
    3. leave       child → parent, active chain pruned at the divergence point
    4. enter       parent → child, active chain extended with the new matches

Phases 1 and 2 only publish events and collect allow awaitables; nothing
is mutated until every awaitable has resolved. A single ``False`` makes
the call resolve to ``False`` with the tree exactly as it was.
"""

import asyncio
import dataclasses
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterator, Sequence
from contextlib import asynccontextmanager, contextmanager
from contextvars import ContextVar
from typing import Any, TypeAlias, cast

import anyio

from waypoint._internal.types import ParameterMapping
from waypoint.config import RouterConfig
from waypoint.errors import ConfigurationError, InvariantViolation, RouteNotFound
from waypoint.routing.events import (
    EnterEvent,
    EventChannel,
    LeaveEvent,
    PreEnterEvent,
    PreLeaveEvent,
    RouteStartEvent,
)
from waypoint.routing.handle import RouteHandle
from waypoint.routing.matcher import UrlMatch, UrlMatcher
from waypoint.routing.query import build_query, filter_query_parameters, parse_query
from waypoint.routing.route import RouteMatch, RouteNode

logger = logging.getLogger("waypoint.routing")

# Where a lookup or navigation starts: a node, or a handle onto one
StartingPoint: TypeAlias = RouteNode | RouteHandle

# Set while an engine awaits allow awaitables; those run in tasks that inherit it
_awaiting_allows: ContextVar["RoutingEngine | None"] = ContextVar("_awaiting_allows", default=None)


async def all_allowed(allow_futures: Sequence[Awaitable[bool]]) -> bool:
    """Await every allow awaitable concurrently; ``False`` if any says ``False``.

    Only an explicit ``False`` vetoes. Exceptions propagate.
    """
    if not allow_futures:
        return True

    results: list[bool] = []

    async def _resolve(allow: Awaitable[bool]) -> None:
        results.append(await allow)

    async with anyio.create_task_group() as tg:
        for allow in allow_futures:
            tg.start_soon(_resolve, allow)

    return all(result is not False for result in results)


class RoutingEngine:
    """Route tree plus the match/diff/lifecycle algorithm.

    Usage::

        engine = RoutingEngine()
        engine.add_route("base", "/path/:id", mount=lambda r: r.add_route("sub", "/sub/:sub"))
        assert await engine.route("/path/3/sub/hello")
        [node.name for node in engine.active_path]   # ["base", "sub"]
        engine.url("base.sub", parameters={"sub": "bye"})  # "/path/3/sub/bye"

    This class performs no platform navigation; ``Navigator`` adds that.
    """

    __slots__ = ("_lock", "config", "on_route_start", "root", "use_fragment")

    def __init__(self, config: RouterConfig | None = None, **overrides: Any) -> None:
        if config is None:
            config = RouterConfig(**overrides)
        elif overrides:
            config = dataclasses.replace(config, **overrides)
        self.config = config
        self.use_fragment = bool(config.use_fragment)
        self.root = RouteNode()
        self.on_route_start: EventChannel[RouteStartEvent] = EventChannel()
        self._lock: anyio.Lock | None = None  # Created lazily on first use

    # -- Tree --

    def add_route(
        self,
        name: str,
        path: str | UrlMatcher,
        *,
        parent: RouteNode | None = None,
        **options: Any,
    ) -> RouteNode:
        """Add a route under *parent* (the root by default). See ``RouteNode.add_route``."""
        base = self.root if parent is None else parent
        return base.add_route(name, path, **options)

    def find_route(self, route_path: str) -> RouteNode | None:
        """Shortcut for ``root.find_route()``."""
        return self.root.find_route(route_path)

    def find_route_from_base(self, base: StartingPoint, route_path: str) -> RouteNode:
        """Like ``find_route`` but relative to *base*; raises ``RouteNotFound``."""
        route = self._dehandle(base).find_route(route_path)
        if route is None:
            raise RouteNotFound(route_path)
        return route

    @property
    def active_path(self) -> list[RouteNode]:
        """Active nodes from the root's current child to the leaf. Excludes the root."""
        result: list[RouteNode] = []
        route = self.root
        while route.current_child is not None:
            route = route.current_child
            result.append(route)
        return result

    # -- Navigation --

    async def route(
        self,
        path: str,
        *,
        starting_from: StartingPoint | None = None,
        force_reload: bool = False,
    ) -> bool:
        """Match *path* and run the lifecycle over the nodes that change.

        Matching starts at *starting_from* (the root by default); the common
        part of the active chain and the new match is neither left nor
        entered unless *force_reload* is set.

        Returns ``True`` once the change is committed, ``False`` if a
        listener vetoed (nothing changed). Does not touch platform history.
        """
        logger.debug(
            "route path=%r starting_from=%s force_reload=%s", path, starting_from, force_reload,
        )
        self._check_not_nested("route")
        completed = self._announce(path)
        with self._reporting(completed):
            async with self._navigation():
                allowed = await self._route(path, self._resolve_base(starting_from), force_reload)
        completed.set_result(allowed)
        return allowed

    async def reload(self, *, starting_from: StartingPoint | None = None) -> bool:
        """Leave and re-enter the active chain below *starting_from*.

        The path is rebuilt once any queued navigation has finished, so it
        reflects the chain as it is when the reload actually runs.
        """
        self._check_not_nested("reload")
        async with self._navigation():
            base = self._resolve_base(starting_from)
            path = self._active_below(base)
            reload_path = ""
            for route in reversed(path):
                reload_path = route.reverse(reload_path)
            reload_path += build_query(path[-1].query_parameters if path else {})
            logger.debug("reload path=%r starting_from=%s", reload_path, starting_from)
            completed = self._announce(reload_path)
            with self._reporting(completed):
                allowed = await self._route(reload_path, base, force_reload=True)
        completed.set_result(allowed)
        return allowed

    def url(
        self,
        route_path: str,
        *,
        starting_from: StartingPoint | None = None,
        parameters: ParameterMapping | None = None,
        query_parameters: ParameterMapping | None = None,
    ) -> str:
        """Absolute URL for *route_path* relative to *starting_from*.

        Missing parameters are filled from the currently active matches.
        Raises ``RouteNotFound`` for an unknown route path and
        ``InvariantViolation`` if *starting_from* is not active.
        """
        base = self._resolve_base(starting_from)
        target = self.find_route_from_base(base, route_path)
        tail = base.tail_url(target, parameters or {})
        prefix = "#" if self.use_fragment else ""
        return prefix + base.head_url(tail) + build_query(query_parameters)

    # -- Matching --

    def match_path(self, path: str, base: StartingPoint | None = None) -> list[RouteMatch]:
        """Greedy descent from *base*: one ``RouteMatch`` per tree level.

        At each level the first matching child wins (by specificity when
        ``sort_routes`` is set, else declaration order); with no match the
        default child is taken. Stops when neither applies. A deeper
        mismatch never retries a sibling at a shallower level.
        """
        route = self._resolve_base(base)
        tree_path: list[RouteMatch] = []
        while True:
            candidates = self._matching_routes(path, route)
            if candidates:
                if len(candidates) > 1:
                    self._ambiguous(path, route, candidates)
                chosen, url_match = candidates[0]
                match = RouteMatch(chosen, url_match, parse_query(path))
            elif route.default_child is not None:
                chosen = route.default_child
                match = RouteMatch(chosen, UrlMatch("", "", {}), {})
            else:
                break
            tree_path.append(match)
            route = chosen
            path = match.url_match.tail
        return tree_path

    def _matching_routes(self, path: str, base: RouteNode) -> list[tuple[RouteNode, UrlMatch]]:
        candidates: list[tuple[RouteNode, UrlMatch]] = []
        for child in base.children.values():
            # Only the root lacks a matcher
            url_match = cast(UrlMatcher, child.matcher).match(path)
            if url_match is not None:
                candidates.append((child, url_match))
        if self.config.sort_routes and len(candidates) > 1:
            candidates.sort(key=lambda candidate: candidate[0].matcher)
        return candidates

    def _ambiguous(
        self, path: str, base: RouteNode, candidates: list[tuple[RouteNode, UrlMatch]],
    ) -> None:
        names = [route.name for route, _ in candidates]
        if self.config.ambiguous_routes == "error":
            msg = f"More than one route under {base} matches {path!r}: {names}"
            raise ConfigurationError(msg)
        logger.debug("More than one route matches %r %s, using %r", path, names, names[0])

    # -- Lifecycle --

    async def _route(self, path: str, base: RouteNode, force_reload: bool) -> bool:
        active = self._active_below(base)
        tree_path = self.match_path(path, base)

        def keep_on_leave(route: RouteNode, match: RouteMatch) -> bool:
            return route.dont_leave_on_param_changes or not (
                force_reload or self._params_changed(route, match)
            )

        def keep_on_enter(route: RouteNode, match: RouteMatch) -> bool:
            return not (force_reload or self._params_changed(route, match))

        # The two prefixes differ when dont_leave_on_param_changes keeps a
        # node that is re-entered with new parameters.
        leave_kept = _common_prefix(active, tree_path, keep_on_leave)
        enter_kept = _common_prefix(active, tree_path, keep_on_enter)

        must_leave = list(reversed(active[leave_kept:]))
        leave_base = active[leave_kept - 1] if leave_kept else base
        to_enter = tree_path[enter_kept:]
        enter_base = active[enter_kept - 1] if enter_kept else base

        if not await self._pre_leave(must_leave):
            logger.info("Navigation to %r vetoed by a pre-leave listener", path)
            return False

        if not to_enter:
            self._leave(must_leave, leave_base)
            return True

        if not await self._pre_enter(to_enter):
            logger.info("Navigation to %r vetoed by a pre-enter listener", path)
            return False

        self._leave(must_leave, leave_base)
        self._enter(enter_base, to_enter)
        return True

    async def _pre_leave(self, must_leave: list[RouteNode]) -> bool:
        allow_futures: list[Awaitable[bool]] = []
        for route in must_leave:
            event = PreLeaveEvent.for_route(route)
            route.on_pre_leave.publish(event)
            allow_futures.extend(event.allow_leave_futures)
        return await self._all_allowed(allow_futures)

    async def _pre_enter(self, to_enter: list[RouteMatch]) -> bool:
        allow_futures: list[Awaitable[bool]] = []
        for match in to_enter:
            event = PreEnterEvent.from_match(match)
            match.node.on_pre_enter.publish(event)
            allow_futures.extend(event.allow_enter_futures)
        return await self._all_allowed(allow_futures)

    async def _all_allowed(self, allow_futures: list[Awaitable[bool]]) -> bool:
        token = _awaiting_allows.set(self)
        try:
            return await all_allowed(allow_futures)
        finally:
            _awaiting_allows.reset(token)

    def _leave(self, must_leave: list[RouteNode], leave_base: RouteNode) -> None:
        for route in must_leave:
            route.on_leave.publish(LeaveEvent.for_route(route))
        if must_leave:
            leave_base._deactivate_descendants()

    def _enter(self, enter_base: RouteNode, to_enter: list[RouteMatch]) -> None:
        parent = enter_base
        for match in to_enter:
            route = match.node
            parent.current_child = route
            route.last_match = match
            route.on_enter.publish(EnterEvent.from_match(match))
            parent = route

    def _params_changed(self, route: RouteNode, match: RouteMatch) -> bool:
        last = route.last_match
        if last is None:
            return True
        watch = route.watch_query_parameters
        return (
            last.url_match.matched != match.url_match.matched
            or last.parameters != match.parameters
            or filter_query_parameters(last.query_parameters, watch)
            != filter_query_parameters(match.query_parameters, watch)
        )

    def _announce(self, uri: str) -> asyncio.Future[bool]:
        completed: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        completed.add_done_callback(_retrieve_exception)
        self.on_route_start.publish(RouteStartEvent(uri, completed))
        return completed

    @contextmanager
    def _reporting(self, completed: asyncio.Future[bool]) -> Iterator[None]:
        """Resolve *completed* with whatever escapes the block."""
        try:
            yield
        except Exception as exc:
            completed.set_exception(exc)
            raise
        except BaseException:
            completed.cancel()
            raise

    def _check_not_nested(self, operation: str) -> None:
        if self.config.serialize_navigation and _awaiting_allows.get() is self:
            msg = (
                f"{operation}() awaited from an allow awaitable would wait for the navigation "
                "that is awaiting it; veto and start the new navigation from a listener instead"
            )
            raise InvariantViolation(msg)

    @asynccontextmanager
    async def _navigation(self) -> AsyncIterator[None]:
        """Serialize navigations when ``serialize_navigation`` is set."""
        if not self.config.serialize_navigation:
            yield
            return
        # Lazy-init the lock (can't create in __init__ before an event loop exists)
        if self._lock is None:
            self._lock = anyio.Lock()
        async with self._lock:
            yield

    # -- Helpers --

    def _resolve_base(self, starting_from: StartingPoint | None) -> RouteNode:
        return self.root if starting_from is None else self._dehandle(starting_from)

    def _active_below(self, base: RouteNode) -> list[RouteNode]:
        active = self.active_path
        if base is self.root:
            return active
        for index, route in enumerate(active):
            if route is base:
                return active[index + 1 :]
        msg = f"Cannot start from {base}: it is not on the active path"
        raise InvariantViolation(msg)

    @staticmethod
    def _dehandle(route: StartingPoint) -> RouteNode:
        return route.host if isinstance(route, RouteHandle) else route


def _retrieve_exception(future: asyncio.Future[bool]) -> None:
    # Mark the exception as seen; the caller of route() already received it
    if not future.cancelled():
        future.exception()


def _common_prefix(
    active: list[RouteNode],
    tree_path: list[RouteMatch],
    keep: Callable[[RouteNode, RouteMatch], bool],
) -> int:
    """Number of leading positions where the same node stays put."""
    kept = 0
    for route, match in zip(active, tree_path):
        if route is not match.node or not keep(route, match):
            break
        kept += 1
    return kept
