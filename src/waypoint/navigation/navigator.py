"""Navigator — the routing engine bound to a platform history.

The navigator only touches history after the engine commits: a vetoed
``go()`` leaves both the tree and the history as they were. Changes that
arrive from the platform (back/forward, hash edits) are routed in the
background. A vetoed change is stepped back out (``back()`` after a
forward move, ``forward()`` after a backward one) to the last committed
entry.
"""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from waypoint._internal.types import ParameterMapping
from waypoint.config import RouterConfig
from waypoint.errors import ConfigurationError
from waypoint.navigation.history import History
from waypoint.navigation.links import is_routable_link
from waypoint.routing.engine import RoutingEngine, StartingPoint
from waypoint.routing.events import Subscription
from waypoint.routing.query import build_query

logger = logging.getLogger("waypoint.navigation")


class Navigator(RoutingEngine):
    """Routing engine that keeps a ``History`` in sync.

    Usage::

        navigator = Navigator(MemoryHistory("/path/3"))
        navigator.add_route("base", "/path/:id", page_title="Item")
        await navigator.listen()                     # routes "/path/3"
        await navigator.go("base", {"id": "4"})      # pushes "/path/4"

    ``use_fragment`` defaults to ``not history.supports_state``; in
    fragment mode history locations are ``#``-prefixed paths.
    """

    __slots__ = (
        "_history_index",
        "_listening",
        "_reverting",
        "_subscriptions",
        "_tasks",
        "history",
    )

    def __init__(self, history: History, config: RouterConfig | None = None, **overrides: Any) -> None:
        super().__init__(config, **overrides)
        self.history = history
        if self.config.use_fragment is None:
            self.use_fragment = not history.supports_state
        self._listening = False
        self._reverting = False
        # History entry that matches the committed route
        self._history_index = history.index
        self._subscriptions: list[Subscription[str]] = []
        self._tasks: set[asyncio.Task[Any]] = set()

    async def go(
        self,
        route_path: str,
        parameters: ParameterMapping | None = None,
        *,
        starting_from: StartingPoint | None = None,
        replace: bool = False,
        query_parameters: ParameterMapping | None = None,
        force_reload: bool = False,
    ) -> bool:
        """Navigate to a route by name and record it in history.

        Parameters missing from *parameters* are taken from the active
        matches. On success the new URL is pushed (or replaced) with the
        target route's page title.
        """
        base = self._resolve_base(starting_from)
        target = self.find_route_from_base(base, route_path)
        new_tail = base.tail_url(target, parameters) + build_query(query_parameters)
        new_url = base.head_url(new_tail)
        logger.debug("go %s", new_url)
        allowed = await self.route(new_tail, starting_from=base, force_reload=force_reload)
        if allowed:
            self._go(new_url, target.page_title, replace=replace)
        return allowed

    async def goto_url(self, url: str) -> bool:
        """Route *url* and push it to history on success."""
        allowed = await self.route(url)
        if allowed:
            self._go(url, None, replace=False)
        return allowed

    async def listen(self, *, ignore_click: bool = False) -> bool:
        """Follow history changes (and link clicks), then route the current location.

        Returns the outcome of routing the current location.
        Raises ``ConfigurationError`` if called twice.
        """
        logger.debug("listen ignore_click=%s", ignore_click)
        if self._listening:
            msg = "listen can only be called once"
            raise ConfigurationError(msg)
        self._listening = True
        self._subscriptions.append(self.history.on_change.subscribe(self._on_location_change))
        if not ignore_click:
            self._subscriptions.append(self.history.on_link_click.subscribe(self._on_link_click))
        allowed = await self.route(self.current_path())
        self._history_index = self.history.index
        return allowed

    def current_path(self) -> str:
        """The routable path of the history's current location."""
        location = self.history.current_location()
        if self.use_fragment:
            _, _, fragment = location.partition("#")
            return fragment
        return location

    async def settle(self) -> None:
        """Wait until background navigations (and the ones they trigger) finish."""
        while pending := [task for task in self._tasks if not task.done()]:
            await asyncio.wait(pending)

    def close(self) -> None:
        """Stop following history and cancel background navigations."""
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.cancel()
        for task in list(self._tasks):
            task.cancel()

    # -- Platform events --

    def _on_location_change(self, location: str) -> None:
        if self._reverting:
            return
        self._spawn(self._follow_location(self.history.index))

    async def _follow_location(self, index: int) -> None:
        if await self.route(self.current_path()):
            self._history_index = index
        else:
            self._revert(index)

    def _revert(self, index: int) -> None:
        """Step history from *index* back to the last committed entry."""
        steps = index - self._history_index
        logger.debug("Reverting vetoed history change by %d entries", -steps)
        self._reverting = True
        try:
            for _ in range(abs(steps)):
                if steps > 0:
                    self.history.back()
                else:
                    self.history.forward()
        finally:
            self._reverting = False

    def _on_link_click(self, href: str) -> None:
        if not is_routable_link(href, self.use_fragment):
            logger.debug("Ignoring link %r", href)
            return
        url = href[1:] if self.use_fragment else href
        self._spawn(self.goto_url(url))

    def _go(self, path: str, title: str | None, *, replace: bool) -> None:
        location = f"#{path}" if self.use_fragment else path
        if replace:
            self.history.replace_state(location, title)
        else:
            self.history.push_state(location, title)
        self._history_index = self.history.index

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background navigation failed", exc_info=exc)
