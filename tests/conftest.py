"""Shared pytest configuration for waypoint tests.

Async tests run under anyio's pytest plugin, pinned to asyncio (the
engine resolves ``RouteStartEvent.completed`` as an asyncio future).
"""

from collections.abc import Callable

import pytest

from waypoint.routing.engine import RoutingEngine
from waypoint.routing.route import RouteNode


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


async def resolved(value: bool) -> bool:
    """An allow awaitable that resolves immediately."""
    return value


class EventLog:
    """Records every lifecycle event on a subtree as ``(kind, full_name)``."""

    def __init__(self) -> None:
        self.entries: list[tuple[str, str]] = []

    def watch(self, node: RouteNode) -> None:
        for kind, channel in (
            ("pre_enter", node.on_pre_enter),
            ("pre_leave", node.on_pre_leave),
            ("enter", node.on_enter),
            ("leave", node.on_leave),
        ):
            channel.subscribe(self._recorder(kind))
        for child in node.children.values():
            self.watch(child)

    def _recorder(self, kind: str) -> Callable[[object], None]:
        def record(event: object) -> None:
            self.entries.append((kind, event.route.full_name))  # type: ignore[attr-defined]

        return record

    def of(self, kind: str) -> list[str]:
        return [name for k, name in self.entries if k == kind]

    def clear(self) -> None:
        self.entries.clear()


def build_scenario(engine: RoutingEngine) -> RoutingEngine:
    """root -> base ``/path/:id`` -> subpath ``/subpath/:sub``."""
    engine.add_route(
        "base",
        "/path/:id",
        mount=lambda route: route.add_route("subpath", "/subpath/:sub"),
    )
    return engine


@pytest.fixture
def engine() -> RoutingEngine:
    return build_scenario(RoutingEngine())


@pytest.fixture
def log(engine: RoutingEngine) -> EventLog:
    event_log = EventLog()
    event_log.watch(engine.root)
    return event_log
