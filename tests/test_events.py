"""Tests for waypoint.routing.events — channels and lifecycle events."""

import pytest

from waypoint.routing.events import (
    EnterEvent,
    EventChannel,
    LeaveEvent,
    PreEnterEvent,
    PreLeaveEvent,
)
from waypoint.routing.matcher import UrlMatch
from waypoint.routing.route import RouteMatch, RouteNode


class TestEventChannel:
    def test_publish_is_synchronous(self) -> None:
        channel: EventChannel[str] = EventChannel()
        seen: list[str] = []
        channel.subscribe(seen.append)

        channel.publish("hello")

        assert seen == ["hello"]

    def test_subscribers_called_in_order(self) -> None:
        channel: EventChannel[int] = EventChannel()
        calls: list[str] = []
        channel.subscribe(lambda _: calls.append("first"))
        channel.subscribe(lambda _: calls.append("second"))

        channel.publish(1)

        assert calls == ["first", "second"]

    def test_no_replay(self) -> None:
        channel: EventChannel[int] = EventChannel()
        channel.publish(1)
        seen: list[int] = []
        channel.subscribe(seen.append)
        assert seen == []

    def test_cancel(self) -> None:
        channel: EventChannel[int] = EventChannel()
        seen: list[int] = []
        sub = channel.subscribe(seen.append)

        sub.cancel()
        sub.cancel()
        channel.publish(1)

        assert seen == []
        assert sub.active is False
        assert len(channel) == 0

    def test_same_listener_twice(self) -> None:
        channel: EventChannel[int] = EventChannel()
        seen: list[int] = []
        first = channel.subscribe(seen.append)
        channel.subscribe(seen.append)

        first.cancel()
        channel.publish(1)

        assert seen == [1]

    def test_publish_uses_snapshot(self) -> None:
        channel: EventChannel[int] = EventChannel()
        late: list[int] = []

        def subscribe_more(_: int) -> None:
            channel.subscribe(late.append)

        channel.subscribe(subscribe_more)
        channel.publish(1)

        assert late == []
        assert len(channel) == 2

    def test_listener_error_propagates(self) -> None:
        channel: EventChannel[int] = EventChannel()

        def boom(_: int) -> None:
            raise RuntimeError("listener failed")

        channel.subscribe(boom)
        with pytest.raises(RuntimeError, match="listener failed"):
            channel.publish(1)


def _match() -> RouteMatch:
    node = RouteNode().add_route("base", "/path/:id")
    return RouteMatch(node, UrlMatch("/path/3", "/rest?q=1", {"id": "3"}), {"q": "1"})


class TestRouteEvents:
    def test_pre_enter_from_match_carries_tail(self) -> None:
        match = _match()
        event = PreEnterEvent.from_match(match)
        assert event.path == "/rest?q=1"
        assert event.parameters == {"id": "3"}
        assert event.query_parameters == {"q": "1"}
        assert event.route is match.node

    def test_enter_from_match_carries_matched_prefix(self) -> None:
        event = EnterEvent.from_match(_match())
        assert event.path == "/path/3"
        assert event.parameters == {"id": "3"}

    def test_leave_events_are_empty(self) -> None:
        node = _match().node
        for event in (LeaveEvent.for_route(node), PreLeaveEvent.for_route(node)):
            assert event.path == ""
            assert event.parameters == {}
            assert event.query_parameters == {}
            assert event.route is node

    async def _allowed(self) -> bool:
        return True

    def test_allow_collects_awaitables(self) -> None:
        node = _match().node
        event = PreLeaveEvent.for_route(node)
        first, second = self._allowed(), self._allowed()
        event.allow_leave(first)
        event.allow_leave(second)
        assert event.allow_leave_futures == [first, second]
        first.close()
        second.close()

    def test_frozen(self) -> None:
        event = EnterEvent.from_match(_match())
        with pytest.raises(AttributeError):
            event.path = "/other"  # type: ignore[misc]

    def test_event_parameters_are_copies(self) -> None:
        match = _match()
        event = EnterEvent.from_match(match)
        event.parameters["id"] = "changed"
        assert match.parameters == {"id": "3"}
