"""Tests for URL building — RoutingEngine.url() and the RouteNode reversers."""

import pytest
from conftest import build_scenario

from waypoint.errors import InvariantViolation, RouteNotFound
from waypoint.routing.engine import RoutingEngine


async def _activate(engine: RoutingEngine) -> RoutingEngine:
    await engine.route("/path/3/subpath/hello")
    return engine


class TestUrl:
    @pytest.mark.anyio
    async def test_current_url(self, engine: RoutingEngine) -> None:
        active = await _activate(engine)
        assert active.url("base.subpath") == "/path/3/subpath/hello"
        assert active.url("base") == "/path/3"

    @pytest.mark.anyio
    async def test_parameters_override_active_ones(self, engine: RoutingEngine) -> None:
        active = await _activate(engine)
        assert active.url("base.subpath", parameters={"sub": "bye"}) == "/path/3/subpath/bye"
        assert active.url("base", parameters={"id": 4}) == "/path/4"

    @pytest.mark.anyio
    async def test_query_appended(self, engine: RoutingEngine) -> None:
        active = await _activate(engine)
        assert active.url("base", query_parameters={"q": "a b"}) == "/path/3?q=a%20b"

    @pytest.mark.anyio
    async def test_round_trip_through_route(self, engine: RoutingEngine) -> None:
        active = await _activate(engine)
        url = active.url("base.subpath", parameters={"id": "7", "sub": "x"})
        assert url == "/path/7/subpath/x"

        assert await active.route(url) is True

        sub = active.find_route("base.subpath")
        assert sub is not None
        assert sub.parameters == {"sub": "x"}
        assert active.url("base.subpath") == url

    @pytest.mark.anyio
    async def test_relative_to_starting_point(self, engine: RoutingEngine) -> None:
        active = await _activate(engine)
        base = active.find_route("base")
        assert base is not None

        url = active.url("subpath", starting_from=base, parameters={"sub": "x"})
        assert url == "/path/3/subpath/x"
        assert active.url("subpath", starting_from=base.new_handle()) == "/path/3/subpath/hello"

    @pytest.mark.anyio
    async def test_inactive_sibling(self, engine: RoutingEngine) -> None:
        active = await _activate(engine)
        active.add_route("other", "/other/:slug")
        assert active.url("other", parameters={"slug": "a"}) == "/other/a"

    @pytest.mark.anyio
    async def test_fragment_prefix(self) -> None:
        engine = build_scenario(RoutingEngine(use_fragment=True))
        await engine.route("/path/3")
        assert engine.url("base") == "#/path/3"


class TestUrlErrors:
    def test_unknown_route(self, engine: RoutingEngine) -> None:
        with pytest.raises(RouteNotFound) as exc_info:
            engine.url("base.nope")
        assert exc_info.value.route_path == "base.nope"
        assert isinstance(exc_info.value, LookupError)

    def test_missing_parameter(self, engine: RoutingEngine) -> None:
        with pytest.raises(ValueError, match="Missing parameter 'id'"):
            engine.url("base")

    def test_inactive_starting_point(self, engine: RoutingEngine) -> None:
        base = engine.find_route("base")
        assert base is not None

        with pytest.raises(InvariantViolation, match="has no current route"):
            engine.url("subpath", starting_from=base, parameters={"sub": "x"})

    def test_target_outside_starting_point(self, engine: RoutingEngine) -> None:
        engine.add_route("other", "/other")
        sub = engine.find_route("base.subpath")
        other = engine.find_route("other")
        assert sub is not None and other is not None

        with pytest.raises(InvariantViolation, match="is not below"):
            sub.tail_url(other)
