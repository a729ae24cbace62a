"""Tests for waypoint.config — RouterConfig frozen dataclass."""

import pytest

from waypoint.config import RouterConfig
from waypoint.routing.engine import RoutingEngine


class TestRouterConfig:
    def test_defaults(self) -> None:
        cfg = RouterConfig()

        assert cfg.use_fragment is None
        assert cfg.sort_routes is True
        assert cfg.ambiguous_routes == "first"
        assert cfg.serialize_navigation is True

    def test_frozen(self) -> None:
        cfg = RouterConfig()

        with pytest.raises(AttributeError):
            cfg.sort_routes = False  # type: ignore[misc]


class TestEngineConfig:
    def test_overrides_build_config(self) -> None:
        engine = RoutingEngine(sort_routes=False)
        assert engine.config == RouterConfig(sort_routes=False)

    def test_overrides_applied_to_given_config(self) -> None:
        base = RouterConfig(use_fragment=True)
        engine = RoutingEngine(base, serialize_navigation=False)

        assert engine.config.use_fragment is True
        assert engine.config.serialize_navigation is False
        assert base.serialize_navigation is True

    def test_use_fragment_defaults_off_without_history(self) -> None:
        assert RoutingEngine().use_fragment is False
        assert RoutingEngine(use_fragment=True).use_fragment is True

    def test_unknown_option(self) -> None:
        with pytest.raises(TypeError):
            RoutingEngine(colour="blue")
