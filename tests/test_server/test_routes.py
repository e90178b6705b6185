"""Tests for sleepy_proxy.server.routes."""
from __future__ import annotations

import pytest

from sleepy_proxy.config import ProxyConfig
from sleepy_proxy.protocol import Method, Request, ResponseCode
from sleepy_proxy.server import routes

NODE = "10.0.0.7"


@pytest.fixture(autouse=True)
def reset_server_state() -> None:
    """Reset module-level state before each test."""
    routes.reset_state()


def _register(ep: str, payload: str, source: str = NODE) -> ResponseCode:
    response = routes.handle_resource(
        Request(
            method=Method.POST,
            source_address=source,
            path=["sp"],
            query=[f"ep={ep}"],
            payload=payload.encode("utf-8"),
        )
    )
    return response.code


class TestHandleHealth:
    def test_health_returns_ok(self) -> None:
        status, data = routes.handle_health()
        assert status == 200
        assert data["status"] == "ok"
        assert data["service"] == "sleepy-proxy"

    def test_counts_start_at_zero(self) -> None:
        _, data = routes.handle_health()
        assert data["container_count"] == 0
        assert data["resource_count"] == 0

    def test_counts_follow_registrations(self) -> None:
        _register("n1", "<a>,<b/c>")
        _register("n2", "<a>")

        _, data = routes.handle_health()
        assert data["container_count"] == 2
        assert data["resource_count"] == 3


class TestHandleResource:
    def test_registration_creates_container(self) -> None:
        assert _register("node42", "<config/x>") is ResponseCode.CREATED
        assert "node42" in routes.get_proxy().registry

    def test_unknown_path_not_found(self) -> None:
        response = routes.handle_resource(
            Request(method=Method.GET, source_address=NODE, path=["missing"])
        )
        assert response.code is ResponseCode.NOT_FOUND


class TestResetState:
    def test_reset_discards_registrations(self) -> None:
        _register("node42", "<x>")
        routes.reset_state()
        assert len(routes.get_proxy().registry) == 0

    def test_reset_applies_config(self) -> None:
        routes.reset_state(ProxyConfig(base_path="rd"))
        response = routes.handle_resource(
            Request(method=Method.POST, source_address=NODE, path=["rd"], query=["ep=n"])
        )
        assert response.code is ResponseCode.CREATED
        assert response.location_path == "/rd/0"

    def test_reset_cancels_pending_timers(self) -> None:
        _register("node42", "<x>")
        routes.handle_resource(
            Request(
                method=Method.PUT,
                source_address=NODE,
                path=["sp", "0", "x"],
                query=["lt=60"],
                payload=b"1",
            )
        )
        resource = routes.get_proxy().delegated_resources()[0]
        assert resource.timer is not None

        routes.reset_state()
        assert resource.timer is None
