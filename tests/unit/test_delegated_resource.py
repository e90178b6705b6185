"""Tests for sleepy_proxy.resources.delegated — the delegated resource state machine."""
from __future__ import annotations

import threading
import time
from typing import Callable

import pytest

from sleepy_proxy.linkformat import ResourceDescriptor
from sleepy_proxy.protocol import ContentFormat, Method, Request, ResponseCode
from sleepy_proxy.resources.container import ContainerResource
from sleepy_proxy.resources.delegated import (
    DelegatedResource,
    InvalidLifetimeError,
    LifetimeTimer,
    parse_lifetime,
)
from sleepy_proxy.resources.node import ResourceNode

OWNER = "fe80::1"
OTHER = "fe80::99"


@pytest.fixture()
def sp() -> ResourceNode:
    return ResourceNode("sp")


@pytest.fixture()
def container(sp: ResourceNode) -> ContainerResource:
    container = ContainerResource("0", endpoint_id="node42", owner_address=OWNER)
    sp.add_child(container)
    return container


@pytest.fixture()
def resource(container: ContainerResource) -> DelegatedResource:
    res = container.delegate(ResourceDescriptor(path="config/x", attributes={"rt": "data"}))
    assert res is not None
    yield res
    res.cancel_timer()


def _req(
    method: Method,
    source: str = OWNER,
    payload: bytes = b"",
    query: list[str] | None = None,
) -> Request:
    return Request(
        method=method,
        source_address=source,
        path=[],
        query=query or [],
        payload=payload,
    )


def _wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


# ---------------------------------------------------------------------------
# parse_lifetime
# ---------------------------------------------------------------------------


class TestParseLifetime:
    def test_absent(self) -> None:
        assert parse_lifetime(None) is None

    def test_valid(self) -> None:
        assert parse_lifetime("5") == 5
        assert parse_lifetime("0") == 0

    @pytest.mark.parametrize("raw", ["-1", "abc", "", "1.5"])
    def test_invalid(self, raw: str) -> None:
        with pytest.raises(InvalidLifetimeError):
            parse_lifetime(raw)


# ---------------------------------------------------------------------------
# Uninitialized state
# ---------------------------------------------------------------------------


class TestUninitialized:
    def test_created_invisible_with_attributes(self, resource: DelegatedResource) -> None:
        assert resource.visible is False
        assert resource.active is True
        assert resource.value is None
        assert resource.attributes == {"rt": "data"}
        assert resource.path == "/sp/0/config/x"

    def test_get_by_owner_is_method_not_allowed(self, resource: DelegatedResource) -> None:
        assert resource.handle(_req(Method.GET)).code is ResponseCode.METHOD_NOT_ALLOWED

    def test_get_by_other_is_not_found(self, resource: DelegatedResource) -> None:
        assert resource.handle(_req(Method.GET, OTHER)).code is ResponseCode.NOT_FOUND

    def test_put_by_other_is_not_found(self, resource: DelegatedResource) -> None:
        response = resource.handle(_req(Method.PUT, OTHER, b"evil"))
        assert response.code is ResponseCode.NOT_FOUND
        assert resource.value is None
        assert resource.dirty is False

    def test_delete_split_by_caller(self, resource: DelegatedResource) -> None:
        assert resource.handle(_req(Method.DELETE)).code is ResponseCode.METHOD_NOT_ALLOWED
        assert resource.handle(_req(Method.DELETE, OTHER)).code is ResponseCode.NOT_FOUND


# ---------------------------------------------------------------------------
# Owner updates
# ---------------------------------------------------------------------------


class TestOwnerUpdate:
    def test_first_put_initializes(self, resource: DelegatedResource) -> None:
        response = resource.handle(_req(Method.PUT, payload=b"21.5"))
        assert response.code is ResponseCode.CREATED
        assert resource.visible is True
        assert resource.observable is True
        assert resource.value == "21.5"

    def test_second_put_is_changed(self, resource: DelegatedResource) -> None:
        resource.handle(_req(Method.PUT, payload=b"1"))
        response = resource.handle(_req(Method.PUT, payload=b"2"))
        assert response.code is ResponseCode.CHANGED
        assert resource.value == "2"

    def test_get_after_initialization(self, resource: DelegatedResource) -> None:
        resource.handle(_req(Method.PUT, payload=b"on"))
        response = resource.handle(_req(Method.GET, OTHER))
        assert response.code is ResponseCode.CONTENT
        assert response.payload == "on"

    def test_negative_lifetime_is_rejected_without_side_effects(
        self, resource: DelegatedResource
    ) -> None:
        response = resource.handle(_req(Method.PUT, payload=b"x", query=["lt=-3"]))
        assert response.code is ResponseCode.BAD_REQUEST
        assert resource.visible is False
        assert resource.value is None
        assert resource.timer is None

    def test_bad_lifetime_keeps_existing_timer(self, resource: DelegatedResource) -> None:
        resource.handle(_req(Method.PUT, payload=b"x", query=["lt=60"]))
        timer = resource.timer
        resource.handle(_req(Method.PUT, payload=b"y", query=["lt=-1"]))
        assert resource.timer is timer
        assert resource.value == "x"

    def test_lifetime_schedules_timer(self, resource: DelegatedResource) -> None:
        resource.handle(_req(Method.PUT, payload=b"x", query=["lt=60"]))
        assert isinstance(resource.timer, LifetimeTimer)
        assert resource.timer.seconds == 60

    def test_put_without_lifetime_cancels_timer(self, resource: DelegatedResource) -> None:
        resource.handle(_req(Method.PUT, payload=b"X", query=["lt=60"]))
        assert resource.timer is not None
        resource.handle(_req(Method.PUT, payload=b"Y"))
        assert resource.timer is None

    def test_new_lifetime_replaces_timer(self, resource: DelegatedResource) -> None:
        resource.handle(_req(Method.PUT, payload=b"x", query=["lt=60"]))
        first = resource.timer
        resource.handle(_req(Method.PUT, payload=b"x", query=["lt=30"]))
        assert resource.timer is not first
        assert resource.timer.generation > first.generation

    def test_owner_put_notifies_observers(self, resource: DelegatedResource) -> None:
        seen: list[str | None] = []
        resource.add_observer(lambda node: seen.append(node.value))
        resource.handle(_req(Method.PUT, payload=b"a"))
        resource.handle(_req(Method.PUT, payload=b"b"))
        assert seen == ["a", "b"]

    def test_owner_put_reports_dirty_siblings(
        self, container: ContainerResource, resource: DelegatedResource
    ) -> None:
        other = container.delegate(ResourceDescriptor(path="config/y"))
        resource.handle(_req(Method.PUT, payload=b"1"))
        other.handle(_req(Method.PUT, payload=b"1"))
        other.handle(_req(Method.PUT, OTHER, b"2"))

        response = resource.handle(_req(Method.PUT, payload=b"3"))
        assert response.code is ResponseCode.CHANGED
        assert response.payload == "</sp/0/config/y>"
        assert response.content_format is ContentFormat.LINK_FORMAT
        assert other.dirty is False

    def test_owner_put_without_changes_has_no_payload(self, resource: DelegatedResource) -> None:
        resource.handle(_req(Method.PUT, payload=b"1"))
        response = resource.handle(_req(Method.PUT, payload=b"2"))
        assert response.payload == ""
        assert response.content_format is ContentFormat.TEXT_PLAIN


# ---------------------------------------------------------------------------
# Foreign updates
# ---------------------------------------------------------------------------


class TestForeignUpdate:
    def test_marks_dirty_and_stores_value(self, resource: DelegatedResource) -> None:
        resource.handle(_req(Method.PUT, payload=b"old", query=["lt=60"]))
        timer = resource.timer
        response = resource.handle(_req(Method.PUT, OTHER, b"new"))
        assert response.code is ResponseCode.CHANGED
        assert resource.dirty is True
        assert resource.value == "new"
        assert resource.visible is True
        assert resource.timer is timer

    def test_does_not_notify_observers(self, resource: DelegatedResource) -> None:
        resource.handle(_req(Method.PUT, payload=b"old"))
        seen: list[object] = []
        resource.add_observer(seen.append)
        resource.handle(_req(Method.PUT, OTHER, b"new"))
        assert seen == []


# ---------------------------------------------------------------------------
# Change query (POST)
# ---------------------------------------------------------------------------


class TestChangeQuery:
    def test_owner_gets_valid_when_nothing_changed(self, resource: DelegatedResource) -> None:
        resource.handle(_req(Method.PUT, payload=b"1"))
        assert resource.handle(_req(Method.POST)).code is ResponseCode.VALID

    def test_owner_gets_changed_listing_once(self, resource: DelegatedResource) -> None:
        resource.handle(_req(Method.PUT, payload=b"1"))
        resource.handle(_req(Method.PUT, OTHER, b"2"))
        first = resource.handle(_req(Method.POST))
        assert first.code is ResponseCode.CHANGED
        assert first.payload == "</sp/0/config/x>"
        assert resource.value == "2"
        assert resource.handle(_req(Method.POST)).code is ResponseCode.VALID

    def test_other_caller_is_refused(self, resource: DelegatedResource) -> None:
        assert resource.handle(_req(Method.POST, OTHER)).code is ResponseCode.NOT_FOUND
        resource.handle(_req(Method.PUT, payload=b"1"))
        assert resource.handle(_req(Method.POST, OTHER)).code is ResponseCode.METHOD_NOT_ALLOWED


# ---------------------------------------------------------------------------
# Lifetime expiry
# ---------------------------------------------------------------------------


class TestLifetimeExpiry:
    def test_expiry_removes_resource(
        self, container: ContainerResource, resource: DelegatedResource
    ) -> None:
        resource.handle(_req(Method.PUT, payload=b"x", query=["lt=1"]))
        assert _wait_until(lambda: resource.expired)
        assert container.get_child("config") is None
        assert resource.parent is None

    def test_zero_lifetime_expires_immediately(self, resource: DelegatedResource) -> None:
        response = resource.handle(_req(Method.PUT, payload=b"x", query=["lt=0"]))
        assert response.code is ResponseCode.CREATED
        assert _wait_until(lambda: resource.expired)

    def test_put_after_expiry_is_not_found(self, resource: DelegatedResource) -> None:
        resource.handle(_req(Method.PUT, payload=b"x", query=["lt=0"]))
        assert _wait_until(lambda: resource.expired)
        assert resource.handle(_req(Method.PUT, payload=b"y")).code is ResponseCode.NOT_FOUND
        assert resource.handle(_req(Method.GET, OTHER)).code is ResponseCode.NOT_FOUND

    def test_superseded_timer_firing_is_a_noop(
        self, container: ContainerResource, resource: DelegatedResource
    ) -> None:
        resource.handle(_req(Method.PUT, payload=b"x", query=["lt=60"]))
        stale_generation = resource.timer.generation
        resource.handle(_req(Method.PUT, payload=b"y", query=["lt=60"]))

        resource._on_lifetime_expired(stale_generation)

        assert resource.expired is False
        assert resource.parent is not None
        assert container.get_child("config").get_child("x") is resource

    def test_expiry_with_delegated_children_leaves_internal_node(
        self, container: ContainerResource
    ) -> None:
        parent_res = container.delegate(ResourceDescriptor(path="config"))
        child_res = container.delegate(ResourceDescriptor(path="config/x"))
        parent_res.handle(_req(Method.PUT, payload=b"p", query=["lt=0"]))
        assert _wait_until(lambda: parent_res.expired)

        replacement = container.get_child("config")
        assert replacement is not parent_res
        assert replacement.active is False
        assert replacement.get_child("x") is child_res
        child_res.cancel_timer()

    def test_cancel_timer_prevents_expiry(self, resource: DelegatedResource) -> None:
        resource.handle(_req(Method.PUT, payload=b"x", query=["lt=1"]))
        resource.cancel_timer()
        time.sleep(1.3)
        assert resource.expired is False
        assert resource.parent is not None


class TestConcurrentUpdates:
    def test_parallel_owner_puts_leave_single_timer(self, resource: DelegatedResource) -> None:
        def worker(index: int) -> None:
            resource.handle(_req(Method.PUT, payload=str(index).encode(), query=["lt=60"]))

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert resource.visible is True
        assert resource.timer is not None
        assert resource.timer.generation == 16
