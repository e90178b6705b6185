"""Tests for sleepy_proxy.discovery.listing — render."""
from __future__ import annotations

import pytest

from sleepy_proxy.discovery.listing import render
from sleepy_proxy.resources.node import ResourceNode, VisibilityPolicy
from sleepy_proxy.resources.tree import TreeBuilder


@pytest.fixture()
def root() -> ResourceNode:
    return ResourceNode("sp")


@pytest.fixture()
def builder(root: ResourceNode) -> TreeBuilder:
    return TreeBuilder(root, VisibilityPolicy.ALL_INVISIBLE)


class TestRender:
    def test_empty_subtree(self, root: ResourceNode) -> None:
        assert render(root) == ""

    def test_lists_visible_descendants_with_attributes(
        self, root: ResourceNode, builder: TreeBuilder
    ) -> None:
        builder.add(ResourceNode("x", attributes={"rt": "data"}), "/config/x")
        assert render(root) == '</sp/config/x>;rt="data"'

    def test_invisible_nodes_hidden_but_descended(
        self, root: ResourceNode, builder: TreeBuilder
    ) -> None:
        builder.add(ResourceNode("x", visible=False), "/a/x")
        builder.add(ResourceNode("y"), "/a/x/y")
        assert render(root) == "</sp/a/x/y>"

    def test_visible_internal_nodes_are_listed(
        self, root: ResourceNode, builder: TreeBuilder
    ) -> None:
        builder.add(ResourceNode("x"), "/a/x", VisibilityPolicy.ALL_VISIBLE)
        assert render(root) == "</sp/a>,</sp/a/x>"

    def test_filters(self, root: ResourceNode, builder: TreeBuilder) -> None:
        builder.add(ResourceNode("t", attributes={"rt": "temperature"}), "/t")
        builder.add(ResourceNode("h", attributes={"rt": "humidity"}), "/h")
        assert render(root, ["rt=temp*"]) == '</sp/t>;rt="temperature"'
        assert render(root, ["rt=pressure"]) == ""

    def test_does_not_touch_dirty_flags(self, root: ResourceNode, builder: TreeBuilder) -> None:
        node = ResourceNode("x")
        builder.add(node, "/x")
        node.mark_dirty()
        render(root)
        assert node.dirty is True
