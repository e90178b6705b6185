"""Resource namespace: nodes, the path tree builder and delegated resources.

Quick start
-----------
::

    from sleepy_proxy.resources import ResourceNode, TreeBuilder, VisibilityPolicy

    root = ResourceNode("root")
    builder = TreeBuilder(root, VisibilityPolicy.ALL_INVISIBLE)
    builder.add(ResourceNode("leaf"), "/a/b/c")
"""
from __future__ import annotations

from sleepy_proxy.resources.node import ResourceNode, VisibilityPolicy
from sleepy_proxy.resources.tree import TreeBuilder, split_path
from sleepy_proxy.resources.delegated import (
    DelegatedResource,
    InvalidLifetimeError,
    LifetimeTimer,
    parse_lifetime,
)
from sleepy_proxy.resources.container import ContainerResource

__all__ = [
    "ContainerResource",
    "DelegatedResource",
    "InvalidLifetimeError",
    "LifetimeTimer",
    "ResourceNode",
    "TreeBuilder",
    "VisibilityPolicy",
    "parse_lifetime",
    "split_path",
]
