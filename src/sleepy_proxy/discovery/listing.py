"""DiscoveryResponder — read-only link-format listings of a subtree."""
from __future__ import annotations

from typing import TYPE_CHECKING

from sleepy_proxy import linkformat

if TYPE_CHECKING:
    from sleepy_proxy.resources.node import ResourceNode


def render(root: ResourceNode, queries: list[str] | None = None) -> str:
    """List the visible descendants of *root* that match every query.

    Invisible nodes are left out but their descendants are still visited, so
    a published resource below an internal node is listed. No flag on any
    node is modified.

    Returns
    -------
    str
        Comma-separated link entries; the empty string when nothing matched.
    """
    entries = [
        linkformat.serialize_resource(node)
        for node in root.walk()
        if node.visible and linkformat.matches(node, queries)
    ]
    return linkformat.join_entries(entries)


__all__ = ["render"]
