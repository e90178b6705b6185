"""ChangeCollector — reports resources modified by someone other than their owner.

When a non-owner writes a delegated resource, the resource is marked dirty.
The owning sleepy node learns about such writes the next time it talks to
the proxy: a change scan over its container lists every dirty resource and
clears the flag as it goes, so each write is reported at most once.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from sleepy_proxy import linkformat

if TYPE_CHECKING:
    from sleepy_proxy.resources.node import ResourceNode


def collect_changes(root: ResourceNode, queries: list[str] | None = None) -> str | None:
    """Collect and clear the dirty, visible descendants of *root*.

    Parameters
    ----------
    root:
        Node whose descendants are scanned (the root itself is not).
    queries:
        Optional filter queries; a resource is reported only if it matches
        all of them. Resources that do not match keep their dirty flag.

    Returns
    -------
    str | None
        Comma-separated ``<path>`` entries, or None when nothing was dirty.
    """
    entries: list[str] = []
    for node in root.walk():
        if not node.visible or not node.dirty:
            continue
        if not linkformat.matches(node, queries):
            continue
        if node.take_dirty():
            entries.append(f"<{node.path}>")
    if not entries:
        return None
    return linkformat.join_entries(entries)


__all__ = ["collect_changes"]
