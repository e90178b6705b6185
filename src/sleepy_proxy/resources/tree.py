"""TreeBuilder — builds, traverses and prunes resource paths under a root.

A delegated resource registered as ``/config/net/addr`` needs ``config`` and
``net`` to exist so it can be reached. The builder creates such internal
nodes on demand, following a :class:`VisibilityPolicy`, and collapses them
again once nothing below them needs them.

All structural changes made through one builder are serialized by a
builder-level lock. The builder never takes resource locks, so callers may
hold a resource lock while calling :meth:`TreeBuilder.remove`.
"""
from __future__ import annotations

import logging
import threading

from sleepy_proxy.resources.node import ResourceNode, VisibilityPolicy

logger = logging.getLogger(__name__)

SEPARATOR = "/"


def split_path(path: str) -> list[str] | None:
    """Split an absolute path into segments, or return None if it is malformed.

    A path is malformed when it is empty, does not start with ``/`` or
    contains an empty segment (``//`` or a trailing ``/``).
    """
    if not path or not path.startswith(SEPARATOR):
        return None
    segments = path[1:].split(SEPARATOR)
    if any(not segment for segment in segments):
        return None
    return segments


class TreeBuilder:
    """Path-driven builder for the subtree below *root*.

    Parameters
    ----------
    root:
        Subtree root. It is owned by whoever created it and is never removed
        by the builder.
    default_visibility:
        Policy used by :meth:`add` when none is given, and the visibility of
        internal nodes that replace removed active resources.
    """

    def __init__(
        self,
        root: ResourceNode,
        default_visibility: VisibilityPolicy = VisibilityPolicy.ALL_VISIBLE,
    ) -> None:
        self._root = root
        self._default_visibility = default_visibility
        self._lock = threading.RLock()

    @property
    def root(self) -> ResourceNode:
        return self._root

    @property
    def default_visibility(self) -> VisibilityPolicy:
        return self._default_visibility

    # ------------------------------------------------------------------
    # add
    # ------------------------------------------------------------------

    def add(
        self,
        resource: ResourceNode,
        path: str,
        policy: VisibilityPolicy | None = None,
    ) -> bool:
        """Attach *resource* at *path* below the root.

        Intermediate segments are traversed or created as internal nodes. The
        last segment becomes the resource's name. If a node with that name is
        already there, its children move to *resource* before it is replaced,
        so nothing below becomes unreachable.

        Parameters
        ----------
        resource:
            The node to attach. Its own visibility is left as constructed.
        path:
            Absolute path relative to the root, e.g. ``/config/x``.
        policy:
            Visibility policy for intermediate nodes. Defaults to the
            builder's default.

        Returns
        -------
        bool
            False if *path* is malformed; the tree is not modified then.
        """
        segments = split_path(path)
        if segments is None:
            logger.warning("Rejected malformed path %r below %s", path, self._root.path or "/")
            return False
        if policy is None:
            policy = self._default_visibility

        with self._lock:
            current = self._root
            for segment in segments[:-1]:
                child = current.get_child(segment)
                if child is not None:
                    self._traverse_existing(child, policy)
                else:
                    child = self._create_internal(segment, current, policy)
                current = child

            resource.name = segments[-1]
            stale = current.get_child(resource.name)
            if stale is not None and stale is not resource:
                for grandchild in stale.get_children():
                    resource.add_child(grandchild)
                current.remove_child(stale)
                logger.debug("Replaced %s, children moved to the new resource", stale.path)
            current.add_child(resource)
            logger.debug("Added %r", resource)
            return True

    def find(self, path: str) -> ResourceNode | None:
        """Return the node at *path* below the root, or None."""
        segments = split_path(path)
        if segments is None:
            return None
        with self._lock:
            node: ResourceNode | None = self._root
            for segment in segments:
                if node is None:
                    break
                node = node.get_child(segment)
            return node

    def _traverse_existing(self, child: ResourceNode, policy: VisibilityPolicy) -> None:
        if policy.creates_visible and not child.visible:
            child.visible = True
            logger.debug("Promoted %s to visible", child.path)

    def _create_internal(
        self, name: str, parent: ResourceNode, policy: VisibilityPolicy
    ) -> ResourceNode:
        node = ResourceNode.internal(name, visible=policy.creates_visible)
        parent.add_child(node)
        logger.debug("Created internal node %r", node)
        return node

    # ------------------------------------------------------------------
    # remove
    # ------------------------------------------------------------------

    def remove(self, node: ResourceNode | None) -> None:
        """Remove *node* from the tree, pruning internal nodes left without purpose.

        * Inactive and childless, or active and childless: detach it, then
          retry on the parent if the parent is internal.
        * Inactive with children: still needed for reachability, kept.
        * Active with children: swapped for a new internal node of the same
          name (default visibility) that adopts the children.

        No-op for None, for the builder's root and for detached nodes.
        """
        with self._lock:
            while node is not None and node is not self._root:
                node = self._remove_one(node)

    def _remove_one(self, node: ResourceNode) -> ResourceNode | None:
        """Remove a single node and return the parent to prune next, if any."""
        parent = node.parent
        if parent is None:
            return None

        if node.has_children():
            if not node.active:
                return None
            replacement = ResourceNode.internal(
                node.name, visible=self._default_visibility.creates_visible
            )
            for child in node.get_children():
                replacement.add_child(child)
            parent.remove_child(node)
            parent.add_child(replacement)
            logger.debug("Replaced removed resource %s with an internal node", replacement.path)
            return None

        path = node.path
        parent.remove_child(node)
        logger.debug("Detached %s", path)
        if not parent.active:
            return parent
        return None


__all__ = ["SEPARATOR", "TreeBuilder", "split_path"]
