"""ResourceNode — one entry of the path-addressed resource namespace.

Every node has a name that is unique among its siblings, owns its children
and keeps a weak back-reference to its parent, so the namespace is a plain
tree with no ownership cycle.

Two flags decide how a node behaves:

active
    True iff the node was explicitly requested (a delegated resource, a
    container, a proxy entry point). Inactive nodes are *internal*: they
    exist only so that a deeper active node stays reachable by path, and
    they answer every request with 4.04 Not Found.
visible
    Whether the node shows up in discovery listings.

The dirty flag has its own small lock so it can be tested-and-cleared by a
change scan without taking the resource's main lock.
"""
from __future__ import annotations

import threading
import weakref
from enum import Enum
from typing import Callable, Iterator

from sleepy_proxy.protocol import Method, Request, Response, ResponseCode

Observer = Callable[["ResourceNode"], None]


class VisibilityPolicy(Enum):
    """Visibility given to internal nodes created or traversed by a path build.

    ``ALL_VISIBLE`` creates internal nodes visible and promotes existing
    invisible ones it traverses. ``ALL_INVISIBLE`` creates them invisible
    and leaves existing ones untouched. Used for two-step delegation, where
    a sleepy node first registers resources and only later initializes them.
    """

    ALL_VISIBLE = "all_visible"
    ALL_INVISIBLE = "all_invisible"

    @property
    def creates_visible(self) -> bool:
        return self is VisibilityPolicy.ALL_VISIBLE


class ResourceNode:
    """A named node of the resource namespace.

    Parameters
    ----------
    name:
        Node name, unique among siblings. May be reassigned by
        :meth:`TreeBuilder.add` before the node is attached.
    active:
        False for internal nodes created only for path reachability.
    visible:
        Whether discovery lists this node.
    attributes:
        Link-format attributes (``rt``, ``if``, ``ct``, ``title``...).
    """

    def __init__(
        self,
        name: str,
        active: bool = True,
        visible: bool = True,
        attributes: dict[str, str] | None = None,
    ) -> None:
        self.name = name
        self.active = active
        self.visible = visible
        self.value: str | None = None
        self.attributes: dict[str, str] = dict(attributes or {})
        self.observable = False

        self._children: dict[str, ResourceNode] = {}
        self._parent_ref: weakref.ReferenceType[ResourceNode] | None = None
        self._dirty = False
        self._dirty_lock = threading.Lock()
        self._observers: list[Observer] = []
        self._observers_lock = threading.Lock()

    @classmethod
    def internal(cls, name: str, visible: bool) -> "ResourceNode":
        """Create an internal (inactive) node."""
        return cls(name, active=False, visible=visible)

    def __repr__(self) -> str:
        kind = "active" if self.active else "internal"
        state = "visible" if self.visible else "invisible"
        return f"<{type(self).__name__} {self.path or '/'} {kind} {state}>"

    # ------------------------------------------------------------------
    # Tree links
    # ------------------------------------------------------------------

    @property
    def parent(self) -> ResourceNode | None:
        """The parent node, or None for roots and detached nodes."""
        if self._parent_ref is None:
            return None
        return self._parent_ref()

    @property
    def path(self) -> str:
        """Absolute path of this node, e.g. ``/sp/0/config/x``.

        The unnamed namespace root has the empty path.
        """
        names: list[str] = []
        node: ResourceNode | None = self
        while node is not None:
            names.append(node.name)
            node = node.parent
        names.reverse()
        if not names[0]:
            names.pop(0)
        if not names:
            return ""
        return "/" + "/".join(names)

    def get_child(self, name: str) -> ResourceNode | None:
        return self._children.get(name)

    def get_children(self) -> list[ResourceNode]:
        """Snapshot of the direct children, ordered by name."""
        children = list(self._children.values())
        return sorted(children, key=lambda child: child.name)

    def has_children(self) -> bool:
        return bool(self._children)

    def add_child(self, child: ResourceNode) -> None:
        """Attach *child* under this node.

        The child is first detached from any previous parent. A sibling with
        the same name is detached and replaced.
        """
        previous_parent = child.parent
        if previous_parent is not None:
            previous_parent.remove_child(child)
        existing = self._children.get(child.name)
        if existing is not None and existing is not child:
            existing._parent_ref = None
        self._children[child.name] = child
        child._parent_ref = weakref.ref(self)

    def remove_child(self, child: ResourceNode) -> bool:
        """Detach *child*. Returns False if it was not a child of this node."""
        if self._children.get(child.name) is not child:
            return False
        del self._children[child.name]
        child._parent_ref = None
        return True

    def walk(self) -> Iterator[ResourceNode]:
        """Yield all descendants depth-first, parents before children.

        Siblings come in name order. Iterative, so tree depth is bounded by
        memory only.
        """
        stack = list(reversed(self.get_children()))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.get_children()))

    # ------------------------------------------------------------------
    # Dirty flag
    # ------------------------------------------------------------------

    @property
    def dirty(self) -> bool:
        return self._dirty

    def mark_dirty(self) -> None:
        with self._dirty_lock:
            self._dirty = True

    def take_dirty(self) -> bool:
        """Clear the dirty flag and return whether it was set."""
        with self._dirty_lock:
            was_dirty = self._dirty
            self._dirty = False
            return was_dirty

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def add_observer(self, observer: Observer) -> None:
        with self._observers_lock:
            self._observers.append(observer)

    def remove_observer(self, observer: Observer) -> None:
        with self._observers_lock:
            if observer in self._observers:
                self._observers.remove(observer)

    def notify_observers(self) -> None:
        """Call every registered observer with this node (observable nodes only)."""
        if not self.observable:
            return
        with self._observers_lock:
            observers = list(self._observers)
        for observer in observers:
            observer(self)

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    def handle(self, request: Request) -> Response:
        """Dispatch *request* to the handler for its method.

        Internal nodes are unreachable from outside and answer 4.04 whatever
        the method.
        """
        if not self.active:
            return Response(ResponseCode.NOT_FOUND)
        handler = {
            Method.GET: self.handle_get,
            Method.POST: self.handle_post,
            Method.PUT: self.handle_put,
            Method.DELETE: self.handle_delete,
        }[request.method]
        return handler(request)

    def handle_get(self, request: Request) -> Response:
        return Response(ResponseCode.METHOD_NOT_ALLOWED)

    def handle_post(self, request: Request) -> Response:
        return Response(ResponseCode.METHOD_NOT_ALLOWED)

    def handle_put(self, request: Request) -> Response:
        return Response(ResponseCode.METHOD_NOT_ALLOWED)

    def handle_delete(self, request: Request) -> Response:
        return Response(ResponseCode.METHOD_NOT_ALLOWED)


__all__ = ["Observer", "ResourceNode", "VisibilityPolicy"]
