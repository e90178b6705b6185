"""DelegatedResource — a resource a sleepy node has handed over to the proxy.

Life of a delegated resource
----------------------------
1. *Uninitialized*: created invisible when its owner registers it. Only the
   owner may talk to it; everybody else gets 4.04.
2. *Active*: the owner's first PUT stores a value and publishes the resource
   (visible, observable). Anyone may now read it. Writes from other
   addresses store the value and mark the resource dirty, so the owner
   learns about them on its next PUT or change query.
3. *Removed*: when the lifetime set by the owner (``lt`` query, seconds)
   runs out without a refreshing PUT, the resource is removed from the tree.

Each owner PUT invalidates the pending lifetime timer through a generation
token. The timer callback compares its token with the current one under the
resource lock, so an expiry that lost the race against a PUT does nothing.
"""
from __future__ import annotations

import logging
import threading
import weakref
from typing import TYPE_CHECKING, Callable

from sleepy_proxy.audit import AuditEventType
from sleepy_proxy.discovery.changes import collect_changes
from sleepy_proxy.protocol import Request, Response, ResponseCode
from sleepy_proxy.resources.node import ResourceNode

if TYPE_CHECKING:
    from sleepy_proxy.resources.container import ContainerResource

logger = logging.getLogger(__name__)

LIFETIME = "lt"


class InvalidLifetimeError(ValueError):
    """Raised when an ``lt`` query value is not a non-negative integer."""

    def __init__(self, raw: str) -> None:
        super().__init__(
            f"Invalid lifetime {raw!r}: expected a non-negative number of seconds."
        )


def parse_lifetime(raw: str | None) -> int | None:
    """Parse an ``lt`` query value.

    Returns None when *raw* is None (no lifetime requested).

    Raises
    ------
    InvalidLifetimeError
        If *raw* is not an integer or is negative.
    """
    if raw is None:
        return None
    try:
        seconds = int(raw)
    except ValueError:
        raise InvalidLifetimeError(raw) from None
    if seconds < 0:
        raise InvalidLifetimeError(raw)
    return seconds


class LifetimeTimer:
    """A one-shot lifetime timer tagged with the generation it was scheduled for.

    Parameters
    ----------
    seconds:
        Delay before *callback* runs.
    generation:
        Token passed to *callback*; the owner compares it with its current
        generation to decide whether the firing is still relevant.
    callback:
        Called with *generation* on a timer thread.
    """

    def __init__(
        self, seconds: float, generation: int, callback: Callable[[int], None]
    ) -> None:
        self.seconds = seconds
        self.generation = generation
        self._timer = threading.Timer(seconds, callback, args=(generation,))
        self._timer.daemon = True

    def start(self) -> None:
        self._timer.start()

    def cancel(self) -> None:
        """Stop the timer if it has not fired yet.

        A callback that is already running is not interrupted; it is
        neutralized by the generation check instead.
        """
        self._timer.cancel()


class DelegatedResource(ResourceNode):
    """A leaf resource owned by one sleepy node.

    Parameters
    ----------
    name:
        Resource name. Usually overwritten by :meth:`TreeBuilder.add` with the
        last segment of the registered path.
    container:
        The owner's container. Ownership checks and expiry go through it.
    visible:
        Initial visibility. Registered resources start invisible.
    attributes:
        Link-format attributes announced at registration.
    """

    def __init__(
        self,
        name: str,
        container: ContainerResource | None = None,
        visible: bool = False,
        attributes: dict[str, str] | None = None,
    ) -> None:
        super().__init__(name, active=True, visible=visible, attributes=attributes)
        self._container_ref = weakref.ref(container) if container is not None else None
        self._lock = threading.RLock()
        self._timer: LifetimeTimer | None = None
        self._generation = 0
        self._expired = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def container(self) -> ContainerResource | None:
        if self._container_ref is None:
            return None
        return self._container_ref()

    @property
    def expired(self) -> bool:
        return self._expired

    @property
    def initialized(self) -> bool:
        return self.visible

    @property
    def timer(self) -> LifetimeTimer | None:
        """The pending lifetime timer, if any."""
        return self._timer

    def is_owner(self, request: Request) -> bool:
        container = self.container
        return container is not None and container.is_owner(request.source_address)

    def _hidden(self, request: Request) -> Response:
        # Not published yet: the owner made a protocol error, everyone else
        # must not learn the resource exists.
        if self.is_owner(request):
            return Response(ResponseCode.METHOD_NOT_ALLOWED)
        return Response(ResponseCode.NOT_FOUND)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def handle_get(self, request: Request) -> Response:
        with self._lock:
            if self._expired:
                return Response(ResponseCode.NOT_FOUND)
            if not self.visible:
                return self._hidden(request)
            return Response(ResponseCode.CONTENT, payload=self.value or "")

    def handle_put(self, request: Request) -> Response:
        if self.is_owner(request):
            return self._owner_update(request)
        return self._foreign_update(request)

    def handle_post(self, request: Request) -> Response:
        """Change query: the owner asks which of its resources others modified."""
        with self._lock:
            if self._expired:
                return Response(ResponseCode.NOT_FOUND)
            if not self.is_owner(request):
                if not self.visible:
                    return Response(ResponseCode.NOT_FOUND)
                return Response(ResponseCode.METHOD_NOT_ALLOWED)
        container = self.container
        if container is None:
            return Response(ResponseCode.NOT_FOUND)
        return container.change_report(request.query)

    def handle_delete(self, request: Request) -> Response:
        # Removal only happens through lifetime expiry.
        if self.is_owner(request) or self.visible:
            return Response(ResponseCode.METHOD_NOT_ALLOWED)
        return Response(ResponseCode.NOT_FOUND)

    def _owner_update(self, request: Request) -> Response:
        with self._lock:
            if self._expired:
                return Response(ResponseCode.NOT_FOUND)
            try:
                lifetime = parse_lifetime(request.query_value(LIFETIME))
            except InvalidLifetimeError as exc:
                logger.info("Rejected update of %s: %s", self.path, exc)
                return Response(ResponseCode.BAD_REQUEST, payload=str(exc))

            self.value = request.payload_text
            self._restart_timer(lifetime)

            container = self.container
            changes = None
            if container is not None:
                changes = collect_changes(container, request.query_without(LIFETIME))

            first_update = not self.visible
            if first_update:
                self.visible = True
                self.observable = True
                logger.info("Initialized delegated resource %s", self.path)
                if container is not None:
                    container.record_event(
                        AuditEventType.RESOURCE_INITIALIZED,
                        self.path,
                        actor=request.source_address,
                    )
            code = ResponseCode.CREATED if first_update else ResponseCode.CHANGED

        self.notify_observers()
        if changes is not None:
            return Response.links(code, changes)
        return Response(code)

    def _foreign_update(self, request: Request) -> Response:
        with self._lock:
            if self._expired or not self.visible:
                return Response(ResponseCode.NOT_FOUND)
            self.value = request.payload_text
            self.mark_dirty()
            logger.debug("%s modified by %s", self.path, request.source_address)
            return Response(ResponseCode.CHANGED)

    # ------------------------------------------------------------------
    # Lifetime
    # ------------------------------------------------------------------

    def _restart_timer(self, lifetime: int | None) -> None:
        """Invalidate the pending timer and schedule a new one if asked to.

        Must be called with the resource lock held.
        """
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if lifetime is not None:
            self._timer = LifetimeTimer(lifetime, self._generation, self._on_lifetime_expired)
            self._timer.start()
            logger.debug("Lifetime of %s set to %ds", self.path, lifetime)

    def cancel_timer(self) -> None:
        """Invalidate any pending lifetime timer without scheduling a new one."""
        with self._lock:
            self._restart_timer(None)

    def _on_lifetime_expired(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._expired:
                return
            self._expired = True
            self._timer = None
            if self.parent is None:
                # Replaced by a newer registration; nothing left to remove.
                return
            path = self.path
            container = self.container
            if container is not None:
                container.tree_builder.remove(self)
                container.record_event(AuditEventType.RESOURCE_EXPIRED, path)
        logger.info("Lifetime of %s expired, resource removed", path)


__all__ = [
    "DelegatedResource",
    "InvalidLifetimeError",
    "LIFETIME",
    "LifetimeTimer",
    "parse_lifetime",
]
