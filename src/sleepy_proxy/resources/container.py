"""ContainerResource — the per-endpoint root of a sleepy node's delegated subtree.

Each registered endpoint gets one container (``/sp/0``, ``/sp/1``...). The
container remembers the address the endpoint registered from; requests from
that address are treated as coming from the owner of every resource below.
It answers GET with a discovery listing of its subtree and, for the owner,
POST with a change report.
"""
from __future__ import annotations

import logging

from sleepy_proxy.audit import AuditEventType, DelegationAuditLogger
from sleepy_proxy.discovery.changes import collect_changes
from sleepy_proxy.discovery.listing import render
from sleepy_proxy.linkformat import ResourceDescriptor
from sleepy_proxy.protocol import Request, Response, ResponseCode
from sleepy_proxy.resources.delegated import DelegatedResource
from sleepy_proxy.resources.node import ResourceNode, VisibilityPolicy
from sleepy_proxy.resources.tree import SEPARATOR, TreeBuilder, split_path

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    """Prefix a registration path with ``/`` when it is relative."""
    if path.startswith(SEPARATOR):
        return path
    return SEPARATOR + path


def validate_descriptors(descriptors: list[ResourceDescriptor]) -> list[str]:
    """Return the descriptor paths that would be rejected by :meth:`TreeBuilder.add`."""
    return [
        d.path for d in descriptors if split_path(normalize_path(d.path)) is None
    ]


class ContainerResource(ResourceNode):
    """Root of one endpoint's delegated resources.

    Parameters
    ----------
    name:
        Container name, the decimal container identifier.
    endpoint_id:
        The endpoint (``ep``) the container belongs to.
    owner_address:
        Address the endpoint registered from.
    attributes:
        Attributes taken from the registration query.
    audit_logger:
        Optional audit trail for events in this container.
    """

    def __init__(
        self,
        name: str,
        endpoint_id: str,
        owner_address: str,
        attributes: dict[str, str] | None = None,
        audit_logger: DelegationAuditLogger | None = None,
    ) -> None:
        super().__init__(name, active=True, visible=True, attributes=attributes)
        self.endpoint_id = endpoint_id
        self.owner_address = owner_address
        self.tree_builder = TreeBuilder(self, VisibilityPolicy.ALL_INVISIBLE)
        self._audit_logger = audit_logger

    def is_owner(self, address: str) -> bool:
        return address == self.owner_address

    def record_event(
        self, event_type: AuditEventType, path: str, actor: str = "system"
    ) -> None:
        """Forward an event about this container to the audit trail, if any."""
        if self._audit_logger is not None:
            self._audit_logger.record(event_type, self.endpoint_id, path, actor=actor)

    # ------------------------------------------------------------------
    # Delegation
    # ------------------------------------------------------------------

    def delegate(self, descriptor: ResourceDescriptor) -> DelegatedResource | None:
        """Create an invisible delegated resource for *descriptor*.

        A delegated resource already registered at the same path is replaced
        and its pending lifetime is cancelled. Returns None if the
        descriptor's path is malformed.
        """
        resource = DelegatedResource(
            descriptor.path.rsplit(SEPARATOR, 1)[-1],
            container=self,
            visible=False,
            attributes=descriptor.attributes,
        )
        path = normalize_path(descriptor.path)
        stale = self.tree_builder.find(path)
        if isinstance(stale, DelegatedResource):
            stale.cancel_timer()
        if not self.tree_builder.add(resource, path, VisibilityPolicy.ALL_INVISIBLE):
            return None
        logger.info("Endpoint %r delegated %s", self.endpoint_id, resource.path)
        self.record_event(
            AuditEventType.RESOURCE_DELEGATED, resource.path, actor=self.owner_address
        )
        return resource

    def change_report(self, queries: list[str] | None = None) -> Response:
        """Collect the dirty resources of this container.

        Returns 2.04 Changed with the listing, or 2.03 Valid if nothing
        changed since the last report.
        """
        listing = collect_changes(self, queries)
        if listing is None:
            return Response(ResponseCode.VALID)
        return Response.links(ResponseCode.CHANGED, listing)

    def delegated_resources(self) -> list[DelegatedResource]:
        return [node for node in self.walk() if isinstance(node, DelegatedResource)]

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def handle_get(self, request: Request) -> Response:
        return Response.links(ResponseCode.CONTENT, render(self, request.query))

    def handle_post(self, request: Request) -> Response:
        if not self.is_owner(request.source_address):
            return Response(ResponseCode.METHOD_NOT_ALLOWED)
        return self.change_report(request.query)


__all__ = [
    "ContainerResource",
    "normalize_path",
    "validate_descriptors",
]
