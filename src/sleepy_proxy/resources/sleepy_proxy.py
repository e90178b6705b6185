"""Entry points of the proxy namespace: ``/sp`` and ``/.well-known/core``.

A sleepy node finds the proxy with ``GET /.well-known/core?rt=core.sp`` and
then registers its resources with a POST to the sleepy-proxy resource::

    POST /sp?ep=node42
    <config/x>;rt="data",<config/y>

The proxy answers 2.01 Created with the location of the node's container
(``/sp/0``); the registered resources wait, invisible, for their first PUT.
"""
from __future__ import annotations

import logging
import weakref

from sleepy_proxy.audit import DelegationAuditLogger
from sleepy_proxy.discovery.listing import render
from sleepy_proxy.linkformat import LinkFormatError, parse_registration
from sleepy_proxy.protocol import Request, Response, ResponseCode
from sleepy_proxy.registry.delegation_registry import DelegationRegistry
from sleepy_proxy.resources.container import validate_descriptors
from sleepy_proxy.resources.node import ResourceNode

logger = logging.getLogger(__name__)

ENDPOINT = "ep"
SLEEPY_PROXY_RT = "core.sp"


def _query_attributes(query: list[str]) -> dict[str, str]:
    attributes: dict[str, str] = {}
    for item in query:
        key, _, value = item.partition("=")
        if key:
            attributes[key] = value
    return attributes


class SleepyProxyResource(ResourceNode):
    """The ``/sp`` resource: registration target and parent of all containers.

    Parameters
    ----------
    name:
        Resource name, ``sp`` by default.
    audit_logger:
        Optional audit trail shared with the registry and its containers.
    """

    def __init__(
        self,
        name: str = "sp",
        audit_logger: DelegationAuditLogger | None = None,
    ) -> None:
        super().__init__(
            name,
            active=True,
            visible=True,
            attributes={"rt": SLEEPY_PROXY_RT, "title": "Sleepy Proxy Resource"},
        )
        self.registry = DelegationRegistry(self, audit_logger=audit_logger)

    def handle_get(self, request: Request) -> Response:
        return Response.links(ResponseCode.CONTENT, render(self, request.query))

    def handle_post(self, request: Request) -> Response:
        """Register the resources in the payload for the endpoint in ``ep``."""
        endpoint_id = request.query_value(ENDPOINT)
        if not endpoint_id:
            return Response(ResponseCode.BAD_REQUEST, payload="Missing endpoint id (ep).")

        try:
            descriptors = parse_registration(request.payload_text)
        except LinkFormatError as exc:
            logger.info("Rejected registration of %r: %s", endpoint_id, exc)
            return Response(ResponseCode.BAD_REQUEST, payload=str(exc))
        invalid = validate_descriptors(descriptors)
        if invalid:
            logger.info("Rejected registration of %r: invalid paths %s", endpoint_id, invalid)
            return Response(
                ResponseCode.BAD_REQUEST, payload=f"Invalid resource path: {invalid[0]!r}"
            )

        container = self.registry.get_or_create_container(
            endpoint_id, _query_attributes(request.query), request.source_address
        )
        if not container.is_owner(request.source_address):
            logger.warning(
                "Endpoint %r is owned by %s, registration from %s refused",
                endpoint_id,
                container.owner_address,
                request.source_address,
            )
            return Response(ResponseCode.METHOD_NOT_ALLOWED)

        for descriptor in descriptors:
            container.delegate(descriptor)
        return Response(ResponseCode.CREATED, location_path=container.path)


class WellKnownCoreResource(ResourceNode):
    """``/.well-known/core``: link-format listing of the whole namespace."""

    def __init__(self, namespace_root: ResourceNode) -> None:
        super().__init__("core", active=True, visible=False)
        self._root_ref = weakref.ref(namespace_root)

    def handle_get(self, request: Request) -> Response:
        root = self._root_ref()
        if root is None:
            return Response(ResponseCode.NOT_FOUND)
        return Response.links(ResponseCode.CONTENT, render(root, request.query))


__all__ = [
    "ENDPOINT",
    "SLEEPY_PROXY_RT",
    "SleepyProxyResource",
    "WellKnownCoreResource",
]
