"""SleepyProxy — the delegation engine behind a transport.

Owns the resource namespace::

    /                       namespace root
    /.well-known/core       discovery of the whole namespace
    /sp                     registration target (rt="core.sp")
    /sp/<n>                 one container per registered endpoint
    /sp/<n>/<path...>       delegated resources and internal nodes

A transport hands every decoded :class:`Request` to :meth:`SleepyProxy.handle`
and encodes the returned :class:`Response`. ``handle`` is safe to call from
many threads at once.
"""
from __future__ import annotations

import logging

from sleepy_proxy.audit import DelegationAuditLogger
from sleepy_proxy.config import ProxyConfig
from sleepy_proxy.protocol import Request, Response, ResponseCode
from sleepy_proxy.registry.delegation_registry import DelegationRegistry
from sleepy_proxy.resources.delegated import DelegatedResource
from sleepy_proxy.resources.node import ResourceNode
from sleepy_proxy.resources.sleepy_proxy import SleepyProxyResource, WellKnownCoreResource

logger = logging.getLogger(__name__)


class SleepyProxy:
    """Resource namespace plus request resolution.

    Parameters
    ----------
    config:
        Proxy settings. Only ``base_path`` and ``audit_log`` matter here.
    audit_logger:
        Audit trail to use. When omitted, one writing to ``config.audit_log``
        is created if that path is set; otherwise no events are recorded.
    """

    def __init__(
        self,
        config: ProxyConfig | None = None,
        audit_logger: DelegationAuditLogger | None = None,
    ) -> None:
        self.config = config or ProxyConfig()
        if audit_logger is None and self.config.audit_log is not None:
            audit_logger = DelegationAuditLogger(self.config.audit_log)
        self.audit_logger = audit_logger

        self.root = ResourceNode.internal("", visible=False)
        self.sleepy_proxy = SleepyProxyResource(self.config.base_path, audit_logger=audit_logger)
        self.root.add_child(self.sleepy_proxy)

        well_known = ResourceNode.internal(".well-known", visible=False)
        well_known.add_child(WellKnownCoreResource(self.root))
        self.root.add_child(well_known)

    @property
    def registry(self) -> DelegationRegistry:
        return self.sleepy_proxy.registry

    def resolve(self, path: list[str]) -> ResourceNode | None:
        """Return the node at *path* (a list of segments), or None."""
        node: ResourceNode | None = self.root
        for segment in path:
            if node is None:
                break
            node = node.get_child(segment)
        return node

    def handle(self, request: Request) -> Response:
        """Route *request* to the node its path names and return its response."""
        node = self.resolve(request.path)
        if node is None:
            logger.debug("No resource at /%s", "/".join(request.path))
            return Response(ResponseCode.NOT_FOUND)
        response = node.handle(request)
        logger.debug(
            "%s /%s from %s -> %s",
            request.method.value,
            "/".join(request.path),
            request.source_address,
            response.code.name,
        )
        return response

    def delegated_resources(self) -> list[DelegatedResource]:
        """All delegated resources currently in the namespace."""
        return [node for node in self.root.walk() if isinstance(node, DelegatedResource)]

    def shutdown(self) -> None:
        """Cancel every pending lifetime timer."""
        for resource in self.delegated_resources():
            resource.cancel_timer()
        logger.info("Sleepy proxy stopped, lifetime timers cancelled")


__all__ = ["SleepyProxy"]
