"""DelegationRegistry — maps sleepy-node endpoints to their containers.

Every endpoint id gets exactly one container, numbered from a counter that
starts at zero, so resources delegated at different times by the same node
end up under the same location.
"""
from __future__ import annotations

import itertools
import logging
import threading

from sleepy_proxy.audit import AuditEventType, DelegationAuditLogger
from sleepy_proxy.resources.container import ContainerResource
from sleepy_proxy.resources.node import ResourceNode

logger = logging.getLogger(__name__)


class ContainerNotFoundError(KeyError):
    """Raised when an endpoint id has no container."""

    def __init__(self, endpoint_id: str) -> None:
        super().__init__(
            f"Endpoint {endpoint_id!r} is not registered. "
            "Register resources for it first."
        )


class DelegationRegistry:
    """Registry of endpoint containers.

    Thread-safe. The endpoint map and the identifier counter are only
    touched under the registry lock, so concurrent registrations for the
    same endpoint id create a single container.

    Parameters
    ----------
    parent:
        Node new containers are attached under (the sleepy-proxy resource).
    audit_logger:
        Optional audit trail handed to every container.

    Example
    -------
    ::

        registry = DelegationRegistry(sp_resource)
        container = registry.get_or_create_container("node42", {}, "fe80::1")
        print(container.path)  # /sp/0
    """

    def __init__(
        self,
        parent: ResourceNode,
        audit_logger: DelegationAuditLogger | None = None,
    ) -> None:
        self._parent = parent
        self._audit_logger = audit_logger
        self._containers: dict[str, ContainerResource] = {}
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def get_or_create_container(
        self,
        endpoint_id: str,
        attributes: dict[str, str],
        address: str,
    ) -> ContainerResource:
        """Return the container for *endpoint_id*, creating it if needed.

        An existing container is returned unchanged; *attributes* and
        *address* are only used for a new one.

        Parameters
        ----------
        endpoint_id:
            The ``ep`` value of the registration.
        attributes:
            Attributes for a new container.
        address:
            Owner address for a new container.

        Returns
        -------
        ContainerResource
        """
        with self._lock:
            existing = self._containers.get(endpoint_id)
            if existing is not None:
                return existing
            container = ContainerResource(
                str(next(self._counter)),
                endpoint_id=endpoint_id,
                owner_address=address,
                attributes=attributes,
                audit_logger=self._audit_logger,
            )
            self._containers[endpoint_id] = container
            self._parent.add_child(container)

        logger.info(
            "Registered endpoint %r from %s at %s", endpoint_id, address, container.path
        )
        container.record_event(
            AuditEventType.ENDPOINT_REGISTERED, container.path, actor=address
        )
        return container

    def get(self, endpoint_id: str) -> ContainerResource:
        """Return the container of *endpoint_id*.

        Raises
        ------
        ContainerNotFoundError
            If the endpoint never registered.
        """
        with self._lock:
            if endpoint_id not in self._containers:
                raise ContainerNotFoundError(endpoint_id)
            return self._containers[endpoint_id]

    def list_all(self) -> list[ContainerResource]:
        """Return all containers ordered by identifier."""
        with self._lock:
            containers = list(self._containers.values())
        return sorted(containers, key=lambda c: int(c.name))

    def __len__(self) -> int:
        with self._lock:
            return len(self._containers)

    def __contains__(self, endpoint_id: object) -> bool:
        """Support ``"node42" in registry`` membership test."""
        with self._lock:
            return endpoint_id in self._containers


__all__ = ["ContainerNotFoundError", "DelegationRegistry"]
