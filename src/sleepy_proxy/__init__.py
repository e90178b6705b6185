"""sleepy-proxy — hosts resources on behalf of intermittently connected nodes.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import sleepy_proxy
>>> sleepy_proxy.__version__
'0.1.0'

Quick start
-----------
::

    from sleepy_proxy import Method, Request, SleepyProxy

    proxy = SleepyProxy()
    response = proxy.handle(
        Request(Method.POST, "fe80::1", ["sp"], ["ep=node42"], b'<config/x>;rt="data"')
    )
    response.location_path  # '/sp/0'
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Protocol vocabulary and link format
# ------------------------------------------------------------------
from sleepy_proxy.protocol import ContentFormat, Method, Request, Response, ResponseCode
from sleepy_proxy.linkformat import LinkFormatError, ResourceDescriptor, parse_registration

# ------------------------------------------------------------------
# Resource namespace
# ------------------------------------------------------------------
from sleepy_proxy.resources.node import ResourceNode, VisibilityPolicy
from sleepy_proxy.resources.tree import TreeBuilder
from sleepy_proxy.resources.delegated import (
    DelegatedResource,
    InvalidLifetimeError,
    LifetimeTimer,
)
from sleepy_proxy.resources.container import ContainerResource

# ------------------------------------------------------------------
# Discovery and change reports
# ------------------------------------------------------------------
from sleepy_proxy.discovery.changes import collect_changes
from sleepy_proxy.discovery.listing import render

# ------------------------------------------------------------------
# Registry, audit, configuration, facade
# ------------------------------------------------------------------
from sleepy_proxy.registry.delegation_registry import ContainerNotFoundError, DelegationRegistry
from sleepy_proxy.audit import AuditEvent, AuditEventType, DelegationAuditLogger
from sleepy_proxy.config import ProxyConfig
from sleepy_proxy.proxy import SleepyProxy

__all__ = [
    # version
    "__version__",
    # protocol
    "ContentFormat",
    "Method",
    "Request",
    "Response",
    "ResponseCode",
    # link format
    "LinkFormatError",
    "ResourceDescriptor",
    "parse_registration",
    # resources
    "ContainerResource",
    "DelegatedResource",
    "InvalidLifetimeError",
    "LifetimeTimer",
    "ResourceNode",
    "TreeBuilder",
    "VisibilityPolicy",
    # discovery
    "collect_changes",
    "render",
    # registry
    "ContainerNotFoundError",
    "DelegationRegistry",
    # audit / config / facade
    "AuditEvent",
    "AuditEventType",
    "DelegationAuditLogger",
    "ProxyConfig",
    "SleepyProxy",
]
