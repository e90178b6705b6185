"""Endpoint registry.

Quick start
-----------
::

    from sleepy_proxy.registry import DelegationRegistry

    registry = DelegationRegistry(sp_resource)
    container = registry.get_or_create_container("node42", {"ep": "node42"}, "fe80::1")
"""
from __future__ import annotations

from sleepy_proxy.registry.delegation_registry import (
    ContainerNotFoundError,
    DelegationRegistry,
)

__all__ = ["ContainerNotFoundError", "DelegationRegistry"]
