"""Subtree listings: plain discovery and owner change reports.

Quick start
-----------
::

    from sleepy_proxy.discovery import collect_changes, render

    listing = render(container, ["rt=temperature"])
    changed = collect_changes(container)
"""
from __future__ import annotations

from sleepy_proxy.discovery.changes import collect_changes
from sleepy_proxy.discovery.listing import render

__all__ = ["collect_changes", "render"]
