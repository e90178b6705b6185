"""HTTP server mode for sleepy-proxy.

Provides a lightweight stdlib-based HTTP transport for the delegation engine
without requiring a CoAP stack or any web framework.
"""
from __future__ import annotations

from sleepy_proxy.server.app import SleepyProxyHandler, create_server, decode_request, run_server

__all__ = ["SleepyProxyHandler", "create_server", "decode_request", "run_server"]
