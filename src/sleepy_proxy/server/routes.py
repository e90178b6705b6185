"""Route handler functions for the sleepy-proxy HTTP adapter.

``handle_health`` returns ``(status_code, response_dict)`` for the JSON
health route. ``handle_resource`` passes a decoded request to the shared
:class:`SleepyProxy`. The HTTP handler in app.py calls these functions and
serializes the results.
"""
from __future__ import annotations

from sleepy_proxy.config import ProxyConfig
from sleepy_proxy.protocol import Request, Response
from sleepy_proxy.proxy import SleepyProxy
from sleepy_proxy.server.models import HealthResponse


# Module-level shared state
_proxy: SleepyProxy = SleepyProxy()


def get_proxy() -> SleepyProxy:
    return _proxy


def reset_state(config: ProxyConfig | None = None) -> None:
    """Replace the shared proxy — used in tests and for clean restarts."""
    global _proxy
    _proxy.shutdown()
    _proxy = SleepyProxy(config)


def handle_resource(request: Request) -> Response:
    """Handle any request addressed to the resource namespace."""
    return _proxy.handle(request)


def handle_health() -> tuple[int, dict[str, object]]:
    """Handle GET /health.

    Returns
    -------
    tuple[int, dict[str, object]]
        HTTP status code and response dictionary.
    """
    response = HealthResponse(
        container_count=len(_proxy.registry),
        resource_count=len(_proxy.delegated_resources()),
    )
    return 200, response.model_dump()


__all__ = [
    "get_proxy",
    "handle_health",
    "handle_resource",
    "reset_state",
]
