"""HTTP adapter for sleepy-proxy using stdlib http.server.

Every request under the resource namespace is decoded into a protocol
:class:`Request` and handed to the shared :class:`SleepyProxy`:

    GET    /.well-known/core[?rt=core.sp]   — discover the proxy
    POST   /sp?ep={endpoint}                — register delegated resources
    PUT    /sp/{n}/{path}[?lt={seconds}]    — initialize / update a resource
    GET    /sp/{n}/{path}                   — read a resource
    POST   /sp/{n}[/{path}]                 — owner change query
    GET    /health                          — health check (JSON)

The CoAP response code is echoed in the ``X-Response-Code`` header, since
several codes share an HTTP status.

Usage:
    python -m sleepy_proxy.server.app --port 8080
"""
from __future__ import annotations

import argparse
import json
import logging
import urllib.parse
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from sleepy_proxy.protocol import Method, Request, Response
from sleepy_proxy.server import routes
from sleepy_proxy.server.models import ErrorResponse

logger = logging.getLogger(__name__)

RESPONSE_CODE_HEADER = "X-Response-Code"


def decode_request(method: Method, raw_path: str, source_address: str, body: bytes) -> Request:
    """Build a protocol request from the pieces of an HTTP request."""
    parsed = urllib.parse.urlsplit(raw_path)
    segments = [urllib.parse.unquote(s) for s in parsed.path.split("/") if s]
    query = [urllib.parse.unquote(item) for item in parsed.query.split("&") if item]
    return Request(
        method=method,
        source_address=source_address,
        path=segments,
        query=query,
        payload=body,
    )


class SleepyProxyHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the sleepy-proxy server.

    GET, POST, PUT and DELETE are all routed to the resource namespace,
    except GET /health.
    """

    def log_message(self, format: str, *args: object) -> None:
        """Override to route access logs through the Python logging system."""
        logger.debug(format, *args)

    # ── Verbs ─────────────────────────────────────────────────────────────────

    def do_GET(self) -> None:
        """Handle GET: health check or resource read / discovery."""
        if urllib.parse.urlsplit(self.path).path.rstrip("/") == "/health":
            status, data = routes.handle_health()
            self._send_json(status, data)
            return
        self._dispatch(Method.GET)

    def do_POST(self) -> None:
        """Handle POST: registration or change query."""
        self._dispatch(Method.POST)

    def do_PUT(self) -> None:
        """Handle PUT: resource initialization and updates."""
        self._dispatch(Method.PUT)

    def do_DELETE(self) -> None:
        """Handle DELETE (always refused by the namespace, with the right code)."""
        self._dispatch(Method.DELETE)

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _dispatch(self, method: Method) -> None:
        body = self._read_body()
        if body is None:
            return
        request = decode_request(method, self.path, self.client_address[0], body)
        self._send_response(routes.handle_resource(request))

    def _read_body(self) -> bytes | None:
        """Read the request body.

        Returns None (and sends a 400 error response) if Content-Length is
        not a valid integer.
        """
        raw_length = self.headers.get("Content-Length", "0")
        try:
            content_length = int(raw_length)
        except ValueError:
            self._send_json(
                400,
                ErrorResponse(
                    error="Bad request", detail=f"Invalid Content-Length {raw_length!r}"
                ).model_dump(),
            )
            return None
        if content_length <= 0:
            return b""
        return self.rfile.read(content_length)

    def _send_response(self, response: Response) -> None:
        """Encode a protocol response as an HTTP response."""
        body = response.payload.encode("utf-8")
        self.send_response(response.code.http_status)
        self.send_header(RESPONSE_CODE_HEADER, response.code.value)
        self.send_header("Content-Type", response.content_format.media_type)
        if response.location_path:
            self.send_header("Location", response.location_path)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _send_json(self, status: int, data: dict[str, object]) -> None:
        """Serialize *data* to JSON and send an HTTP response with *status*."""
        body = json.dumps(data, default=str).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


def create_server(host: str = "0.0.0.0", port: int = 8080) -> ThreadingHTTPServer:
    """Create (but do not start) the sleepy-proxy HTTP server.

    Each request is handled on its own thread.

    Parameters
    ----------
    host:
        Bind address (default ``"0.0.0.0"`` — all interfaces).
    port:
        TCP port to listen on (default 8080).

    Returns
    -------
    ThreadingHTTPServer
        A configured server instance ready to call ``serve_forever()`` on.
    """
    server = ThreadingHTTPServer((host, port), SleepyProxyHandler)
    server.daemon_threads = True
    logger.info("sleepy-proxy server created at http://%s:%d", host, port)
    return server


def run_server(host: str = "0.0.0.0", port: int = 8080) -> None:
    """Create and run the sleepy-proxy HTTP server (blocking).

    Parameters
    ----------
    host:
        Bind address.
    port:
        TCP port.
    """
    server = create_server(host=host, port=port)
    logger.info("Serving sleepy-proxy on http://%s:%d — press Ctrl-C to stop", host, port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down sleepy-proxy server.")
    finally:
        server.server_close()
        routes.get_proxy().shutdown()


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="sleepy-proxy HTTP server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--port", type=int, default=8080, help="TCP port")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    return parser


if __name__ == "__main__":
    args = _build_arg_parser().parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level))
    run_server(host=args.host, port=args.port)
