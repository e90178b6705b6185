"""Protocol vocabulary shared by the delegation engine and its transports.

The engine never sees wire messages. A transport decodes each inbound message
into a :class:`Request` (method, source address, path segments, query items,
payload) and encodes the :class:`Response` it gets back. Response codes and
content formats follow the CoAP registries so a CoAP front end can map them
one-to-one; :attr:`ResponseCode.http_status` gives the HTTP equivalent used by
the bundled HTTP adapter.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Method(str, Enum):
    """Request methods understood by resources."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class ResponseCode(Enum):
    """Response codes produced by the delegation engine.

    Each member's value is the dotted CoAP code; :attr:`http_status` is the
    status the HTTP adapter sends for it.
    """

    CREATED = "2.01"
    VALID = "2.03"
    CHANGED = "2.04"
    CONTENT = "2.05"
    BAD_REQUEST = "4.00"
    NOT_FOUND = "4.04"
    METHOD_NOT_ALLOWED = "4.05"

    @property
    def http_status(self) -> int:
        """HTTP status code equivalent to this response code."""
        return _HTTP_STATUS[self]

    @property
    def is_success(self) -> bool:
        """True for the 2.xx class."""
        return self.value.startswith("2.")


_HTTP_STATUS: dict[ResponseCode, int] = {
    ResponseCode.CREATED: 201,
    ResponseCode.VALID: 200,
    ResponseCode.CHANGED: 200,
    ResponseCode.CONTENT: 200,
    ResponseCode.BAD_REQUEST: 400,
    ResponseCode.NOT_FOUND: 404,
    ResponseCode.METHOD_NOT_ALLOWED: 405,
}


class ContentFormat(Enum):
    """Content formats attached to response payloads (CoAP numbering)."""

    TEXT_PLAIN = 0
    LINK_FORMAT = 40

    @property
    def media_type(self) -> str:
        """MIME type string for this content format."""
        if self is ContentFormat.LINK_FORMAT:
            return "application/link-format"
        return "text/plain; charset=utf-8"


@dataclass
class Request:
    """A decoded inbound request.

    Parameters
    ----------
    method:
        Request method.
    source_address:
        Network address of the requester. Ownership of delegated resources is
        decided by comparing this against the address a container was
        registered from.
    path:
        Ordered URI path segments, e.g. ``["sp", "0", "config", "x"]``.
    query:
        Raw query items, each ``"key=value"`` or a bare ``"key"``.
    payload:
        Request body.
    """

    method: Method
    source_address: str
    path: list[str] = field(default_factory=list)
    query: list[str] = field(default_factory=list)
    payload: bytes = b""

    @property
    def payload_text(self) -> str:
        """The payload decoded as UTF-8 (invalid bytes replaced)."""
        return self.payload.decode("utf-8", errors="replace")

    def query_value(self, key: str) -> str | None:
        """Return the value of the first ``key=value`` query item, or None."""
        prefix = key + "="
        for item in self.query:
            if item.startswith(prefix):
                return item[len(prefix):]
        return None

    def query_without(self, *keys: str) -> list[str]:
        """Return the query items whose key is not in *keys*."""
        return [item for item in self.query if item.partition("=")[0] not in keys]


@dataclass
class Response:
    """A structured response handed back to the transport.

    Parameters
    ----------
    code:
        The response code.
    payload:
        Response body as text. Empty when the response carries no body.
    content_format:
        Format of *payload*.
    location_path:
        Absolute path of a newly created resource, if any.
    """

    code: ResponseCode
    payload: str = ""
    content_format: ContentFormat = ContentFormat.TEXT_PLAIN
    location_path: str | None = None

    @classmethod
    def links(cls, code: ResponseCode, listing: str) -> "Response":
        """Build a response carrying a link-format listing."""
        return cls(code=code, payload=listing, content_format=ContentFormat.LINK_FORMAT)


__all__ = [
    "ContentFormat",
    "Method",
    "Request",
    "Response",
    "ResponseCode",
]
