"""CoRE link-format helpers.

Three jobs live here:

* serializing one resource as a link entry, ``</sp/0/config/x>;rt="data"``;
* matching a resource against discovery filter queries;
* parsing the registration payload a sleepy node POSTs to the proxy, a
  comma-separated list of descriptors such as
  ``<config/x>;rt="data";if=sensor,<config/y>``.

Only the subset of RFC 6690 the proxy needs is covered.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

HREF = "href"


class LinkFormatError(ValueError):
    """Raised when a registration payload does not follow the link grammar."""

    def __init__(self, detail: str, payload: str = "") -> None:
        message = f"Malformed link-format payload: {detail}"
        if payload:
            message += f" (in {payload!r})"
        super().__init__(message)


class LinkTarget(Protocol):
    """What the serializer needs to know about a resource."""

    @property
    def path(self) -> str: ...

    @property
    def attributes(self) -> dict[str, str]: ...


@dataclass
class ResourceDescriptor:
    """One resource announced in a registration payload.

    Parameters
    ----------
    path:
        The path between the angle brackets, exactly as sent.
    attributes:
        Attribute pairs with surrounding quotes stripped. A bare key (no
        ``=``) maps to the empty string.
    """

    path: str
    attributes: dict[str, str] = field(default_factory=dict)


# ------------------------------------------------------------------
# Serialization
# ------------------------------------------------------------------


def serialize_resource(resource: LinkTarget) -> str:
    """Return the link entry for *resource*: ``<path>`` plus its attributes."""
    parts = [f"<{resource.path}>"]
    for key, value in resource.attributes.items():
        parts.append(f'{key}="{value}"')
    return ";".join(parts)


def join_entries(entries: list[str]) -> str:
    """Comma-join link entries (no trailing comma)."""
    return ",".join(entries)


# ------------------------------------------------------------------
# Query matching
# ------------------------------------------------------------------


def _value_matches(expected: str, actual: str) -> bool:
    if expected.endswith("*"):
        return actual.startswith(expected[:-1])
    return actual == expected


def matches_query(resource: LinkTarget, query: str) -> bool:
    """Return True if *resource* satisfies a single filter query.

    ``key=value`` compares against the attribute value (space-separated
    multi-values such as ``rt="a b"`` match on any member); a trailing ``*``
    on the expected value turns the comparison into a prefix match.
    ``href=...`` compares against the absolute path. A bare ``key`` only
    requires the attribute to be present.
    """
    key, sep, expected = query.partition("=")
    if not sep:
        return key in resource.attributes
    if key == HREF:
        return _value_matches(expected, resource.path)
    actual = resource.attributes.get(key)
    if actual is None:
        return False
    if _value_matches(expected, actual):
        return True
    return any(_value_matches(expected, token) for token in actual.split())


def matches(resource: LinkTarget, queries: list[str] | None) -> bool:
    """Return True if *resource* satisfies every query (no queries → True)."""
    if not queries:
        return True
    return all(matches_query(resource, query) for query in queries)


# ------------------------------------------------------------------
# Registration payload parsing
# ------------------------------------------------------------------


def _split_unquoted(text: str, separator: str) -> list[str]:
    """Split *text* on *separator*, ignoring separators inside double quotes."""
    pieces: list[str] = []
    current: list[str] = []
    in_quotes = False
    for char in text:
        if char == '"':
            in_quotes = not in_quotes
        if char == separator and not in_quotes:
            pieces.append("".join(current))
            current = []
        else:
            current.append(char)
    if in_quotes:
        raise LinkFormatError("unterminated quoted string", text)
    pieces.append("".join(current))
    return pieces


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return value[1:-1]
    return value


def parse_descriptor(text: str) -> ResourceDescriptor:
    """Parse one ``<path>;key=value;...`` descriptor."""
    fields = [f.strip() for f in _split_unquoted(text, ";")]
    target = fields[0]
    if len(target) < 2 or not (target.startswith("<") and target.endswith(">")):
        raise LinkFormatError("descriptor must start with <path>", text)
    path = target[1:-1].strip()
    if not path:
        raise LinkFormatError("empty resource path", text)

    attributes: dict[str, str] = {}
    for item in fields[1:]:
        if not item:
            continue
        key, sep, value = item.partition("=")
        key = key.strip()
        if not key:
            raise LinkFormatError("attribute without a name", text)
        attributes[key] = _strip_quotes(value.strip()) if sep else ""
    return ResourceDescriptor(path=path, attributes=attributes)


def parse_registration(payload: str) -> list[ResourceDescriptor]:
    """Parse a registration payload into resource descriptors.

    An empty (or whitespace-only) payload yields an empty list.

    Raises
    ------
    LinkFormatError
        If any descriptor is malformed. Nothing is returned in that case, so
        callers can validate the whole payload before touching the tree.
    """
    if not payload.strip():
        return []
    descriptors: list[ResourceDescriptor] = []
    for chunk in _split_unquoted(payload, ","):
        chunk = chunk.strip()
        if not chunk:
            raise LinkFormatError("empty descriptor", payload)
        descriptors.append(parse_descriptor(chunk))
    return descriptors


__all__ = [
    "HREF",
    "LinkFormatError",
    "LinkTarget",
    "ResourceDescriptor",
    "join_entries",
    "matches",
    "matches_query",
    "parse_descriptor",
    "parse_registration",
    "serialize_resource",
]
