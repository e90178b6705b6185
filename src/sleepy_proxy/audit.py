"""Delegation audit trail.

The proxy records four milestones in the life of a delegation:

=========================  ===============================================
``endpoint_registered``    a container was created for a new endpoint id
``resource_delegated``     a registration placed a resource in the tree
``resource_initialized``   the owner's first PUT published the resource
``resource_expired``       the lifetime ran out and the resource was removed
=========================  ===============================================

Events are kept in a bounded ring of recent history and, when a log path is
configured, also appended to a JSONL file that survives the process.
"""
from __future__ import annotations

import collections
import datetime
import json
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_SIZE = 1024


class AuditEventType(str, Enum):
    """Milestones of a delegation."""

    ENDPOINT_REGISTERED = "endpoint_registered"
    RESOURCE_DELEGATED = "resource_delegated"
    RESOURCE_INITIALIZED = "resource_initialized"
    RESOURCE_EXPIRED = "resource_expired"


@dataclass(frozen=True)
class AuditEvent:
    """One delegation milestone.

    Parameters
    ----------
    event_type:
        Which milestone was reached.
    endpoint_id:
        Endpoint owning the container the event happened in.
    path:
        Absolute path of the container or resource concerned.
    actor:
        Source address of the request that caused the event, or ``"system"``
        for lifetime expiry.
    timestamp:
        UTC time of the event. Defaults to now.
    """

    event_type: AuditEventType
    endpoint_id: str
    path: str
    actor: str = "system"
    timestamp: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )

    def to_dict(self) -> dict[str, str]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "endpoint_id": self.endpoint_id,
            "path": self.path,
            "actor": self.actor,
        }


class DelegationAuditLogger:
    """Thread-safe recorder of delegation milestones.

    Parameters
    ----------
    log_path:
        JSONL file receiving every event. Parent directories are created.
        If None, events are only kept in the in-memory history.
    history_size:
        Number of recent events kept in memory. Older events are dropped
        from memory (never from the file).
    """

    def __init__(
        self,
        log_path: Path | None = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ) -> None:
        if history_size < 1:
            raise ValueError(f"history_size must be positive, got {history_size}")
        self._log_path = log_path
        self._history: collections.deque[AuditEvent] = collections.deque(maxlen=history_size)
        self._lock = threading.Lock()

        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def log_path(self) -> Path | None:
        return self._log_path

    def record(
        self,
        event_type: AuditEventType,
        endpoint_id: str,
        path: str,
        actor: str = "system",
    ) -> AuditEvent:
        """Record one milestone and return the stored event."""
        event = AuditEvent(
            event_type=AuditEventType(event_type),
            endpoint_id=endpoint_id,
            path=path,
            actor=actor,
        )
        with self._lock:
            self._history.append(event)
            if self._log_path is not None:
                with self._log_path.open("a", encoding="utf-8") as fh:
                    fh.write(json.dumps(event.to_dict(), separators=(",", ":")) + "\n")
        logger.debug("Audit %s %s %s", event.event_type.value, endpoint_id, path)
        return event

    def history(
        self,
        endpoint_id: str | None = None,
        event_type: AuditEventType | None = None,
    ) -> list[AuditEvent]:
        """Recent events, oldest first, optionally filtered."""
        with self._lock:
            events = list(self._history)
        return [
            e
            for e in events
            if (endpoint_id is None or e.endpoint_id == endpoint_id)
            and (event_type is None or e.event_type is event_type)
        ]

    def drain(self) -> list[AuditEvent]:
        """Return and forget the in-memory history, oldest first."""
        with self._lock:
            events = list(self._history)
            self._history.clear()
        return events

    def read_log(self, tail: int | None = None) -> list[dict[str, str]]:
        """Read events back from the JSONL file.

        Returns an empty list when no file is configured or it does not
        exist yet. With *tail*, only the last *tail* events are returned.
        """
        if self._log_path is None or not self._log_path.exists():
            return []
        with self._lock:
            lines = self._log_path.read_text(encoding="utf-8").splitlines()
        events = [json.loads(line) for line in lines if line.strip()]
        if tail is not None:
            events = events[-tail:]
        return events


__all__ = [
    "AuditEvent",
    "AuditEventType",
    "DEFAULT_HISTORY_SIZE",
    "DelegationAuditLogger",
]
