"""ProxyConfig — runtime settings for a sleepy proxy instance.

Sensible defaults are provided for all parameters; the CLI builds a config
from its options and hands it to :class:`SleepyProxy` and the server.
"""
from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


class ProxyConfig(BaseModel):
    """Settings of a sleepy proxy.

    Parameters
    ----------
    host:
        Bind address of the transport.
    port:
        Port of the transport (the CoAP default, 5683, unless overridden).
    base_path:
        Name of the sleepy-proxy resource under the namespace root.
    log_level:
        Level passed to :func:`logging.basicConfig` by the CLI.
    audit_log:
        JSONL file for delegation audit events. None keeps events in memory.
    """

    host: str = "0.0.0.0"
    port: int = Field(default=5683, ge=1, le=65535)
    base_path: str = "sp"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    audit_log: Optional[Path] = None

    @field_validator("base_path")
    @classmethod
    def _single_segment(cls, value: str) -> str:
        value = value.strip("/")
        if not value or "/" in value:
            raise ValueError("base_path must be a single non-empty path segment")
        return value


__all__ = ["ProxyConfig"]
