"""Value objects describing a parsed CLI invocation."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class RuntimeOverrides:
    debug: bool | None = None
    check_m3: bool | None = None
    check_applications: bool | None = None


@dataclass(frozen=True)
class TlsOverrides:
    allow_insecure: bool | None = None
    ca_bundle_path: str | None = None


@dataclass(frozen=True)
class LoggingOverrides:
    level: str | None = None
    format: str | None = None
    file_path: str | None = None
    max_bytes: int | None = None
    backup_count: int | None = None


@dataclass(frozen=True)
class CliInvocation:
    credential_path: Path | None
    config_path: str | None = None
    runtime: RuntimeOverrides = field(default_factory=RuntimeOverrides)
    tls: TlsOverrides = field(default_factory=TlsOverrides)
    logging: LoggingOverrides = field(default_factory=LoggingOverrides)


__all__ = [
    "CliInvocation",
    "LoggingOverrides",
    "RuntimeOverrides",
    "TlsOverrides",
]
