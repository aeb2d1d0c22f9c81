"""Typer option declarations and normalization helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Final

import typer

LOG_FORMAT_CHOICES: Final[set[str]] = {"text", "json"}
LOG_LEVEL_CHOICES: Final[list[str]] = sorted(
    name
    for name, value in logging.getLevelNamesMapping().items()
    if isinstance(name, str) and not name.isdigit()
)
LOG_LEVEL_SET: Final[set[str]] = {choice.upper() for choice in LOG_LEVEL_CHOICES}

CredentialFileArgument = Annotated[
    Path | None,
    typer.Argument(
        help="Path to the .ionapi credential file",
        show_default=False,
    ),
]

ConfigPathOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        help="Path to an IonProbe configuration TOML file to load",
        envvar="IONPROBE_CONFIG",
        show_envvar=True,
        rich_help_panel="Configuration",
    ),
]

DebugOption = Annotated[
    bool | None,
    typer.Option(
        "--debug/--no-debug",
        help="Log intermediate values, including credentials, to the console",
        rich_help_panel="Diagnostics",
    ),
]

CheckM3Option = Annotated[
    bool | None,
    typer.Option(
        "--check_m3/--no-check_m3",
        "--check-m3/--no-check-m3",
        help="After acquiring a token, call the M3 FpwVersion API for the tenant",
        rich_help_panel="Tenant probes",
    ),
]

CheckApplicationsOption = Annotated[
    bool | None,
    typer.Option(
        "--check-applications/--no-check-applications",
        help="After acquiring a token, list the tenant user's applications",
        rich_help_panel="Tenant probes",
    ),
]

AllowInsecureTlsOption = Annotated[
    bool | None,
    typer.Option(
        "--allow-insecure-tls/--enforce-tls",
        help="Disable TLS verification for API calls (not recommended)",
        envvar="IONPROBE_ALLOW_INSECURE_TLS",
        show_envvar=True,
        rich_help_panel="TLS",
    ),
]

CaBundleOption = Annotated[
    str | None,
    typer.Option(
        "--ca-bundle",
        help="Path to a custom certificate authority bundle, e.g. for TLS interception",
        envvar="IONPROBE_CA_BUNDLE",
        show_envvar=True,
        rich_help_panel="TLS",
    ),
]

LogLevelOption = Annotated[
    str | None,
    typer.Option(
        "--log-level",
        help="Logging level (e.g. INFO, DEBUG)",
        envvar="IONPROBE_LOG_LEVEL",
        show_envvar=True,
        rich_help_panel="Logging",
    ),
]

LogFormatOption = Annotated[
    str | None,
    typer.Option(
        "--log-format",
        help="Logging format (text or json)",
        envvar="IONPROBE_LOG_FORMAT",
        show_envvar=True,
        rich_help_panel="Logging",
    ),
]

LogFileOption = Annotated[
    str | None,
    typer.Option(
        "--log-file",
        help="Path to the persistent log file (use '-', none, stderr to disable)",
        envvar="IONPROBE_LOG_FILE",
        show_envvar=True,
        rich_help_panel="Logging",
    ),
]

LogMaxBytesOption = Annotated[
    int | None,
    typer.Option(
        "--log-max-bytes",
        min=1,
        help="Maximum size in bytes for rotating log files",
        envvar="IONPROBE_LOG_MAX_BYTES",
        show_envvar=True,
        rich_help_panel="Logging",
    ),
]

LogBackupCountOption = Annotated[
    int | None,
    typer.Option(
        "--log-backup-count",
        min=1,
        help="Number of rotating log file backups to retain",
        envvar="IONPROBE_LOG_BACKUP_COUNT",
        show_envvar=True,
        rich_help_panel="Logging",
    ),
]


def clean_string(value: str | None) -> str | None:
    """Normalize optional string input."""

    if value is None:
        return None
    candidate = value.strip()
    return candidate or None


def validate_positive(name: str, value: int | None) -> int | None:
    """Validate that a numeric option is positive when provided."""

    if value is None:
        return None
    if value <= 0:
        raise typer.BadParameter(
            f"{name} must be a positive integer",
            param_hint=f"--{name.replace('_', '-')}",
        )
    return value


def normalize_log_format(value: str | None) -> str | None:
    """Normalize the log format option."""

    if value is None:
        return None
    candidate = value.strip().lower()
    if not candidate:
        return None
    if candidate not in LOG_FORMAT_CHOICES:
        raise typer.BadParameter(
            "Log format must be either 'text' or 'json'",
            param_hint="--log-format",
        )
    return candidate


def normalize_log_level(value: str | None) -> str | None:
    """Normalize the log level option."""

    if value is None:
        return None
    candidate = value.strip().upper()
    if not candidate:
        return None
    if candidate not in LOG_LEVEL_SET:
        raise typer.BadParameter(
            f"Log level must be one of: {', '.join(LOG_LEVEL_CHOICES)}",
            param_hint="--log-level",
        )
    return candidate


__all__ = [
    "AllowInsecureTlsOption",
    "CaBundleOption",
    "CheckApplicationsOption",
    "CheckM3Option",
    "ConfigPathOption",
    "CredentialFileArgument",
    "DebugOption",
    "LOG_FORMAT_CHOICES",
    "LOG_LEVEL_CHOICES",
    "LogBackupCountOption",
    "LogFileOption",
    "LogFormatOption",
    "LogLevelOption",
    "LogMaxBytesOption",
    "clean_string",
    "normalize_log_format",
    "normalize_log_level",
    "validate_positive",
]
