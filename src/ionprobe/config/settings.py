"""Dynaconf-backed configuration helpers for IonProbe."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from dynaconf import Dynaconf

from .constants import (
    APPLICATIONS_PROBE,
    DEFAULT_APPLICATIONS_PATH,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_LOG_FILENAME,
    DEFAULT_M3_PATH,
    DEFAULT_PRODUCTION_DOMAINS,
    FALSY_STRINGS,
    LOCAL_CONFIG_FILENAME,
    M3_PROBE,
    TRUTHY_STRINGS,
)

LOG_FORMAT_TEXT = "text"
LOG_FORMAT_JSON = "json"
DEFAULT_LOG_FORMAT = LOG_FORMAT_TEXT
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_MAX_BYTES = 10_000_000
DEFAULT_BACKUP_COUNT = 5

DEFAULT_DIAGNOSTIC_TIMEOUT = 5.0
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_PORT = "443"

_LOGFILE_DISABLED_VALUES = {"", "-", "none", "stderr"}

# Dynaconf keys used throughout the module. Using constants helps avoid
# duplication and keeps environment and configuration lookups consistent.
RUNTIME_DEBUG_KEY = "runtime.debug"
RUNTIME_CHECK_M3_KEY = "runtime.check_m3"
RUNTIME_CHECK_APPLICATIONS_KEY = "runtime.check_applications"
RUNTIME_ALLOW_INSECURE_TLS_KEY = "runtime.allow_insecure_tls"
RUNTIME_CA_BUNDLE_PATH_KEY = "runtime.ca_bundle_path"

NETWORK_DIAGNOSTIC_TIMEOUT_KEY = "network.diagnostic_timeout"
NETWORK_REQUEST_TIMEOUT_KEY = "network.request_timeout"
NETWORK_DEFAULT_PORT_KEY = "network.default_port"

ION_PRODUCTION_DOMAINS_KEY = "ion.production_domains"
ION_TOKEN_SCOPE_KEY = "ion.token_scope"
ION_M3_PATH_KEY = "ion.m3_path"
ION_APPLICATIONS_PATH_KEY = "ion.applications_path"

LOGGING_LEVEL_KEY = "logging.level"
LOGGING_FORMAT_KEY = "logging.format"
LOGGING_FILE_KEY = "logging.file"
LOGGING_MAX_BYTES_KEY = "logging.max_bytes"
LOGGING_BACKUP_COUNT_KEY = "logging.backup_count"

_ENVIRONMENT_MAP = {
    "IONPROBE_DEBUG": RUNTIME_DEBUG_KEY,
    "IONPROBE_CHECK_M3": RUNTIME_CHECK_M3_KEY,
    "IONPROBE_CHECK_APPLICATIONS": RUNTIME_CHECK_APPLICATIONS_KEY,
    "IONPROBE_ALLOW_INSECURE_TLS": RUNTIME_ALLOW_INSECURE_TLS_KEY,
    "IONPROBE_CA_BUNDLE": RUNTIME_CA_BUNDLE_PATH_KEY,
    "IONPROBE_DIAGNOSTIC_TIMEOUT": NETWORK_DIAGNOSTIC_TIMEOUT_KEY,
    "IONPROBE_REQUEST_TIMEOUT": NETWORK_REQUEST_TIMEOUT_KEY,
    "IONPROBE_DEFAULT_PORT": NETWORK_DEFAULT_PORT_KEY,
    "IONPROBE_PRODUCTION_DOMAINS": ION_PRODUCTION_DOMAINS_KEY,
    "IONPROBE_TOKEN_SCOPE": ION_TOKEN_SCOPE_KEY,
    "IONPROBE_LOG_LEVEL": LOGGING_LEVEL_KEY,
    "IONPROBE_LOG_FORMAT": LOGGING_FORMAT_KEY,
    "IONPROBE_LOG_FILE": LOGGING_FILE_KEY,
    "IONPROBE_LOG_MAX_BYTES": LOGGING_MAX_BYTES_KEY,
    "IONPROBE_LOG_BACKUP_COUNT": LOGGING_BACKUP_COUNT_KEY,
}


@dataclass(frozen=True)
class RuntimeInputs:
    debug: bool | None = None
    check_m3: bool | None = None
    check_applications: bool | None = None


@dataclass(frozen=True)
class TlsInputs:
    allow_insecure: bool | None = None
    ca_bundle_path: str | None = None


@dataclass(frozen=True)
class LoggingInputs:
    level: str | None = None
    format: str | None = None
    file_path: str | None = None
    max_bytes: int | None = None
    backup_count: int | None = None


@dataclass(frozen=True)
class RuntimeSettings:
    debug: bool = False
    check_m3: bool = False
    check_applications: bool = False
    allow_insecure_tls: bool = False
    ca_bundle_path: str | None = None
    diagnostic_timeout: float = DEFAULT_DIAGNOSTIC_TIMEOUT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    default_port: str = DEFAULT_PORT
    production_domains: tuple[str, ...] = DEFAULT_PRODUCTION_DOMAINS
    token_scope: str | None = None
    m3_path: str = DEFAULT_M3_PATH
    applications_path: str = DEFAULT_APPLICATIONS_PATH
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def requested_probes(self) -> list[tuple[str, str]]:
        """Return ``(name, path_template)`` pairs for the enabled tenant probes."""

        probes: list[tuple[str, str]] = []
        if self.check_m3:
            probes.append((M3_PROBE, self.m3_path))
        if self.check_applications:
            probes.append((APPLICATIONS_PROBE, self.applications_path))
        return probes


@dataclass(frozen=True)
class LoggingSettings:
    level: int
    format: str
    file_path: str | None
    max_bytes: int
    backup_count: int

    @property
    def level_name(self) -> str:
        return logging.getLevelName(self.level)


def is_logfile_disabled_value(value: str | None) -> bool:
    """Return ``True`` when *value* requests console-only logging."""

    if value is None:
        return False
    return value.strip().lower() in _LOGFILE_DISABLED_VALUES


def resolve_config_file_candidates(config_path: str | None) -> list[str]:
    """Return the configuration files Dynaconf should layer, base file first."""

    if not config_path:
        return [DEFAULT_CONFIG_FILENAME, LOCAL_CONFIG_FILENAME]
    config_file = Path(config_path)
    local_file = config_file.with_name(f"{config_file.stem}.local{config_file.suffix}")
    return [str(config_file), str(local_file)]


def _existing_settings_files(config_path: str | None) -> Sequence[str]:
    return [
        candidate
        for candidate in resolve_config_file_candidates(config_path)
        if Path(candidate).exists()
    ]


def _coerce_str(value: Any | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        candidate = value.strip()
        return candidate or None
    return str(value)


def _coerce_bool(value: Any | None) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if not normalized:
            return None
        if normalized in TRUTHY_STRINGS:
            return True
        if normalized in FALSY_STRINGS:
            return False
        return None
    if isinstance(value, (int, float)):
        return bool(value)
    return None


def _coerce_int(value: Any | None) -> int | None:
    if value is None:
        return None
    try:
        coerced = int(value)
    except (TypeError, ValueError):
        return None
    return coerced


def _coerce_float(value: Any | None) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        coerced = float(value)
    except (TypeError, ValueError):
        return None
    return coerced


def _coerce_domains(value: Any | None) -> tuple[str, ...] | None:
    if value is None:
        return None
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
    else:
        return None
    domains = tuple(
        item.strip().lower().lstrip(".") for item in items if item and item.strip()
    )
    return domains or None


_EMPTY_ALLOWED_KEYS = frozenset({LOGGING_FILE_KEY, ION_TOKEN_SCOPE_KEY})


def _apply_environment_overrides(settings: Dynaconf) -> None:
    for env_var, key in _ENVIRONMENT_MAP.items():
        raw = os.getenv(env_var)
        if raw is None:
            continue
        if key not in _EMPTY_ALLOWED_KEYS and not raw.strip():
            continue
        settings.set(key, raw)


def _apply_runtime_inputs(
    settings: Dynaconf, runtime_inputs: RuntimeInputs | None
) -> None:
    if runtime_inputs is None:
        return

    if runtime_inputs.debug is not None:
        settings.set(RUNTIME_DEBUG_KEY, runtime_inputs.debug)
    if runtime_inputs.check_m3 is not None:
        settings.set(RUNTIME_CHECK_M3_KEY, runtime_inputs.check_m3)
    if runtime_inputs.check_applications is not None:
        settings.set(RUNTIME_CHECK_APPLICATIONS_KEY, runtime_inputs.check_applications)


def _apply_tls_inputs(settings: Dynaconf, tls_inputs: TlsInputs | None) -> None:
    if tls_inputs is None:
        return

    if tls_inputs.allow_insecure is not None:
        settings.set(RUNTIME_ALLOW_INSECURE_TLS_KEY, tls_inputs.allow_insecure)
    if tls_inputs.ca_bundle_path is not None:
        settings.set(RUNTIME_CA_BUNDLE_PATH_KEY, tls_inputs.ca_bundle_path.strip())


def _apply_logging_inputs(
    settings: Dynaconf, logging_inputs: LoggingInputs | None
) -> None:
    if logging_inputs is None:
        return

    if logging_inputs.level is not None:
        settings.set(LOGGING_LEVEL_KEY, logging_inputs.level.strip())
    if logging_inputs.format is not None:
        settings.set(LOGGING_FORMAT_KEY, logging_inputs.format.strip())
    if logging_inputs.file_path is not None:
        settings.set(LOGGING_FILE_KEY, logging_inputs.file_path.strip())
    if logging_inputs.max_bytes is not None:
        settings.set(LOGGING_MAX_BYTES_KEY, logging_inputs.max_bytes)
    if logging_inputs.backup_count is not None:
        settings.set(LOGGING_BACKUP_COUNT_KEY, logging_inputs.backup_count)


def load_settings(config_path: str | None = None) -> Dynaconf:
    """Create a Dynaconf instance configured for the supplied path."""

    settings = Dynaconf(
        settings_files=list(_existing_settings_files(config_path)),
        envvar_prefix="IONPROBE",
        environments=False,
        load_dotenv=True,
        merge_enabled=True,
    )
    _apply_environment_overrides(settings)
    return settings


def apply_cli_overrides(
    settings: Dynaconf,
    *,
    runtime_inputs: RuntimeInputs | None = None,
    tls_inputs: TlsInputs | None = None,
    logging_inputs: LoggingInputs | None = None,
) -> None:
    """Apply CLI overrides to the provided settings instance."""

    _apply_runtime_inputs(settings, runtime_inputs)
    _apply_tls_inputs(settings, tls_inputs)
    _apply_logging_inputs(settings, logging_inputs)


def _resolve_bool(settings: Dynaconf, key: str, *, default: bool = False) -> bool:
    coerced = _coerce_bool(settings.get(key))
    if coerced is None:
        return default
    return coerced


def _resolve_timeout(
    settings: Dynaconf, key: str, default: float, warnings: list[str]
) -> float:
    raw = settings.get(key)
    if raw is None:
        return default
    value = _coerce_float(raw)
    if value is None or value <= 0:
        warnings.append(f"Invalid {key} value {raw!r}; using default of {default:g}s")
        return default
    return value


def _resolve_default_port(settings: Dynaconf, warnings: list[str]) -> str:
    raw = _coerce_str(settings.get(NETWORK_DEFAULT_PORT_KEY))
    if raw is None:
        return DEFAULT_PORT
    if not raw.isdigit() or not 0 < int(raw) < 65536:
        warnings.append(
            f"Invalid {NETWORK_DEFAULT_PORT_KEY} value {raw!r}; using {DEFAULT_PORT}"
        )
        return DEFAULT_PORT
    return raw


def _resolve_production_domains(
    settings: Dynaconf, warnings: list[str]
) -> tuple[str, ...]:
    raw = settings.get(ION_PRODUCTION_DOMAINS_KEY)
    if raw is None:
        return DEFAULT_PRODUCTION_DOMAINS
    domains = _coerce_domains(raw)
    if domains is None:
        warnings.append(
            "Empty production_domains override; falling back to default configuration"
        )
        return DEFAULT_PRODUCTION_DOMAINS
    return domains


def _resolve_token_scope(settings: Dynaconf) -> str | None:
    # an explicit empty value still sends "scope="
    raw = settings.get(ION_TOKEN_SCOPE_KEY)
    if raw is None:
        return None
    return str(raw).strip()


def runtime_from_settings(settings: Dynaconf) -> RuntimeSettings:
    """Extract runtime settings and validation messages from Dynaconf."""

    warnings: list[str] = []

    allow_insecure_tls = _resolve_bool(
        settings, RUNTIME_ALLOW_INSECURE_TLS_KEY, default=False
    )
    ca_bundle_path = _coerce_str(settings.get(RUNTIME_CA_BUNDLE_PATH_KEY))
    if allow_insecure_tls and ca_bundle_path:
        warnings.append(
            "allow_insecure_tls takes precedence over ca_bundle_path; "
            "HTTPS verification will be disabled"
        )
        ca_bundle_path = None

    return RuntimeSettings(
        debug=_resolve_bool(settings, RUNTIME_DEBUG_KEY, default=False),
        check_m3=_resolve_bool(settings, RUNTIME_CHECK_M3_KEY, default=False),
        check_applications=_resolve_bool(
            settings, RUNTIME_CHECK_APPLICATIONS_KEY, default=False
        ),
        allow_insecure_tls=allow_insecure_tls,
        ca_bundle_path=ca_bundle_path,
        diagnostic_timeout=_resolve_timeout(
            settings, NETWORK_DIAGNOSTIC_TIMEOUT_KEY, DEFAULT_DIAGNOSTIC_TIMEOUT, warnings
        ),
        request_timeout=_resolve_timeout(
            settings, NETWORK_REQUEST_TIMEOUT_KEY, DEFAULT_REQUEST_TIMEOUT, warnings
        ),
        default_port=_resolve_default_port(settings, warnings),
        production_domains=_resolve_production_domains(settings, warnings),
        token_scope=_resolve_token_scope(settings),
        m3_path=_coerce_str(settings.get(ION_M3_PATH_KEY)) or DEFAULT_M3_PATH,
        applications_path=(
            _coerce_str(settings.get(ION_APPLICATIONS_PATH_KEY))
            or DEFAULT_APPLICATIONS_PATH
        ),
        warnings=tuple(warnings),
    )


def _resolve_log_file(settings: Dynaconf) -> str | None:
    raw = settings.get(LOGGING_FILE_KEY)
    if raw is None:
        return DEFAULT_LOG_FILENAME
    candidate = str(raw)
    if is_logfile_disabled_value(candidate):
        return None
    return candidate.strip()


def logging_from_settings(settings: Dynaconf) -> LoggingSettings:
    """Extract logging configuration from Dynaconf."""

    level_value = _coerce_str(settings.get(LOGGING_LEVEL_KEY)) or DEFAULT_LOG_LEVEL
    format_value = (
        _coerce_str(settings.get(LOGGING_FORMAT_KEY)) or DEFAULT_LOG_FORMAT
    ).lower()
    if format_value not in {LOG_FORMAT_TEXT, LOG_FORMAT_JSON}:
        raise ValueError(f"Unsupported log format: {format_value}")

    max_bytes_value = _coerce_int(settings.get(LOGGING_MAX_BYTES_KEY))
    if max_bytes_value is None or max_bytes_value <= 0:
        max_bytes_value = DEFAULT_MAX_BYTES

    backup_count_value = _coerce_int(settings.get(LOGGING_BACKUP_COUNT_KEY))
    if backup_count_value is None or backup_count_value <= 0:
        backup_count_value = DEFAULT_BACKUP_COUNT

    mapping = logging.getLevelNamesMapping()
    level_upper = level_value.upper()
    if level_upper.isdigit():
        resolved_level = int(level_upper)
    else:
        resolved_level = mapping.get(level_upper, logging.INFO)

    return LoggingSettings(
        level=resolved_level,
        format=format_value,
        file_path=_resolve_log_file(settings),
        max_bytes=max_bytes_value,
        backup_count=backup_count_value,
    )


__all__ = [
    "DEFAULT_BACKUP_COUNT",
    "DEFAULT_DIAGNOSTIC_TIMEOUT",
    "DEFAULT_LOG_FORMAT",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_MAX_BYTES",
    "DEFAULT_PORT",
    "DEFAULT_REQUEST_TIMEOUT",
    "LOG_FORMAT_JSON",
    "LOG_FORMAT_TEXT",
    "LoggingInputs",
    "LoggingSettings",
    "RuntimeInputs",
    "RuntimeSettings",
    "TlsInputs",
    "apply_cli_overrides",
    "is_logfile_disabled_value",
    "load_settings",
    "logging_from_settings",
    "resolve_config_file_candidates",
    "runtime_from_settings",
]
