"""Reusable helper utilities for the IonProbe CLI."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path

from ionprobe.cli import options as cli_options
from ionprobe.cli.models import (
    CliInvocation,
    LoggingOverrides,
    RuntimeOverrides,
    TlsOverrides,
)
from ionprobe.config.settings import (
    LoggingInputs,
    LoggingSettings,
    RuntimeInputs,
    RuntimeSettings,
    TlsInputs,
    apply_cli_overrides,
    is_logfile_disabled_value,
    load_settings,
    logging_from_settings,
    runtime_from_settings,
)
from ionprobe.infrastructure.logging import (
    BoundLogger,
    attach_run_context,
    configure_logging,
    get_logger,
)


def build_invocation(
    *,
    credential_path: Path | None,
    config_path: Path | str | None,
    debug: bool | None,
    check_m3: bool | None,
    check_applications: bool | None,
    allow_insecure_tls: bool | None,
    ca_bundle: str | None,
    log_level: str | None,
    log_format: str | None,
    log_file: str | None,
    log_max_bytes: int | None,
    log_backup_count: int | None,
) -> CliInvocation:
    """Construct a :class:`CliInvocation` with normalized CLI parameters."""

    return CliInvocation(
        credential_path=credential_path,
        config_path=str(config_path) if config_path is not None else None,
        runtime=RuntimeOverrides(
            debug=debug,
            check_m3=check_m3,
            check_applications=check_applications,
        ),
        tls=TlsOverrides(
            allow_insecure=allow_insecure_tls,
            ca_bundle_path=cli_options.clean_string(ca_bundle),
        ),
        logging=LoggingOverrides(
            level=cli_options.normalize_log_level(log_level),
            format=cli_options.normalize_log_format(log_format),
            # keep "" so an explicit empty value can still disable the file
            file_path=log_file.strip() if log_file is not None else None,
            max_bytes=cli_options.validate_positive("log_max_bytes", log_max_bytes),
            backup_count=cli_options.validate_positive(
                "log_backup_count", log_backup_count
            ),
        ),
    )


def runtime_inputs(overrides: RuntimeOverrides) -> RuntimeInputs | None:
    """Convert CLI runtime overrides to :class:`RuntimeInputs`."""

    if (
        overrides.debug is None
        and overrides.check_m3 is None
        and overrides.check_applications is None
    ):
        return None
    return RuntimeInputs(
        debug=overrides.debug,
        check_m3=overrides.check_m3,
        check_applications=overrides.check_applications,
    )


def tls_inputs(overrides: TlsOverrides) -> TlsInputs | None:
    """Convert CLI TLS overrides to :class:`TlsInputs`."""

    if overrides.allow_insecure is None and overrides.ca_bundle_path is None:
        return None
    return TlsInputs(
        allow_insecure=overrides.allow_insecure,
        ca_bundle_path=overrides.ca_bundle_path,
    )


def logging_inputs(overrides: LoggingOverrides) -> LoggingInputs | None:
    """Convert CLI logging overrides to :class:`LoggingInputs`."""

    if (
        overrides.level is None
        and overrides.format is None
        and overrides.file_path is None
        and overrides.max_bytes is None
        and overrides.backup_count is None
    ):
        return None

    file_override: str | None
    if overrides.file_path is None:
        file_override = None
    elif is_logfile_disabled_value(overrides.file_path):
        file_override = ""
    else:
        file_override = overrides.file_path

    return LoggingInputs(
        level=overrides.level,
        format=overrides.format,
        file_path=file_override,
        max_bytes=overrides.max_bytes,
        backup_count=overrides.backup_count,
    )


def load_settings_from_invocation(invocation: CliInvocation):
    """Load settings and apply CLI overrides."""

    settings = load_settings(invocation.config_path)
    apply_cli_overrides(
        settings,
        runtime_inputs=runtime_inputs(invocation.runtime),
        tls_inputs=tls_inputs(invocation.tls),
        logging_inputs=logging_inputs(invocation.logging),
    )
    return settings


def resolve_runtime_and_logging(
    invocation: CliInvocation,
) -> tuple[RuntimeSettings, LoggingSettings]:
    """Resolve runtime and logging settings from a CLI invocation."""

    settings = load_settings_from_invocation(invocation)
    runtime_settings = runtime_from_settings(settings)
    logging_settings = logging_from_settings(settings)
    if runtime_settings.debug and logging_settings.level > logging.DEBUG:
        logging_settings = replace(logging_settings, level=logging.DEBUG)
    return runtime_settings, logging_settings


def emit_runtime_messages(runtime_settings: RuntimeSettings, logger: BoundLogger) -> None:
    """Emit runtime warning messages."""

    for message in runtime_settings.warnings:
        logger.warning(message)


def initialize_logging(
    runtime_settings: RuntimeSettings,
    logging_settings: LoggingSettings,
) -> BoundLogger:
    """Configure logging and emit runtime messages."""

    configure_logging(logging_settings)
    logger = attach_run_context(get_logger("ionprobe"))
    if runtime_settings.debug:
        logger.debug("runtime.debug_enabled", log_file=logging_settings.file_path)
    emit_runtime_messages(runtime_settings, logger)
    return logger


__all__ = [
    "build_invocation",
    "emit_runtime_messages",
    "initialize_logging",
    "load_settings_from_invocation",
    "logging_inputs",
    "resolve_runtime_and_logging",
    "runtime_inputs",
    "tls_inputs",
]
