"""IonProbe Typer CLI entrypoint."""

from __future__ import annotations

from importlib import metadata
from pathlib import Path

import typer
from rich.console import Console

from ionprobe.application.pipeline import run_pipeline
from ionprobe.cli import options as cli_options
from ionprobe.cli.formatting import render_report
from ionprobe.cli.helpers import (
    build_invocation,
    initialize_logging,
    resolve_runtime_and_logging,
)
from ionprobe.infrastructure.errors import IonProbeError

PROJECT_ROOT = Path(__file__).resolve().parents[3]
USAGE = "Usage: ionprobe <path-to-.ionapi-file> [--check_m3] [--debug]"

stderr_console = Console(stderr=True)
stdout_console = Console(stderr=False)

app = typer.Typer(
    help="Validate connectivity and credentials for an Infor ION API gateway",
    rich_markup_mode="rich",
    add_completion=False,
)


def _resolve_version() -> str:
    try:
        return metadata.version("ionprobe")
    except metadata.PackageNotFoundError:
        pyproject = PROJECT_ROOT / "pyproject.toml"
        if not pyproject.exists():
            return "unknown"
        import tomllib

        data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
        return data.get("project", {}).get("version", "unknown")


def _version_callback(value: bool) -> None:
    if value:
        stdout_console.print(_resolve_version())
        raise typer.Exit()


@app.command()
def check(
    credential_file: cli_options.CredentialFileArgument = None,
    config: cli_options.ConfigPathOption = None,
    debug: cli_options.DebugOption = None,
    check_m3: cli_options.CheckM3Option = None,
    check_applications: cli_options.CheckApplicationsOption = None,
    allow_insecure_tls: cli_options.AllowInsecureTlsOption = None,
    ca_bundle: cli_options.CaBundleOption = None,
    log_level: cli_options.LogLevelOption = None,
    log_format: cli_options.LogFormatOption = None,
    log_file: cli_options.LogFileOption = None,
    log_max_bytes: cli_options.LogMaxBytesOption = None,
    log_backup_count: cli_options.LogBackupCountOption = None,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the installed IonProbe version and exit.",
    ),
) -> None:
    """Check DNS, TCP, TLS and HTTP reachability, then request an access token."""

    if credential_file is None:
        stderr_console.print(USAGE, markup=False)
        raise typer.Exit(code=1)

    invocation = build_invocation(
        credential_path=credential_file,
        config_path=config,
        debug=debug,
        check_m3=check_m3,
        check_applications=check_applications,
        allow_insecure_tls=allow_insecure_tls,
        ca_bundle=ca_bundle,
        log_level=log_level,
        log_format=log_format,
        log_file=log_file,
        log_max_bytes=log_max_bytes,
        log_backup_count=log_backup_count,
    )
    try:
        runtime_settings, logging_settings = resolve_runtime_and_logging(invocation)
    except ValueError as exc:
        stderr_console.print(f"✖ Invalid configuration: {exc}", style="bold red", markup=False)
        raise typer.Exit(code=1) from exc
    logger = initialize_logging(runtime_settings, logging_settings)

    try:
        report = run_pipeline(credential_file, runtime_settings, logger)
    except IonProbeError as exc:
        logger.critical("pipeline.aborted", error=str(exc), code=exc.context.code)
        stderr_console.print(f"✖ {exc.user_message}", style="bold red", markup=False)
        raise typer.Exit(code=1) from exc
    except KeyboardInterrupt:
        stderr_console.print("[red]Interrupted[/red]")
        raise typer.Exit(code=130) from None

    render_report(report, stdout_console=stdout_console, stderr_console=stderr_console)
    raise typer.Exit(code=report.exit_code())


def main(argv: list[str] | None = None) -> None:
    """Entry point used by the console script and ``python -m ionprobe``."""

    app(args=argv, prog_name="ionprobe")


__all__ = ["app", "main"]
