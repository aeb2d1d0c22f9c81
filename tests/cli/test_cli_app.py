from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from ionprobe.application.diagnostics import CHECK_TOKEN, DiagnosticOutcome, DiagnosticStatus
from ionprobe.application.pipeline import PipelineReport, PipelineState
from ionprobe.cli.app import app
from ionprobe.cli.helpers import (
    build_invocation,
    emit_runtime_messages,
    resolve_runtime_and_logging,
)
from ionprobe.cli.main import main
from ionprobe.config.settings import RuntimeSettings
from ionprobe.infrastructure.errors import LoadError, TokenExchangeError

runner = CliRunner()


def _done_report(**probe_responses: str) -> PipelineReport:
    report = PipelineReport()
    report.record(
        DiagnosticOutcome(CHECK_TOKEN, "token-url", DiagnosticStatus.SUCCESS, "Access token obtained")
    )
    report.advance(PipelineState.TOKEN_ACQUIRED)
    report.probe_responses.update(probe_responses)
    report.advance(PipelineState.DONE)
    return report


def _failed_report() -> PipelineReport:
    report = PipelineReport()
    error = TokenExchangeError(
        "Failed to get token, status: 401 Unauthorized", status="401 Unauthorized"
    )
    report.fail(
        error,
        DiagnosticOutcome(CHECK_TOKEN, "token-url", DiagnosticStatus.FATAL_FAILURE, str(error)),
    )
    return report


def _invoke(args: list[str], report: PipelineReport | None = None, **kwargs):
    pipeline = MagicMock(return_value=report or _done_report(), **kwargs)
    with patch("ionprobe.cli.app.run_pipeline", pipeline):
        result = runner.invoke(app, [*args, "--log-file", "-"], color=False)
    return result, pipeline


def test_missing_credential_path_prints_usage_and_exits_one() -> None:
    result, pipeline = _invoke([])

    assert result.exit_code == 1
    assert "Usage: ionprobe" in result.output
    pipeline.assert_not_called()


def test_version_flag_prints_version() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert result.output.strip()


def test_successful_run_exits_zero(credential_file: Path) -> None:
    result, pipeline = _invoke([str(credential_file)])

    assert result.exit_code == 0
    assert "Access token obtained" in result.output
    settings = pipeline.call_args.args[1]
    assert isinstance(settings, RuntimeSettings)
    assert settings.check_m3 is False
    assert settings.debug is False


@pytest.mark.parametrize("flag", ["--check_m3", "--check-m3"])
def test_check_m3_flag_spellings(credential_file: Path, flag: str) -> None:
    result, pipeline = _invoke([str(credential_file), flag], _done_report(m3="{}"))

    assert result.exit_code == 0
    assert pipeline.call_args.args[1].check_m3 is True


def test_check_applications_flag(credential_file: Path) -> None:
    result, pipeline = _invoke([str(credential_file), "--check-applications"])

    assert result.exit_code == 0
    assert pipeline.call_args.args[1].check_applications is True


def test_probe_body_printed(credential_file: Path) -> None:
    result, _ = _invoke(
        [str(credential_file), "--check_m3"], _done_report(m3='{"version": "16.0"}')
    )

    assert "m3 API Response:" in result.output
    assert '{"version": "16.0"}' in result.output


def test_failed_report_exits_one_with_reason(credential_file: Path) -> None:
    result, _ = _invoke([str(credential_file)], _failed_report())

    assert result.exit_code == 1
    assert "401 Unauthorized" in result.output


def test_unexpected_domain_error_exits_one(credential_file: Path) -> None:
    result, _ = _invoke(
        [str(credential_file)], side_effect=LoadError("Unable to read credential file")
    )

    assert result.exit_code == 1
    assert "Unable to read credential file" in result.output


def test_invalid_log_format_is_usage_error(credential_file: Path) -> None:
    result, pipeline = _invoke([str(credential_file), "--log-format", "xml"])

    assert result.exit_code == 2
    pipeline.assert_not_called()


def test_invalid_configured_log_format_exits_one(credential_file: Path, tmp_path: Path) -> None:
    config_path = tmp_path / "site.toml"
    config_path.write_text('[logging]\nformat = "xml"\n', encoding="utf-8")

    result, pipeline = _invoke([str(credential_file), "--config", str(config_path)])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.output
    pipeline.assert_not_called()


def test_debug_forces_debug_log_level(credential_file: Path) -> None:
    invocation = build_invocation(
        credential_path=credential_file,
        config_path=None,
        debug=True,
        check_m3=None,
        check_applications=None,
        allow_insecure_tls=None,
        ca_bundle=None,
        log_level="WARNING",
        log_format=None,
        log_file="-",
        log_max_bytes=None,
        log_backup_count=None,
    )

    runtime, logging_settings = resolve_runtime_and_logging(invocation)

    assert runtime.debug is True
    assert logging_settings.level == logging.DEBUG
    assert logging_settings.file_path is None


def test_environment_enables_probe(credential_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("IONPROBE_CHECK_APPLICATIONS", "true")

    result, pipeline = _invoke([str(credential_file)])

    assert result.exit_code == 0
    assert pipeline.call_args.args[1].check_applications is True


def test_main_proxies_to_app(credential_file: Path) -> None:
    with patch("ionprobe.cli.app.run_pipeline", MagicMock(return_value=_done_report())):
        with pytest.raises(SystemExit) as excinfo:
            main([str(credential_file), "--log-file", "-"])

    assert excinfo.value.code == 0


def test_emit_runtime_messages_logs_each_warning() -> None:
    logger = MagicMock()
    runtime = RuntimeSettings(warnings=("first warning", "second warning"))

    emit_runtime_messages(runtime, logger)

    assert [call.args[0] for call in logger.warning.call_args_list] == [
        "first warning",
        "second warning",
    ]
    logger.info.assert_not_called()
