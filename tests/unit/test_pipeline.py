from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest
import structlog

from ionprobe.application.diagnostics import (
    CHECK_DNS,
    CHECK_TENANT_PROBE,
    DiagnosticOutcome,
    DiagnosticStatus,
)
from ionprobe.application.pipeline import PipelineReport, PipelineState, run_pipeline
from ionprobe.config.settings import RuntimeSettings
from ionprobe.infrastructure.errors import (
    ConnectivityError,
    LoadError,
    MalformedResponseError,
    ProbeError,
    TokenExchangeError,
)
from ionprobe.integrations.ion import create_client

Handler = Callable[[httpx.Request], httpx.Response]
TOKEN_URL = "https://mingle-sso.eu1.inforcloudsuite.com:443/ACME_PRD/as/token.oauth2"


class FakeGateway:
    """Routes requests by method and URL prefix and records them."""

    def __init__(
        self,
        *,
        head_status: int = 200,
        token_response: httpx.Response | None = None,
        tenant_status: int = 200,
    ) -> None:
        self.head_status = head_status
        self.token_response = token_response or httpx.Response(
            200, json={"access_token": "abc123"}
        )
        self.tenant_status = tenant_status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "HEAD":
            return httpx.Response(self.head_status)
        if request.method == "POST":
            return self.token_response
        return httpx.Response(self.tenant_status, text=f"body for {request.url.path}")

    def methods(self) -> list[str]:
        return [request.method for request in self.requests]


def _factory(gateway: Handler):
    def _create(**kwargs: Any) -> httpx.Client:
        return create_client(transport=httpx.MockTransport(gateway), **kwargs)

    return _create


def _no_diagnostics(targets, **kwargs) -> list[DiagnosticOutcome]:
    return []


def _advisory_diagnostics(targets, **kwargs) -> list[DiagnosticOutcome]:
    return [
        DiagnosticOutcome(
            CHECK_DNS, target, DiagnosticStatus.ADVISORY_FAILURE, "DNS resolution failed"
        )
        for target in targets
    ]


def _run(
    credential_file: Path,
    gateway: FakeGateway,
    settings: RuntimeSettings | None = None,
    diagnostics_runner=_no_diagnostics,
) -> PipelineReport:
    return run_pipeline(
        credential_file,
        settings or RuntimeSettings(),
        structlog.get_logger("ionprobe.test.pipeline"),
        client_factory=_factory(gateway),
        diagnostics_runner=diagnostics_runner,
    )


def test_success_without_probe_exits_zero(credential_file: Path) -> None:
    gateway = FakeGateway()

    report = _run(credential_file, gateway)

    assert report.state is PipelineState.DONE
    assert report.exit_code() == 0
    assert report.token_acquired
    assert report.history == [
        PipelineState.INIT,
        PipelineState.CREDENTIALS_LOADED,
        PipelineState.DIAGNOSTICS_RUN,
        PipelineState.GATEWAY_REACHABLE,
        PipelineState.TOKEN_ACQUIRED,
        PipelineState.DONE,
    ]
    assert gateway.methods() == ["HEAD", "HEAD", "POST"]
    assert str(gateway.requests[1].url) == TOKEN_URL
    assert report.probe_responses == {}


def test_advisory_diagnostics_do_not_change_exit_code(credential_file: Path) -> None:
    report = _run(credential_file, FakeGateway(), diagnostics_runner=_advisory_diagnostics)

    assert report.exit_code() == 0
    assert len(report.advisories) == 2
    assert {outcome.target for outcome in report.advisories} == {
        "https://mingle-ionapi.eu1.inforcloudsuite.com",
        TOKEN_URL,
    }


def test_diagnostics_receive_settings(credential_file: Path) -> None:
    seen: dict[str, Any] = {}

    def runner(targets, **kwargs):
        seen["targets"] = list(targets)
        seen.update(kwargs)
        return []

    _run(
        credential_file,
        FakeGateway(),
        RuntimeSettings(diagnostic_timeout=1.5, default_port="8443"),
        diagnostics_runner=runner,
    )

    assert seen["targets"][1] == TOKEN_URL
    assert seen["timeout"] == 1.5
    assert seen["default_port"] == "8443"


def test_missing_credential_file_fails_before_network(tmp_path: Path) -> None:
    gateway = FakeGateway()

    report = _run(tmp_path / "absent.ionapi", gateway)

    assert report.state is PipelineState.FAILED
    assert report.failed_from is PipelineState.INIT
    assert isinstance(report.error, LoadError)
    assert report.exit_code() == 1
    assert gateway.requests == []


def test_malformed_credential_file(tmp_path: Path) -> None:
    path = tmp_path / "partial.ionapi"
    path.write_text(json.dumps({"ci": "x"}), encoding="utf-8")

    report = _run(path, FakeGateway())

    assert isinstance(report.error, LoadError)
    assert report.outcomes[-1].status is DiagnosticStatus.FATAL_FAILURE


def test_unreachable_gateway_is_fatal(credential_file: Path) -> None:
    gateway = FakeGateway(head_status=503)

    report = _run(credential_file, gateway)

    assert report.exit_code() == 1
    assert report.failed_from is PipelineState.DIAGNOSTICS_RUN
    assert isinstance(report.error, ConnectivityError)
    assert str(report.error) == (
        "Cannot connect to ION API Gateway (https://mingle-ionapi.eu1.inforcloudsuite.com)"
    )
    assert gateway.methods() == ["HEAD"]
    assert not report.token_acquired


def test_unreachable_token_endpoint_is_fatal(credential_file: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) == TOKEN_URL:
            raise httpx.ConnectError("refused")
        return httpx.Response(200)

    report = run_pipeline(
        credential_file,
        RuntimeSettings(),
        structlog.get_logger("ionprobe.test.pipeline"),
        client_factory=_factory(handler),
        diagnostics_runner=_no_diagnostics,
    )

    assert isinstance(report.error, ConnectivityError)
    assert "Authorization Server" in str(report.error)


def test_token_rejection_exits_one_citing_status(credential_file: Path) -> None:
    gateway = FakeGateway(token_response=httpx.Response(403))

    report = _run(credential_file, gateway, RuntimeSettings(check_m3=True))

    assert report.exit_code() == 1
    assert report.failed_from is PipelineState.GATEWAY_REACHABLE
    assert isinstance(report.error, TokenExchangeError)
    assert "403 Forbidden" in str(report.error)
    assert "GET" not in gateway.methods()


def test_token_without_access_token_is_malformed(credential_file: Path) -> None:
    gateway = FakeGateway(token_response=httpx.Response(200, json={"foo": "bar"}))

    report = _run(credential_file, gateway)

    assert isinstance(report.error, MalformedResponseError)
    assert report.exit_code() == 1


def test_m3_probe_runs_for_production_gateway(credential_file: Path) -> None:
    gateway = FakeGateway()

    report = _run(credential_file, gateway, RuntimeSettings(check_m3=True))

    assert report.exit_code() == 0
    assert PipelineState.OPTIONAL_PROBE_RUN in report.history
    assert gateway.methods() == ["HEAD", "HEAD", "POST", "GET"]
    probe_request = gateway.requests[-1]
    assert probe_request.headers["Authorization"] == "Bearer abc123"
    assert probe_request.url.path == (
        "/ACME_PRD/M3/m3api-rest/v2/execute/CMS535MI/FpwVersion"
    )
    assert probe_request.url.params["dateformat"] == "YMD8"
    assert report.probe_responses["m3"].startswith("body for /ACME_PRD/M3/")


def test_both_probes_run_in_order(credential_file: Path) -> None:
    gateway = FakeGateway()

    report = _run(
        credential_file, gateway, RuntimeSettings(check_m3=True, check_applications=True)
    )

    assert list(report.probe_responses) == ["m3", "applications"]
    assert gateway.requests[-1].url.path == "/ACME_PRD/OSPORTAL/admin/v1/user/applications"


def test_probe_skipped_outside_production_domain(
    credential_file: Path, credential_payload: dict[str, Any]
) -> None:
    credential_payload["iu"] = "https://ionapi.staging.example.com"
    credential_file.write_text(json.dumps(credential_payload), encoding="utf-8")
    gateway = FakeGateway()

    report = _run(credential_file, gateway, RuntimeSettings(check_m3=True))

    assert report.exit_code() == 0
    assert report.skipped_probes == ["m3"]
    assert "ionapi.staging.example.com" in (report.skip_reason or "")
    assert "GET" not in gateway.methods()
    assert PipelineState.OPTIONAL_PROBE_RUN not in report.history


def test_custom_production_domains(
    credential_file: Path, credential_payload: dict[str, Any]
) -> None:
    credential_payload["iu"] = "https://ionapi.staging.example.com"
    credential_file.write_text(json.dumps(credential_payload), encoding="utf-8")

    report = _run(
        credential_file,
        FakeGateway(),
        RuntimeSettings(check_m3=True, production_domains=("example.com",)),
    )

    assert "m3" in report.probe_responses


def test_probe_failure_is_fatal(credential_file: Path) -> None:
    gateway = FakeGateway(tenant_status=500)

    report = _run(credential_file, gateway, RuntimeSettings(check_applications=True))

    assert report.exit_code() == 1
    assert report.token_acquired
    assert report.failed_from is PipelineState.TOKEN_ACQUIRED
    assert isinstance(report.error, ProbeError)
    assert report.outcomes[-1].check == CHECK_TENANT_PROBE
    assert "500 Internal Server Error" in report.outcomes[-1].message


@pytest.mark.parametrize("debug", [False, True])
def test_debug_flag_controls_secret_logging(
    credential_file: Path, debug: bool, capsys: pytest.CaptureFixture[str]
) -> None:
    structlog.configure(processors=[structlog.processors.JSONRenderer()])
    capsys.readouterr()

    _run(credential_file, FakeGateway(), RuntimeSettings(debug=debug))

    output = capsys.readouterr().out
    assert ("service-account-secret" in output) is debug
    assert ("abc123" in output) is debug
