"""Sequencing of the diagnostic and token-acquisition run.

The pipeline is the only place that decides whether a failure ends the run.
Network-layer diagnostics are advisory; gateway and authorization-server
reachability, token acquisition and any requested tenant probe are fatal.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import httpx

from ionprobe.application.diagnostics import (
    CHECK_CONNECTIVITY,
    CHECK_CREDENTIALS,
    CHECK_TENANT_PROBE,
    CHECK_TOKEN,
    DiagnosticOutcome,
    DiagnosticStatus,
    run_network_diagnostics,
)
from ionprobe.config.settings import RuntimeSettings
from ionprobe.domain.credentials import CredentialBundle, load_credentials
from ionprobe.infrastructure.errors import (
    ConnectivityError,
    IonProbeError,
    LoadError,
    MalformedResponseError,
    ParseError,
    ProbeError,
    TokenExchangeError,
)
from ionprobe.infrastructure.logging import BoundLogger, log_event, register_secrets
from ionprobe.infrastructure.urls import extract_host, host_matches_domains, split_host_port
from ionprobe.integrations.ion import (
    call_tenant_endpoint,
    create_client,
    fetch_token,
    probe_connectivity,
    resolve_tls_verification,
)

ClientFactory = Callable[..., httpx.Client]
DiagnosticsRunner = Callable[..., list[DiagnosticOutcome]]

GATEWAY_LABEL = "ION API Gateway"
AUTH_SERVER_LABEL = "Authorization Server"


class PipelineState(str, Enum):
    INIT = "init"
    CREDENTIALS_LOADED = "credentials_loaded"
    DIAGNOSTICS_RUN = "diagnostics_run"
    GATEWAY_REACHABLE = "gateway_reachable"
    TOKEN_ACQUIRED = "token_acquired"
    OPTIONAL_PROBE_RUN = "optional_probe_run"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PipelineReport:
    state: PipelineState = PipelineState.INIT
    history: list[PipelineState] = field(default_factory=lambda: [PipelineState.INIT])
    outcomes: list[DiagnosticOutcome] = field(default_factory=list)
    error: IonProbeError | None = None
    failed_from: PipelineState | None = None
    probe_responses: dict[str, str] = field(default_factory=dict)
    skipped_probes: list[str] = field(default_factory=list)
    skip_reason: str | None = None

    def advance(self, state: PipelineState) -> None:
        self.state = state
        self.history.append(state)

    def record(self, outcome: DiagnosticOutcome) -> None:
        self.outcomes.append(outcome)

    def fail(self, error: IonProbeError, outcome: DiagnosticOutcome) -> None:
        self.failed_from = self.state
        self.error = error
        self.record(outcome)
        self.advance(PipelineState.FAILED)

    @property
    def success(self) -> bool:
        return self.state is PipelineState.DONE

    @property
    def token_acquired(self) -> bool:
        return PipelineState.TOKEN_ACQUIRED in self.history

    @property
    def advisories(self) -> list[DiagnosticOutcome]:
        return [
            outcome
            for outcome in self.outcomes
            if outcome.status is DiagnosticStatus.ADVISORY_FAILURE
        ]

    def exit_code(self) -> int:
        return 0 if self.success else 1


def _fatal(check: str, target: str, error: IonProbeError) -> DiagnosticOutcome:
    return DiagnosticOutcome(
        check=check,
        target=target,
        status=DiagnosticStatus.FATAL_FAILURE,
        message=error.user_message,
        details={"code": error.context.code, "status": error.context.status},
    )


def _passed(check: str, target: str, message: str, **details: Any) -> DiagnosticOutcome:
    return DiagnosticOutcome(check, target, DiagnosticStatus.SUCCESS, message, details)


def _log_debug_values(bundle: CredentialBundle, logger: BoundLogger) -> None:
    # Console shows these verbatim; the persisted log masks registered secrets.
    logger.debug(
        "credentials.values",
        gateway_base_url=bundle.gateway_base_url,
        token_url=bundle.token_url,
        tenant_id=bundle.tenant_id,
        client_id=bundle.client_id,
        client_secret=bundle.client_secret,
        username=bundle.username,
        password=bundle.password,
    )


def _gateway_hostname(gateway_base_url: str) -> str | None:
    try:
        return split_host_port(extract_host(gateway_base_url), "")[0]
    except ParseError:
        return None


def _load(
    credential_path: str | Path, report: PipelineReport, logger: BoundLogger
) -> CredentialBundle | None:
    logger.info("credentials.load.start", path=str(credential_path))
    try:
        bundle = load_credentials(credential_path)
    except LoadError as exc:
        logger.critical("credentials.load.failed", path=str(credential_path), error=str(exc))
        report.fail(exc, _fatal(CHECK_CREDENTIALS, str(credential_path), exc))
        return None

    register_secrets(bundle.client_secret, bundle.password)
    report.record(
        _passed(CHECK_CREDENTIALS, str(credential_path), "Credential file loaded")
    )
    report.advance(PipelineState.CREDENTIALS_LOADED)
    logger.info("credentials.load.ok", **bundle.redacted())
    return bundle


def _check_reachability(
    client: httpx.Client,
    bundle: CredentialBundle,
    settings: RuntimeSettings,
    report: PipelineReport,
    logger: BoundLogger,
) -> bool:
    for url, label in (
        (bundle.gateway_base_url, GATEWAY_LABEL),
        (bundle.token_url, AUTH_SERVER_LABEL),
    ):
        if probe_connectivity(
            client, url, label, timeout=settings.diagnostic_timeout, logger=logger
        ):
            report.record(_passed(CHECK_CONNECTIVITY, url, f"{label} is reachable"))
            continue
        error = ConnectivityError(f"Cannot connect to {label} ({url})", target=url)
        logger.critical("connectivity.failed", service=label, url=url)
        report.fail(error, _fatal(CHECK_CONNECTIVITY, url, error))
        return False

    report.advance(PipelineState.GATEWAY_REACHABLE)
    logger.info("connectivity.ok", message="Connection possible to gateway and authorization server")
    return True


def _acquire_token(
    client: httpx.Client,
    bundle: CredentialBundle,
    settings: RuntimeSettings,
    report: PipelineReport,
    logger: BoundLogger,
) -> str | None:
    try:
        token = fetch_token(client, bundle, scope=settings.token_scope, logger=logger)
    except (TokenExchangeError, MalformedResponseError) as exc:
        logger.critical("token.failed", error=str(exc), code=exc.context.code)
        report.fail(exc, _fatal(CHECK_TOKEN, bundle.token_url, exc))
        return None

    register_secrets(token)
    report.record(_passed(CHECK_TOKEN, bundle.token_url, "Access token obtained"))
    report.advance(PipelineState.TOKEN_ACQUIRED)
    if settings.debug:
        logger.debug("token.value", access_token=token)
    return token


def _run_tenant_probes(
    client: httpx.Client,
    token: str,
    bundle: CredentialBundle,
    settings: RuntimeSettings,
    report: PipelineReport,
    logger: BoundLogger,
) -> bool:
    probes = settings.requested_probes()
    if not probes:
        logger.info("tenant_probe.skipped", reason="no tenant probe requested")
        return True

    hostname = _gateway_hostname(bundle.gateway_base_url)
    if hostname is None or not host_matches_domains(hostname, settings.production_domains):
        report.skipped_probes = [name for name, _ in probes]
        report.skip_reason = (
            f"Gateway host {hostname or bundle.gateway_base_url!r} is not in a "
            f"production domain ({', '.join(settings.production_domains)}); "
            "skipping tenant API requests"
        )
        log_event(
            logger,
            "tenant_probe.skipped",
            reason="gateway outside production domains",
            host=hostname,
            domains=list(settings.production_domains),
        )
        return True

    for name, path_template in probes:
        try:
            body = call_tenant_endpoint(
                client,
                token,
                bundle.gateway_base_url,
                bundle.tenant_id,
                path_template,
                logger=logger,
            )
        except ProbeError as exc:
            logger.critical("tenant_probe.failed", probe=name, error=str(exc))
            report.fail(exc, _fatal(CHECK_TENANT_PROBE, name, exc))
            return False
        report.probe_responses[name] = body
        report.record(_passed(CHECK_TENANT_PROBE, name, f"Tenant API '{name}' answered 200 OK"))
        logger.debug("tenant_probe.response", probe=name, body=body)

    report.advance(PipelineState.OPTIONAL_PROBE_RUN)
    return True


def run_pipeline(
    credential_path: str | Path,
    settings: RuntimeSettings,
    logger: BoundLogger,
    *,
    client_factory: ClientFactory = create_client,
    diagnostics_runner: DiagnosticsRunner = run_network_diagnostics,
) -> PipelineReport:
    """Run one full diagnostic pass and return its report.

    ``client_factory`` and ``diagnostics_runner`` are injectable so the
    sequencing can be exercised without network access.
    """

    report = PipelineReport()

    bundle = _load(credential_path, report, logger)
    if bundle is None:
        return report

    if settings.debug:
        _log_debug_values(bundle, logger)

    report.outcomes.extend(
        diagnostics_runner(
            [bundle.gateway_base_url, bundle.token_url],
            default_port=settings.default_port,
            timeout=settings.diagnostic_timeout,
            logger=logger,
        )
    )
    report.advance(PipelineState.DIAGNOSTICS_RUN)

    verify = resolve_tls_verification(settings, logger)
    with client_factory(timeout=settings.request_timeout, verify=verify) as client:
        if not _check_reachability(client, bundle, settings, report, logger):
            return report

        token = _acquire_token(client, bundle, settings, report, logger)
        if token is None:
            return report

        if not _run_tenant_probes(client, token, bundle, settings, report, logger):
            return report

    report.advance(PipelineState.DONE)
    logger.info(
        "pipeline.finished",
        advisories=len(report.advisories),
        probes=sorted(report.probe_responses),
    )
    return report


__all__ = [
    "AUTH_SERVER_LABEL",
    "GATEWAY_LABEL",
    "PipelineReport",
    "PipelineState",
    "run_pipeline",
]
