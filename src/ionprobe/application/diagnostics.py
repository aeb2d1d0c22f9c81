"""Network-layer diagnostics for the gateway and authorization server.

Each check inspects one target and returns a :class:`DiagnosticOutcome`.
Failures here are advisory: they are logged and reported, never raised, so
the operator still gets DNS/TCP/TLS findings when a later stage fails for an
unrelated reason such as bad credentials.
"""

from __future__ import annotations

import socket
import ssl
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Final

from cryptography import x509
from cryptography.x509.oid import NameOID

from ionprobe.config.settings import DEFAULT_DIAGNOSTIC_TIMEOUT, DEFAULT_PORT
from ionprobe.infrastructure.errors import IonProbeError, NetworkError, ParseError
from ionprobe.infrastructure.logging import BoundLogger, get_logger
from ionprobe.infrastructure.urls import default_port_for, extract_host, split_host_port

Resolver = Callable[..., list[tuple[Any, ...]]]
ChainFetcher = Callable[[str, str, float], list[x509.Certificate]]

CHECK_DNS: Final = "dns"
CHECK_TCP: Final = "tcp"
CHECK_TLS: Final = "tls"
CHECK_CONNECTIVITY: Final = "connectivity"
CHECK_TOKEN: Final = "token"
CHECK_TENANT_PROBE: Final = "tenant_probe"
CHECK_CREDENTIALS: Final = "credentials"


class DiagnosticStatus(str, Enum):
    SUCCESS = "success"
    ADVISORY_FAILURE = "advisory"
    FATAL_FAILURE = "fatal"


_MARKERS: dict[DiagnosticStatus, str] = {
    DiagnosticStatus.SUCCESS: "✔",
    DiagnosticStatus.ADVISORY_FAILURE: "⚠",
    DiagnosticStatus.FATAL_FAILURE: "✖",
}


@dataclass(frozen=True)
class DiagnosticOutcome:
    check: str
    target: str
    status: DiagnosticStatus
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is DiagnosticStatus.SUCCESS

    @property
    def marker(self) -> str:
        return _MARKERS[self.status]


def _success(check: str, target: str, message: str, **details: Any) -> DiagnosticOutcome:
    return DiagnosticOutcome(check, target, DiagnosticStatus.SUCCESS, message, details)


def _advisory(check: str, target: str, message: str, **details: Any) -> DiagnosticOutcome:
    return DiagnosticOutcome(
        check, target, DiagnosticStatus.ADVISORY_FAILURE, message, details
    )


def _resolve_endpoint(raw_url: str, default_port: str) -> tuple[str, str]:
    hostport = extract_host(raw_url)
    host, port = split_host_port(hostport, default_port_for(raw_url, default_port))
    return host, port


def _lookup_addresses(host: str, resolver: Resolver) -> list[str]:
    try:
        results = resolver(host, None)
    except (socket.gaierror, UnicodeError) as exc:
        raise NetworkError(f"DNS resolution failed for {host}: {exc}", target=host) from exc

    addresses: list[str] = []
    for _family, _type, _proto, _canonname, sockaddr in results:
        address = sockaddr[0] if isinstance(sockaddr, tuple) and sockaddr else None
        if address and address not in addresses:
            addresses.append(str(address))
    if not addresses:
        raise NetworkError(f"DNS resolution returned no addresses for {host}", target=host)
    return addresses


def check_dns_resolution(
    raw_url: str,
    *,
    logger: BoundLogger | None = None,
    resolver: Resolver = socket.getaddrinfo,
) -> DiagnosticOutcome:
    log = logger or get_logger("ionprobe.diagnostics")
    target = raw_url
    try:
        host = split_host_port(extract_host(raw_url), DEFAULT_PORT)[0]
        target = host
        log.info("diagnostics.dns.start", host=host)
        addresses = _lookup_addresses(host, resolver)
    except IonProbeError as exc:
        log.warning("diagnostics.dns.failed", target=target, error=str(exc))
        return _advisory(CHECK_DNS, target, str(exc))

    log.info("diagnostics.dns.resolved", host=host, addresses=addresses)
    return _success(
        CHECK_DNS,
        host,
        f"Resolved {host} to {', '.join(addresses)}",
        addresses=addresses,
    )


def check_tcp_reachability(
    raw_url: str,
    default_port: str = DEFAULT_PORT,
    *,
    timeout: float = DEFAULT_DIAGNOSTIC_TIMEOUT,
    logger: BoundLogger | None = None,
    connect: Callable[..., socket.socket] = socket.create_connection,
) -> DiagnosticOutcome:
    log = logger or get_logger("ionprobe.diagnostics")
    try:
        host, port = _resolve_endpoint(raw_url, default_port)
    except ParseError as exc:
        log.warning("diagnostics.tcp.failed", target=raw_url, error=str(exc))
        return _advisory(CHECK_TCP, raw_url, str(exc))

    address = f"{host}:{port}"
    log.info("diagnostics.tcp.start", address=address, timeout=timeout)
    try:
        with connect((host, int(port)), timeout=timeout):
            pass
    except (OSError, UnicodeError) as exc:
        log.warning("diagnostics.tcp.failed", address=address, error=str(exc))
        return _advisory(
            CHECK_TCP,
            address,
            f"TCP connection to {address} failed: {exc}",
        )

    log.info("diagnostics.tcp.connected", address=address)
    return _success(CHECK_TCP, address, f"TCP connection to {address} succeeded")


def _subject_name(certificate: x509.Certificate) -> str:
    common_names = certificate.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if common_names:
        return str(common_names[0].value)
    return certificate.subject.rfc4514_string() or "<no subject>"


def evaluate_certificate_chain(
    chain: Sequence[x509.Certificate],
    *,
    target: str,
    now: datetime | None = None,
) -> DiagnosticOutcome:
    """Check every certificate's validity window, stopping at the first failure."""

    if not chain:
        return _advisory(CHECK_TLS, target, f"No certificates presented by {target}")

    moment = now or datetime.now(UTC)
    for position, certificate in enumerate(chain):
        subject = _subject_name(certificate)
        not_before = certificate.not_valid_before_utc
        not_after = certificate.not_valid_after_utc
        if moment > not_after:
            return _advisory(
                CHECK_TLS,
                target,
                f"Certificate {subject!r} expired on {not_after.isoformat()}",
                subject=subject,
                position=position,
                not_after=not_after.isoformat(),
            )
        if moment < not_before:
            return _advisory(
                CHECK_TLS,
                target,
                f"Certificate {subject!r} is not valid before {not_before.isoformat()}",
                subject=subject,
                position=position,
                not_before=not_before.isoformat(),
            )

    leaf = chain[0]
    return _success(
        CHECK_TLS,
        target,
        (
            f"Certificate chain for {target} is valid "
            f"({len(chain)} certificate(s); leaf valid until "
            f"{leaf.not_valid_after_utc.isoformat()})"
        ),
        subject=_subject_name(leaf),
        chain_length=len(chain),
        not_after=leaf.not_valid_after_utc.isoformat(),
    )


def _inspection_context() -> ssl.SSLContext:
    # Verification is off so expired or untrusted chains can still be inspected.
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


def fetch_certificate_chain(host: str, port: str, timeout: float) -> list[x509.Certificate]:
    """Perform a TLS handshake with *host* and return the presented chain."""

    context = _inspection_context()
    with socket.create_connection((host, int(port)), timeout=timeout) as sock:
        with context.wrap_socket(sock, server_hostname=host) as tls_sock:
            get_chain = getattr(tls_sock, "get_unverified_chain", None)
            raw_chain: Iterable[Any] = get_chain() if callable(get_chain) else ()
            der_chain = [item for item in raw_chain or () if isinstance(item, bytes)]
            if not der_chain:
                leaf = tls_sock.getpeercert(binary_form=True)
                der_chain = [leaf] if leaf else []
    return [x509.load_der_x509_certificate(der) for der in der_chain]


def check_tls_certificate(
    raw_url: str,
    default_port: str = DEFAULT_PORT,
    *,
    timeout: float = DEFAULT_DIAGNOSTIC_TIMEOUT,
    logger: BoundLogger | None = None,
    fetch_chain: ChainFetcher = fetch_certificate_chain,
    now: datetime | None = None,
) -> DiagnosticOutcome:
    log = logger or get_logger("ionprobe.diagnostics")
    try:
        host, port = _resolve_endpoint(raw_url, default_port)
    except ParseError as exc:
        log.warning("diagnostics.tls.failed", target=raw_url, error=str(exc))
        return _advisory(CHECK_TLS, raw_url, str(exc))

    address = f"{host}:{port}"
    log.info("diagnostics.tls.start", address=address)
    try:
        chain = fetch_chain(host, port, timeout)
    except (OSError, ValueError) as exc:
        log.warning("diagnostics.tls.failed", address=address, error=str(exc))
        return _advisory(CHECK_TLS, address, f"TLS handshake with {address} failed: {exc}")

    outcome = evaluate_certificate_chain(chain, target=address, now=now)
    if outcome.ok:
        log.info("diagnostics.tls.valid", address=address, **outcome.details)
    else:
        log.warning("diagnostics.tls.invalid", address=address, reason=outcome.message)
    return outcome


def run_network_diagnostics(
    targets: Iterable[str],
    *,
    default_port: str = DEFAULT_PORT,
    timeout: float = DEFAULT_DIAGNOSTIC_TIMEOUT,
    logger: BoundLogger | None = None,
) -> list[DiagnosticOutcome]:
    """Run DNS, TCP and TLS checks for each distinct target URL, in order."""

    outcomes: list[DiagnosticOutcome] = []
    seen: set[str] = set()
    for raw_url in targets:
        try:
            key = extract_host(raw_url).lower()
        except ParseError:
            key = raw_url
        if key in seen:
            continue
        seen.add(key)
        outcomes.append(check_dns_resolution(raw_url, logger=logger))
        outcomes.append(
            check_tcp_reachability(raw_url, default_port, timeout=timeout, logger=logger)
        )
        outcomes.append(
            check_tls_certificate(raw_url, default_port, timeout=timeout, logger=logger)
        )
    return outcomes


__all__ = [
    "CHECK_CONNECTIVITY",
    "CHECK_CREDENTIALS",
    "CHECK_DNS",
    "CHECK_TCP",
    "CHECK_TENANT_PROBE",
    "CHECK_TLS",
    "CHECK_TOKEN",
    "DiagnosticOutcome",
    "DiagnosticStatus",
    "check_dns_resolution",
    "check_tcp_reachability",
    "check_tls_certificate",
    "evaluate_certificate_chain",
    "fetch_certificate_chain",
    "run_network_diagnostics",
]
