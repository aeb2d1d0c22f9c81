"""Domain error taxonomy for IonProbe.

Lower layers raise these errors; only the pipeline decides whether a given
failure ends the run or is reported as an advisory.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ErrorCode(str, Enum):
    LOAD_FAILED = "IONPROBE_LOAD_FAILED"
    URL_PARSE_FAILED = "IONPROBE_URL_PARSE_FAILED"
    NETWORK_UNREACHABLE = "IONPROBE_NETWORK_UNREACHABLE"
    CONNECTIVITY_FAILED = "IONPROBE_CONNECTIVITY_FAILED"
    TOKEN_EXCHANGE_FAILED = "IONPROBE_TOKEN_EXCHANGE_FAILED"
    TOKEN_RESPONSE_MALFORMED = "IONPROBE_TOKEN_RESPONSE_MALFORMED"
    TENANT_PROBE_FAILED = "IONPROBE_TENANT_PROBE_FAILED"


@dataclass(frozen=True)
class ErrorContext:
    stage: str
    target: str | None = None
    code: str | None = None
    status: str | None = None


class IonProbeError(Exception):
    """Base class for all errors surfaced to the pipeline."""

    code: ErrorCode = ErrorCode.LOAD_FAILED
    stage: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        target: str | None = None,
        status: str | None = None,
        hints: tuple[str, ...] = (),
    ) -> None:
        super().__init__(message)
        self.context = ErrorContext(
            stage=self.stage,
            target=target,
            code=self.code.value,
            status=status,
        )
        self.hints = hints

    @property
    def user_message(self) -> str:
        message = str(self)
        if self.hints:
            message = f"{message} ({'; '.join(self.hints)})"
        return message


class LoadError(IonProbeError):
    code = ErrorCode.LOAD_FAILED
    stage = "credentials"


class ParseError(IonProbeError, ValueError):
    code = ErrorCode.URL_PARSE_FAILED
    stage = "url"


class NetworkError(IonProbeError):
    code = ErrorCode.NETWORK_UNREACHABLE
    stage = "diagnostics"


class ConnectivityError(IonProbeError):
    code = ErrorCode.CONNECTIVITY_FAILED
    stage = "connectivity"


class TokenExchangeError(IonProbeError):
    code = ErrorCode.TOKEN_EXCHANGE_FAILED
    stage = "token"


class MalformedResponseError(IonProbeError):
    code = ErrorCode.TOKEN_RESPONSE_MALFORMED
    stage = "token"


class ProbeError(IonProbeError):
    code = ErrorCode.TENANT_PROBE_FAILED
    stage = "tenant_probe"


__all__ = [
    "ConnectivityError",
    "ErrorCode",
    "ErrorContext",
    "IonProbeError",
    "LoadError",
    "MalformedResponseError",
    "NetworkError",
    "ParseError",
    "ProbeError",
    "TokenExchangeError",
]
