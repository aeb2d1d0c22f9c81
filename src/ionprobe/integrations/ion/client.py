from __future__ import annotations

import ssl
from typing import Any

import httpx

from ionprobe.config.settings import DEFAULT_REQUEST_TIMEOUT, RuntimeSettings
from ionprobe.infrastructure.logging import BoundLogger

USER_AGENT = "ionprobe"


def resolve_tls_verification(
    settings: RuntimeSettings, logger: BoundLogger
) -> bool | ssl.SSLContext:
    if settings.allow_insecure_tls:
        logger.warning(
            "tls.verify.disabled",
            reason="allow_insecure_tls flag set",
        )
        return False
    if settings.ca_bundle_path:
        logger.info(
            "tls.verify.custom_ca_bundle",
            ca_bundle=settings.ca_bundle_path,
        )
        return ssl.create_default_context(cafile=settings.ca_bundle_path)
    return True


def create_client(
    *,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
    verify: bool | ssl.SSLContext = True,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    client_kwargs: dict[str, Any] = {
        "headers": {"User-Agent": USER_AGENT},
        "timeout": timeout,
        "verify": verify,
        "follow_redirects": False,
    }
    if transport is not None:
        client_kwargs["transport"] = transport
    return httpx.Client(**client_kwargs)


def status_line(response: httpx.Response) -> str:
    """Render ``"<code> <reason>"`` for error messages."""

    reason = response.reason_phrase
    return f"{response.status_code} {reason}".strip()


__all__ = ["create_client", "resolve_tls_verification", "status_line"]
