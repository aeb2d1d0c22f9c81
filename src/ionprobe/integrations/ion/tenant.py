from __future__ import annotations

import httpx

from ionprobe.infrastructure.errors import ProbeError
from ionprobe.infrastructure.logging import BoundLogger, get_logger

from .client import status_line


def build_tenant_url(gateway_base_url: str, tenant_id: str, path_template: str) -> str:
    return f"{gateway_base_url}/{tenant_id}/{path_template}"


def call_tenant_endpoint(
    client: httpx.Client,
    token: str,
    gateway_base_url: str,
    tenant_id: str,
    path_template: str,
    *,
    logger: BoundLogger | None = None,
) -> str:
    """GET a tenant-scoped gateway path with the bearer token; return the raw body."""

    log = logger or get_logger("ionprobe.tenant")
    url = build_tenant_url(gateway_base_url, tenant_id, path_template)
    log.info("tenant_probe.request.start", url=url)

    try:
        response = client.get(
            url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/json",
            },
        )
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise ProbeError(f"API request to {url} failed: {exc}", target=url) from exc

    if response.status_code != httpx.codes.OK:
        status = status_line(response)
        raise ProbeError(
            f"API request failed with status: {status}",
            target=url,
            status=status,
        )

    log.info("tenant_probe.request.ok", url=url, bytes=len(response.content))
    return response.text


__all__ = ["build_tenant_url", "call_tenant_endpoint"]
