from __future__ import annotations

import httpx

from ionprobe.config.settings import DEFAULT_DIAGNOSTIC_TIMEOUT
from ionprobe.infrastructure.logging import BoundLogger, get_logger


def is_reachable_status(status_code: int) -> bool:
    return 200 <= status_code < 400


def probe_connectivity(
    client: httpx.Client,
    url: str,
    label: str,
    *,
    timeout: float = DEFAULT_DIAGNOSTIC_TIMEOUT,
    logger: BoundLogger | None = None,
) -> bool:
    """Issue a HEAD request against *url* and report whether it answered 2xx/3xx."""

    log = logger or get_logger("ionprobe.connectivity")
    log.info("connectivity.probe.start", service=label, url=url)
    try:
        response = client.head(url, timeout=timeout)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        log.error("connectivity.probe.unreachable", service=label, url=url, error=str(exc))
        return False

    if not is_reachable_status(response.status_code):
        log.error(
            "connectivity.probe.bad_status",
            service=label,
            url=url,
            status_code=response.status_code,
        )
        return False

    log.info(
        "connectivity.probe.reachable",
        service=label,
        url=url,
        status_code=response.status_code,
    )
    return True


__all__ = ["is_reachable_status", "probe_connectivity"]
