"""Hostname and port helpers for gateway URLs."""

from __future__ import annotations

from urllib.parse import urlsplit

from ionprobe.infrastructure.errors import ParseError

_SCHEME_PORTS = {"https": "443", "http": "80"}


def extract_host(raw_url: str) -> str:
    """Return the ``host[:port]`` part of *raw_url*.

    Scheme, userinfo, path and query are discarded. Raises
    :class:`ParseError` when *raw_url* is not an absolute URL with a host.
    """

    candidate = (raw_url or "").strip()
    try:
        parts = urlsplit(candidate)
        # .port validates the numeric range and raises ValueError otherwise
        parts.port
        hostname = parts.hostname
    except ValueError as exc:
        raise ParseError(f"Invalid URL {raw_url!r}: {exc}", target=raw_url) from exc

    if not parts.scheme or not parts.netloc or not hostname:
        raise ParseError(
            f"Invalid URL {raw_url!r}: expected scheme://host[:port]",
            target=raw_url,
        )
    return parts.netloc.rpartition("@")[2]


def split_host_port(hostport: str, default_port: str) -> tuple[str, str]:
    """Split ``host[:port]``, falling back to *default_port* when none is given."""

    if hostport.startswith("["):
        host, bracket, remainder = hostport[1:].partition("]")
        if not bracket:
            raise ParseError(f"Unterminated IPv6 literal in {hostport!r}", target=hostport)
        if not remainder:
            return host, default_port
        if not remainder.startswith(":"):
            raise ParseError(f"Unexpected text after IPv6 literal in {hostport!r}", target=hostport)
        port = remainder[1:]
    elif hostport.count(":") == 1:
        host, _, port = hostport.partition(":")
    else:
        # no port, or an unbracketed IPv6 literal
        return hostport, default_port

    if not port:
        return host, default_port
    if not port.isdigit():
        raise ParseError(f"Invalid port {port!r} in {hostport!r}", target=hostport)
    return host, port


def default_port_for(raw_url: str, fallback: str) -> str:
    """Return the conventional port for the URL scheme, else *fallback*."""

    scheme = urlsplit((raw_url or "").strip()).scheme.lower()
    return _SCHEME_PORTS.get(scheme, fallback)


def host_matches_domains(hostname: str, domains: tuple[str, ...]) -> bool:
    """Return ``True`` when *hostname* equals or is a subdomain of any of *domains*."""

    normalized = hostname.lower().rstrip(".")
    for domain in domains:
        suffix = domain.lower().lstrip(".")
        if normalized == suffix or normalized.endswith(f".{suffix}"):
            return True
    return False


__all__ = ["default_port_for", "extract_host", "host_matches_domains", "split_host_port"]
