"""ION API gateway and authorization server integration helpers."""

from .client import create_client, resolve_tls_verification
from .connectivity import probe_connectivity
from .tenant import build_tenant_url, call_tenant_endpoint
from .token import build_token_form, fetch_token

__all__ = [
    "build_tenant_url",
    "build_token_form",
    "call_tenant_endpoint",
    "create_client",
    "fetch_token",
    "probe_connectivity",
    "resolve_tls_verification",
]
