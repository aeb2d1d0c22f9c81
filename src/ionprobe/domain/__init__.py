"""Domain models for IonProbe."""

from ionprobe.domain.credentials import (
    CredentialBundle,
    derive_token_url,
    load_credentials,
)

__all__ = ["CredentialBundle", "derive_token_url", "load_credentials"]
