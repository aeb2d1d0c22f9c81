"""ION API credential bundle (``.ionapi`` file) model and loader."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ionprobe.infrastructure.errors import LoadError

REQUIRED_KEYS: tuple[str, ...] = ("ci", "cs", "pu", "ot", "saak", "sask", "iu", "ti")
MASK = "********"


class CredentialBundle(BaseModel):
    """Identity and endpoint fields parsed from an ``.ionapi`` file."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    client_id: str = Field(alias="ci")
    client_secret: str = Field(alias="cs", repr=False)
    token_base_url: str = Field(alias="pu")
    token_path: str = Field(alias="ot")
    username: str = Field(alias="saak")
    password: str = Field(alias="sask", repr=False)
    gateway_base_url: str = Field(alias="iu")
    tenant_id: str = Field(alias="ti")

    @field_validator("*", mode="before")
    @classmethod
    def _require_non_empty_string(cls, value: Any) -> Any:
        if not isinstance(value, str):
            raise ValueError("must be a string")
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    @property
    def token_url(self) -> str:
        return derive_token_url(self)

    def redacted(self) -> dict[str, str]:
        """Return the bundle as display fields with secrets masked."""

        return {
            "client_id": self.client_id,
            "client_secret": MASK,
            "token_url": self.token_url,
            "username": self.username,
            "password": MASK,
            "gateway_base_url": self.gateway_base_url,
            "tenant_id": self.tenant_id,
        }


def derive_token_url(bundle: CredentialBundle) -> str:
    # plain concatenation; the base URL is expected to carry its own separator
    return bundle.token_base_url + bundle.token_path


def _offending_keys(exc: ValidationError) -> list[str]:
    keys: list[str] = []
    for error in exc.errors():
        location = error.get("loc") or ()
        if location and isinstance(location[0], str) and location[0] not in keys:
            keys.append(location[0])
    return keys


def parse_credentials(payload: Any, *, source: str = "<memory>") -> CredentialBundle:
    """Validate an already-decoded JSON payload into a :class:`CredentialBundle`."""

    if not isinstance(payload, dict):
        raise LoadError(
            f"{source} must contain a JSON object, got {type(payload).__name__}",
            target=source,
        )
    try:
        return CredentialBundle.model_validate(payload)
    except ValidationError as exc:
        offending = _offending_keys(exc)
        raise LoadError(
            f"{source} is missing one or more required fields "
            f"({', '.join(REQUIRED_KEYS)}): {', '.join(offending) or 'unknown'}",
            target=source,
        ) from exc


def load_credentials(path: str | Path) -> CredentialBundle:
    """Read and validate the credential bundle at *path*.

    Raises :class:`LoadError` when the file cannot be read, is not a JSON
    object, or lacks any of the eight required fields.
    """

    file_path = Path(path)
    try:
        raw = file_path.read_text(encoding="utf-8-sig")
    except OSError as exc:
        raise LoadError(
            f"Unable to read credential file {file_path}: {exc.strerror or exc}",
            target=str(file_path),
        ) from exc

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise LoadError(
            f"Credential file {file_path} is not valid JSON: {exc.msg} "
            f"(line {exc.lineno}, column {exc.colno})",
            target=str(file_path),
        ) from exc

    return parse_credentials(payload, source=str(file_path))


__all__ = [
    "CredentialBundle",
    "REQUIRED_KEYS",
    "derive_token_url",
    "load_credentials",
    "parse_credentials",
]
