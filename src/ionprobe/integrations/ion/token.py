"""OAuth2 resource-owner password grant against the ION authorization server."""

from __future__ import annotations

from typing import Any

import httpx

from ionprobe.domain.credentials import CredentialBundle, derive_token_url
from ionprobe.infrastructure.errors import MalformedResponseError, TokenExchangeError
from ionprobe.infrastructure.logging import BoundLogger, get_logger

from .client import status_line

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def build_token_form(bundle: CredentialBundle, *, scope: str | None = None) -> dict[str, str]:
    form = {
        "grant_type": "password",
        "username": bundle.username,
        "password": bundle.password,
    }
    if scope is not None:
        form["scope"] = scope
    return form


def _extract_access_token(response: httpx.Response, token_url: str) -> str:
    try:
        payload: Any = response.json()
    except ValueError as exc:
        raise MalformedResponseError(
            f"Token endpoint returned a non-JSON body: {exc}", target=token_url
        ) from exc

    if not isinstance(payload, dict):
        raise MalformedResponseError(
            "Token endpoint response is not a JSON object", target=token_url
        )
    access_token = payload.get("access_token")
    if not isinstance(access_token, str) or not access_token:
        raise MalformedResponseError(
            "No access_token found in token endpoint response", target=token_url
        )
    return access_token


def fetch_token(
    client: httpx.Client,
    bundle: CredentialBundle,
    *,
    scope: str | None = None,
    logger: BoundLogger | None = None,
) -> str:
    """Exchange the bundle's service-account credentials for a bearer token.

    Single attempt, no retry. Raises :class:`TokenExchangeError` for transport
    failures and non-200 answers, :class:`MalformedResponseError` when the body
    carries no ``access_token`` string.
    """

    log = logger or get_logger("ionprobe.token")
    token_url = derive_token_url(bundle)
    form = build_token_form(bundle, scope=scope)

    log.info("token.request.start", token_url=token_url, grant_type="password")
    log.debug(
        "token.request.form",
        fields=sorted(form),
        username=bundle.username,
        scope=scope,
    )

    try:
        response = client.post(
            token_url,
            data=form,
            auth=httpx.BasicAuth(bundle.client_id, bundle.client_secret),
            headers={"Content-Type": FORM_CONTENT_TYPE, "Accept": "application/json"},
        )
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise TokenExchangeError(
            f"Token request to {token_url} failed: {exc}", target=token_url
        ) from exc

    log.debug(
        "token.response.received",
        status_code=response.status_code,
        content_type=response.headers.get("Content-Type"),
        bytes=len(response.content),
    )

    if response.status_code != httpx.codes.OK:
        status = status_line(response)
        raise TokenExchangeError(
            f"Failed to get token, status: {status}",
            target=token_url,
            status=status,
            hints=_hints_for_status(response.status_code),
        )

    access_token = _extract_access_token(response, token_url)
    log.info("token.acquired", token_url=token_url)
    return access_token


def _hints_for_status(status_code: int) -> tuple[str, ...]:
    if status_code in (httpx.codes.BAD_REQUEST, httpx.codes.UNAUTHORIZED):
        return ("check the service account keys (saak/sask) and client id/secret",)
    if status_code == httpx.codes.FORBIDDEN:
        return ("the client may not be authorised for the password grant",)
    if status_code == httpx.codes.NOT_FOUND:
        return ("check that pu + ot form the correct token endpoint",)
    return ()


__all__ = ["FORM_CONTENT_TYPE", "build_token_form", "fetch_token"]
