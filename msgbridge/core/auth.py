"""Shared-secret authorization for write routes.

How the caller presents the secret is a strategy chosen once from settings
(``AUTH_SCHEME``); the comparison against the configured secret is the same
for every strategy.
"""
from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Mapping, Protocol

from fastapi import Request

from msgbridge.core.config import Settings
from msgbridge.services.errors import InvalidCredential, MissingCredential
from msgbridge.services.result import Err, Ok, Result


@dataclass(frozen=True)
class Credential:
    value: str

    def matches(self, other: Credential) -> bool:
        return hmac.compare_digest(self.value.encode("utf-8"), other.value.encode("utf-8"))


class CredentialExtractor(Protocol):
    header: str

    def extract(self, headers: Mapping[str, str]) -> Result[Credential]: ...


class SharedSecretHeader:
    """The raw secret is the whole value of a dedicated header."""

    def __init__(self, header: str = "x-secret") -> None:
        self.header = header

    def extract(self, headers: Mapping[str, str]) -> Result[Credential]:
        value = headers.get(self.header)
        if value is None:
            return Err(MissingCredential(self.header))
        return Ok(Credential(value))


class BearerToken:
    """``Authorization: Bearer <secret>``."""

    header = "Authorization"
    scheme = "bearer"

    def extract(self, headers: Mapping[str, str]) -> Result[Credential]:
        value = headers.get(self.header)
        if value is None:
            return Err(MissingCredential(self.header))
        scheme, _, token = value.strip().partition(" ")
        if scheme.lower() != self.scheme:
            return Err(InvalidCredential(f"unsupported authorization scheme {scheme!r}"))
        token = token.strip()
        if not token:
            return Err(InvalidCredential("empty bearer token"))
        return Ok(Credential(token))


def build_extractor(settings: Settings) -> CredentialExtractor:
    if settings.auth_scheme == "bearer":
        return BearerToken()
    return SharedSecretHeader(settings.secret_header)


def check_auth(
    headers: Mapping[str, str], extractor: CredentialExtractor, expected: Credential
) -> Result[Credential]:
    supplied = extractor.extract(headers)
    if isinstance(supplied, Err):
        return supplied
    # An unset secret must never authorize an empty header value.
    if not expected.value or not supplied.value.matches(expected):
        return Err(InvalidCredential())
    return supplied


def require_credential(request: Request) -> Credential:
    """FastAPI dependency guarding a route; raises the ``ApiError`` on failure."""
    state = request.app.state
    expected = Credential(state.settings.shared_secret)
    return check_auth(request.headers, state.credential_extractor, expected).unwrap()
