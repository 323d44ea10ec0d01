"""Credential bundles and their lookup.

A bundle is attached to an API spec and an identity; the engine looks it
up by the ``spec_id`` carried on a resolved request and hands it to the
protocol executor, which injects it just before dispatch.
"""

from __future__ import annotations

import base64
import logging
from enum import Enum
from typing import Protocol as TypingProtocol

from pydantic import BaseModel, ConfigDict, Field

from apichain.workflows.models import RequestTemplate

logger = logging.getLogger(__name__)


class AuthType(str, Enum):
    API_KEY = "apikey"
    BEARER = "bearer"
    BASIC = "basic"
    OAUTH2 = "oauth2"


class ApiKeyLocation(str, Enum):
    HEADER = "header"
    QUERY = "query"


class CredentialBundle(BaseModel):
    """Authentication material for one API spec."""

    auth_type: AuthType = Field(alias="authType")
    # API key
    key: str | None = None
    value: str | None = None
    location: ApiKeyLocation = ApiKeyLocation.HEADER
    # Bearer / OAuth2
    token: str | None = None
    token_type: str = Field(default="Bearer", alias="tokenType")
    # Basic
    username: str | None = None
    password: str | None = None

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


def inject_credentials(request: RequestTemplate, credentials: CredentialBundle | None) -> RequestTemplate:
    """Return a copy of ``request`` carrying the bundle's credentials."""
    if credentials is None:
        return request

    request = request.model_copy(deep=True)
    headers = dict(request.headers)

    if credentials.auth_type == AuthType.API_KEY:
        if not credentials.key:
            logger.warning("API key credentials without a key name; nothing injected")
        elif credentials.location == ApiKeyLocation.QUERY:
            request.query_params = {**request.query_params, credentials.key: credentials.value or ""}
        else:
            headers[credentials.key] = credentials.value or ""
    elif credentials.auth_type == AuthType.BEARER:
        headers["Authorization"] = f"Bearer {credentials.token or ''}"
    elif credentials.auth_type == AuthType.BASIC:
        raw = f"{credentials.username or ''}:{credentials.password or ''}".encode()
        headers["Authorization"] = f"Basic {base64.b64encode(raw).decode('ascii')}"
    elif credentials.auth_type == AuthType.OAUTH2:
        headers["Authorization"] = f"{credentials.token_type} {credentials.token or ''}"

    request.headers = headers
    return request


class CredentialStore(TypingProtocol):
    """Looks up credentials for a spec on behalf of an identity."""

    async def find_credentials(self, spec_id: str, identity: str) -> CredentialBundle | None: ...


class InMemoryCredentialStore:
    """Credential store backed by a dictionary."""

    def __init__(self) -> None:
        self._bundles: dict[tuple[str, str], CredentialBundle] = {}

    def add(self, spec_id: str, identity: str, bundle: CredentialBundle) -> None:
        self._bundles[(spec_id, identity)] = bundle

    async def find_credentials(self, spec_id: str, identity: str) -> CredentialBundle | None:
        return self._bundles.get((spec_id, identity))
