"""Base interface for protocol executors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import httpx

from apichain.config import ExecutorConfig
from apichain.workflows.credentials import CredentialBundle
from apichain.workflows.models import RequestTemplate, ResponseEnvelope


class ProtocolExecutor(ABC):
    """Performs the network call for one protocol family.

    ``execute`` must not raise for transport or application failures;
    those come back as envelopes with ``success=False``.
    """

    protocol_name = "unknown"

    def __init__(self, config: ExecutorConfig | None = None, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Initialize the executor.

        Args:
            config: Transport settings. Defaults to ``ExecutorConfig()``.
            transport: Optional httpx transport, used to mount mock transports in tests.
        """
        self.config = config or ExecutorConfig()
        self._transport = transport

    @abstractmethod
    async def execute(self, request: RequestTemplate, credentials: CredentialBundle | None = None) -> ResponseEnvelope:
        """Dispatch a fully resolved request."""

    @abstractmethod
    def validate_request(self, request: RequestTemplate) -> list[str]:
        """Return a list of problems that make ``request`` unsendable."""

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self.config.headers,
            timeout=self.config.timeout,
            verify=self.config.verify_ssl,
            follow_redirects=self.config.follow_redirects,
            transport=self._transport,
        )

    def format_response(self, response: httpx.Response) -> ResponseEnvelope:
        """Normalize an httpx response; non-2xx statuses are failures."""
        success = response.is_success
        return ResponseEnvelope(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=parse_body(response),
            error=None if success else f"HTTP {response.status_code} {response.reason_phrase}".strip(),
            success=success,
        )

    def format_error(self, error: Exception) -> ResponseEnvelope:
        if isinstance(error, httpx.TimeoutException):
            message = f"Request timed out after {self.config.timeout}s"
        elif isinstance(error, httpx.RequestError):
            message = f"Request failed: {error}"
        else:
            message = str(error)
        return ResponseEnvelope(status_code=0, headers={}, body=None, error=message, success=False)

    def invalid(self, problems: list[str]) -> ResponseEnvelope:
        return ResponseEnvelope(
            error=f"Invalid {self.protocol_name} request: {', '.join(problems)}",
            success=False,
        )


def parse_body(response: httpx.Response) -> Any:
    """Decode JSON bodies, fall back to text."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def is_absolute_url(url: str) -> bool:
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError):
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.host)
