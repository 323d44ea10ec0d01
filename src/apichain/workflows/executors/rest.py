"""REST executor."""

from __future__ import annotations

import logging

import httpx

from apichain.workflows.credentials import CredentialBundle, inject_credentials
from apichain.workflows.executors.base import ProtocolExecutor, is_absolute_url
from apichain.workflows.models import RequestTemplate, ResponseEnvelope

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")
BODY_METHODS = ("POST", "PUT", "PATCH", "DELETE")


class RestExecutor(ProtocolExecutor):
    """Sends REST requests over httpx."""

    protocol_name = "REST"

    def validate_request(self, request: RequestTemplate) -> list[str]:
        errors = []
        if not request.method:
            errors.append("method is required")
        elif request.method.upper() not in ALLOWED_METHODS:
            errors.append(f"method must be one of: {', '.join(ALLOWED_METHODS)}")
        if not request.endpoint:
            errors.append("endpoint is required")
        elif not is_absolute_url(request.endpoint):
            errors.append("endpoint must be a valid URL")
        return errors

    async def execute(self, request: RequestTemplate, credentials: CredentialBundle | None = None) -> ResponseEnvelope:
        problems = self.validate_request(request)
        if problems:
            return self.invalid(problems)

        request = inject_credentials(request, credentials)
        method = request.method.upper()
        body = request.body if method in BODY_METHODS else None

        try:
            async with self.client() as client:
                response = await client.request(
                    method,
                    request.endpoint,
                    headers={k: str(v) for k, v in request.headers.items()},
                    params=request.query_params or None,
                    json=body if body is not None and not isinstance(body, (str, bytes)) else None,
                    content=body if isinstance(body, (str, bytes)) else None,
                )
        except httpx.HTTPError as e:
            logger.debug("REST %s %s failed: %s", method, request.endpoint, e)
            return self.format_error(e)

        return self.format_response(response)
