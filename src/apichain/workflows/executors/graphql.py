"""GraphQL executor."""

from __future__ import annotations

import logging

import httpx

from apichain.workflows.credentials import CredentialBundle, inject_credentials
from apichain.workflows.executors.base import ProtocolExecutor, is_absolute_url
from apichain.workflows.models import RequestTemplate, ResponseEnvelope

logger = logging.getLogger(__name__)


class GraphQLExecutor(ProtocolExecutor):
    """Posts GraphQL documents over httpx.

    GraphQL servers answer 200 even when the operation failed, so an
    ``errors`` array in the body turns the envelope into a failure.
    """

    protocol_name = "GraphQL"

    def validate_request(self, request: RequestTemplate) -> list[str]:
        errors = []
        if not request.query:
            errors.append("query is required for GraphQL requests")
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
        payload: dict = {"query": request.query}
        if request.variables:
            payload["variables"] = request.variables

        headers = {"Content-Type": "application/json"}
        headers.update({k: str(v) for k, v in request.headers.items()})

        try:
            async with self.client() as client:
                response = await client.post(
                    request.endpoint,
                    headers=headers,
                    params=request.query_params or None,
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.debug("GraphQL request to %s failed: %s", request.endpoint, e)
            return self.format_error(e)

        envelope = self.format_response(response)
        if isinstance(envelope.body, dict) and envelope.body.get("errors"):
            messages = [str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in envelope.body["errors"]]
            envelope.success = False
            envelope.error = f"GraphQL errors: {', '.join(messages)}"
        return envelope
