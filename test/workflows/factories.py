"""Builders shared by the workflow tests."""

from __future__ import annotations

from typing import Any

from apichain.workflows import ResponseEnvelope, Workflow


class FakeExecutor:
    """Returns queued envelopes and records every request it receives."""

    def __init__(self, *responses: ResponseEnvelope | Exception) -> None:
        self.responses = list(responses)
        self.calls: list[tuple[Any, Any]] = []

    async def execute(self, request, credentials=None):
        self.calls.append((request, credentials))
        if not self.responses:
            return ok({})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def ok(body: Any = None, status: int = 200, headers: dict[str, str] | None = None) -> ResponseEnvelope:
    return ResponseEnvelope(status_code=status, headers=headers or {}, body=body, success=True)


def failed(error: str = "HTTP 500", status: int = 500, body: Any = None) -> ResponseEnvelope:
    return ResponseEnvelope(status_code=status, headers={}, body=body, error=error, success=False)


def rest_step(order: int, endpoint: str = "https://api.example.com/items", **extra: Any) -> dict[str, Any]:
    request = {"protocol": "rest", "method": "GET", "endpoint": endpoint}
    request.update(extra.pop("request", {}))
    return {"order": order, "name": f"step {order}", "request": request, **extra}


def make_workflow(*steps: dict[str, Any], name: str = "test workflow") -> Workflow:
    return Workflow.model_validate({"name": name, "steps": list(steps)})


