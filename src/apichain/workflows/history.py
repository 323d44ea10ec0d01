"""Execution history records.

The engine writes one record per dispatched step. Sinks are best-effort:
the engine logs and drops any error a sink raises.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from apichain.workflows.models import RequestTemplate, ResponseEnvelope

WORKFLOW_SOURCE = "workflow"


@dataclass
class HistoryRecord:
    """One dispatched request and its outcome."""

    identity: str
    request: dict[str, Any]
    response: ResponseEnvelope
    duration_ms: float
    success: bool
    workflow_id: str | None = None
    spec_id: str | None = None
    source: str = WORKFLOW_SOURCE
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "identity": self.identity,
            "workflow_id": self.workflow_id,
            "spec_id": self.spec_id,
            "request": self.request,
            "response": self.response.to_dict(),
            "duration_ms": round(self.duration_ms, 2),
            "success": self.success,
            "source": self.source,
            "timestamp": self.timestamp.isoformat(),
        }


class HistorySink(Protocol):
    async def record(
        self,
        identity: str,
        request: RequestTemplate,
        response: ResponseEnvelope,
        duration_ms: float,
        workflow_id: str | None = None,
    ) -> None: ...


class InMemoryHistorySink:
    """Keeps history records in a list."""

    def __init__(self) -> None:
        self.records: list[HistoryRecord] = []

    async def record(
        self,
        identity: str,
        request: RequestTemplate,
        response: ResponseEnvelope,
        duration_ms: float,
        workflow_id: str | None = None,
    ) -> None:
        self.records.append(
            HistoryRecord(
                identity=identity,
                request=request.model_dump(mode="json", exclude_none=True),
                response=response,
                duration_ms=duration_ms,
                success=response.success,
                workflow_id=workflow_id,
                spec_id=request.spec_id,
            )
        )

    def for_identity(self, identity: str) -> list[HistoryRecord]:
        return [r for r in self.records if r.identity == identity]
