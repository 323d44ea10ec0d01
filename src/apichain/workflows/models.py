"""Data models for workflow definitions.

Definitions (workflows, steps, request templates) are pydantic models so
stored documents can be validated on load. Execution results are plain
dataclasses built by the engine while a workflow runs.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Protocol(str, Enum):
    """Wire protocols a request template can target."""

    REST = "rest"
    GRAPHQL = "graphql"
    GRPC = "grpc"


class AssertionType(str, Enum):
    """Known assertion types."""

    STATUS_CODE = "statusCode"
    RESPONSE_TIME = "responseTime"
    BODY_CONTAINS = "bodyContains"
    HEADER_EXISTS = "headerExists"
    JSON_PATH = "jsonPath"


class ExecutionStatus(str, Enum):
    """Lifecycle of a single workflow run."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    HALTED = "halted"


class RequestTemplate(BaseModel):
    """Request configuration embedded in a step.

    String values anywhere in the template may contain ``{{name}}``
    placeholders that are filled from earlier steps' responses.
    Protocol-specific keys not listed here are kept as extra fields.
    """

    protocol: str = Protocol.REST.value
    method: str | None = None
    endpoint: str = ""
    headers: dict[str, Any] = Field(default_factory=dict)
    query_params: dict[str, Any] = Field(default_factory=dict, alias="queryParams")
    body: Any = None
    # GraphQL
    query: str | None = None
    variables: dict[str, Any] | None = None
    # gRPC
    service: str | None = None
    rpc_method: str | None = Field(default=None, alias="rpcMethod")
    metadata: dict[str, Any] | None = None
    spec_id: str | None = Field(default=None, alias="apiSpecId")

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @field_validator("protocol", mode="before")
    @classmethod
    def _normalize_protocol(cls, value: Any) -> Any:
        if isinstance(value, Protocol):
            return value.value
        if isinstance(value, str):
            return value.strip().lower()
        return value


class VariableMapping(BaseModel):
    """Data dependency on an earlier step's response body."""

    source_step: int = Field(alias="sourceStep")
    source_path: str = Field(alias="sourcePath")
    target_variable: str = Field(alias="targetVariable")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class Assertion(BaseModel):
    """A typed check against a step's response."""

    type: str
    expected: Any = None
    path: str | None = None

    model_config = ConfigDict(extra="forbid")


class Step(BaseModel):
    """A single step in a workflow."""

    order: int
    name: str | None = None
    request: RequestTemplate = Field(alias="apiRequest")
    variable_mappings: list[VariableMapping] = Field(default_factory=list, alias="variableMappings")
    assertions: list[Assertion] = Field(default_factory=list)
    continue_on_failure: bool = Field(default=False, alias="continueOnFailure")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    @property
    def display_name(self) -> str:
        return self.name or f"Step {self.order}"


class Workflow(BaseModel):
    """A complete workflow definition."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="_id")
    name: str
    description: str | None = None
    steps: list[Step] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    is_template: bool = Field(default=False, alias="isTemplate")
    owner: str = Field(default="default-user", alias="userId")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    @model_validator(mode="after")
    def _check_unique_orders(self) -> Workflow:
        seen: set[int] = set()
        for step in self.steps:
            if step.order in seen:
                raise ValueError(f"Duplicate step order: {step.order}")
            seen.add(step.order)
        return self

    def sorted_steps(self) -> list[Step]:
        """Steps ordered by ``order``; ties keep definition order."""
        return sorted(self.steps, key=lambda step: step.order)


@dataclass
class ResponseEnvelope:
    """Protocol-neutral result of dispatching one request.

    ``status_code`` is the HTTP status for REST and GraphQL and the gRPC
    status code for gRPC, where 0 is OK. For HTTP protocols 0 means the call
    never produced a status (e.g. a connection failure).
    """

    status_code: int = 0
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    error: str | None = None
    success: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "status_code": self.status_code,
            "headers": self.headers,
            "body": self.body,
            "error": self.error,
            "success": self.success,
        }


@dataclass
class AssertionResult:
    """Verdict for one assertion."""

    type: str
    expected: Any
    actual: Any = None
    passed: bool = False
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "expected": self.expected,
            "actual": self.actual,
            "passed": self.passed,
            "message": self.message,
        }


@dataclass
class StepResult:
    """Result of executing a single workflow step."""

    step_order: int
    step_name: str | None
    request: dict[str, Any]
    response: ResponseEnvelope
    duration_ms: float = 0.0
    success: bool = False
    assertions: list[AssertionResult] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def failed_assertions(self) -> list[AssertionResult]:
        return [a for a in self.assertions if not a.passed]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "step_order": self.step_order,
            "step_name": self.step_name,
            "request": self.request,
            "response": self.response.to_dict(),
            "duration_ms": round(self.duration_ms, 2),
            "success": self.success,
            "assertions": [a.to_dict() for a in self.assertions],
            "warnings": self.warnings,
        }


@dataclass
class WorkflowResult:
    """Result of executing a complete workflow."""

    workflow_id: str
    workflow_name: str
    success: bool = True
    status: ExecutionStatus = ExecutionStatus.NOT_STARTED
    steps: list[StepResult] = field(default_factory=list)
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    total_duration_ms: float = 0.0
    error: str | None = None

    @property
    def passed_steps(self) -> int:
        return sum(1 for r in self.steps if r.success)

    @property
    def failed_steps(self) -> int:
        return sum(1 for r in self.steps if not r.success)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "workflow_id": self.workflow_id,
            "workflow_name": self.workflow_name,
            "success": self.success,
            "status": self.status.value,
            "start_time": self.start_time.isoformat(),
            "total_duration_ms": round(self.total_duration_ms, 2),
            "total_steps": len(self.steps),
            "passed_steps": self.passed_steps,
            "failed_steps": self.failed_steps,
            "steps": [r.to_dict() for r in self.steps],
            "error": self.error,
        }


@dataclass
class ExecutionState:
    """Read-only snapshot of a run in progress."""

    status: ExecutionStatus = ExecutionStatus.NOT_STARTED
    current_step_index: int = 0
    results: list[StepResult] = field(default_factory=list)
    context: dict[int, Any] = field(default_factory=dict)


@dataclass
class ExecutionContext:
    """Per-run scratch space, created fresh for every run."""

    current_step_index: int = 0
    bodies: dict[int, Any] = field(default_factory=dict)
    results: list[StepResult] = field(default_factory=list)
    status: ExecutionStatus = ExecutionStatus.NOT_STARTED

    def record(self, order: int, body: Any) -> None:
        self.bodies[order] = body

    def snapshot(self) -> ExecutionState:
        return ExecutionState(
            status=self.status,
            current_step_index=self.current_step_index,
            results=copy.deepcopy(self.results),
            context=copy.deepcopy(self.bodies),
        )
