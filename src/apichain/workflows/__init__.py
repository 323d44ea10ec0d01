"""Workflow Definitions Module for apichain.

This module provides:
- Ordered multi-step API workflows across REST, GraphQL and gRPC
- Data flow between steps through variable mappings
- Typed assertions on every step's response
- Continue-or-halt failure policy per step
"""

from __future__ import annotations

from apichain.workflows.assertions import AssertionEvaluator
from apichain.workflows.credentials import (
    CredentialBundle,
    CredentialStore,
    InMemoryCredentialStore,
    inject_credentials,
)
from apichain.workflows.engine import WorkflowEngine
from apichain.workflows.errors import (
    PathExpressionError,
    ProtoLoadError,
    StepExecutionError,
    UnsupportedProtocolError,
    WorkflowError,
    WorkflowParseError,
    WorkflowValidationError,
)
from apichain.workflows.executors import (
    ExecutorRegistry,
    GraphQLExecutor,
    GrpcExecutor,
    ProtocolExecutor,
    RestExecutor,
)
from apichain.workflows.history import HistoryRecord, HistorySink, InMemoryHistorySink
from apichain.workflows.models import (
    Assertion,
    AssertionResult,
    AssertionType,
    ExecutionState,
    ExecutionStatus,
    Protocol,
    RequestTemplate,
    ResponseEnvelope,
    Step,
    StepResult,
    VariableMapping,
    Workflow,
    WorkflowResult,
)
from apichain.workflows.parser import WorkflowParser
from apichain.workflows.paths import NOT_FOUND, extract
from apichain.workflows.resolver import Resolution, VariableResolver

__all__ = [
    # Models
    "Workflow",
    "Step",
    "RequestTemplate",
    "VariableMapping",
    "Assertion",
    "AssertionType",
    "AssertionResult",
    "Protocol",
    "ResponseEnvelope",
    "StepResult",
    "WorkflowResult",
    "ExecutionState",
    "ExecutionStatus",
    # Core components
    "WorkflowEngine",
    "VariableResolver",
    "Resolution",
    "AssertionEvaluator",
    "WorkflowParser",
    "extract",
    "NOT_FOUND",
    # Executors
    "ProtocolExecutor",
    "RestExecutor",
    "GraphQLExecutor",
    "GrpcExecutor",
    "ExecutorRegistry",
    # Collaborators
    "CredentialBundle",
    "CredentialStore",
    "InMemoryCredentialStore",
    "inject_credentials",
    "HistoryRecord",
    "HistorySink",
    "InMemoryHistorySink",
    # Errors
    "WorkflowError",
    "WorkflowParseError",
    "WorkflowValidationError",
    "PathExpressionError",
    "ProtoLoadError",
    "UnsupportedProtocolError",
    "StepExecutionError",
]
