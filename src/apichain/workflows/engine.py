"""Workflow engine for running workflow definitions.

Runs a workflow's steps strictly in ``order``: each step's request is
resolved against the bodies of the steps before it, dispatched to the
executor registered for its protocol, checked against its assertions and
recorded before the next step starts.

Aggregate outcome: ``WorkflowResult.success`` is true only if every
recorded step succeeded. A failure tolerated by ``continue_on_failure``
lets the run go on but still makes it unsuccessful; only a halting
failure sets ``WorkflowResult.error``.
"""

from __future__ import annotations

import logging
import time
from contextvars import ContextVar
from typing import Callable

from apichain.workflows.assertions import AssertionEvaluator
from apichain.workflows.credentials import CredentialBundle, CredentialStore
from apichain.workflows.errors import StepExecutionError
from apichain.workflows.executors.registry import ExecutorRegistry
from apichain.workflows.history import HistorySink
from apichain.workflows.models import (
    ExecutionContext,
    ExecutionState,
    ExecutionStatus,
    RequestTemplate,
    ResponseEnvelope,
    Step,
    StepResult,
    Workflow,
    WorkflowResult,
)
from apichain.workflows.resolver import VariableResolver

logger = logging.getLogger(__name__)

DEFAULT_IDENTITY = "default-user"


class WorkflowEngine:
    """Executes workflow definitions."""

    def __init__(
        self,
        registry: ExecutorRegistry | None = None,
        credential_store: CredentialStore | None = None,
        history_sink: HistorySink | None = None,
        resolver: VariableResolver | None = None,
        evaluator: AssertionEvaluator | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            registry: Executors keyed by protocol. Defaults to REST + GraphQL.
            credential_store: Where to look up credentials for requests carrying a ``spec_id``.
            history_sink: Receives one record per dispatched step.
            resolver: Variable resolver.
            evaluator: Assertion evaluator.
        """
        self.registry = registry or ExecutorRegistry.default()
        self.credential_store = credential_store
        self.history_sink = history_sink
        self.resolver = resolver or VariableResolver()
        self.evaluator = evaluator or AssertionEvaluator()
        self._context: ContextVar[ExecutionContext | None] = ContextVar(f"apichain_run_{id(self)}", default=None)

    def get_execution_state(self) -> ExecutionState:
        """Snapshot of the run belonging to the current asyncio context."""
        context = self._context.get()
        if context is None:
            return ExecutionState()
        return context.snapshot()

    async def run(
        self,
        workflow: Workflow,
        identity: str = DEFAULT_IDENTITY,
        on_step_complete: Callable[[StepResult], None] | None = None,
    ) -> WorkflowResult:
        """Execute a workflow.

        Args:
            workflow: The workflow to execute. Never mutated.
            identity: Identity used for credential lookup and history records.
            on_step_complete: Callback called after each step is recorded.

        Returns:
            WorkflowResult with the steps attempted before completion or halt.

        Raises:
            TypeError: If ``workflow`` is not a ``Workflow``.
        """
        if not isinstance(workflow, Workflow):
            raise TypeError(f"Expected a Workflow, got {type(workflow).__name__}")

        context = ExecutionContext()
        self._context.set(context)
        started = time.perf_counter()
        result = WorkflowResult(workflow_id=workflow.id, workflow_name=workflow.name)

        if not workflow.steps:
            logger.error("Workflow '%s' has no steps", workflow.name)
            result.success = False
            result.error = "Workflow has no steps"
            result.status = context.status = ExecutionStatus.HALTED
            return result

        logger.info("Starting workflow execution: %s", workflow.name)
        context.status = result.status = ExecutionStatus.RUNNING
        steps = workflow.sorted_steps()

        for index, step in enumerate(steps):
            context.current_step_index = index
            logger.info("Executing workflow step %d/%d: %s", index + 1, len(steps), step.display_name)

            step_result, reason = await self._run_step(step, context, workflow, identity)
            context.results.append(step_result)
            result.steps.append(step_result)
            if on_step_complete:
                on_step_complete(step_result)

            if step_result.success:
                continue

            result.success = False
            if step.continue_on_failure:
                logger.warning("Step %d failed (%s); continuing", step.order, reason)
                continue

            logger.error("Workflow step %d failed, halting execution: %s", step.order, reason)
            result.error = f"Step {step.order} failed: {reason}"
            result.status = context.status = ExecutionStatus.HALTED
            break
        else:
            result.status = context.status = ExecutionStatus.COMPLETED

        result.total_duration_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Workflow execution %s: %s (%d/%d steps passed)",
            result.status.value,
            "SUCCESS" if result.success else "FAILED",
            result.passed_steps,
            len(steps),
        )
        return result

    async def _run_step(
        self,
        step: Step,
        context: ExecutionContext,
        workflow: Workflow,
        identity: str,
    ) -> tuple[StepResult, str | None]:
        """Run one step; returns its result and the failure reason, if any."""
        request: RequestTemplate = step.request
        warnings: list[str] = []
        try:
            resolution = self.resolver.resolve(step, context.bodies)
            request, warnings = resolution.request, resolution.warnings
            credentials = await self._find_credentials(request, identity, workflow, step)
            executor = self.registry.get(request.protocol)

            started = time.perf_counter()
            response = await executor.execute(request, credentials)
            duration_ms = (time.perf_counter() - started) * 1000
        except Exception as e:
            logger.exception("Error executing workflow step %d", step.order)
            step_result = StepResult(
                step_order=step.order,
                step_name=step.name,
                request=request.model_dump(mode="json", exclude_none=True),
                response=ResponseEnvelope(error=str(e), success=False),
                success=False,
                warnings=warnings,
            )
            return step_result, str(e)

        step_result = StepResult(
            step_order=step.order,
            step_name=step.name,
            request=request.model_dump(mode="json", exclude_none=True),
            response=response,
            duration_ms=duration_ms,
            success=response.success,
            warnings=warnings,
        )
        if step.assertions:
            step_result.assertions = self.evaluator.evaluate(step.assertions, response, duration_ms)
            if step_result.failed_assertions:
                step_result.success = False

        context.record(step.order, response.body)
        await self._save_history(identity, workflow, request, response, duration_ms)

        if not response.success:
            return step_result, response.error or "Unknown error"
        if step_result.failed_assertions:
            messages = "; ".join(a.message for a in step_result.failed_assertions)
            return step_result, f"assertions failed: {messages}"
        return step_result, None

    async def _find_credentials(
        self,
        request: RequestTemplate,
        identity: str,
        workflow: Workflow,
        step: Step,
    ) -> CredentialBundle | None:
        if not request.spec_id or self.credential_store is None:
            return None
        try:
            return await self.credential_store.find_credentials(request.spec_id, identity)
        except Exception as e:
            raise StepExecutionError(
                f"credential lookup for spec '{request.spec_id}' failed",
                workflow_name=workflow.name,
                step_order=step.order,
                cause=e,
            ) from e

    async def _save_history(
        self,
        identity: str,
        workflow: Workflow,
        request: RequestTemplate,
        response: ResponseEnvelope,
        duration_ms: float,
    ) -> None:
        if self.history_sink is None:
            return
        try:
            await self.history_sink.record(identity, request, response, duration_ms, workflow_id=workflow.id)
            logger.debug("Workflow step saved to history for %s", identity)
        except Exception:
            logger.exception("Failed to save workflow step to history")
