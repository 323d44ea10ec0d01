"""Error classes for workflow system."""

from __future__ import annotations


class WorkflowError(Exception):
    """Base exception for workflow errors."""

    def __init__(self, message: str, workflow_name: str | None = None) -> None:
        self.message = message
        self.workflow_name = workflow_name
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.workflow_name:
            return f"[{self.workflow_name}] {self.message}"
        return self.message


class WorkflowParseError(WorkflowError):
    """Raised when a workflow file cannot be parsed."""

    def __init__(
        self,
        message: str,
        workflow_name: str | None = None,
        file_path: str | None = None,
    ) -> None:
        self.file_path = file_path
        super().__init__(message, workflow_name)

    def _format_message(self) -> str:
        parts = []
        if self.file_path:
            parts.append(self.file_path)
        if self.workflow_name:
            parts.append(f"workflow '{self.workflow_name}'")
        parts.append(self.message)
        return ": ".join(parts)


class WorkflowValidationError(WorkflowError):
    """Raised when a workflow definition is structurally invalid."""

    def __init__(
        self,
        message: str,
        workflow_name: str | None = None,
        field: str | None = None,
    ) -> None:
        self.field = field
        super().__init__(message, workflow_name)

    def _format_message(self) -> str:
        parts = []
        if self.workflow_name:
            parts.append(f"workflow '{self.workflow_name}'")
        if self.field:
            parts.append(f"field '{self.field}'")
        parts.append(self.message)
        return ": ".join(parts)


class PathExpressionError(WorkflowError):
    """Raised when a path expression is syntactically malformed."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"Path '{path}': {message}")


class UnsupportedProtocolError(WorkflowError):
    """Raised when no executor can serve a protocol tag."""

    def __init__(self, protocol: str, message: str | None = None) -> None:
        self.protocol = protocol
        super().__init__(message or f"Unsupported protocol: {protocol}")


class ProtoLoadError(WorkflowError):
    """Raised when .proto files cannot be compiled into descriptors."""

    def __init__(self, message: str, files: list[str] | None = None) -> None:
        self.files = files or []
        super().__init__(message)

    def _format_message(self) -> str:
        if self.files:
            return f"{', '.join(self.files)}: {self.message}"
        return self.message


class StepExecutionError(WorkflowError):
    """Raised when a workflow step cannot be dispatched."""

    def __init__(
        self,
        message: str,
        workflow_name: str | None = None,
        step_order: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.step_order = step_order
        self.cause = cause
        super().__init__(message, workflow_name)

    def _format_message(self) -> str:
        parts = []
        if self.workflow_name:
            parts.append(f"workflow '{self.workflow_name}'")
        if self.step_order is not None:
            parts.append(f"step {self.step_order}")
        parts.append(self.message)
        if self.cause:
            parts.append(f"caused by: {self.cause}")
        return ": ".join(parts)
