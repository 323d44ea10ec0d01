from __future__ import annotations

from apichain.config import ExecutorConfig
from apichain.version import APICHAIN_VERSION
from apichain.workflows import (
    Workflow,
    WorkflowEngine,
    WorkflowParser,
    WorkflowResult,
)

__version__ = APICHAIN_VERSION

__all__ = [
    "ExecutorConfig",
    "Workflow",
    "WorkflowEngine",
    "WorkflowParser",
    "WorkflowResult",
    "__version__",
]
