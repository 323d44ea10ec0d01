"""Workflow parser for YAML and JSON workflow definitions.

A file holds either one workflow mapping or a ``workflows:`` list::

    workflows:
      - name: Create and fetch user
        steps:
          - order: 1
            request: {protocol: rest, method: POST, endpoint: "https://api.example.com/users"}
          - order: 2
            request: {protocol: rest, method: GET, endpoint: "https://api.example.com/users/{{userId}}"}
            variable_mappings:
              - {source_step: 1, source_path: id, target_variable: userId}
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from apichain.workflows.errors import WorkflowParseError, WorkflowValidationError
from apichain.workflows.models import Workflow
from apichain.workflows.resolver import find_placeholders

logger = logging.getLogger(__name__)

WORKFLOW_SUFFIXES = (".yaml", ".yml", ".json")


class WorkflowParser:
    """Parses workflow definition files.

    With ``strict=True`` a variable mapping that reads from a step which
    does not run earlier is rejected; otherwise it is only logged, and the
    engine leaves the placeholder unresolved at run time.
    """

    def __init__(self, strict: bool = False) -> None:
        self.strict = strict

    def parse_file(self, path: str | Path) -> list[Workflow]:
        """Parse a workflow file.

        Args:
            path: Path to a YAML or JSON file.

        Returns:
            Workflows defined in the file.

        Raises:
            WorkflowParseError: If the file is missing or malformed.
            WorkflowValidationError: In strict mode, if a mapping references a step
                that does not run earlier.
        """
        path = Path(path)
        if not path.exists():
            raise WorkflowParseError(f"Workflow file not found: {path}", file_path=str(path))
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise WorkflowParseError(str(e), file_path=str(path)) from e
        return self.parse_string(content, file_path=str(path))

    def parse_string(self, content: str, file_path: str | None = None) -> list[Workflow]:
        # JSON documents are valid YAML
        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise WorkflowParseError(f"Invalid YAML: {e}", file_path=file_path) from e
        return self.parse_dict(data, file_path=file_path)

    def parse_dict(self, data: Any, file_path: str | None = None) -> list[Workflow]:
        if not isinstance(data, dict):
            raise WorkflowParseError("Workflow document must be a mapping", file_path=file_path)

        if "workflows" in data:
            items = data["workflows"]
            if not isinstance(items, list):
                raise WorkflowParseError("'workflows' must be a list", file_path=file_path)
        else:
            items = [data]

        workflows = []
        for i, item in enumerate(items):
            name = item.get("name", f"workflow[{i}]") if isinstance(item, dict) else f"workflow[{i}]"
            try:
                workflow = Workflow.model_validate(item)
            except ValidationError as e:
                raise WorkflowParseError(_format_validation_error(e), workflow_name=name, file_path=file_path) from e
            self.validate(workflow)
            workflows.append(workflow)
        return workflows

    def validate(self, workflow: Workflow) -> None:
        """Check cross-step references.

        Raises:
            WorkflowValidationError: In strict mode, if a mapping reads from a
                step that does not run before the step declaring it.
        """
        earlier: set[int] = set()
        for step in workflow.sorted_steps():
            used = find_placeholders(step.request.model_dump())
            for mapping in step.variable_mappings:
                if mapping.source_step not in earlier:
                    message = (
                        f"step {step.order} maps '{mapping.target_variable}' from step "
                        f"{mapping.source_step}, which does not run before it"
                    )
                    if self.strict:
                        raise WorkflowValidationError(message, workflow_name=workflow.name, field="variable_mappings")
                    logger.warning("Workflow '%s': %s", workflow.name, message)
                if mapping.target_variable not in used:
                    logger.warning(
                        "Workflow '%s' step %d: variable '%s' is mapped but never referenced",
                        workflow.name,
                        step.order,
                        mapping.target_variable,
                    )
            earlier.add(step.order)

    def load_workflows_from_directory(
        self,
        directory: str | Path,
        names: list[str] | None = None,
        tags: list[str] | None = None,
    ) -> list[Workflow]:
        """Load every workflow file in a directory, optionally filtered.

        Args:
            directory: Directory to scan (non-recursive).
            names: Keep only workflows with these names.
            tags: Keep only workflows carrying at least one of these tags.
        """
        workflows: list[Workflow] = []
        for path in sorted(Path(directory).iterdir()):
            if path.is_file() and path.suffix in WORKFLOW_SUFFIXES:
                workflows.extend(self.parse_file(path))
        return filter_workflows(workflows, names=names, tags=tags)


def filter_workflows(
    workflows: list[Workflow],
    names: list[str] | None = None,
    tags: list[str] | None = None,
) -> list[Workflow]:
    if names:
        workflows = [w for w in workflows if w.name in names]
    if tags:
        workflows = [w for w in workflows if any(t in w.tags for t in tags)]
    return workflows


def _format_validation_error(error: ValidationError) -> str:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        messages.append(f"{location}: {item['msg']}" if location else item["msg"])
    return "; ".join(messages)
