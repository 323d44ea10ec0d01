"""Variable resolution for workflow steps.

Fills ``{{name}}`` placeholders in a step's request template with values
extracted from earlier steps' response bodies. Only string leaves of the
template are touched:

- a leaf that is exactly one placeholder takes the bound value as-is,
  so ``"{{user}}"`` can become a dict or a number;
- a placeholder embedded in a longer string is replaced by the value's
  text form (strings verbatim, anything else as JSON).

Placeholders with no bound variable are left in place.
"""

from __future__ import annotations

import copy
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Mapping

from apichain.workflows.models import RequestTemplate, Step
from apichain.workflows.paths import extract, is_found

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_.\-]*)\s*\}\}")


@dataclass
class Resolution:
    """Outcome of resolving one step."""

    request: RequestTemplate
    variables: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


class VariableResolver:
    """Produces the request to send for a step."""

    def resolve(self, step: Step, context: Mapping[int, Any]) -> Resolution:
        """Resolve a step's request template against the execution context.

        Args:
            step: The step being executed. Never mutated.
            context: Response bodies of executed steps keyed by step order.

        Returns:
            Resolution holding an independent copy of the resolved request.

        Raises:
            PathExpressionError: If a mapping's source path is malformed.
        """
        if not step.variable_mappings:
            return Resolution(request=step.request.model_copy(deep=True))

        variables, warnings = self.bind(step, context)
        data = copy.deepcopy(step.request.model_dump())
        resolved = substitute(data, variables)
        return Resolution(
            request=RequestTemplate.model_validate(resolved),
            variables=variables,
            warnings=warnings,
        )

    def bind(self, step: Step, context: Mapping[int, Any]) -> tuple[dict[str, Any], list[str]]:
        """Bind each mapping's target variable to its extracted value."""
        variables: dict[str, Any] = {}
        warnings: list[str] = []
        for mapping in step.variable_mappings:
            source = context.get(mapping.source_step)
            if source is None:
                message = (
                    f"Source step {mapping.source_step} data not found in context; "
                    f"'{{{{{mapping.target_variable}}}}}' left unresolved"
                )
                logger.warning(message)
                warnings.append(message)
                continue
            value = extract(source, mapping.source_path)
            variables[mapping.target_variable] = value if is_found(value) else None
        return variables, warnings


def substitute(value: Any, variables: Mapping[str, Any]) -> Any:
    """Return ``value`` with placeholders in string leaves replaced."""
    if isinstance(value, str):
        return _substitute_string(value, variables)
    if isinstance(value, dict):
        return {key: substitute(item, variables) for key, item in value.items()}
    if isinstance(value, list):
        return [substitute(item, variables) for item in value]
    return value


def _substitute_string(value: str, variables: Mapping[str, Any]) -> Any:
    match = PLACEHOLDER_PATTERN.fullmatch(value)
    if match and match.group(1) in variables:
        return copy.deepcopy(variables[match.group(1)])

    def replace_match(m: re.Match[str]) -> str:
        name = m.group(1)
        if name not in variables:
            return m.group(0)
        return _to_text(variables[name])

    return PLACEHOLDER_PATTERN.sub(replace_match, value)


def _to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


def find_placeholders(value: Any) -> set[str]:
    """Collect placeholder names used anywhere in ``value``."""
    if isinstance(value, str):
        return set(PLACEHOLDER_PATTERN.findall(value))
    if isinstance(value, dict):
        return set().union(*(find_placeholders(item) for item in value.values()))
    if isinstance(value, list):
        return set().union(*(find_placeholders(item) for item in value))
    return set()
