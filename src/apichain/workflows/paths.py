"""Path extraction from response bodies.

Paths may be dotted (``user.id``), bracketed (``items[0].id``) or rooted
JSONPath expressions (``$.items[*].id``). Anything not starting with ``$``
is rooted before it is parsed.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from jsonpath_ng import parse

from apichain.workflows.errors import PathExpressionError


class _NotFound:
    """Sentinel for a path that addresses nothing."""

    _instance: _NotFound | None = None

    def __new__(cls) -> _NotFound:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"

    def __copy__(self) -> _NotFound:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> _NotFound:
        return self


NOT_FOUND = _NotFound()


def normalize_path(path: str) -> str:
    """Root a path expression at ``$``."""
    path = path.strip()
    if not path:
        raise PathExpressionError(path, "empty path")
    if path.startswith("$"):
        return path
    if path.startswith("["):
        return f"${path}"
    return f"$.{path}"


@lru_cache(maxsize=256)
def _compile(path: str) -> Any:
    try:
        return parse(path)
    except Exception as e:
        raise PathExpressionError(path, str(e)) from e


def extract(value: Any, path: str) -> Any:
    """Return the value addressed by ``path`` inside ``value``.

    Args:
        value: Arbitrary nested structure (dicts, lists, scalars).
        path: Path expression.

    Returns:
        The single matched value, a list when the expression matches more
        than one node, or ``NOT_FOUND`` when nothing matches.

    Raises:
        PathExpressionError: If the path is malformed.
    """
    expression = _compile(normalize_path(path))
    try:
        matches = expression.find(value)
    except (TypeError, KeyError, AttributeError, IndexError):
        # Indexing into a scalar, e.g. ``count[0]`` with ``count == 5``
        return NOT_FOUND
    if not matches:
        return NOT_FOUND
    if len(matches) == 1:
        return matches[0].value
    return [match.value for match in matches]


def is_found(value: Any) -> bool:
    return value is not NOT_FOUND
