"""Assertion evaluation for workflow steps.

Checks a step's response envelope against the step's declared assertions.
Each assertion is evaluated independently; an error while evaluating one
is reported as that assertion's failure and never stops the others.
"""

from __future__ import annotations

import json
from typing import Any, Callable

from apichain.workflows.models import Assertion, AssertionResult, AssertionType, ResponseEnvelope
from apichain.workflows.paths import NOT_FOUND, extract


class AssertionEvaluator:
    """Evaluates typed assertions against a response."""

    def __init__(self) -> None:
        self._checks: dict[AssertionType, Callable[[Assertion, ResponseEnvelope, float, AssertionResult], None]] = {
            AssertionType.STATUS_CODE: self._check_status_code,
            AssertionType.RESPONSE_TIME: self._check_response_time,
            AssertionType.BODY_CONTAINS: self._check_body_contains,
            AssertionType.HEADER_EXISTS: self._check_header_exists,
            AssertionType.JSON_PATH: self._check_json_path,
        }

    def evaluate(
        self,
        assertions: list[Assertion],
        response: ResponseEnvelope,
        duration_ms: float,
    ) -> list[AssertionResult]:
        """Evaluate every assertion.

        Args:
            assertions: Assertions declared on the step.
            response: Envelope returned by the protocol executor.
            duration_ms: Measured call duration in milliseconds.

        Returns:
            One result per assertion, in declaration order.
        """
        return [self.evaluate_one(assertion, response, duration_ms) for assertion in assertions]

    def evaluate_one(self, assertion: Assertion, response: ResponseEnvelope, duration_ms: float) -> AssertionResult:
        result = AssertionResult(type=assertion.type, expected=assertion.expected)
        try:
            assertion_type = AssertionType(assertion.type)
        except ValueError:
            result.message = f"Unknown assertion type: {assertion.type}"
            return result

        try:
            self._checks[assertion_type](assertion, response, duration_ms, result)
        except Exception as e:
            result.passed = False
            result.message = f"Assertion error: {e}"
        return result

    def _check_status_code(
        self, assertion: Assertion, response: ResponseEnvelope, duration_ms: float, result: AssertionResult
    ) -> None:
        result.actual = response.status_code
        result.passed = _deep_equal(response.status_code, assertion.expected)
        if result.passed:
            result.message = f"Status code is {assertion.expected}"
        else:
            result.message = f"Expected status {assertion.expected}, got {response.status_code}"

    def _check_response_time(
        self, assertion: Assertion, response: ResponseEnvelope, duration_ms: float, result: AssertionResult
    ) -> None:
        limit = assertion.expected
        if isinstance(limit, bool) or not isinstance(limit, (int, float)):
            raise TypeError(f"expected must be a number of milliseconds, got {limit!r}")
        result.actual = duration_ms
        result.passed = duration_ms <= limit
        if result.passed:
            result.message = f"Response time {duration_ms:.0f}ms is within {limit}ms"
        else:
            result.message = f"Response time {duration_ms:.0f}ms exceeds {limit}ms"

    def _check_body_contains(
        self, assertion: Assertion, response: ResponseEnvelope, duration_ms: float, result: AssertionResult
    ) -> None:
        text = body_text(response.body)
        needle = assertion.expected if isinstance(assertion.expected, str) else json.dumps(assertion.expected)
        result.actual = text
        result.passed = needle in text
        if result.passed:
            result.message = f'Response body contains "{needle}"'
        else:
            result.message = f'Response body does not contain "{needle}"'

    def _check_header_exists(
        self, assertion: Assertion, response: ResponseEnvelope, duration_ms: float, result: AssertionResult
    ) -> None:
        wanted = str(assertion.expected).lower()
        for name, value in (response.headers or {}).items():
            if name.lower() == wanted:
                result.actual = value
                result.passed = True
                result.message = f'Header "{assertion.expected}" exists'
                return
        result.actual = None
        result.passed = False
        result.message = f'Header "{assertion.expected}" not found'

    def _check_json_path(
        self, assertion: Assertion, response: ResponseEnvelope, duration_ms: float, result: AssertionResult
    ) -> None:
        if not assertion.path:
            raise ValueError("'path' is required for jsonPath assertions")
        value = extract(response.body, assertion.path)
        result.actual = None if value is NOT_FOUND else value
        result.passed = value is not NOT_FOUND and _deep_equal(value, assertion.expected)
        if result.passed:
            result.message = f"JSONPath {assertion.path} matches expected value"
        elif value is NOT_FOUND:
            result.message = f"JSONPath {assertion.path} not found in response body"
        else:
            result.message = f"JSONPath {assertion.path} value mismatch (expected {assertion.expected!r}, got {value!r})"


def body_text(body: Any) -> str:
    """Text form of a response body used for substring checks."""
    if body is None:
        return ""
    if isinstance(body, str):
        return body
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return json.dumps(body, default=str)


def _deep_equal(actual: Any, expected: Any) -> bool:
    """Structural equality that keeps booleans and numbers apart."""
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual == expected
    if isinstance(actual, dict):
        if not isinstance(expected, dict) or actual.keys() != expected.keys():
            return False
        return all(_deep_equal(actual[key], expected[key]) for key in actual)
    if isinstance(actual, (list, tuple)):
        if not isinstance(expected, (list, tuple)) or len(actual) != len(expected):
            return False
        return all(_deep_equal(a, e) for a, e in zip(actual, expected))
    if isinstance(expected, (dict, list, tuple)):
        return False
    return actual == expected
