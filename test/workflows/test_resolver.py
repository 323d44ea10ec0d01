"""Tests for apichain.workflows.resolver module."""
from __future__ import annotations

import logging

import pytest

from apichain.workflows.errors import PathExpressionError
from apichain.workflows.models import Step
from apichain.workflows.resolver import VariableResolver, find_placeholders, substitute


def make_step(request: dict, mappings: list[dict] | None = None) -> Step:
    return Step.model_validate(
        {
            "order": 2,
            "request": {"protocol": "rest", "method": "GET", **request},
            "variable_mappings": mappings or [],
        }
    )


@pytest.fixture
def resolver():
    return VariableResolver()


class TestResolveWithoutMappings:
    """Steps without mappings are returned as independent copies."""

    def test_returns_equal_copy(self, resolver):
        step = make_step({"endpoint": "https://api.example.com/users", "headers": {"X-Trace": "1"}})
        resolution = resolver.resolve(step, {})
        assert resolution.request == step.request
        assert resolution.request is not step.request
        assert resolution.warnings == []

    def test_copy_does_not_alias_template(self, resolver):
        step = make_step({"endpoint": "https://api.example.com/users", "body": {"tags": ["a"]}})
        resolution = resolver.resolve(step, {})
        resolution.request.body["tags"].append("b")
        resolution.request.headers["X-New"] = "1"
        assert step.request.body == {"tags": ["a"]}
        assert step.request.headers == {}

    def test_placeholders_stay_literal(self, resolver):
        step = make_step({"endpoint": "https://api.example.com/users/{{userId}}"})
        assert resolver.resolve(step, {}).request.endpoint == "https://api.example.com/users/{{userId}}"


class TestResolveWithMappings:
    """Placeholder substitution from earlier steps."""

    def test_endpoint_substitution(self, resolver):
        step = make_step(
            {"endpoint": "/users/{{userId}}"},
            [{"sourceStep": 1, "sourcePath": "id", "targetVariable": "userId"}],
        )
        resolution = resolver.resolve(step, {1: {"id": "123"}})
        assert resolution.request.endpoint == "/users/123"
        assert resolution.variables == {"userId": "123"}

    def test_nested_body_substitution(self, resolver):
        step = make_step(
            {
                "endpoint": "https://api.example.com/orders",
                "body": {"order": {"owner": "{{owner}}", "note": "for {{owner}}"}, "items": ["{{owner}}"]},
            },
            [{"source_step": 1, "source_path": "$.user.name", "target_variable": "owner"}],
        )
        body = resolver.resolve(step, {1: {"user": {"name": "Ada"}}}).request.body
        assert body == {"order": {"owner": "Ada", "note": "for Ada"}, "items": ["Ada"]}

    def test_whole_value_placeholder_keeps_type(self, resolver):
        step = make_step(
            {"endpoint": "https://api.example.com/x", "body": {"count": "{{count}}", "profile": "{{profile}}"}},
            [
                {"source_step": 1, "source_path": "count", "target_variable": "count"},
                {"source_step": 1, "source_path": "profile", "target_variable": "profile"},
            ],
        )
        context = {1: {"count": 42, "profile": {"age": 36, "langs": ["py"]}}}
        body = resolver.resolve(step, context).request.body
        assert body == {"count": 42, "profile": {"age": 36, "langs": ["py"]}}

    def test_embedded_non_string_is_serialized(self, resolver):
        step = make_step(
            {"endpoint": "https://api.example.com/x", "body": {"text": "ids={{ids}} n={{n}} ok={{ok}}"}},
            [
                {"source_step": 1, "source_path": "ids", "target_variable": "ids"},
                {"source_step": 1, "source_path": "n", "target_variable": "n"},
                {"source_step": 1, "source_path": "ok", "target_variable": "ok"},
            ],
        )
        body = resolver.resolve(step, {1: {"ids": [1, 2], "n": 3, "ok": True}}).request.body
        assert body == {"text": "ids=[1, 2] n=3 ok=true"}

    def test_headers_query_and_graphql_variables(self, resolver):
        step = Step.model_validate(
            {
                "order": 3,
                "request": {
                    "protocol": "graphql",
                    "endpoint": "https://api.example.com/graphql",
                    "query": "query($id: ID!) { user(id: $id) { name } }",
                    "variables": {"id": "{{id}}"},
                    "headers": {"Authorization": "Bearer {{token}}"},
                    "query_params": {"trace": "{{id}}"},
                },
                "variable_mappings": [
                    {"source_step": 1, "source_path": "token", "target_variable": "token"},
                    {"source_step": 2, "source_path": "data.id", "target_variable": "id"},
                ],
            }
        )
        context = {1: {"token": "abc"}, 2: {"data": {"id": "u-9"}}}
        request = resolver.resolve(step, context).request
        assert request.headers == {"Authorization": "Bearer abc"}
        assert request.variables == {"id": "u-9"}
        assert request.query_params == {"trace": "u-9"}

    def test_missing_source_step_warns_and_leaves_placeholder(self, resolver, caplog):
        step = make_step(
            {"endpoint": "/users/{{userId}}"},
            [{"source_step": 7, "source_path": "id", "target_variable": "userId"}],
        )
        with caplog.at_level(logging.WARNING, logger="apichain.workflows.resolver"):
            resolution = resolver.resolve(step, {1: {"id": "123"}})
        assert resolution.request.endpoint == "/users/{{userId}}"
        assert len(resolution.warnings) == 1
        assert "Source step 7" in resolution.warnings[0]
        assert "Source step 7" in caplog.text

    def test_null_source_body_is_treated_as_missing(self, resolver):
        step = make_step(
            {"endpoint": "/users/{{userId}}"},
            [{"source_step": 1, "source_path": "id", "target_variable": "userId"}],
        )
        resolution = resolver.resolve(step, {1: None})
        assert resolution.request.endpoint == "/users/{{userId}}"
        assert resolution.warnings

    def test_unmatched_path_binds_null(self, resolver):
        step = make_step(
            {"endpoint": "/users/{{userId}}", "body": {"id": "{{userId}}"}},
            [{"source_step": 1, "source_path": "missing", "target_variable": "userId"}],
        )
        request = resolver.resolve(step, {1: {"id": "123"}}).request
        assert request.endpoint == "/users/null"
        assert request.body == {"id": None}

    def test_index_into_scalar_binds_null(self, resolver):
        step = make_step(
            {"endpoint": "/items/{{first}}"},
            [{"source_step": 1, "source_path": "count[0]", "target_variable": "first"}],
        )
        resolution = resolver.resolve(step, {1: {"count": 5}})
        assert resolution.variables == {"first": None}
        assert resolution.request.endpoint == "/items/null"

    def test_unmapped_placeholders_are_untouched(self, resolver):
        step = make_step(
            {"endpoint": "/users/{{userId}}/posts/{{postId}}"},
            [{"source_step": 1, "source_path": "id", "target_variable": "userId"}],
        )
        assert resolver.resolve(step, {1: {"id": "5"}}).request.endpoint == "/users/5/posts/{{postId}}"

    def test_template_is_never_mutated(self, resolver):
        step = make_step(
            {"endpoint": "/users/{{userId}}", "body": {"id": "{{userId}}"}},
            [{"source_step": 1, "source_path": "id", "target_variable": "userId"}],
        )
        before = step.model_dump()
        resolver.resolve(step, {1: {"id": "123"}})
        assert step.model_dump() == before

    def test_substituted_value_is_not_shared_with_context(self, resolver):
        source = {"profile": {"tags": ["a"]}}
        step = make_step(
            {"endpoint": "/x", "body": {"profile": "{{profile}}"}},
            [{"source_step": 1, "source_path": "profile", "target_variable": "profile"}],
        )
        request = resolver.resolve(step, {1: source}).request
        request.body["profile"]["tags"].append("b")
        assert source == {"profile": {"tags": ["a"]}}

    def test_malformed_source_path_raises(self, resolver):
        step = make_step(
            {"endpoint": "/x/{{id}}"},
            [{"source_step": 1, "source_path": "items[", "target_variable": "id"}],
        )
        with pytest.raises(PathExpressionError):
            resolver.resolve(step, {1: {"items": []}})

    def test_extra_protocol_fields_are_resolved(self, resolver):
        step = make_step(
            {"endpoint": "/x", "tenant": "{{tenant}}"},
            [{"source_step": 1, "source_path": "tenant", "target_variable": "tenant"}],
        )
        request = resolver.resolve(step, {1: {"tenant": "acme"}}).request
        assert request.model_extra == {"tenant": "acme"}


class TestSubstitute:
    """Tests for substitute() and find_placeholders()."""

    def test_whitespace_inside_braces(self):
        assert substitute("id={{ userId }}", {"userId": "7"}) == "id=7"

    def test_keys_are_not_substituted(self):
        assert substitute({"{{k}}": "{{k}}"}, {"k": "v"}) == {"{{k}}": "v"}

    def test_non_string_leaves_pass_through(self):
        assert substitute({"a": 1, "b": None, "c": [True]}, {"a": "x"}) == {"a": 1, "b": None, "c": [True]}

    def test_find_placeholders(self):
        value = {"endpoint": "/u/{{a}}", "body": {"x": ["{{b}}", 3], "y": "{{ a }}"}}
        assert find_placeholders(value) == {"a", "b"}
        assert find_placeholders({}) == set()
