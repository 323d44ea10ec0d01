"""Tests for apichain.cli module."""
from __future__ import annotations

import json

import httpx
import pytest
from click.testing import CliRunner

from apichain.cli import cli
from apichain.workflows.executors.base import ProtocolExecutor

WORKFLOWS = """
workflows:
  - name: users
    tags: [smoke]
    steps:
      - order: 1
        name: create
        request:
          method: POST
          endpoint: https://api.example.com/users
          body: {name: Ada}
        assertions:
          - {type: statusCode, expected: 201}
      - order: 2
        name: fetch
        request:
          method: GET
          endpoint: "https://api.example.com/users/{{userId}}"
        variable_mappings:
          - {source_step: 1, source_path: id, target_variable: userId}
  - name: broken
    steps:
      - order: 1
        request:
          method: GET
          endpoint: https://api.example.com/fail
"""


def handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/users":
        return httpx.Response(201, json={"id": "42"})
    if request.url.path == "/users/42":
        return httpx.Response(200, json={"id": "42", "name": "Ada"})
    return httpx.Response(500, json={"error": "boom"})


@pytest.fixture
def mock_network(monkeypatch):
    original = ProtocolExecutor.client

    def client(self):
        self._transport = httpx.MockTransport(handler)
        return original(self)

    monkeypatch.setattr(ProtocolExecutor, "client", client)


@pytest.fixture
def workflow_file(tmp_path):
    path = tmp_path / "workflows.yaml"
    path.write_text(WORKFLOWS, encoding="utf-8")
    return path


class TestRunCommand:
    def test_passing_workflow(self, mock_network, workflow_file):
        result = CliRunner().invoke(cli, ["run", str(workflow_file), "--name", "users"])
        assert result.exit_code == 0, result.output
        assert "Running workflow: users" in result.output
        assert "Workflow PASSED" in result.output
        assert "Workflows: 1 passed, 0 failed" in result.output

    def test_failing_workflow_exits_non_zero(self, mock_network, workflow_file, tmp_path):
        output = tmp_path / "results.json"
        result = CliRunner().invoke(cli, ["run", str(workflow_file), "-o", str(output)])
        assert result.exit_code == 1
        assert "Step 1 failed: HTTP 500 Internal Server Error" in result.output

        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["total_workflows"] == 2
        assert data["failed"] == 1
        fetch = data["results"][0]["steps"][1]
        assert fetch["request"]["endpoint"] == "https://api.example.com/users/42"

    def test_tag_filter_without_matches(self, workflow_file):
        result = CliRunner().invoke(cli, ["run", str(workflow_file), "--tag", "nightly"])
        assert result.exit_code == 0
        assert "No workflows found matching criteria" in result.output

    def test_bad_header(self, workflow_file):
        result = CliRunner().invoke(cli, ["run", str(workflow_file), "-H", "no-colon"])
        assert result.exit_code == 2
        assert "Name: Value" in result.output

    def test_broken_proto_file(self, workflow_file, tmp_path):
        proto = tmp_path / "broken.proto"
        proto.write_text("message {", encoding="utf-8")
        result = CliRunner().invoke(cli, ["run", str(workflow_file), "--proto", str(proto)])
        assert result.exit_code == 1
        assert "Failed to load proto files" in result.output

    def test_unparseable_file(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("workflows: [unclosed", encoding="utf-8")
        result = CliRunner().invoke(cli, ["run", str(path)])
        assert result.exit_code == 1
        assert "Failed to load workflows" in result.output


class TestListCommand:
    def test_lists_workflows(self, workflow_file):
        result = CliRunner().invoke(cli, ["list", str(workflow_file)])
        assert result.exit_code == 0
        assert "users: 2 step(s) [smoke]" in result.output
        assert "broken: 1 step(s)" in result.output

    def test_filters_by_tag(self, workflow_file):
        result = CliRunner().invoke(cli, ["list", str(workflow_file), "-t", "smoke"])
        assert "broken" not in result.output
