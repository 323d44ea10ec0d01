"""CLI commands for workflow execution."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import click

from apichain.config import DEFAULT_TIMEOUT, ExecutorConfig
from apichain.version import APICHAIN_VERSION


@click.group()
@click.version_option(APICHAIN_VERSION, prog_name="apichain")
def cli() -> None:
    """Run multi-step API workflows."""


def _load(path: str, name: tuple[str, ...], tags: tuple[str, ...], strict: bool = False) -> list:
    from apichain.workflows import WorkflowParser
    from apichain.workflows.parser import filter_workflows

    parser = WorkflowParser(strict=strict)
    path_obj = Path(path)
    if path_obj.is_dir():
        return parser.load_workflows_from_directory(path_obj, names=list(name) or None, tags=list(tags) or None)
    return filter_workflows(parser.parse_file(path_obj), names=list(name) or None, tags=list(tags) or None)


@cli.command(name="run")
@click.argument("path", type=click.Path(exists=True))
@click.option("--name", "-n", multiple=True, help="Run only workflows with these names")
@click.option("--tag", "-t", "tags", multiple=True, help="Run only workflows with these tags")
@click.option("--identity", "-i", default="default-user", show_default=True, help="Identity for credentials and history")
@click.option("--header", "-H", multiple=True, help="Default request header (format: 'Name: Value')")
@click.option("--timeout", type=float, default=DEFAULT_TIMEOUT, show_default=True, help="Request timeout in seconds")
@click.option("--insecure", is_flag=True, help="Skip TLS certificate verification")
@click.option("--strict", is_flag=True, help="Reject mappings that read from a step which does not run earlier")
@click.option("--proto", "protos", multiple=True, type=click.Path(exists=True, dir_okay=False), help="Proto file describing gRPC services")
@click.option("--proto-path", "-I", "proto_paths", multiple=True, type=click.Path(exists=True, file_okay=False), help="Import root for proto files")
@click.option("--output", "-o", type=click.Path(), help="Output file for results (JSON)")
@click.option("--verbose", "-v", is_flag=True, help="Show detailed output")
def run_workflows(
    path: str,
    name: tuple[str, ...],
    tags: tuple[str, ...],
    identity: str,
    header: tuple[str, ...],
    timeout: float,
    insecure: bool,
    strict: bool,
    protos: tuple[str, ...],
    proto_paths: tuple[str, ...],
    output: str | None,
    verbose: bool,
) -> None:
    """Run workflow definitions from a file or directory."""
    from apichain.workflows import ExecutorRegistry, ProtoLoadError, WorkflowEngine, WorkflowError

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    headers: dict[str, str] = {}
    for h in header:
        if ":" not in h:
            raise click.BadParameter(f"expected 'Name: Value', got {h!r}", param_hint="--header")
        key, value = h.split(":", 1)
        headers[key.strip()] = value.strip()

    try:
        workflows = _load(path, name, tags, strict)
    except WorkflowError as e:
        click.secho(f"Failed to load workflows: {e}", fg="red")
        raise SystemExit(1)

    if not workflows:
        click.secho("No workflows found matching criteria", fg="yellow")
        raise SystemExit(0)

    config = ExecutorConfig(
        timeout=timeout,
        verify_ssl=not insecure,
        headers=headers,
        proto_files=list(protos),
        proto_include_dirs=list(proto_paths),
    )
    try:
        registry = ExecutorRegistry.default(config)
    except ProtoLoadError as e:
        click.secho(f"Failed to load proto files: {e}", fg="red")
        raise SystemExit(1)
    engine = WorkflowEngine(registry=registry)

    def on_step_complete(step_result) -> None:
        label = "PASSED" if step_result.success else "FAILED"
        click.secho(
            f"  [{label}] {step_result.step_order}: {step_result.step_name or ''} "
            f"({step_result.duration_ms:.0f}ms)",
            fg="green" if step_result.success else "red",
        )
        if verbose:
            for assertion in step_result.assertions:
                click.echo(f"      {'ok ' if assertion.passed else 'err'} {assertion.message}")
            for warning in step_result.warnings:
                click.secho(f"      warning: {warning}", fg="yellow")
        if not step_result.success and step_result.response.error:
            click.echo(f"      Error: {step_result.response.error}")

    results = []
    failed = 0
    for workflow in workflows:
        click.echo(f"Running workflow: {workflow.name}")
        result = asyncio.run(engine.run(workflow, identity, on_step_complete=on_step_complete))
        results.append(result)
        if result.success:
            click.secho("Workflow PASSED", fg="green")
        else:
            failed += 1
            click.secho("Workflow FAILED", fg="red")
            if result.error:
                click.echo(f"   {result.error}")
        click.echo(
            f"   Steps: {result.passed_steps} passed, {result.failed_steps} failed "
            f"in {result.total_duration_ms:.0f}ms"
        )

    click.echo(f"Workflows: {len(results) - failed} passed, {failed} failed")

    if output:
        data = {
            "total_workflows": len(results),
            "passed": len(results) - failed,
            "failed": failed,
            "results": [r.to_dict() for r in results],
        }
        Path(output).write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
        click.echo(f"Results saved to: {output}")

    if failed:
        raise SystemExit(1)


@cli.command(name="list")
@click.argument("path", type=click.Path(exists=True))
@click.option("--tag", "-t", "tags", multiple=True, help="Show only workflows with these tags")
def list_workflows(path: str, tags: tuple[str, ...]) -> None:
    """List workflow definitions in a file or directory."""
    from apichain.workflows import WorkflowError

    try:
        workflows = _load(path, (), tags)
    except WorkflowError as e:
        click.secho(f"Failed to load workflows: {e}", fg="red")
        raise SystemExit(1)

    for workflow in workflows:
        tag_text = f" [{', '.join(workflow.tags)}]" if workflow.tags else ""
        click.echo(f"{workflow.name}: {len(workflow.steps)} step(s){tag_text}")
