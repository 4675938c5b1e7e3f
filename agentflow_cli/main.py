"""Agentflow CLI - Main entry point."""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Optional, Tuple

import click
import yaml

from agentflow_core.admin.client import AdminAPIClient, serialize_body
from agentflow_core.admin.signing import generate_signed_headers
from agentflow_core.agent_config.service import AgentConfigService
from agentflow_core.config import get_settings
from agentflow_core.core.logging import configure_logging
from agentflow_core.exceptions import AgentFlowError, WorkflowValidationError
from agentflow_core.workflow.formatter import format_error, format_validation_errors
from agentflow_core.workflow.validator import WorkflowValidator

from . import __version__
from .output import (
    format_output,
    print_block,
    print_error,
    print_headers,
    print_json,
    print_success,
    print_warning,
)


def load_document(path: str) -> Any:
    """Load a JSON or YAML file; YAML is chosen by extension."""
    text = Path(path).read_text(encoding="utf-8")
    if Path(path).suffix.lower() in (".yaml", ".yml"):
        return yaml.safe_load(text)
    return json.loads(text)


def _load_or_exit(path: str) -> Any:
    try:
        return load_document(path)
    except (ValueError, yaml.YAMLError) as e:
        print_error(f"Could not parse {path}: {e}")
        sys.exit(1)


def _build_client(ctx: click.Context) -> AdminAPIClient:
    settings = get_settings().admin_api
    return AdminAPIClient(
        base_url=ctx.obj.get("base_url") or settings.base_url,
        api_key=ctx.obj.get("api_key") or settings.key,
        timeout=settings.timeout_seconds,
        bulk_timeout=settings.bulk_timeout_seconds,
    )


@click.group()
@click.version_option(version=__version__, prog_name="agentflow")
@click.option("--base-url", envvar="ADMIN_API_BASE_URL", help="Admin API base URL")
@click.option("--api-key", envvar="ADMIN_API_KEY", help="Admin API signing key")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, base_url: Optional[str], api_key: Optional[str], debug: bool):
    """Agentflow CLI - Validate and ship agent workflow configurations.

    \b
    Examples:
      agentflow validate agent.json
      agentflow import agent.yaml --tenant-id tenant_1 --dry-run
      agentflow export tenant_1 agent_1 --version 3
    """
    ctx.ensure_object(dict)
    configure_logging(level="DEBUG" if debug else "WARNING")

    ctx.obj["base_url"] = base_url
    ctx.obj["api_key"] = api_key


@cli.command("validate")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--warn-unreachable", is_flag=True, help="Warn about nodes no path can reach")
@click.option("--output", "-o", type=click.Choice(["text", "json"]), default="text",
              help="Output format")
def validate(file: str, warn_unreachable: bool, output: str):
    """Validate a workflow configuration file.

    Exits with status 1 when the configuration has errors. Warnings never
    fail validation.
    """
    raw = _load_or_exit(file)
    result = WorkflowValidator(warn_unreachable=warn_unreachable).validate(raw)

    if output == "json":
        print_json(result.to_dict())
    elif result.valid:
        print_success(f"{file} is valid")
        if result.warnings:
            print_block(format_validation_errors(result))
    else:
        print_error(f"{file} has {len(result.errors)} error(s)")
        print_block(format_validation_errors(result))

    if not result.valid:
        sys.exit(1)


@cli.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--tenant-id", "-t", required=True, help="Target tenant")
@click.option("--dry-run", is_flag=True, help="Validate on the orchestrator without saving")
@click.option("--notes", help="Version notes (max 500 characters)")
@click.option("--created-by", help="Author recorded on the new version")
@click.option("--phone-number", "phone_numbers", multiple=True,
              help="E.164 number to assign (repeatable)")
@click.pass_context
def import_agent(
    ctx: click.Context,
    file: str,
    tenant_id: str,
    dry_run: bool,
    notes: Optional[str],
    created_by: Optional[str],
    phone_numbers: Tuple[str, ...],
):
    """Validate an agent config, then import it into the orchestrator."""
    agent_json = _load_or_exit(file)
    if not isinstance(agent_json, dict):
        print_error(f"{file} must contain a JSON object")
        sys.exit(1)

    async def _import():
        async with _build_client(ctx) as client:
            service = AgentConfigService(client)
            return await service.import_agent(
                tenant_id,
                agent_json,
                phone_numbers=list(phone_numbers) or None,
                notes=notes,
                created_by=created_by,
                dry_run=dry_run or None,
            )

    try:
        response = asyncio.run(_import())
    except WorkflowValidationError as e:
        print_error(e.message)
        print_block(format_validation_errors(e.errors + e.warnings))
        sys.exit(1)
    except AgentFlowError as e:
        print_error(f"Import failed: {format_error(e)}")
        sys.exit(1)
    except ValueError as e:
        # Parameter validation (notes length, phone number format)
        print_error(f"Invalid import parameters: {e}")
        sys.exit(1)

    result = response.result
    if not response.success or result is None:
        print_error(f"Import failed: {response.error or 'unknown error'}")
        sys.exit(1)

    label = "Dry run passed for" if dry_run else "Imported"
    version = f" as version {result.version}" if result.version is not None else ""
    print_success(f"{label} {result.agent_name or result.agent_id} ({result.action}){version}")


@cli.command("export")
@click.argument("tenant_id")
@click.argument("agent_id")
@click.option("--version", "-v", type=click.IntRange(min=1), help="Config version (default: active)")
@click.option("--output", "-o", type=click.Choice(["json", "yaml"]), default="json",
              help="Output format")
@click.pass_context
def export_agent(ctx: click.Context, tenant_id: str, agent_id: str, version: Optional[int], output: str):
    """Export an agent config version."""

    async def _export():
        async with _build_client(ctx) as client:
            return await AgentConfigService(client).export_agent(tenant_id, agent_id, version)

    try:
        response = asyncio.run(_export())
    except AgentFlowError as e:
        print_error(f"Export failed: {format_error(e)}")
        sys.exit(1)

    format_output(response.config_json, output)


@cli.command("sign")
@click.argument("method")
@click.argument("path")
@click.option("--body", "-b", default=None, help="JSON request body")
@click.option("--output", "-o", type=click.Choice(["table", "json"]), default="table",
              help="Output format")
@click.pass_context
def sign(ctx: click.Context, method: str, path: str, body: Optional[str], output: str):
    """Print signed headers for a request (debugging aid).

    The body is re-serialized compactly, exactly as the client sends it.
    """
    api_key = ctx.obj.get("api_key") or get_settings().admin_api.key
    if not api_key:
        print_error("No signing key. Set ADMIN_API_KEY or pass --api-key.")
        sys.exit(1)

    payload = ""
    if body is not None and method.upper() not in ("GET", "DELETE"):
        try:
            payload = serialize_body(json.loads(body))
        except ValueError as e:
            print_error(f"Body is not valid JSON: {e}")
            sys.exit(1)

    headers = generate_signed_headers(api_key, method, path, payload)
    if output == "json":
        print_json({"method": method.upper(), "path": path, "body": payload, "headers": headers})
    else:
        print_headers(headers, title=f"{method.upper()} {path}")
        if body is not None and not payload:
            print_warning(f"{method.upper()} requests are signed with an empty body")


if __name__ == "__main__":
    cli(obj={})
