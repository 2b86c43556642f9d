"""
Command line interface for inspecting and running workflows.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click

from config import SettingsManager, configure_logging
from .definition import WorkflowDefinition
from .errors import DefinitionError
from .handler import WorkflowHandler


def _parse_arg(raw: str) -> Tuple[str, Any]:
    """Split key=value; the value is read as JSON when it parses, else text."""
    if "=" not in raw:
        raise click.BadParameter(f"expected key=value, got '{raw}'", param_hint="--arg")
    key, value = raw.split("=", 1)
    try:
        return key.strip(), json.loads(value)
    except json.JSONDecodeError:
        return key.strip(), value


def _build_handler(ctx: click.Context) -> WorkflowHandler:
    return WorkflowHandler(settings=ctx.obj["settings"])


@click.group(help="Inspect and run declarative workflows")
@click.option(
    "--definitions-dir",
    "-d",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory of workflow definition files",
)
@click.option("--env-file", type=click.Path(dir_okay=False), default=None, help="Settings .env file")
@click.option("--log-level", default=None, help="Logging level (default: from settings)")
@click.pass_context
def cli(ctx: click.Context, definitions_dir: Optional[str], env_file: Optional[str], log_level: Optional[str]):
    """Workflow command line."""
    settings = SettingsManager(env_file=Path(env_file) if env_file else None).load()
    if definitions_dir:
        settings.update_configuration({"workflow_definitions_dir": definitions_dir})
    configure_logging(log_level or settings.get_setting("log_level"))

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


@cli.command("list-tools")
@click.pass_context
def list_tools(ctx: click.Context):
    """List workflow tools and their input schemas."""
    handler = _build_handler(ctx)
    tools = asyncio.run(handler.list_tools())
    click.echo(json.dumps([tool.model_dump() for tool in tools], indent=2))


@cli.command()
@click.pass_context
def info(ctx: click.Context):
    """Show loaded workflows, connectors and cache statistics."""
    handler = _build_handler(ctx)
    click.echo(json.dumps(asyncio.run(handler.get_workflow_info()), indent=2, default=str))


@cli.command()
@click.argument("workflow")
@click.option("--arg", "-a", "args", multiple=True, help="Argument as key=value (repeatable)")
@click.option("--args-json", default=None, help="Arguments as a JSON object")
@click.option("--session-id", default=None, help="Session identifier for this run")
@click.pass_context
def run(ctx: click.Context, workflow: str, args: Tuple[str, ...], args_json: Optional[str], session_id: Optional[str]):
    """Run WORKFLOW (id or workflow_<id>) and print the response."""
    arguments: Dict[str, Any] = {}
    if args_json:
        try:
            arguments = json.loads(args_json)
        except json.JSONDecodeError as e:
            raise click.BadParameter(str(e), param_hint="--args-json")
        if not isinstance(arguments, dict):
            raise click.BadParameter("must be a JSON object", param_hint="--args-json")

    for raw in args:
        key, value = _parse_arg(raw)
        arguments[key] = value

    handler = _build_handler(ctx)
    result = asyncio.run(handler.call_tool(workflow, arguments, session_id=session_id))
    click.echo(result.text)
    if result.isError:
        sys.exit(1)


@cli.command()
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
def validate(files: Tuple[str, ...]):
    """Validate workflow definition FILES."""
    failed = 0
    for file_path in files:
        try:
            workflow = WorkflowDefinition.from_file(file_path)
        except DefinitionError as e:
            failed += 1
            click.echo(f"INVALID {file_path}: {e}")
            continue
        click.echo(f"OK {file_path}: {workflow.id} ({len(workflow.steps)} steps)")

    if failed:
        sys.exit(1)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
