from __future__ import annotations

from typing import Optional

import click

from .cli_support import echo_json, parse_json_option
from .tools import TOOL_DEFINITIONS, ToolDispatcher


@click.command("tools")
@click.option("--schema", is_flag=True, help="Print the full JSON tool declarations.")
def tools_cmd(schema: bool) -> None:
    """List the tools an agent can call."""
    if schema:
        echo_json(TOOL_DEFINITIONS)
        return
    for t in TOOL_DEFINITIONS:
        click.echo(f"{t['name']}: {t['description']}")


@click.command("call")
@click.argument("name")
@click.argument("arguments", required=False)
def call_cmd(name: str, arguments: Optional[str]) -> None:
    """Invoke one tool with JSON ARGUMENTS, connecting from the environment first."""
    args = parse_json_option(arguments, "ARGUMENTS") or {}
    if not isinstance(args, dict):
        raise click.BadParameter("must be a JSON object", param_hint="ARGUMENTS")
    dispatcher = ToolDispatcher()
    if name != "authenticate_password":
        dispatcher.initialize()
    text = dispatcher.call(name, args)
    click.echo(text)
    if text.startswith("❌"):
        raise click.exceptions.Exit(1)
