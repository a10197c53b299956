from __future__ import annotations

import logging
from typing import Optional, cast

import click
from click import Command

from . import __version__
from .cli_support import connected_client, echo_json
from .command_objects import fields_cmd, objects_cmd
from .command_records import create_cmd, delete_cmd, get_cmd, update_cmd
from .command_rest import rest_cmd
from .command_tools import call_cmd, tools_cmd
from .config import ServiceConfig
from .env_loader import load_env_files
from .exceptions import SalesforceError
from .logging_config import configure_logging

_logger = logging.getLogger(__name__)

# Load .env very early, so everything else sees env vars
load_env_files()


@click.group(
    context_settings={"help_option_names": ["-h", "--help"]},
    invoke_without_command=True,
)
@click.version_option(__version__, "--version", prog_name="sfgateway")
@click.option(
    "-v",
    "--verbose",
    "loglevel",
    flag_value=logging.INFO,
    default=None,
    help="Enable INFO logs.",
)
@click.option(
    "-vv",
    "--very-verbose",
    "loglevel",
    flag_value=logging.DEBUG,
    help="Enable DEBUG logs.",
)
@click.pass_context
def cli(ctx: click.Context, loglevel: Optional[int]) -> None:
    """Salesforce gateway CLI. Use subcommands like 'login' or 'query'."""
    configure_logging(loglevel)
    _logger.debug("CLI start, version=%s", __version__)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command("login")
@click.option(
    "--sandbox/--production",
    default=None,
    help="Override SALESFORCE_SANDBOX for this login.",
)
@click.option("--show-limits", is_flag=True, help="Also print daily API usage.")
def cmd_login(sandbox: Optional[bool], show_limits: bool) -> None:
    """Connect with the configured credentials and report the session."""
    client = connected_client(sandbox=sandbox)
    click.echo("✅  Connected to Salesforce.")
    click.echo(f"Instance URL: {client.instance_url}")
    click.echo(f"API Version: {client.api_version}")
    click.echo(f"Refresh token: {'yes' if client.session.refresh_token else 'no'}")
    if show_limits:
        core = client.limits().get("DailyApiRequests", {})
        click.echo(f"Daily API requests: {core.get('Remaining')} remaining of {core.get('Max')}")


@cli.command("status")
def cmd_status() -> None:
    """Show which Salesforce settings are present (values are never printed)."""
    for line in ServiceConfig.from_env().status_lines():
        click.echo(line)


@cli.command("query")
@click.argument("soql")
@click.option("--pretty", is_flag=True, help="Pretty-print JSON.")
@click.option("--single-page", is_flag=True, help="Return only the first page of results.")
def cmd_query(soql: str, pretty: bool, single_page: bool) -> None:
    """Run a SOQL query (all pages unless --single-page)."""
    client = connected_client()
    try:
        res = client.query(soql) if single_page else client.query_all(soql)
    except SalesforceError as e:
        raise click.ClickException(str(e)) from e
    echo_json(res, pretty)


@cli.command("search")
@click.argument("sosl")
@click.option("--pretty", is_flag=True, help="Pretty-print JSON.")
def cmd_search(sosl: str, pretty: bool) -> None:
    """Run a SOSL search, e.g. 'FIND {Acme} IN NAME FIELDS'."""
    client = connected_client()
    try:
        res = client.search(sosl)
    except SalesforceError as e:
        raise click.ClickException(str(e)) from e
    echo_json(res, pretty)


# Cast ensures IDE knows of the Command type
cli.add_command(cast(Command, objects_cmd))
cli.add_command(cast(Command, fields_cmd))
cli.add_command(cast(Command, get_cmd))
cli.add_command(cast(Command, create_cmd))
cli.add_command(cast(Command, update_cmd))
cli.add_command(cast(Command, delete_cmd))
cli.add_command(cast(Command, rest_cmd))
cli.add_command(cast(Command, tools_cmd))
cli.add_command(cast(Command, call_cmd))
