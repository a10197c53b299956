from __future__ import annotations

from typing import Optional

import click

from .cli_support import connected_client, echo_json, parse_json_option
from .exceptions import SalesforceError
from .tools import HTTP_METHODS


@click.command("rest")
@click.argument("path")
@click.option(
    "--api",
    type=click.Choice(["data", "tooling", "apexrest"]),
    default="data",
    show_default=True,
    help="Base path: data API, Tooling API or custom Apex REST.",
)
@click.option(
    "-X",
    "--method",
    type=click.Choice(HTTP_METHODS, case_sensitive=False),
    default="GET",
    show_default=True,
)
@click.option("--params", "params_json", help="Query parameters as a JSON object.")
@click.option("--data", "data_json", help="Request body as JSON.")
def rest_cmd(
    path: str,
    api: str,
    method: str,
    params_json: Optional[str],
    data_json: Optional[str],
) -> None:
    """Call an arbitrary endpoint, e.g. `sfgateway rest limits`."""
    params = parse_json_option(params_json, "--params")
    data = parse_json_option(data_json, "--data")
    client = connected_client()
    try:
        if api == "tooling":
            res = client.tooling_execute(path, method, data)
        elif api == "apexrest":
            res = client.apex_execute(path, method, data)
        else:
            res = client.restful(path, method, params, data)
    except SalesforceError as e:
        raise click.ClickException(str(e)) from e
    echo_json(res)
