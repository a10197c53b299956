from __future__ import annotations

import click

from .cli_support import connected_client, echo_json
from .exceptions import SalesforceError


@click.command("objects")
@click.option(
    "--all",
    "show_all",
    is_flag=True,
    help="Show all sObjects (default: only queryable).",
)
def objects_cmd(show_all: bool) -> None:
    """List sObjects (queryable by default)."""
    client = connected_client()
    try:
        g = client.describe_global()
    except SalesforceError as e:
        raise click.ClickException(str(e)) from e
    sobjs = g.get("sobjects", [])

    def want(s: dict) -> bool:
        return show_all or s.get("queryable")

    names = sorted(s["name"] for s in sobjs if want(s))
    for n in names:
        click.echo(n)


@click.command("fields")
@click.argument("object_name")
@click.option("--names-only", is_flag=True, help="Print field API names, one per line.")
def fields_cmd(object_name: str, names_only: bool) -> None:
    """Show field metadata (label, type, length, picklist values) for an sObject."""
    client = connected_client()
    try:
        fields = client.get_object_fields(object_name)
    except SalesforceError as e:
        raise click.ClickException(str(e)) from e
    if names_only:
        for f in fields:
            click.echo(f["name"])
    else:
        echo_json(fields)
