from __future__ import annotations

from typing import Tuple

import click

from .cli_support import connected_client, echo_json, parse_json_option
from .exceptions import SalesforceError


def _record_data(data: str) -> dict:
    value = parse_json_option(data, "DATA")
    if not isinstance(value, dict):
        raise click.BadParameter("must be a JSON object of field values", param_hint="DATA")
    return value


@click.command("get")
@click.argument("object_name")
@click.argument("record_id")
@click.option("--field", "fields", multiple=True, help="Field to return (repeatable).")
def get_cmd(object_name: str, record_id: str, fields: Tuple[str, ...]) -> None:
    """Fetch one record by Id."""
    client = connected_client()
    try:
        record = client.get_record(object_name, record_id, list(fields) or None)
    except SalesforceError as e:
        raise click.ClickException(str(e)) from e
    echo_json(record)


@click.command("create")
@click.argument("object_name")
@click.argument("data")
def create_cmd(object_name: str, data: str) -> None:
    """Create a record from a JSON object, e.g. '{"Name": "Acme"}'."""
    values = _record_data(data)
    client = connected_client()
    try:
        result = client.create_record(object_name, values)
    except SalesforceError as e:
        raise click.ClickException(str(e)) from e
    echo_json(result)


@click.command("update")
@click.argument("object_name")
@click.argument("record_id")
@click.argument("data")
def update_cmd(object_name: str, record_id: str, data: str) -> None:
    """Update fields on an existing record."""
    values = _record_data(data)
    client = connected_client()
    try:
        client.update_record(object_name, record_id, values)
    except SalesforceError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Updated {object_name} {record_id}")


@click.command("delete")
@click.argument("object_name")
@click.argument("record_id")
@click.confirmation_option(prompt="Delete this record?")
def delete_cmd(object_name: str, record_id: str) -> None:
    """Delete a record."""
    client = connected_client()
    try:
        client.delete_record(object_name, record_id)
    except SalesforceError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Deleted {object_name} {record_id}")
