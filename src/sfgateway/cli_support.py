"""Helpers shared by the CLI command modules."""

from __future__ import annotations

import json
from dataclasses import replace
from typing import Any, Optional

import click

from .client import SalesforceClient
from .config import ACCEPTED_CREDENTIALS, ServiceConfig
from .exceptions import ConfigurationError, SalesforceError


def connected_client(sandbox: Optional[bool] = None) -> SalesforceClient:
    """Build a client from the environment and connect it.

    Credential problems become a ClickException with configuration tips.
    """
    cfg = ServiceConfig.from_env()
    if sandbox is not None:
        cfg = replace(cfg, sandbox=sandbox)
    client = SalesforceClient(cfg)
    try:
        client.connect()
    except ConfigurationError as e:
        needed = ", ".join(e.missing)
        msg = (
            f"Missing Salesforce credentials: {needed}\n\n"
            "Set these environment variables (or create a .env file):\n"
            "  SALESFORCE_CLIENT_ID=...        # Connected App Consumer Key\n"
            "  SALESFORCE_CLIENT_SECRET=...    # Connected App Consumer Secret\n"
            "and one of:\n"
            + "".join(f"  {i}. {combo}\n" for i, combo in enumerate(ACCEPTED_CREDENTIALS, 1))
            + "\nTip: run `sfgateway status` to see which settings are present."
        )
        raise click.ClickException(msg) from e
    except SalesforceError as e:
        raise click.ClickException(f"Login failed: {e}") from e
    return client


def parse_json_option(value: Optional[str], name: str) -> Any:
    """Decode a JSON command-line value; None stays None."""
    if value is None:
        return None
    try:
        return json.loads(value)
    except ValueError as e:
        raise click.BadParameter(f"not valid JSON ({e})", param_hint=name) from e


def echo_json(value: Any, pretty: bool = True) -> None:
    click.echo(json.dumps(value, indent=2 if pretty else None, default=str))
