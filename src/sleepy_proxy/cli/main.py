"""CLI entry point for sleepy-proxy.

Invoked as::

    sleepy-proxy [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m sleepy_proxy.cli.main

Commands
--------
serve     Run the proxy behind the HTTP adapter
parse     Parse a registration payload and show the resources it declares
version   Show version information
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from sleepy_proxy import __version__

console = Console()


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="sleepy-proxy")
def cli() -> None:
    """Proxy that hosts resources on behalf of sleepy nodes"""


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    console.print(f"[bold]sleepy-proxy[/bold] v{__version__}")


# ------------------------------------------------------------------
# serve
# ------------------------------------------------------------------


@cli.command(name="serve")
@click.option("--host", default="0.0.0.0", show_default=True, help="Bind address.")
@click.option("--port", "-p", type=int, default=5683, show_default=True, help="TCP port.")
@click.option(
    "--base-path",
    default="sp",
    show_default=True,
    help="Name of the sleepy-proxy resource.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    default="INFO",
    show_default=True,
    help="Logging level.",
)
@click.option(
    "--audit-log",
    type=click.Path(dir_okay=False),
    default=None,
    help="JSONL file receiving delegation audit events.",
)
def serve_command(
    host: str,
    port: int,
    base_path: str,
    log_level: str,
    audit_log: str | None,
) -> None:
    """Run the sleepy proxy over HTTP until interrupted."""
    from sleepy_proxy.config import ProxyConfig
    from sleepy_proxy.server import routes
    from sleepy_proxy.server.app import run_server

    try:
        config = ProxyConfig(
            host=host,
            port=port,
            base_path=base_path,
            log_level=log_level,
            audit_log=Path(audit_log) if audit_log else None,
        )
    except ValidationError as exc:
        console.print(f"[red]Error:[/red] invalid configuration: {exc}")
        sys.exit(1)

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    routes.reset_state(config)
    console.print(
        f"[green]Serving[/green] sleepy proxy at http://{config.host}:{config.port}/{config.base_path}"
    )
    run_server(host=config.host, port=config.port)


# ------------------------------------------------------------------
# parse
# ------------------------------------------------------------------


@cli.command(name="parse")
@click.argument("payload")
def parse_command(payload: str) -> None:
    """Parse a registration PAYLOAD such as '<config/x>;rt="data"'."""
    from sleepy_proxy.linkformat import LinkFormatError, parse_registration
    from sleepy_proxy.resources.container import normalize_path
    from sleepy_proxy.resources.tree import split_path

    try:
        descriptors = parse_registration(payload)
    except LinkFormatError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    if not descriptors:
        console.print("[yellow]Payload declares no resources.[/yellow]")
        return

    table = Table(title="Declared Resources", show_header=True)
    table.add_column("Path", style="cyan")
    table.add_column("Attributes")
    table.add_column("Valid", justify="center")

    for descriptor in descriptors:
        valid = split_path(normalize_path(descriptor.path)) is not None
        attrs = "; ".join(f"{k}={v}" for k, v in descriptor.attributes.items()) or "(none)"
        table.add_row(
            descriptor.path,
            attrs,
            "[green]Yes[/green]" if valid else "[red]No[/red]",
        )

    console.print(table)
    console.print(f"\nTotal: {len(descriptors)} resource(s)")


if __name__ == "__main__":
    cli()
