#!/usr/bin/env python3
"""
Command line entry point for netdial.

A tiny netcat built on the transport layer:

- resolve: show the candidates a descriptor resolves to
- listen: accept (TCP) or bind (UDP) and print what arrives
- send: dial a descriptor and write a message
"""

import sys

import click
from loguru import logger
from rich.console import Console
from rich.table import Table

from netdial.config import NetdialSettings
from netdial.core.logging import configure_logging
from netdial.core.transport import (
    TCPConnection,
    TCPListener,
    TransportError,
    TransportFactory,
    UDPConnection,
    render_address,
    resolve_all,
)
from netdial.core.transport.udp_transport import MAX_DATAGRAM_SIZE

console = Console()


def setup_logging(settings: NetdialSettings, verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = "DEBUG" if verbose else settings.log_level
    configure_logging(level, debug_scopes=settings.log_debug_scopes)


def _print_payload(payload: bytes, sender: str | None = None) -> None:
    text = payload.decode("utf-8", errors="replace")
    if sender is None:
        console.print(text, end="", markup=False, highlight=False)
    else:
        console.print(f"[{sender}] {text}", end="", markup=False, highlight=False)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """
    netdial - dial and listen on tcp:// and udp:// endpoints.

    Descriptors look like tcp://127.0.0.1:9000 or udp://:5353; an empty host
    means any address and an empty port means 80.
    """
    settings = NetdialSettings()
    setup_logging(settings, verbose)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


@cli.command()
@click.argument("descriptor")
def resolve(descriptor: str) -> None:
    """Resolve a descriptor and list every candidate address."""
    try:
        candidates = resolve_all(descriptor)
    except TransportError as e:
        raise click.ClickException(str(e)) from e

    table = Table(title=descriptor)
    table.add_column("#", justify="right")
    table.add_column("Family")
    table.add_column("Protocol")
    table.add_column("Address")
    for index, candidate in enumerate(candidates):
        table.add_row(
            str(index),
            candidate.family.name,
            candidate.protocol.value,
            render_address(candidate),
        )
    console.print(table)


@cli.command()
@click.argument("descriptor")
@click.option(
    "--count", "-n", type=int, default=1, show_default=True, help="Reads to perform"
)
@click.option(
    "--timeout", "-t", type=float, default=None, help="Seconds to wait per read"
)
@click.pass_context
def listen(ctx: click.Context, descriptor: str, count: int, timeout: float | None):
    """Listen on a descriptor and print received payloads."""
    config = ctx.obj["settings"].transport_config()
    try:
        endpoint = TransportFactory.listen(descriptor, config)
    except TransportError as e:
        raise click.ClickException(str(e)) from e

    logger.info(f"Listening on {endpoint.local_addr}")
    buffer = bytearray(MAX_DATAGRAM_SIZE)
    try:
        with endpoint:
            if isinstance(endpoint, TCPListener):
                if timeout is None:
                    accepted = endpoint.accept()
                else:
                    accepted = endpoint.accept(timeout)
                with accepted as conn:
                    console.print(f"accepted {conn.remote_addr}", style="green")
                    _drain_stream(conn, buffer, count, timeout)
            elif isinstance(endpoint, UDPConnection):
                for _ in range(count):
                    received, sender = endpoint.read_from(buffer, timeout)
                    _print_payload(bytes(buffer[:received]), sender)
    except TransportError as e:
        raise click.ClickException(str(e)) from e


def _drain_stream(
    conn: TCPConnection, buffer: bytearray, count: int, timeout: float | None
) -> None:
    for _ in range(count):
        received = conn.read(buffer, timeout)
        if received == 0:
            console.print("peer closed the connection", style="yellow")
            return
        _print_payload(bytes(buffer[:received]))


@cli.command()
@click.argument("descriptor")
@click.argument("message")
@click.option(
    "--timeout", "-t", type=float, default=None, help="Seconds to wait per write"
)
@click.option("--newline/--no-newline", default=True, help="Append a newline")
@click.pass_context
def send(
    ctx: click.Context,
    descriptor: str,
    message: str,
    timeout: float | None,
    newline: bool,
) -> None:
    """Dial a descriptor and write MESSAGE to it."""
    config = ctx.obj["settings"].transport_config()
    payload = (message + "\n" if newline else message).encode("utf-8")
    try:
        with TransportFactory.dial(descriptor, config) as conn:
            sent = 0
            view = memoryview(payload)
            while sent < len(payload):
                sent += conn.write(view[sent:], timeout)
            console.print(f"sent {sent} bytes from {conn.local_addr}")
    except TransportError as e:
        raise click.ClickException(str(e)) from e


def main() -> None:
    """Main entry point."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
