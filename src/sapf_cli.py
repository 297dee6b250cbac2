#!/usr/bin/env python3

"""Interactive command-line front end for a sapf session."""

import dataclasses
import shlex
from typing import Optional

import click
from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from .config import get_config
from .logging_config import get_logger, setup_logging
from .sapf_server import SAPFError, SAPFServer

console = Console()
logger = get_logger(__name__)


def print_help():
    """Print available commands."""
    help_text = """
[bold]Available Commands:[/bold]

    [yellow]help[/yellow] - Show this help message
    [yellow]midi_start[/yellow] - Start sapf's MIDI client and load the device table
    [yellow]midi_connect_input [device][/yellow] - Connect a device to sapf's input (default: sapf)
    [yellow]play_midi_file <path>[/yellow] - Load the synth program and play a MIDI file
    [yellow]devices[/yellow] - Show the MIDI device table
    [yellow]quit[/yellow] - Shut down sapf and exit

[bold]Anything else[/bold] is sent to sapf verbatim, for example:
    [cyan]5 4 *[/cyan]
    [cyan]60 nnhz 0 sinosc 0.2 * play[/cyan]
    [cyan]stop[/cyan]
    """
    console.print(help_text)


def print_devices(server: SAPFServer) -> None:
    """Print the device table."""
    devices = server.get_devices()
    if not devices:
        console.print("[yellow]No devices known; run midi_start first[/yellow]")
        return

    table = Table(title="MIDI Devices")
    table.add_column("Name", style="cyan")
    table.add_column("Device", justify="right")
    table.add_column("UID", justify="right")
    for name, record in devices.items():
        table.add_row(name, str(record.dev), str(record.uid))
    console.print(table)


def handle_midi_start(server: SAPFServer, args: str) -> None:
    """Handle the midi_start command."""
    result = server.midi_start()
    console.print(f"[green]MIDI started, {len(result.devices)} devices found[/green]")


def handle_connect_input(server: SAPFServer, args: str) -> None:
    """Handle the midi_connect_input command.

    Args:
        server: The running session.
        args: Optional device name.
    """
    device = args.strip() or "sapf"
    server.connect_input(device)
    console.print(f"[green]Connected '{device}' to sapf's input[/green]")


def handle_play_midi_file(server: SAPFServer, args: str) -> None:
    """Handle the play_midi_file command.

    Args:
        server: The running session.
        args: Path of the MIDI file, quoted if it contains spaces.
    """
    parts = shlex.split(args)
    if len(parts) != 1:
        console.print("[red]Usage: play_midi_file <path>[/red]")
        return
    sent = server.play(parts[0])
    console.print(f"[green]Played {parts[0]} ({sent} messages)[/green]")


def handle_command(server: SAPFServer, line: str) -> Optional[bool]:
    """Handle a single input line.

    Args:
        server: The running session.
        line: The line as typed.

    Returns:
        True if should exit, None otherwise.
    """
    command, _, args = line.partition(" ")

    if command == "quit":
        returncode = server.quit()
        console.print(f"[blue]sapf exited with status {returncode}[/blue]")
        return True

    command_handlers = {
        "help": lambda: print_help(),
        "devices": lambda: print_devices(server),
        "midi_start": lambda: handle_midi_start(server, args),
        "midi_connect_input": lambda: handle_connect_input(server, args),
        "play_midi_file": lambda: handle_play_midi_file(server, args),
    }

    handler = command_handlers.get(command)
    if handler:
        handler()
    else:
        server.submit(line)

    return None


@click.command()
@click.option("--sapf-command", help="Command line that starts sapf.")
@click.option(
    "--quiescence-ms",
    type=click.FloatRange(min=0, min_open=True),
    help="Silence after which a response is considered complete.",
)
@click.option(
    "--log-file",
    default="sapf_server.log",
    show_default=True,
    help="Rotating log file.",
)
@click.option("--no-log-file", is_flag=True, help="Log to the console only.")
@click.option("--debug", is_flag=True, help="Enable debug logging for the session.")
def main(
    sapf_command: Optional[str],
    quiescence_ms: Optional[float],
    log_file: str,
    no_log_file: bool,
    debug: bool,
):
    """Interactive shell for Sound as Pure Form."""
    setup_logging(log_file=None if no_log_file else log_file, debug=debug or None)

    session_config = get_config().session
    overrides = {}
    if sapf_command:
        overrides["command"] = shlex.split(sapf_command)
    if quiescence_ms is not None:
        overrides["quiescence_ms"] = quiescence_ms
    if overrides:
        session_config = dataclasses.replace(session_config, **overrides)

    server = SAPFServer(
        config=session_config,
        output=lambda line: console.print(line, markup=False, highlight=False),
    )
    try:
        server.start()
    except SAPFError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    console.print("[bold blue]Welcome to SAPF Server[/bold blue]")
    console.print("Type 'help' for available commands or 'quit' to exit")

    try:
        while server.is_running:
            try:
                line = Prompt.ask("[bold green]SAPF>[/bold green]").strip()
                if not line:
                    continue
                if handle_command(server, line):
                    break
            except KeyboardInterrupt:
                console.print("\n[yellow]Use 'quit' to exit[/yellow]")
            except EOFError:
                break
            except (SAPFError, KeyError, FileNotFoundError, ValueError) as e:
                console.print(f"[red]Error: {e}[/red]")
                logger.debug("Command failed", exc_info=True)
    finally:
        server.close()
        console.print("[blue]Goodbye![/blue]")


if __name__ == "__main__":
    main()
