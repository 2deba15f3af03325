"""Command-line interface for wirecraft code generation."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from wirecraft.config import settings
from wirecraft.generator import python
from wirecraft.generator.compiler import compile_protocol
from wirecraft.generator.coordinator import Coordinator
from wirecraft.generator.errors import ValidationError, WirecraftError
from wirecraft.generator.grammar import FieldSegment
from wirecraft.generator.loader import load_file
from wirecraft.generator.machine import ExpectDelimiter, ExpectFixed, Terminal
from wirecraft.logging import setup_logging

if TYPE_CHECKING:
    from wirecraft.generator.compiler import CompiledProtocol
    from wirecraft.generator.machine import ParserState

err_console = Console(stderr=True)


def _fail(error: Exception) -> None:
    err_console.print(f"[bold red]error:[/bold red] {escape(str(error))}", highlight=False)
    if isinstance(error, ValidationError):
        for diagnostic in error.diagnostics:
            if not diagnostic.is_error:
                err_console.print(f"  {diagnostic}", markup=False, highlight=False)
    sys.exit(1)


@click.group()
@click.option("--log-level", default=None, help="Log level (default: WIRECRAFT_LOG_LEVEL or WARNING)")
def cli(log_level: str | None) -> None:
    """wirecraft text protocol compiler."""
    setup_logging(log_level or settings.log_level)


@cli.command()
@click.option(
    "--language",
    "-l",
    "languages",
    multiple=True,
    help="Target language (python, typescript, go, rust). Repeatable; default: all",
)
@click.option("--input", "-i", "input_file", required=True, help="Input protocol spec (JSON)")
@click.option("--output", "-o", "output_path", default=None, help="Output directory")
@click.option(
    "--runtime-import",
    "runtime_import",
    default=None,
    help="Import path of the Python runtime (default: wirecraft.proto)",
)
@click.option("--serial", is_flag=True, default=False, help="Generate languages one after another")
def gen(
    languages: tuple[str, ...],
    input_file: str,
    output_path: str | None,
    runtime_import: str | None,
    serial: bool,
) -> None:
    """Generate parsers, serializers, clients and tests from a spec file."""
    coordinator = Coordinator(
        parallel=settings.parallel and not serial,
        max_workers=settings.max_workers,
        runtime_import=runtime_import or settings.runtime_import,
    )
    try:
        spec = load_file(input_file)
        result = coordinator.generate(spec, languages or settings.languages)
    except WirecraftError as e:
        _fail(e)
        return

    out_dir = Path(output_path) if output_path else settings.output_dir
    console = Console()
    for language, artifacts in result.artifacts.items():
        target = out_dir / language
        target.mkdir(parents=True, exist_ok=True)
        for filename, content in artifacts.files.items():
            (target / filename).write_text(content, encoding="utf-8")
        console.print(
            f"[green]{language}[/green]: {len(artifacts.files)} files in {target} "
            f"({artifacts.generation_time_ms:.1f} ms)"
        )

    warnings = sorted({w for artifacts in result.artifacts.values() for w in artifacts.warnings})
    for warning in warnings:
        err_console.print(f"[yellow]warning:[/yellow] {escape(warning)}", highlight=False)

    for language, error in result.errors.items():
        err_console.print(f"[bold red]error:[/bold red] {language}: {escape(str(error.cause))}", highlight=False)
    if not result.ok:
        sys.exit(1)


@cli.command()
@click.option("--language", "-l", default="python", help="Target language (python only)")
@click.option("--output", "-o", "output_path", default=".", help="Output directory")
@click.option("--name", default="wirecraft_runtime", help="Runtime folder name")
def runtime(language: str, output_path: str, name: str) -> None:
    """Generate runtime support code."""
    if language != "python":
        print(f"No runtime package for language: {language}")
        sys.exit(1)

    runtime_dir = Path(output_path) / name
    runtime_dir.mkdir(parents=True, exist_ok=True)
    for filename, content in python.runtime().items():
        (runtime_dir / filename).write_text(content, encoding="utf-8")
    print(f"Generated Python runtime in {runtime_dir}")


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input protocol spec (JSON)")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(input_file: str, output_json: bool) -> None:
    """Display message types, their segments and parser states."""
    try:
        protocol = compile_protocol(load_file(input_file))
    except WirecraftError as e:
        _fail(e)
        return

    if output_json:
        _output_json(protocol)
    else:
        _output_plain(protocol)


def _describe_state(state: ParserState) -> str:
    """One-line summary of a parser state."""
    if isinstance(state, ExpectFixed):
        return json.dumps(state.literal)
    if isinstance(state, ExpectDelimiter):
        return json.dumps(state.delimiter)
    if isinstance(state, Terminal):
        return json.dumps(state.terminator) if state.terminator else "end"
    extraction = state.extraction
    if extraction.length is not None:
        return f"{extraction.termination} ({extraction.length} bytes)"
    if extraction.stops:
        return f"{extraction.termination} {', '.join(json.dumps(s) for s in extraction.stops)}"
    return str(extraction.termination)


def _describe_segments(segments) -> str:
    return "".join(
        f"{{{segment.field.name}}}" if isinstance(segment, FieldSegment) else json.dumps(segment.text)[1:-1]
        for segment in segments
    )


def _output_json(protocol: CompiledProtocol) -> None:
    """Output protocol info as JSON."""
    spec = protocol.spec
    data: dict = {
        "protocol": {
            "name": spec.protocol.name,
            "port": spec.protocol.port,
            "transport": str(spec.connection.transport),
        },
        "messages": {},
        "diagnostics": [str(d) for d in protocol.diagnostics],
    }

    for message in protocol.messages:
        data["messages"][message.name] = {
            "direction": str(message.message.direction),
            "fields": [f.name for f in message.fields],
            "states": [{"state": s.label, "detail": _describe_state(s)} for s in message.states],
            "roundTrip": message.skip_reason is None,
        }

    print(json.dumps(data, indent=2))


def _output_plain(protocol: CompiledProtocol) -> None:
    """Output protocol info using rich text formatting."""
    console = Console()
    spec = protocol.spec

    console.print("[bold cyan]Protocol[/bold cyan]")
    proto_table = Table(show_header=False, box=None, padding=(0, 2, 0, 2))
    proto_table.add_column("Label", style="dim")
    proto_table.add_column("Value", style="white")
    proto_table.add_row("Name", escape(spec.protocol.name))
    proto_table.add_row("Port", str(spec.protocol.port))
    proto_table.add_row("Transport", str(spec.connection.transport))
    proto_table.add_row("Keep alive", "yes" if spec.connection.keep_alive else "no")
    console.print(proto_table)
    console.print()

    for message in protocol.messages:
        console.print(f"[bold cyan]{escape(message.name)}[/bold cyan] [dim]({message.message.direction})[/dim]")
        console.print(f"  {_describe_segments(message.segments)}", markup=False, highlight=False)

        state_table = Table(show_header=True, box=None, padding=(0, 2, 0, 2))
        state_table.add_column("State", style="white")
        state_table.add_column("Detail", style="yellow")
        for state in message.states:
            state_table.add_row(state.label, escape(_describe_state(state)))
        console.print(state_table)
        if message.skip_reason:
            console.print(f"  [dim]round-trip tests skipped: {escape(message.skip_reason)}[/dim]")
        console.print()

    if protocol.diagnostics:
        console.print("[bold cyan]Diagnostics[/bold cyan]")
        for diagnostic in protocol.diagnostics:
            console.print(f"  {diagnostic}", markup=False, highlight=False)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
