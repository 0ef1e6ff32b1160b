"""Command line interface.

CLI module using Typer with Rich-formatted output for the discover and validate
commands.
"""

# ruff: noqa: B008

import asyncio
import sys
from pathlib import Path
from typing import Literal, cast

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.traceback import install as install_rich_traceback

from lighterceptor import __version__
from lighterceptor.config import LighterceptorConfig, load_config
from lighterceptor.engine import Lighterceptor
from lighterceptor.exceptions import ConfigError, LighterceptorError
from lighterceptor.outputs import write_result
from lighterceptor.types import DiscoveryResult

install_rich_traceback(show_locals=False)

console = Console()

app = typer.Typer(
    name="lighterceptor",
    help="Lighterceptor - discover every request HTML, CSS or JavaScript would issue",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"Lighterceptor version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Lighterceptor - discover every request HTML, CSS or JavaScript would issue."""
    pass


def _read_input(source: str) -> str:
    """Read input text from a file path, or stdin for '-'."""
    if source == "-":
        return sys.stdin.read()

    path = Path(source)
    if not path.is_file():
        raise LighterceptorError(f"Input file not found: {source}")
    return path.read_text(encoding="utf-8")


def _print_requests(result: DiscoveryResult) -> None:
    table = Table(title=f"Requests ({result.input_type} input)")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Source", style="cyan", no_wrap=True)
    table.add_column("URL", style="white", overflow="fold")

    for index, record in enumerate(result.requests, start=1):
        table.add_row(str(index), record.source, escape(record.url))

    console.print(table)


@app.command()
def discover(
    source: str = typer.Argument(
        ...,
        help="Input file containing HTML, CSS or JavaScript ('-' reads stdin)",
    ),
    input_type: str | None = typer.Option(
        None,
        "--type",
        "-t",
        help="Force input type: html, css or js (default: auto-detect)",
    ),
    recursion: bool | None = typer.Option(
        None,
        "--recursion/--no-recursion",
        "-r",
        help="Fetch and analyze discovered sub-resources recursively",
    ),
    settle_ms: int | None = typer.Option(
        None,
        "--settle-ms",
        help="Wait after rendering before harvesting (default: 50)",
        min=0,
    ),
    base_url: str | None = typer.Option(
        None,
        "--base-url",
        help="Base URL for resolving relative references",
    ),
    environment: str | None = typer.Option(
        None,
        "--environment",
        "-e",
        help="Rendering environment: static or playwright",
    ),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML config file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Path of the JSON result file (default: lighterceptor.requests.json)",
    ),
    no_write: bool = typer.Option(
        False,
        "--no-write",
        help="Print the requests without writing a result file",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Verbose logging",
    ),
) -> None:
    """Discover the requests an input would issue and write them as JSON.

    Command-line options override values from --config.
    """
    from lighterceptor.utils import setup_logging

    setup_logging(verbose=verbose)

    try:
        lc_config = load_config(config) if config else LighterceptorConfig()

        overrides: dict[str, object] = {}
        if input_type is not None:
            overrides["input_type"] = input_type
        if recursion is not None:
            overrides["recursion"] = recursion
        if settle_ms is not None:
            overrides["settle_time_ms"] = settle_ms
        if base_url is not None:
            overrides["base_url"] = base_url
        if overrides:
            lc_config = _apply_overrides(lc_config, overrides)
        if environment is not None:
            if environment not in ("static", "playwright"):
                raise ConfigError(
                    f"Unknown environment: {environment!r}. Use 'static' or 'playwright'."
                )
            lc_config.environment.backend = cast("Literal['static', 'playwright']", environment)

        text = _read_input(source)
        result = asyncio.run(Lighterceptor(text, lc_config).run())

        _print_requests(result)
        if result.title:
            console.print(f"[cyan]Title:[/cyan] {escape(result.title)}")

        if not no_write:
            destination = output or Path(lc_config.output.path)
            written = asyncio.run(write_result(result, destination, lc_config.output.indent))
            console.print(f"[green]Wrote {len(result.requests)} requests to[/green] {written}")

    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(code=1) from None

    except LighterceptorError as e:
        console.print(f"[red]Discovery failed:[/red] {e}")
        if verbose:
            console.print_exception()
        raise typer.Exit(code=1) from None

    except KeyboardInterrupt:
        console.print("\n[yellow]Discovery interrupted by user[/yellow]")
        raise typer.Exit(code=130) from None


def _apply_overrides(
    config: LighterceptorConfig, overrides: dict[str, object]
) -> LighterceptorConfig:
    """Revalidate a config with command-line overrides applied."""
    try:
        return LighterceptorConfig.model_validate({**config.model_dump(), **overrides})
    except ValidationError as e:
        raise ConfigError(f"Invalid option:\n{e}") from e


@app.command()
def validate(
    config_path: Path = typer.Argument(
        ...,
        help="Path to YAML config file to validate",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
) -> None:
    """Validate a Lighterceptor configuration file.

    Checks YAML syntax and validates all configuration fields against
    the schema. Displays detailed error messages if validation fails.
    """
    try:
        console.print(f"[cyan]Validating configuration:[/cyan] {config_path}")

        lc_config = load_config(config_path)

        console.print("[green][OK] Configuration is valid![/green]\n")

        table = Table(title="Configuration Summary")
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="white")

        table.add_row("Input Type", lc_config.input_type or "auto")
        table.add_row("Recursion", "Yes" if lc_config.recursion else "No")
        table.add_row("Settle Time", f"{lc_config.settle_time_ms} ms")
        table.add_row("Base URL", lc_config.base_url or "[dim]none[/dim]")
        table.add_row("Environment", lc_config.environment.backend)
        table.add_row("HTTP Cache", "Yes" if lc_config.http.cache.enabled else "No")
        table.add_row("Output", lc_config.output.path)

        console.print(table)

    except ConfigError as e:
        console.print("[red][FAIL] Configuration validation failed:[/red]\n")
        console.print(str(e))
        raise typer.Exit(code=1) from None


if __name__ == "__main__":
    app()
