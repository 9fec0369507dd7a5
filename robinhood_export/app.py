"""Typer CLI entrypoint for robinhood-export."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer
import yaml
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.table import Table

from .api import RobinhoodClient
from .config import ConfigRepository, ExportConfig
from .engine import CancelToken, ConcurrentFetcher
from .errors import RobinhoodExportError
from .exporter import SUPPORTED_FORMATS
from .logging_conf import ERROR_LOG, EXPORT_LOG, configure_logging, tail_log
from .pipeline import Exporter, ExportKind, ExportSummary

app = typer.Typer(
    help="Export Robinhood positions and orders to flat files.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
export_app = typer.Typer(name="export", help="Run an export.", no_args_is_help=True, rich_markup_mode=None)
config_app = typer.Typer(
    name="config", help="Inspect or change the configuration.", no_args_is_help=True, rich_markup_mode=None
)
log_app = typer.Typer(name="log", help="Inspect log files.", no_args_is_help=True, rich_markup_mode=None)
app.add_typer(export_app)
app.add_typer(config_app)
app.add_typer(log_app)

console = Console()

SETTABLE_KEYS = ("max_concurrency", "output_format", "include_closed_positions", "api.base_url", "api.timeout")


@dataclass
class AppState:
    repository: ConfigRepository
    config: ExportConfig
    client: RobinhoodClient
    exporter: Exporter


def build_state(verbose: bool, max_concurrency: int | None = None) -> AppState:
    repository = ConfigRepository()
    config = repository.load_config()
    if max_concurrency is not None:
        config = config.model_copy(update={"max_concurrency": max_concurrency})
    logger = configure_logging(verbose=verbose, log_dir=repository.locator.logs_dir)
    client = RobinhoodClient(config.api, logger=logger.bind(component="api"))
    fetcher = ConcurrentFetcher(config.max_concurrency, name="details")
    exporter = Exporter(client, config, fetcher=fetcher, logger=logger.bind(component="pipeline"))
    return AppState(repository=repository, config=config, client=client, exporter=exporter)


def _mask(token: str | None) -> str:
    if not token:
        return "(not set)"
    return f"{token[:4]}…{token[-2:]}" if len(token) > 8 else "****"


def _render_summary(summary: ExportSummary) -> Table:
    table = Table(title="Export result", box=box.SIMPLE_HEAD)
    table.add_column("Kind", style="cyan")
    table.add_column("Rows", justify="right", style="green")
    table.add_column("File")
    table.add_row(summary.kind, str(summary.rows), str(summary.path))
    return table


def _run_export(
    kind: ExportKind,
    fmt: Optional[str],
    output_dir: Optional[Path],
    max_concurrency: Optional[int],
    verbose: bool,
) -> None:
    if fmt is not None and fmt not in SUPPORTED_FORMATS:
        raise typer.BadParameter(f"format must be one of {', '.join(SUPPORTED_FORMATS)}", param_hint="--format")
    if max_concurrency is not None and max_concurrency < 1:
        raise typer.BadParameter("must be >= 1", param_hint="--max-concurrency")
    state = build_state(verbose, max_concurrency)
    target_dir = output_dir or state.repository.outputs_dir(state.config)
    token = CancelToken()
    try:
        summary = state.exporter.export(kind, target_dir, fmt=fmt, token=token)
    except KeyboardInterrupt:
        token.cancel()
        console.print("Export interrupted.", style="yellow")
        raise typer.Exit(code=130)
    except RobinhoodExportError as exc:
        console.print(f"Export failed: {exc}", style="red")
        raise typer.Exit(code=1)
    finally:
        state.client.close()
    console.print(_render_summary(summary))


FormatOption = typer.Option(None, "--format", "-f", help="Output format: csv or json.")
OutputDirOption = typer.Option(None, "--output-dir", "-o", help="Directory for the export file.")
ConcurrencyOption = typer.Option(None, "--max-concurrency", "-c", help="Parallel detail requests.")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Enable debug logging.")


@export_app.command("positions", help="Export current positions with instrument and market details.")
def export_positions(
    fmt: Optional[str] = FormatOption,
    output_dir: Optional[Path] = OutputDirOption,
    max_concurrency: Optional[int] = ConcurrencyOption,
    verbose: bool = VerboseOption,
) -> None:
    _run_export("positions", fmt, output_dir, max_concurrency, verbose)


@export_app.command("orders", help="Export order history with instrument and market details.")
def export_orders(
    fmt: Optional[str] = FormatOption,
    output_dir: Optional[Path] = OutputDirOption,
    max_concurrency: Optional[int] = ConcurrencyOption,
    verbose: bool = VerboseOption,
) -> None:
    _run_export("orders", fmt, output_dir, max_concurrency, verbose)


@config_app.command("show", help="Print the effective configuration.")
def config_show() -> None:
    repository = ConfigRepository()
    config = repository.load_config()
    payload = config.model_dump(mode="json")
    payload["api"]["access_token"] = _mask(config.api.access_token)
    console.print(f"# {repository.locator.config_path()}", style="dim")
    console.print(yaml.safe_dump(payload, sort_keys=False, allow_unicode=True).rstrip(), markup=False)


@config_app.command("set", help="Change a single configuration value.")
def config_set(
    key: str = typer.Argument(..., help=f"One of: {', '.join(SETTABLE_KEYS)}"),
    value: str = typer.Argument(...),
) -> None:
    if key not in SETTABLE_KEYS:
        raise typer.BadParameter(f"unknown key, expected one of {', '.join(SETTABLE_KEYS)}", param_hint="KEY")
    repository = ConfigRepository()
    payload = repository.load_config().model_dump(mode="json")
    section, _, field = key.rpartition(".")
    target = payload[section] if section else payload
    target[field] = value
    try:
        config = ExportConfig.model_validate(payload)
    except ValidationError as exc:
        console.print(f"Invalid value for {key}: {exc.errors()[0]['msg']}", style="red")
        raise typer.Exit(code=1)
    repository.save_config(config)
    console.print(f"{key} = {value}", style="green")


@log_app.command("tail", help="Show the last lines of a log file.")
def log_tail(
    lines: int = typer.Option(50, "--lines", "-n", help="Number of lines."),
    errors: bool = typer.Option(False, "--errors", help="Show error.log instead of export.log."),
) -> None:
    repository = ConfigRepository()
    path = repository.locator.logs_dir / (ERROR_LOG if errors else EXPORT_LOG)
    content = tail_log(path, lines)
    if not content:
        console.print("No log entries yet.", style="dim")
        return
    console.print(f"{path.name} · last {len(content)} lines", style="cyan")
    console.print("".join(content), markup=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
