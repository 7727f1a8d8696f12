"""versiontracker CLI."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from versiontracker.pipeline.fetch_flow import fetch_and_persist
from versiontracker.pipeline.orchestrator import run_pipeline
from versiontracker.pipeline.static_api import build_api_flow
from versiontracker.settings import Settings
from versiontracker.sources.registry import build_registry
from versiontracker.storage.dataset import load_dataset

app = typer.Typer(help="Incremental software release tracker and static API builder")
console = Console()


def _settings_from_args(
    output_dir: Path | None = None,
    api_dir: Path | None = None,
    delay: float | None = None,
    probe_sizes: bool | None = None,
) -> Settings:
    settings = Settings()
    if output_dir is not None:
        settings.output_dir = output_dir
    if api_dir is not None:
        settings.api_dir = api_dir
    if delay is not None:
        settings.inter_software_delay = delay
    if probe_sizes is not None:
        settings.probe_sizes = probe_sizes
    return settings


@app.callback()
def main(
    log_level: str = typer.Option("INFO", "--log-level", help="Loguru level for stderr output"),
) -> None:
    """Configure logging for every command."""

    logger.remove()
    logger.add(sys.stderr, level=log_level.upper())


@app.command("fetch")
def fetch(
    output_dir: Path = typer.Option(Path("./versions"), "--output-dir"),
    only: list[str] = typer.Option([], "--only", help="Fetch only the named software (repeatable)"),
    delay: float = typer.Option(0.2, "--delay", min=0.0, help="Seconds to wait between software"),
    probe_sizes: bool = typer.Option(True, "--probe-sizes/--no-probe-sizes"),
) -> None:
    """Fetch new releases for every tracked software and persist the merged dataset."""

    settings = _settings_from_args(output_dir=output_dir, delay=delay, probe_sizes=probe_sizes)
    try:
        report = asyncio.run(fetch_and_persist(settings, only=only or None))
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    console.print(
        f"fetch complete: merged={report.merged} failed={report.failed} added={report.added} "
        f"dataset={settings.dataset_path}"
    )


@app.command("build-api")
def build_api(
    output_dir: Path = typer.Option(Path("./versions"), "--output-dir"),
    api_dir: Path = typer.Option(Path("./docs/api/v1"), "--api-dir"),
    pretty: bool = typer.Option(False, "--pretty", help="Indent JSON instead of minifying"),
) -> None:
    """Generate the static JSON API tree from the persisted dataset."""

    settings = _settings_from_args(output_dir=output_dir, api_dir=api_dir)
    if pretty:
        settings.minify_json = False
    try:
        result = build_api_flow.fn(settings)
    except FileNotFoundError as exc:
        raise typer.BadParameter(f"{exc}. Run `versiontracker fetch` first.") from exc
    console.print(result)


@app.command("run")
def run(
    output_dir: Path = typer.Option(Path("./versions"), "--output-dir"),
    api_dir: Path = typer.Option(Path("./docs/api/v1"), "--api-dir"),
    only: list[str] = typer.Option([], "--only"),
) -> None:
    """Run fetch + static API build under the pipeline lock."""

    settings = _settings_from_args(output_dir=output_dir, api_dir=api_dir)
    result = asyncio.run(run_pipeline(settings, only=only or None))
    console.print(result)


@app.command("summary")
def summary(
    output_dir: Path = typer.Option(Path("./versions"), "--output-dir"),
) -> None:
    """Show the latest version of every tracked software."""

    settings = _settings_from_args(output_dir=output_dir)
    dataset = load_dataset(settings.dataset_path)
    table = Table(title=f"Tracked software ({dataset.total_software})")
    table.add_column("Category")
    table.add_column("Software")
    table.add_column("Latest")
    table.add_column("Versions", justify="right")
    table.add_column("Last error")
    for category, name, entry in dataset.iter_entries():
        latest = entry.latest.version if entry.latest is not None else "-"
        table.add_row(category, name, latest, str(entry.total_versions), entry.last_error or "")
    console.print(table)


@app.command("list-sources")
def list_sources() -> None:
    """List the tracked software registry in fetch order."""

    table = Table(title="Registry")
    table.add_column("Software")
    table.add_column("Category")
    table.add_column("Source")
    table.add_column("Website")
    for software in build_registry():
        table.add_row(software.name, software.category, software.provider.label, software.website)
    console.print(table)


if __name__ == "__main__":
    app()
