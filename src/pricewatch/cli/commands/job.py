"""
Job commands for running price surveys.
"""

from __future__ import annotations

import asyncio
import csv
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from pricewatch.core.jobs.models import JobStatus, ProgressEvent, ScrapingResult

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Run and validate price survey jobs",
    no_args_is_help=True,
)

EXPORT_COLUMNS = [
    "product_id",
    "product_name",
    "brand",
    "store_name",
    "found_product_name",
    "price",
    "currency",
    "availability",
    "is_exact_match",
    "replacement_description",
    "error_message",
    "attempts",
]


def _load_inputs(stores_csv: Path, products_csv: Path):
    """Load both CSV files, exiting with every validation issue on failure."""
    from pricewatch.core.ingest import CsvValidationError, load_products_csv, load_stores_csv

    failed = False
    stores = products = []

    for label, loader, path in (
        ("stores", load_stores_csv, stores_csv),
        ("products", load_products_csv, products_csv),
    ):
        try:
            items = loader(path)
        except CsvValidationError as e:
            failed = True
            err_console.print(f"[red]Invalid {label} file:[/red] {e.source}")
            for issue in e.issues:
                err_console.print(f"  [dim]-[/dim] {issue}")
            continue

        if label == "stores":
            stores = items
        else:
            products = items

    if failed:
        raise typer.Exit(1)

    return stores, products


def _load_config(config_path: Optional[Path]):
    from pricewatch.core.config import ConfigError, load_app_config

    try:
        return load_app_config(config_path)
    except ConfigError as e:
        err_console.print(f"[red]Error loading config:[/red] {e}")
        raise typer.Exit(1)


@app.command("validate")
def validate_inputs(
    stores_csv: Path = typer.Argument(..., help="Stores CSV (StoreName, Website URL)"),
    products_csv: Path = typer.Argument(..., help="Products CSV (ProductId, ProductName, Description, Brand)"),
) -> None:
    """Validate store and product CSV files without running a job."""
    stores, products = _load_inputs(stores_csv, products_csv)

    console.print(f"[green]OK[/green] {len(stores)} stores, {len(products)} products")
    console.print(f"[dim]A job would run {len(stores) * len(products)} lookups[/dim]")


@app.command("run")
def run_job(
    stores_csv: Path = typer.Argument(..., help="Stores CSV (StoreName, Website URL)"),
    products_csv: Path = typer.Argument(..., help="Products CSV (ProductId, ProductName, Description, Brand)"),
    mode: Optional[str] = typer.Option(
        None,
        "--mode",
        "-m",
        help="Lookup mode (synthetic, http, playwright)",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to app.yaml",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Export results to this file",
    ),
    format: str = typer.Option(
        "csv",
        "--format",
        "-f",
        help="Export format (csv, json)",
    ),
    no_delay: bool = typer.Option(
        False,
        "--no-delay",
        help="Disable pauses between stores and products",
    ),
) -> None:
    """Run a price survey over every store and product.

    Examples:
        pricewatch job run stores.csv products.csv
        pricewatch job run stores.csv products.csv --mode http -o results.csv
        pricewatch job run stores.csv products.csv --no-delay --format json -o results.json
    """
    from pricewatch.core.config import LookupMode
    from pricewatch.core.fetch.throttling import Pacer, PacingPolicy
    from pricewatch.core.logging import setup_logging

    if format not in ("csv", "json"):
        err_console.print(f"[red]Unknown format:[/red] {format}")
        err_console.print("[dim]Supported: csv, json[/dim]")
        raise typer.Exit(1)

    config = _load_config(config_path)

    if mode:
        try:
            config.lookup.mode = LookupMode(mode)
        except ValueError:
            err_console.print(f"[red]Unknown lookup mode:[/red] {mode}")
            raise typer.Exit(1)

    setup_logging(
        level=config.logging.level,
        log_file=config.logging.file,
        json_format=config.logging.json_format,
        rich_console=config.logging.rich_console,
    )

    stores, products = _load_inputs(stores_csv, products_csv)

    pacer_factory = (lambda: Pacer(PacingPolicy.disabled())) if no_delay else None

    console.print()
    console.print(
        f"[bold]Surveying {len(products)} products across {len(stores)} stores[/bold] "
        f"[dim](mode: {config.lookup.mode.value})[/dim]"
    )
    console.print()

    job_status, results, error = asyncio.run(
        _run_with_progress(config, stores, products, pacer_factory)
    )

    console.print()
    if job_status != JobStatus.COMPLETED:
        err_console.print(f"[red]Job failed:[/red] {error}")
        raise typer.Exit(1)

    _show_results(results)

    if output:
        _export(results, output, format)
        console.print(f"[green]Exported {len(results)} results to[/green] {output}")


async def _run_with_progress(config, stores, products, pacer_factory):
    """Run one job and render its progress events."""
    from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn

    from pricewatch.core.orchestrator import JobService

    service = JobService(config, pacer_factory=pacer_factory)
    job = service.create_job(stores, products)

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        bar = progress.add_task("[cyan]Starting...[/cyan]", total=100)

        def on_event(event: ProgressEvent) -> None:
            style = "red" if event.status == JobStatus.FAILED else "cyan"
            progress.update(
                bar,
                completed=event.percent,
                description=f"[{style}]{event.message}[/{style}]",
            )

        service.add_listener(job.job_id, on_event)
        service.start(job.job_id)
        snapshot = await service.wait(job.job_id)

    results = service.get_results(job.job_id) if snapshot.status == JobStatus.COMPLETED else []
    return snapshot.status, results, snapshot.error


def _show_results(results: list[ScrapingResult]) -> None:
    """Show a table of job results."""
    table = Table(title="Survey Results", show_header=True, header_style="bold magenta")

    table.add_column("Product", style="cyan")
    table.add_column("Store")
    table.add_column("Found")
    table.add_column("Price", justify="right")
    table.add_column("Availability")
    table.add_column("Exact", justify="center")

    for result in results:
        if result.failed:
            found = f"[red]{result.error_message}[/red]"
        else:
            found = result.found_product_name or f"[dim]{result.replacement_description or '-'}[/dim]"

        price = f"{result.price:.2f} {result.currency or ''}".strip() if result.price is not None else "-"
        exact = "[green]yes[/green]" if result.is_exact_match else "[dim]no[/dim]"

        table.add_row(
            result.product_name,
            result.store_name,
            found,
            price,
            result.availability or "-",
            exact,
        )

    console.print(table)

    failed = sum(1 for r in results if r.failed)
    if failed:
        console.print(f"[yellow]{failed} lookups failed after retries[/yellow]")


def _export(results: list[ScrapingResult], path: Path, format: str) -> None:
    """Write results as CSV or JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    rows = [result.to_dict() for result in results]

    if format == "json":
        path.write_text(json.dumps(rows, indent=2), encoding="utf-8")
        return

    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=EXPORT_COLUMNS)
        writer.writeheader()
        for row in rows:
            writer.writerow({key: "" if row[key] is None else row[key] for key in EXPORT_COLUMNS})
