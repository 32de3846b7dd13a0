"""
PriceWatch CLI - Main entry point.

A terminal-first price survey tool: look up a product list across a set
of store websites and export the prices found.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.traceback import install as install_rich_traceback

from pricewatch import __app_name__, __version__

# Load environment variables from .env (if present)
load_dotenv()

# Install rich traceback for better error display
install_rich_traceback(show_locals=False, width=120)

# Force UTF-8 on Windows to avoid encoding issues
if sys.platform == "win32":
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")
    for stream in (sys.stdout, sys.stderr):
        if hasattr(stream, "reconfigure"):
            try:
                stream.reconfigure(encoding="utf-8", errors="replace")
            except (AttributeError, OSError):
                pass

console = Console()
err_console = Console(stderr=True)

# Create main app
app = typer.Typer(
    name=__app_name__,
    help="Terminal-first store price survey tool",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """PriceWatch - Store price survey tool."""
    pass


# =============================================================================
# Import and register subcommand modules
# =============================================================================

from .commands import config, job  # noqa: E402

app.add_typer(job.app, name="job", help="Run and validate price survey jobs")
app.add_typer(config.app, name="config", help="Show and validate configuration")


# =============================================================================
# Init Command
# =============================================================================


DEFAULT_APP_CONFIG = """\
# PriceWatch Configuration
# Values support ${VAR:-default} expansion. Environment variables such as
# DELAY_BETWEEN_STORES_MS or LOOKUP_MODE override these settings.

scraping:
  max_concurrent_jobs: 2
  inter_store_delay_ms: 5000
  inter_product_delay_ms: 2000
  per_task_timeout_ms: 30000
  max_retries: 3
  retry_initial_delay_ms: 1000
  retry_backoff_multiplier: 2.0
  retry_max_delay_ms: 30000
  retry_jitter: false
  pacing_jitter: symmetric
  jitter_fraction: 0.25
  additive_jitter_ms: 500

lookup:
  mode: synthetic  # synthetic, http, playwright
  search_path: "/search?q={query}"
  exact_match_threshold: 90
  min_match_score: 60
  default_currency: NZD

playwright:
  browser: chromium
  headless: true
  viewport_width: 1920
  viewport_height: 1080
  stealth: true

logging:
  level: INFO
  file: logs/pricewatch.log
  json_format: true
  rich_console: true
"""


@app.command()
def init(
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Overwrite existing configuration",
    ),
) -> None:
    """Initialize PriceWatch configuration.

    Creates the configs/, data/ and logs/ directories and a default
    configs/app.yaml.
    """
    for dir_path in (Path("configs"), Path("data"), Path("logs")):
        dir_path.mkdir(parents=True, exist_ok=True)

    app_config_path = Path("configs/app.yaml")
    if app_config_path.exists() and not force:
        console.print(f"[yellow]{app_config_path} already exists (use --force to overwrite)[/yellow]")
    else:
        app_config_path.write_text(DEFAULT_APP_CONFIG, encoding="utf-8")

    console.print()
    console.print(Panel.fit(
        "[bold green]OK - PriceWatch initialized successfully![/bold green]\n\n"
        "Created:\n"
        "  - [cyan]configs/app.yaml[/cyan] - Application configuration\n"
        "  - [cyan]data/[/cyan] - Input and export files\n"
        "  - [cyan]logs/[/cyan] - Log files\n\n"
        "Next steps:\n"
        "  1. Check inputs: [yellow]pricewatch job validate stores.csv products.csv[/yellow]\n"
        "  2. Run a survey: [yellow]pricewatch job run stores.csv products.csv -o data/results.csv[/yellow]",
        title="[bold]Initialization Complete[/bold]",
        border_style="green",
    ))


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    run()
