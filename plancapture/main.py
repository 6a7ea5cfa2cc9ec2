"""
plancapture CLI Entry Point

Command-line interface for running log-based EXPLAIN over a batch of samples.
"""

import json
from pathlib import Path
from typing import Optional

import typer
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.table import Table

from plancapture.config import get_settings, load_settings
from plancapture.models.sample import QuerySample
from plancapture.pipeline.explain_pipeline import ExplainPipeline
from plancapture.utils.logger import setup_logging

app = typer.Typer(
    name="plancapture",
    help="plancapture - capture Postgres query plans for logged query samples",
    add_completion=False,
)
# Results may go to stdout, so status output goes to stderr
console = Console(stderr=True)

_samples_adapter = TypeAdapter(list[QuerySample])


@app.command()
def run(
    samples_file: Path = typer.Argument(..., help="JSON file holding an array of query samples"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write transformed samples here instead of stdout"
    ),
    env_file: Optional[Path] = typer.Option(None, "--env", "-e", help="Path to .env file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
):
    """
    Capture plans for the samples in SAMPLES_FILE.
    """
    settings = load_settings(env_file) if env_file else get_settings()
    level = "DEBUG" if verbose else settings.log_level
    setup_logging(level=level, log_file=settings.log_file)

    try:
        samples = _samples_adapter.validate_json(samples_file.read_bytes())
    except OSError as e:
        console.print(f"[red]Error: cannot read {samples_file}: {e}[/red]")
        raise typer.Exit(1)
    except ValidationError as e:
        console.print(f"[red]Error: invalid samples in {samples_file}[/red]")
        console.print(str(e))
        raise typer.Exit(1)

    pipeline = ExplainPipeline(settings.server, workers=settings.explain_workers)
    result = pipeline.run(samples)

    payload = json.dumps([sample.to_dict() for sample in result.samples], indent=2)
    if output:
        output.write_text(payload + "\n", encoding="utf-8")
    else:
        typer.echo(payload)

    results_table = Table(title="Results")
    results_table.add_column("Metric", style="cyan")
    results_table.add_column("Count", justify="right", style="green")

    results_table.add_row("Samples", str(len(result.samples)))
    results_table.add_row("Filtered", str(result.stats.samples_filtered))
    results_table.add_row("Not explainable", str(result.stats.samples_ineligible))
    results_table.add_row("Explained", str(result.stats.samples_explained))
    results_table.add_row("Failed", str(result.stats.samples_failed))
    results_table.add_row("Databases processed", str(result.stats.databases_processed))
    results_table.add_row("Databases skipped", str(result.stats.databases_skipped))

    console.print(results_table)

    if result.stats.errors:
        console.print(f"\n[yellow]Skipped {len(result.stats.errors)} database(s)[/yellow]")
        for error in result.stats.errors:
            console.print(f"  [red]- {error}[/red]")


@app.command()
def config(
    env_file: Optional[Path] = typer.Option(None, "--env", "-e", help="Path to .env file"),
):
    """
    Show current configuration.
    """
    settings = load_settings(env_file) if env_file else get_settings()
    server = settings.server

    console.print("\n[bold blue]plancapture Configuration[/bold blue]")
    console.print("-" * 40)

    console.print("\n[cyan]Server:[/cyan]")
    console.print(f"  Host: {server.host}:{server.port}")
    console.print(f"  User: {server.user}")
    console.print(f"  SSL mode: {server.sslmode}")
    console.print(f"  System type: {server.system_type.value}")

    console.print("\n[cyan]Monitored databases:[/cyan]")
    console.print(f"  Default: {server.db_name}")
    if server.db_all_names:
        console.print("  [green]All databases[/green]")
    for name in server.db_extra_names:
        console.print(f"  - {name}")

    console.print("\n[cyan]Processing:[/cyan]")
    console.print(f"  Workers: {settings.explain_workers}")
    console.print(f"  Log level: {settings.log_level}")


@app.command()
def version():
    """
    Show version information.
    """
    from plancapture import __version__

    console.print(f"plancapture version: [green]{__version__}[/green]")


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
