"""Command Line Interface for the Case-Weaver converter.

This module provides a CLI using Typer for converting exported clinical
tables into FHIR transaction bundles, and for inspecting the resolved
converter options and the supported table catalogue.
"""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn

from src.infrastructure.settings import APP_VERSION, settings
from src.infrastructure.config_manager import load_converter_options
from src.infrastructure.logging_config import setup_logging
from src.infrastructure.conversion_report import (
    generate_conversion_report,
    print_conversion_report_summary,
)
from src.domain.mappers import TABLES
from src.domain.ports import ConversionError

# Initialize Typer app and Rich console
app = typer.Typer(
    name="caseweaver",
    help="Case-Weaver: clinical CSV exports to FHIR transaction bundles",
    add_completion=False
)
console = Console()


def _load_options(options_file: Optional[Path]):
    try:
        return load_converter_options(str(options_file) if options_file else settings.options_file)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]✗[/red] Invalid converter options: {str(e)}")
        raise typer.Exit(code=1)


@app.command()
def convert(
    input_dir: Path = typer.Argument(..., help="Directory with the exported CSV tables", exists=True),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Output directory for bundles (default: input directory)"),
    options_file: Optional[Path] = typer.Option(None, "--options", "-c", help="Converter options file"),
    per_patient: bool = typer.Option(False, "--per-patient", "-p", help="Write one bundle per patient"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Worker threads for --per-patient"),
    validate: bool = typer.Option(True, "--validate/--no-validate", help="Run the built-in required-element validator"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    no_report: bool = typer.Option(False, "--no-report", help="Skip saving the conversion report"),
) -> None:
    """Convert a directory of CSV exports into FHIR transaction bundles.

    Tables are converted in a fixed order, department encounters are linked
    to their case encounters and every record is written as an idempotent
    PUT entry.

    Examples:
        caseweaver convert exports/
        caseweaver convert exports/ --per-patient --workers 4
        caseweaver convert exports/ --options converter.config --no-validate
    """
    setup_logging(use_json=settings.log_json, log_level="DEBUG" if verbose else settings.log_level)
    if verbose:
        console.print("[dim]Verbose logging enabled[/dim]")

    options = _load_options(options_file)

    console.print(f"\n[bold blue]{settings.app_name}[/bold blue]")
    console.print(f"[dim]Input directory:[/dim] {input_dir}")
    console.print(f"[dim]Output directory:[/dim] {output_dir or input_dir}")
    console.print(f"[dim]Mode:[/dim] {'per patient' if per_patient else 'dataset'}")
    console.print()

    from src.main import run_conversion

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console
        ) as progress:
            task = progress.add_task("Converting tables...", total=None)
            results = run_conversion(
                input_dir=str(input_dir),
                output_dir=str(output_dir) if output_dir else None,
                options=options,
                per_patient=per_patient,
                max_workers=workers,
                validate=validate,
            )
            progress.update(task, completed=True)
    except KeyboardInterrupt:
        console.print("\n[yellow]⚠[/yellow] Conversion interrupted by user")
        raise typer.Exit(code=130)
    except ConversionError as e:
        console.print(f"\n[red]✗[/red] Conversion failed: {str(e)}")
        if verbose:
            console.print_exception()
        raise typer.Exit(code=1)

    for result in results:
        console.print(f"[green]✓[/green] {result.name}: {len(result.bundle)} entries → {result.output_path}")

    report_path = None
    if settings.save_report and not no_report:
        report_path = str(Path(settings.report_dir) / "conversion_report.json")
    report_result = generate_conversion_report(results, options, output_path=report_path)
    if report_result.is_success():
        print_conversion_report_summary(report_result.value, console=console)
    else:
        console.print(f"[yellow]⚠[/yellow] Failed to generate conversion report: {report_result.error}")

    if any(result.has_failures for result in results):
        console.print("\n[yellow]⚠[/yellow] Conversion completed with aborted tables or discarded records")
        raise typer.Exit(code=1)
    console.print("\n[green]✓[/green] Conversion completed successfully")


@app.command()
def options(
    options_file: Optional[Path] = typer.Option(None, "--options", "-c", help="Converter options file"),
) -> None:
    """Display the resolved converter options."""
    resolved = _load_options(options_file)

    options_table = Table(title="Converter Options", show_header=True, header_style="bold")
    options_table.add_column("Option", style="cyan")
    options_table.add_column("Value")
    for key, value in resolved.as_option_dict().items():
        if isinstance(value, (list, tuple)):
            value = "; ".join(value)
        options_table.add_row(key, str(value))
    console.print(options_table)


@app.command()
def tables() -> None:
    """Display the supported input tables in conversion order."""
    catalogue = Table(title="Input Tables", show_header=True, header_style="bold")
    catalogue.add_column("Table", style="cyan")
    catalogue.add_column("File")
    catalogue.add_column("Required columns")
    catalogue.add_column("Optional columns", style="dim")
    catalogue.add_column("Produces")
    for spec in TABLES.values():
        catalogue.add_row(
            spec.table.value,
            spec.file_name,
            ", ".join(spec.required_columns),
            ", ".join(spec.optional_columns),
            spec.description,
        )
    console.print(catalogue)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"Case-Weaver v{APP_VERSION}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version information"
    )
) -> None:
    """Case-Weaver: clinical CSV exports to FHIR transaction bundles."""


if __name__ == "__main__":
    app()
