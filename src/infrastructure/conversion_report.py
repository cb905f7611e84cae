"""Conversion Report Generator.

This module summarizes a conversion run: per bundle and run-wide record
counts, table outcomes, validation counts and encounter linkage. Reports can
be saved as JSON and printed as a console summary.
"""

import json
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from rich.console import Console
from rich.table import Table

from src.domain.options import ConverterOptions
from src.domain.ports import Result
from src.domain.services import LinkageStats, ValidationCounts

if TYPE_CHECKING:
    from src.main import BundleResult


def _bundle_section(result: "BundleResult") -> dict:
    tables = []
    for table_result in result.tables:
        if table_result.is_success():
            tables.append({"status": "converted", **table_result.value.to_dict()})
        else:
            tables.append({
                "status": "aborted",
                "table": table_result.error_details.get("table"),
                "error": table_result.error,
                "error_type": table_result.error_type,
                "missing_columns": table_result.error_details.get("missing_columns", []),
            })
    return {
        "name": result.name,
        "output_path": result.output_path,
        "entries": len(result.bundle),
        "records_by_kind": dict(result.record_counts),
        "tables": tables,
        "validation": result.validation.to_dict(),
        "discarded_records": list(result.discarded),
        "linkage": result.linkage.to_dict(),
    }


def build_conversion_report(results: list["BundleResult"], options: Optional[ConverterOptions] = None) -> dict:
    """Build the report dictionary for a list of bundle results.

    Parameters:
        results: Bundle results of one run
        options: Converter options the run used (included for traceability)

    Returns:
        dict: Report with ``summary``, ``bundles`` and ``options`` sections
    """
    validation = ValidationCounts()
    linkage = LinkageStats()
    records_by_kind: dict[str, int] = {}
    aborted_tables = 0
    rows_failed = 0
    for result in results:
        validation = validation.merge(result.validation)
        linkage = linkage.merge(result.linkage)
        for kind, count in result.record_counts.items():
            records_by_kind[kind] = records_by_kind.get(kind, 0) + count
        aborted_tables += len(result.aborted_tables)
        rows_failed += result.rows_failed

    return {
        "summary": {
            "bundles": len(results),
            "total_records": sum(records_by_kind.values()),
            "records_by_kind": records_by_kind,
            "aborted_tables": aborted_tables,
            "rows_failed": rows_failed,
            "discarded_records": sum(len(result.discarded) for result in results),
            "validation": validation.to_dict(),
            "linkage": linkage.to_dict(),
        },
        "bundles": [_bundle_section(result) for result in results],
        "options": options.as_option_dict() if options is not None else None,
    }


def generate_conversion_report(
    results: list["BundleResult"],
    options: Optional[ConverterOptions] = None,
    output_path: Optional[str] = None,
) -> Result[dict]:
    """Generate a conversion report and optionally save it as JSON.

    Parameters:
        results: Bundle results of one run
        options: Converter options the run used
        output_path: Optional path to save report as JSON file

    Returns:
        Result[dict]: Report dictionary (with ``saved_to`` when saved) or error
    """
    report = build_conversion_report(results, options)

    # Save to file if output path provided
    if output_path:
        try:
            output_file = Path(output_path)
            output_file.parent.mkdir(parents=True, exist_ok=True)

            with open(output_file, 'w', encoding='utf-8') as f:
                json.dump(report, f, indent=2, default=str)

            return Result.success_result({
                **report,
                "saved_to": str(output_file)
            })
        except OSError as e:
            return Result.failure_result(
                ValueError(f"Failed to save report to {output_path}: {str(e)}"),
                error_type="ValueError"
            )

    return Result.success_result(report)


def print_conversion_report_summary(report: dict, console: Optional[Console] = None) -> None:
    """Print a human-readable summary of the conversion report.

    Parameters:
        report: Conversion report dictionary
        console: Rich console to print to (default: a new stdout console)
    """
    console = console or Console()
    summary = report.get('summary', {})

    console.print("\n[bold]Conversion Summary:[/bold]")
    summary_table = Table(show_header=False, box=None, padding=(0, 2))
    summary_table.add_row("Bundles:", f"{summary.get('bundles', 0):,}")
    summary_table.add_row("Records:", f"[bold]{summary.get('total_records', 0):,}[/bold]")
    aborted = summary.get('aborted_tables', 0)
    summary_table.add_row("Aborted tables:", f"[red]{aborted}[/red]" if aborted else "0")
    rows_failed = summary.get('rows_failed', 0)
    summary_table.add_row("Failed rows:", f"[red]{rows_failed}[/red]" if rows_failed else "0")
    discarded = summary.get('discarded_records', 0)
    summary_table.add_row("Discarded records:", f"[red]{discarded}[/red]" if discarded else "0")
    console.print(summary_table)

    records = summary.get('records_by_kind', {})
    if records:
        kind_table = Table(title="Records by Kind", show_header=True, header_style="bold")
        kind_table.add_column("Kind", style="cyan")
        kind_table.add_column("Count", justify="right")
        for kind, count in records.items():
            kind_table.add_row(kind, f"{count:,}")
        console.print(kind_table)

    validation = summary.get('validation', {})
    validation_table = Table(title="Validation", show_header=True, header_style="bold")
    for column in ("errors", "warnings", "ignored", "valid"):
        validation_table.add_column(column.capitalize(), justify="right")
    validation_table.add_row(*(str(validation.get(column, 0)) for column in ("errors", "warnings", "ignored", "valid")))
    console.print(validation_table)

    linkage = summary.get('linkage', {})
    console.print(
        f"Encounter linkage: {linkage.get('linked', 0)} linked, {linkage.get('unlinked', 0)} unlinked, "
        f"{linkage.get('inherited_diagnoses', 0)} inherited diagnoses, "
        f"{linkage.get('inherited_classes', 0)} inherited classes"
    )

    if report.get('saved_to'):
        console.print(f"[dim]Report saved to {report['saved_to']}[/dim]")
