"""Main entry point for the Case-Weaver conversion pipeline.

This module converts a directory of exported clinical tables into FHIR
transaction bundles, either one bundle for the whole dataset or one bundle
per patient.

Pipeline (per bundle):
    1. Map every table in catalogue order, row by row, into a fresh
       ConversionContext (allocator + registry + policy + tally)
    2. Resolve the encounter hierarchy once
    3. Assemble the ordered transaction bundle

Error Handling:
    - A missing required column aborts only that table
    - A failing row is logged and skipped; the rest of the table converts
    - Nothing stops the run; the per-table Results and the validation counts
      are the failure signal

Architecture:
    - Follows Hexagonal Architecture principles
    - Row sources, validators and writers are injected adapters
    - Bundles are independent and may be converted by a thread pool
"""

import sys
import argparse
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from src.infrastructure.settings import settings
from src.infrastructure.config_manager import load_converter_options
from src.infrastructure.logging_config import setup_logging
from src.infrastructure.conversion_report import (
    generate_conversion_report,
    print_conversion_report_summary,
)
from src.adapters.ingesters import get_adapter
from src.adapters.validators import RequiredElementValidator
from src.adapters.writers import JSONBundleWriter
from src.domain.enums import TableKind
from src.domain.mappers import PATIENT_ID, TABLES, apply_mapped, map_row
from src.domain.options import ConverterOptions
from src.domain.ports import (
    BundleWriterPort,
    ConversionError,
    MissingColumnError,
    Result,
    RowMappingError,
    RowSourcePort,
    SourceNotFoundError,
    ValidatorPort,
)
from src.domain.services import (
    BundleAssembler,
    ConversionContext,
    HierarchyResolver,
    LinkageStats,
    TransactionBundle,
    ValidationCounts,
)

logger = logging.getLogger(__name__)


@dataclass
class TableSummary:
    """Outcome of converting one table into one bundle."""

    table: TableKind
    rows_read: int = 0
    rows_failed: int = 0
    records_created: int = 0
    records_discarded: int = 0

    @property
    def rows_converted(self) -> int:
        return self.rows_read - self.rows_failed

    def to_dict(self) -> dict:
        return {
            "table": self.table.value,
            "rows_read": self.rows_read,
            "rows_converted": self.rows_converted,
            "rows_failed": self.rows_failed,
            "records_created": self.records_created,
            "records_discarded": self.records_discarded,
        }


@dataclass
class BundleResult:
    """Everything one bundle conversion produced."""

    name: str
    bundle: TransactionBundle
    tables: list[Result[TableSummary]] = field(default_factory=list)
    linkage: LinkageStats = field(default_factory=LinkageStats)
    validation: ValidationCounts = field(default_factory=ValidationCounts)
    discarded: list[str] = field(default_factory=list)
    record_counts: dict[str, int] = field(default_factory=dict)
    output_path: Optional[str] = None

    @property
    def aborted_tables(self) -> list[Result[TableSummary]]:
        return [result for result in self.tables if result.is_failure()]

    @property
    def rows_failed(self) -> int:
        return sum(result.value.rows_failed for result in self.tables if result.is_success())

    @property
    def has_failures(self) -> bool:
        return bool(self.aborted_tables or self.discarded)


def convert_table(source: RowSourcePort, table: TableKind, context: ConversionContext) -> Result[TableSummary]:
    """Map all rows of one table into ``context``.

    Parameters:
        source: Row source providing the table
        table: Table kind to convert
        context: Conversion state of the current bundle

    Returns:
        Result[TableSummary]: Success with row/record counts, or failure if the
        table had to be aborted (missing column, unreadable file)
    """
    spec = TABLES[table]
    summary = TableSummary(table=table)
    discarded_before = len(context.discarded)
    try:
        for row_number, row in enumerate(source.rows(table, spec.required_columns), start=1):
            summary.rows_read += 1
            try:
                mapped = map_row(table, row, context)
                summary.records_created += len(apply_mapped(mapped, context))
            except RowMappingError as e:
                summary.rows_failed += 1
                logger.error(
                    f"{spec.file_name} row {row_number} skipped: {str(e)}",
                    extra={"extra_fields": {"table": table.value, "row": row_number, "bundle": context.name}},
                )
            except (ValueError, TypeError) as e:
                # Pydantic validation errors of record models are ValueErrors
                summary.rows_failed += 1
                logger.error(
                    f"{spec.file_name} row {row_number} skipped: {type(e).__name__}: {str(e)}",
                    extra={"extra_fields": {"table": table.value, "row": row_number, "bundle": context.name}},
                )
            except Exception as e:
                summary.rows_failed += 1
                logger.error(
                    f"{spec.file_name} row {row_number} skipped after unexpected error: {type(e).__name__}: {str(e)}",
                    exc_info=True,
                    extra={"extra_fields": {"table": table.value, "row": row_number, "bundle": context.name}},
                )
    except MissingColumnError as e:
        logger.error(
            f"Table {spec.file_name} not convertible: {str(e)}",
            extra={"extra_fields": {"table": table.value, "bundle": context.name}},
        )
        return Result.failure_result(
            e,
            error_details={"table": table.value, "missing_columns": e.missing_columns, "source": e.source},
        )
    except SourceNotFoundError as e:
        logger.error(
            f"Table {spec.file_name} not readable: {str(e)}",
            extra={"extra_fields": {"table": table.value, "bundle": context.name}},
        )
        return Result.failure_result(e, error_details={"table": table.value, "source": e.source})

    summary.records_discarded = len(context.discarded) - discarded_before
    logger.info(
        f"{spec.file_name}: {summary.rows_converted}/{summary.rows_read} rows converted, "
        f"{summary.records_created} records",
        extra={"extra_fields": {"table": table.value, "bundle": context.name}},
    )
    return Result.success_result(summary)


def convert_bundle(
    source: RowSourcePort,
    options: Optional[ConverterOptions] = None,
    validator: Optional[ValidatorPort] = None,
    name: str = "bundle",
) -> BundleResult:
    """Convert every available table of ``source`` into one bundle.

    Each call owns a fresh ConversionContext, so counters and ids never leak
    between bundles.
    """
    context = ConversionContext(options=options, validator=validator, name=name)
    logger.debug(f"Reference policy of bundle {name}: {context.policy.as_dict()}")
    available = {table_source.table for table_source in source.available_tables()}

    results = []
    for table in TABLES:
        if table not in available:
            continue
        results.append(convert_table(source, table, context))

    linkage = HierarchyResolver(context.policy, context.options).resolve(context.registry)
    bundle = BundleAssembler().assemble(context.registry, name=name)
    logger.info(
        f"Bundle {name}: {len(bundle)} entries, {linkage.linked} department encounters linked, "
        f"{linkage.unlinked} unlinked",
        extra={"extra_fields": {"bundle": name}},
    )
    return BundleResult(
        name=name,
        bundle=bundle,
        tables=results,
        linkage=linkage,
        validation=context.tally.counts,
        discarded=list(context.discarded),
        record_counts=context.registry.counts(),
    )


def convert_dataset(
    source: RowSourcePort,
    options: Optional[ConverterOptions] = None,
    validator: Optional[ValidatorPort] = None,
    base_name: str = "bundle",
) -> list[BundleResult]:
    """Dataset mode: one bundle for all rows of all tables."""
    return [convert_bundle(source, options, validator, name=base_name)]


def convert_per_patient(
    source: RowSourcePort,
    options: Optional[ConverterOptions] = None,
    validator: Optional[ValidatorPort] = None,
    base_name: str = "bundle",
    max_workers: int = 1,
) -> list[BundleResult]:
    """Per-patient mode: one bundle per distinct PID of the Person table.

    Bundles are independent; with ``max_workers`` > 1 they are converted by a
    thread pool. Results are returned in PID order either way.

    Raises:
        ConversionError: If the source cannot be filtered by patient
    """
    if not hasattr(source, "for_patient"):
        raise ConversionError(f"{type(source).__name__} does not support per-patient conversion")

    try:
        pids = source.distinct_values(TableKind.PERSON, PATIENT_ID)
    except (MissingColumnError, SourceNotFoundError) as e:
        logger.error(f"Cannot read patient ids: {str(e)}")
        return []
    logger.info(f"Converting {len(pids)} patients with {max_workers} worker(s)")

    def convert_one(pid: str) -> BundleResult:
        return convert_bundle(source.for_patient(pid), options, validator, name=f"{base_name}-{pid}")

    if max_workers <= 1 or len(pids) <= 1:
        return [convert_one(pid) for pid in pids]

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="bundle-worker") as executor:
        return list(executor.map(convert_one, pids))


def run_conversion(
    input_dir: str,
    output_dir: Optional[str] = None,
    options: Optional[ConverterOptions] = None,
    per_patient: bool = False,
    max_workers: Optional[int] = None,
    validate: bool = True,
    writer: Optional[BundleWriterPort] = None,
    base_name: Optional[str] = None,
) -> list[BundleResult]:
    """Convert ``input_dir`` and write every bundle.

    Parameters:
        input_dir: Directory with the exported CSV tables
        output_dir: Bundle output directory (default: the input directory)
        options: Converter options (default: resolved from settings)
        per_patient: One bundle per patient instead of one per dataset
        max_workers: Worker threads for per-patient mode (default: settings)
        validate: Run the built-in required-element validator
        writer: Bundle writer (default: JSON files in ``output_dir``)
        base_name: Output file base name (default: settings)

    Returns:
        list[BundleResult]: One result per bundle, each with its output path
    """
    options = options or settings.converter_options
    base_name = base_name or settings.output_name
    source = get_adapter(input_dir, delimiter=settings.csv_delimiter, chunk_size=settings.chunk_size)
    validator = RequiredElementValidator() if validate else None
    writer = writer or JSONBundleWriter(output_dir or input_dir)

    if per_patient:
        results = convert_per_patient(
            source, options, validator, base_name=base_name, max_workers=max_workers or settings.max_workers
        )
    else:
        results = convert_dataset(source, options, validator, base_name=base_name)

    for result in results:
        result.output_path = writer.write(result.bundle.to_dict(settings.fhir_base_url), result.name)
    return results


def main():
    """Main entry point for the Case-Weaver conversion pipeline."""
    parser = argparse.ArgumentParser(
        description=f"{settings.app_name} - Clinical CSV to FHIR Transaction Bundle Converter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Convert a directory into one bundle
  python -m src.main --input exports/

  # One bundle per patient, four workers, custom options
  python -m src.main --input exports/ --per-patient --workers 4 --options converter.config

  # Override a single option via the environment
  export CW_OPT_ADD_MISSING_DIAGNOSES_FROM_SUPER_ENCOUNTER=true
  python -m src.main --input exports/
        """
    )

    parser.add_argument("--input", "-i", required=True, type=str, help="Input directory with CSV tables")
    parser.add_argument("--output-dir", "-o", type=str, default=None, help="Output directory for bundles")
    parser.add_argument("--options", type=str, default=None, help="Converter options file")
    parser.add_argument("--per-patient", action="store_true", help="Write one bundle per patient")
    parser.add_argument("--workers", type=int, default=None, help="Worker threads for --per-patient")
    parser.add_argument("--no-validate", action="store_true", help="Skip the built-in validator")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    args = parser.parse_args()

    setup_logging(use_json=settings.log_json, log_level="DEBUG" if args.verbose else settings.log_level)

    input_path = Path(args.input)
    if not input_path.exists():
        logger.error(f"Input not found: {args.input}")
        sys.exit(1)

    try:
        options = load_converter_options(args.options or settings.options_file)
        results = run_conversion(
            input_dir=args.input,
            output_dir=args.output_dir,
            options=options,
            per_patient=args.per_patient,
            max_workers=args.workers,
            validate=not args.no_validate,
        )
    except (ConversionError, FileNotFoundError, ValueError) as e:
        logger.error(f"Conversion failed: {str(e)}", exc_info=True)
        sys.exit(1)

    report_path = None
    if settings.save_report:
        report_path = str(Path(settings.report_dir) / "conversion_report.json")
    report_result = generate_conversion_report(results, options, output_path=report_path)
    if report_result.is_success():
        print_conversion_report_summary(report_result.value)
    else:
        logger.warning(f"Failed to generate conversion report: {report_result.error}")

    sys.exit(1 if any(result.has_failures for result in results) else 0)


if __name__ == "__main__":
    main()
