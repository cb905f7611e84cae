"""CSV Row Source Adapter.

This adapter implements the RowSourcePort contract for a directory of CSV
exports, one file per table kind. Files are read with pandas in chunks; every
cell is kept as text so that codes and ids keep their leading zeros.

Architecture:
    - Implements RowSourcePort (Hexagonal Architecture)
    - File names come from the table catalogue of the row mappers
    - Header check happens before the first row is yielded, so a missing
      required column aborts the table without mapping anything
    - Optional patient filter for per-patient bundles (case-insensitive)
"""

import logging
from pathlib import Path
from typing import Iterator, Optional, Sequence

import pandas as pd

from src.domain.enums import TableKind
from src.domain.mappers import PATIENT_ID, TABLES
from src.domain.ports import (
    MissingColumnError,
    Row,
    RowSourcePort,
    SourceNotFoundError,
    TableSource,
)

logger = logging.getLogger(__name__)


class CSVRowSource(RowSourcePort):
    """Row source over the CSV files of one input directory.

    Parameters:
        input_dir: Directory holding the exported CSV files
        delimiter: CSV delimiter (default: ',')
        encoding: File encoding (default: UTF-8, a BOM is skipped)
        chunk_size: Number of rows read per pandas chunk
        patient_filter: Only yield rows whose Patient-ID matches (case-insensitive)
    """

    def __init__(
        self,
        input_dir: str,
        delimiter: str = ',',
        encoding: str = 'utf-8-sig',
        chunk_size: int = 10000,
        patient_filter: Optional[str] = None,
    ):
        self.input_dir = Path(input_dir)
        self.delimiter = delimiter
        self.encoding = encoding
        self.chunk_size = chunk_size
        self.patient_filter = patient_filter.strip().upper() if patient_filter else None
        self.adapter_name = "csv_row_source"

        if not self.input_dir.is_dir():
            raise SourceNotFoundError(f"Input directory not found: {input_dir}", source=str(input_dir))

    def for_patient(self, pid: str) -> "CSVRowSource":
        """Copy of this source restricted to one patient."""
        return CSVRowSource(
            str(self.input_dir),
            delimiter=self.delimiter,
            encoding=self.encoding,
            chunk_size=self.chunk_size,
            patient_filter=pid,
        )

    def path_for(self, table: TableKind) -> Path:
        return self.input_dir / TABLES[table].file_name

    def available_tables(self) -> list[TableSource]:
        sources = []
        for table, spec in TABLES.items():
            path = self.path_for(table)
            if path.is_file():
                # Unreadable files stay listed; rows() reports the error for that table only
                try:
                    columns = self._read_header(path)
                except SourceNotFoundError as e:
                    logger.warning(f"Header of {spec.file_name} not readable: {str(e)}")
                    columns = []
                sources.append(TableSource(table=table, source=str(path), columns=columns))
            else:
                logger.debug(f"No {spec.file_name} in {self.input_dir}")
        return sources

    def _read_csv(self, path: Path, **kwargs):
        return pd.read_csv(
            path,
            delimiter=self.delimiter,
            encoding=self.encoding,
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
            **kwargs,
        )

    def _read_header(self, path: Path) -> list[str]:
        try:
            header_df = self._read_csv(path, nrows=0)
        except pd.errors.EmptyDataError:
            return []
        except (OSError, UnicodeDecodeError, pd.errors.ParserError) as e:
            raise SourceNotFoundError(f"Cannot read {path}: {str(e)}", source=str(path))
        return [str(column).strip() for column in header_df.columns]

    def rows(self, table: TableKind, required_columns: Sequence[str]) -> Iterator[Row]:
        """Yield the rows of one table as ``{column: value}`` dicts.

        Cell values are stripped; blank cells become None.

        Raises:
            SourceNotFoundError: If the table file does not exist or is unreadable
            MissingColumnError: If a required column is absent from the header
        """
        path = self.path_for(table)
        if not path.is_file():
            raise SourceNotFoundError(f"CSV source not found: {path}", source=str(path))

        columns = self._read_header(path)
        missing = [column for column in required_columns if column not in columns]
        if missing:
            raise MissingColumnError(
                f"File {path.name} is not convertible, missing column(s): {', '.join(missing)}",
                table=table,
                missing_columns=missing,
                source=str(path),
            )
        if not columns:
            return

        try:
            chunk_iterator = self._read_csv(path, chunksize=self.chunk_size)
            for chunk_df in chunk_iterator:
                chunk_df.columns = [str(column).strip() for column in chunk_df.columns]
                chunk_df = chunk_df.apply(lambda series: series.str.strip())
                if self.patient_filter is not None and PATIENT_ID in chunk_df.columns:
                    chunk_df = chunk_df[chunk_df[PATIENT_ID].str.upper() == self.patient_filter]
                for record in chunk_df.to_dict(orient="records"):
                    yield {column: (value if value else None) for column, value in record.items()}
        except (UnicodeDecodeError, pd.errors.ParserError) as e:
            raise SourceNotFoundError(f"Cannot parse {path}: {str(e)}", source=str(path))
