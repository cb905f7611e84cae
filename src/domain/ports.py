"""Domain Ports - Abstract Contracts for the Conversion Core.

This module defines the Port interfaces (abstract contracts) that collaborating
adapters must implement, plus the Result type and exception hierarchy shared by
the whole conversion pipeline.

Architecture:
    - Pure abstract interfaces with zero infrastructure dependencies
    - Row sources (CSV, spreadsheets, ...) implement RowSourcePort
    - Validators (profile checkers, terminology services) implement ValidatorPort
    - Bundle writers (JSON files, ...) implement BundleWriterPort
    - The domain core only ever sees rows, findings and bundles

Error Taxonomy:
    - MissingColumnError: fatal for one table, the next table still converts
    - RowMappingError / DuplicateRecordError / UnknownPatientError: fatal for
      one row, the rest of the table still converts
    - Nothing in the core terminates a whole run; failures are counted
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Generic, Iterator, Mapping, Optional, Sequence, TypeVar, Union

from src.domain.enums import TableKind, ValidationSeverity

# Type variable for Result generic
T = TypeVar('T')

Row = Mapping[str, Optional[str]]


# ============================================================================
# Result Type for Success/Failure Communication
# ============================================================================

@dataclass(frozen=True)
class Result(Generic[T]):
    """Result type for communicating success or failure without exceptions.

    The conversion pipeline uses Result to report per-row and per-table
    outcomes, so one bad row or one unreadable table never aborts the run.

    Attributes:
        success: True if the operation succeeded, False otherwise
        value: The successful result value (only present if success=True)
        error: Error information (only present if success=False)
        error_type: Type of error (MissingColumnError, RowMappingError, etc.)
        error_details: Additional error context (table, row, etc.)

    Example:
        ```python
        result = map_row(TableKind.DIAGNOSIS, row, context)
        if result.is_success():
            register(result.value)
        else:
            log_error(result.error, result.error_details)
        ```
    """

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_details: Optional[dict] = None

    @classmethod
    def success_result(cls, value: T) -> 'Result[T]':
        """Create a successful result.

        Parameters:
            value: The successful result value

        Returns:
            Result: Success result with the value
        """
        return cls(
            success=True,
            value=value,
            error=None,
            error_type=None,
            error_details=None
        )

    @classmethod
    def failure_result(
        cls,
        error: Union[str, Exception],
        error_type: Optional[str] = None,
        error_details: Optional[dict] = None
    ) -> 'Result[T]':
        """Create a failure result.

        Parameters:
            error: Error message or exception
            error_type: Type of error (e.g., "MissingColumnError")
            error_details: Additional context (table, row number, etc.)

        Returns:
            Result: Failure result with error information
        """
        error_message = str(error) if isinstance(error, Exception) else error
        error_type_name = error_type or (type(error).__name__ if isinstance(error, Exception) else "UnknownError")

        return cls(
            success=False,
            value=None,
            error=error_message,
            error_type=error_type_name,
            error_details=error_details or {}
        )

    def is_success(self) -> bool:
        """Check if result is successful."""
        return self.success

    def is_failure(self) -> bool:
        """Check if result is a failure."""
        return not self.success


# ============================================================================
# Custom Exception Hierarchy
# ============================================================================

class ConversionError(Exception):
    """Base exception for all conversion-related errors."""
    pass


class SourceNotFoundError(ConversionError):
    """Raised when a table source cannot be found or read.

    Attributes:
        source: The source identifier that was not found
    """

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class MissingColumnError(ConversionError):
    """Raised when a table lacks a column its mapper requires.

    No row of such a table can be mapped safely, so the whole table is
    skipped. Other tables of the same bundle still convert.

    Attributes:
        table: Table kind that is missing columns
        missing_columns: Names of the required columns not found in the header
        source: Source identifier of the table
    """

    def __init__(
        self,
        message: str,
        table: Optional[TableKind] = None,
        missing_columns: Optional[Sequence[str]] = None,
        source: Optional[str] = None
    ):
        super().__init__(message)
        self.table = table
        self.missing_columns = list(missing_columns or [])
        self.source = source


class RowMappingError(ConversionError):
    """Raised when one row cannot be mapped into records.

    Attributes:
        table: Table kind of the failing row
        row_number: 1-based data row number within the table
        raw_data: The raw row that failed (may be None)
    """

    def __init__(
        self,
        message: str,
        table: Optional[TableKind] = None,
        row_number: Optional[int] = None,
        raw_data: Optional[dict] = None
    ):
        super().__init__(message)
        self.table = table
        self.row_number = row_number
        self.raw_data = raw_data


class DuplicateRecordError(RowMappingError):
    """Raised by the registry when a record id is already taken in the bundle."""

    def __init__(self, message: str, record_id: Optional[str] = None):
        super().__init__(message)
        self.record_id = record_id


class UnknownPatientError(RowMappingError):
    """Raised when a row references a patient that is not part of the bundle."""

    def __init__(self, message: str, patient_id: Optional[str] = None):
        super().__init__(message)
        self.patient_id = patient_id


# ============================================================================
# Collaborator Ports
# ============================================================================

@dataclass(frozen=True)
class ValidationFinding:
    """One message reported by a validator for a single resource."""

    severity: ValidationSeverity
    message: str
    location: Optional[str] = None


@dataclass
class TableSource:
    """Location of one input table as discovered by a row source."""

    table: TableKind
    source: str
    columns: list[str] = field(default_factory=list)


class RowSourcePort(ABC):
    """Abstract contract for tabular input.

    A row source yields, per table kind, an ordered sequence of named-column
    rows. Blank cells are reported as None. Row order is the file order and
    is significant for id allocation.
    """

    @abstractmethod
    def available_tables(self) -> list[TableSource]:
        """List the tables this source can provide (unknown files are skipped)."""
        pass

    @abstractmethod
    def rows(self, table: TableKind, required_columns: Sequence[str]) -> Iterator[Row]:
        """Yield the rows of one table in file order.

        Parameters:
            table: Table kind to read
            required_columns: Columns that must be present in the header

        Raises:
            MissingColumnError: If a required column is absent (checked
                before the first row is yielded)
            SourceNotFoundError: If the table cannot be read
        """
        pass

    def distinct_values(self, table: TableKind, column: str) -> list[str]:
        """Return the distinct upper-cased values of one column, in first-seen order."""
        seen: dict[str, None] = {}
        for row in self.rows(table, [column]):
            value = row.get(column)
            if value:
                seen.setdefault(value.strip().upper(), None)
        return list(seen)


class ValidatorPort(ABC):
    """Abstract contract for record validation.

    The core only acts on the severity classification of the findings,
    never on validator internals.
    """

    @abstractmethod
    def validate(self, resource: dict) -> list[ValidationFinding]:
        """Validate one serialized record and return its findings."""
        pass


class BundleWriterPort(ABC):
    """Abstract contract for persisting a finished bundle."""

    @abstractmethod
    def write(self, bundle: dict, name: str) -> str:
        """Write one serialized bundle and return the target location."""
        pass
