"""Row source adapters for Case-Weaver.

This module contains adapters that implement the RowSourcePort interface for
reading exported clinical tables.
"""

from pathlib import Path

from src.adapters.ingesters.csv_ingester import CSVRowSource
from src.domain.ports import RowSourcePort, SourceNotFoundError

__all__ = ["CSVRowSource", "get_adapter"]


def get_adapter(source: str, **kwargs) -> RowSourcePort:
    """Factory function to get the row source for an input location.

    Parameters:
        source: Input directory holding the exported tables
        **kwargs: Additional arguments passed to the adapter constructor
            (delimiter, encoding, chunk_size, patient_filter)

    Returns:
        RowSourcePort: Adapter instance

    Raises:
        SourceNotFoundError: If the input location does not exist

    Example Usage:
        ```python
        source = get_adapter("exports/")
        source = get_adapter("exports/", delimiter=";")
        ```
    """
    source_path = Path(source)
    if not source_path.exists():
        raise SourceNotFoundError(f"Input not found: {source}", source=source)
    if source_path.is_file():
        if source_path.suffix.lower() != ".csv":
            raise SourceNotFoundError(
                f"Unsupported input {source}; expected a directory of CSV files",
                source=source,
            )
        # A single table file converts together with its sibling tables
        source_path = source_path.parent
    return CSVRowSource(str(source_path), **kwargs)
