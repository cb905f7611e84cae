"""Unit tests for structured logging."""

import json
import logging

from src.infrastructure.logging_config import StructuredFormatter


class TestStructuredFormatter:
    """Test suite for JSON log lines."""

    def _record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord("src.main", logging.ERROR, __file__, 10, "row %d skipped", (3,), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_basic_fields(self):
        data = json.loads(StructuredFormatter().format(self._record()))
        assert data["level"] == "ERROR"
        assert data["logger"] == "src.main"
        assert data["message"] == "row 3 skipped"

    def test_extra_fields_are_flattened(self):
        record = self._record(extra_fields={"table": "diagnosis", "row": 3, "record_id": None})
        data = json.loads(StructuredFormatter().format(record))
        assert data["table"] == "diagnosis"
        assert data["row"] == 3
        assert "record_id" not in data
