"""Identifier Allocation Service.

Produces deterministic, human-traceable synthetic ids. One running counter is
kept per identifier kind; counters are seeded from the converter options on
first use and never hand out a value twice, even when the record that
received it is later discarded.

Id format:
    ``{context}-{letter}-{counter}`` where ``context`` is the owning encounter
    id when known, else the patient id.
"""

import logging
from typing import Optional

from src.domain.enums import IdentifierKind
from src.domain.options import DEFAULT_START_ID, ConverterOptions

logger = logging.getLogger(__name__)


class IdentifierAllocator:
    """Per-bundle counter store.

    Not thread-safe; one allocator belongs to exactly one bundle conversion.
    """

    def __init__(self, options: Optional[ConverterOptions] = None):
        self._options = options
        self._counters: dict[IdentifierKind, int] = {}

    def _start_value(self, kind: IdentifierKind) -> int:
        if self._options is None:
            return DEFAULT_START_ID
        return self._options.start_id(kind)

    def next_id(self, kind: IdentifierKind) -> int:
        """Return the next counter value for ``kind`` and advance the counter."""
        value = self._counters.get(kind)
        if value is None:
            value = self._start_value(kind)
        self._counters[kind] = value + 1
        return value

    def make_id(self, context: str, kind: IdentifierKind) -> str:
        """Allocate a counter value and compose the synthetic id."""
        return f"{context}-{kind.letter}-{self.next_id(kind)}"
