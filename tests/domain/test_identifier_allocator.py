"""Unit tests for the IdentifierAllocator service."""

from src.domain.enums import IdentifierKind
from src.domain.options import ConverterOptions
from src.domain.services.identifier_allocator import IdentifierAllocator


class TestIdentifierAllocator:
    """Test suite for per-kind counters."""

    def test_counters_start_at_one_by_default(self):
        """Test that a fresh allocator hands out 1, 2, 3 per kind."""
        allocator = IdentifierAllocator()
        assert allocator.next_id(IdentifierKind.DIAGNOSIS) == 1
        assert allocator.next_id(IdentifierKind.DIAGNOSIS) == 2
        assert allocator.next_id(IdentifierKind.DIAGNOSIS) == 3

    def test_kinds_are_independent(self):
        """Test that each kind keeps its own counter."""
        allocator = IdentifierAllocator()
        allocator.next_id(IdentifierKind.DIAGNOSIS)
        allocator.next_id(IdentifierKind.DIAGNOSIS)
        assert allocator.next_id(IdentifierKind.PROCEDURE) == 1
        assert allocator.next_id(IdentifierKind.DIAGNOSIS) == 3

    def test_start_offset_from_options(self):
        """Test that START_ID_* options seed the counter on first use."""
        options = ConverterOptions.model_validate({"START_ID_PROCEDURE": "100"})
        allocator = IdentifierAllocator(options)
        assert allocator.next_id(IdentifierKind.PROCEDURE) == 100
        assert allocator.next_id(IdentifierKind.PROCEDURE) == 101
        assert allocator.next_id(IdentifierKind.DIAGNOSIS) == 1

    def test_make_id_composes_context_letter_counter(self):
        """Test the {context}-{letter}-{counter} id format."""
        allocator = IdentifierAllocator()
        assert allocator.make_id("P-1", IdentifierKind.DIAGNOSIS) == "P-1-C-1"
        assert allocator.make_id("ENC-7", IdentifierKind.OBSERVATION_LABORATORY) == "ENC-7-OL-1"
        assert allocator.make_id("ENC-7", IdentifierKind.MEDICATION_STATEMENT) == "ENC-7-MS-1"

    def test_counter_shared_across_contexts(self):
        """Test that the counter runs per kind, not per context."""
        allocator = IdentifierAllocator()
        assert allocator.make_id("A", IdentifierKind.DOCUMENT_REFERENCE) == "A-D-1"
        assert allocator.make_id("B", IdentifierKind.DOCUMENT_REFERENCE) == "B-D-2"

    def test_separate_allocators_do_not_share_state(self):
        """Test that two bundles never see each other's counters."""
        first, second = IdentifierAllocator(), IdentifierAllocator()
        first.next_id(IdentifierKind.DIAGNOSIS)
        first.next_id(IdentifierKind.DIAGNOSIS)
        assert second.next_id(IdentifierKind.DIAGNOSIS) == 1
