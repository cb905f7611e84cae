"""Domain Services.

This package contains the per-bundle services of the conversion core. None
of them performs I/O; all state lives in a ConversionContext owned by the
caller of one bundle conversion.
"""

from src.domain.services.identifier_allocator import IdentifierAllocator
from src.domain.services.record_registry import RecordRegistry
from src.domain.services.reference_policy import ReferencePolicy
from src.domain.services.hierarchy_resolver import HierarchyResolver, LinkageStats
from src.domain.services.bundle_assembler import BundleAssembler, BundleEntry, TransactionBundle
from src.domain.services.validation_tally import ValidationCounts, ValidationTally
from src.domain.services.context import ConversionContext

__all__ = [
    "IdentifierAllocator",
    "RecordRegistry",
    "ReferencePolicy",
    "HierarchyResolver",
    "LinkageStats",
    "BundleAssembler",
    "BundleEntry",
    "TransactionBundle",
    "ValidationCounts",
    "ValidationTally",
    "ConversionContext",
]
