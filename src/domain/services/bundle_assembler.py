"""Bundle Assembly Service.

Orders the contents of one registry and wraps every record into a transaction
entry with its create/update instruction.

Ordering:
    Patient first, then case encounters, then department encounters, then all
    other kinds in the order their first record was registered. Within a kind
    the registration order is kept. Identical input and options therefore
    produce identical bundles.

Instructions:
    Records with an id are emitted as ``PUT {type}/{id}`` (idempotent update);
    a record without id would be a ``POST {type}``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from src.domain.enums import BundleMethod, RecordKind
from src.domain.records import ClinicalRecord
from src.domain.services.record_registry import RecordRegistry

logger = logging.getLogger(__name__)

LEADING_KINDS = (
    RecordKind.PATIENT,
    RecordKind.CASE_ENCOUNTER,
    RecordKind.DEPARTMENT_ENCOUNTER,
)


@dataclass(frozen=True)
class BundleEntry:
    """One (record, instruction) pair."""

    record: ClinicalRecord
    method: BundleMethod
    url: str

    def to_dict(self, base_url: Optional[str] = None) -> dict[str, Any]:
        entry: dict[str, Any] = {}
        if base_url and self.record.id:
            entry["fullUrl"] = f"{base_url.rstrip('/')}/{self.record.fhir_type()}/{self.record.id}"
        entry["resource"] = self.record.to_resource()
        entry["request"] = {"method": self.method.value, "url": self.url}
        return entry


@dataclass
class TransactionBundle:
    """Ordered output unit of one bundle conversion."""

    name: str
    entries: list[BundleEntry] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def ids(self) -> list[str]:
        return [entry.record.id for entry in self.entries]

    def to_dict(self, base_url: Optional[str] = None) -> dict[str, Any]:
        """Serialize as a FHIR ``Bundle`` of type ``transaction``."""
        return {
            "resourceType": "Bundle",
            "type": "transaction",
            "entry": [entry.to_dict(base_url) for entry in self.entries],
        }


class BundleAssembler:
    """Turns a resolved registry into a TransactionBundle."""

    @staticmethod
    def instruction_for(record: ClinicalRecord) -> tuple[BundleMethod, str]:
        resource_type = record.fhir_type()
        if record.id:
            return BundleMethod.UPDATE, f"{resource_type}/{record.id}"
        return BundleMethod.CREATE, resource_type

    @staticmethod
    def ordered_kinds(registry: RecordRegistry) -> list[RecordKind]:
        remaining = [kind for kind in registry.kinds() if kind not in LEADING_KINDS]
        return list(LEADING_KINDS) + remaining

    def assemble(self, registry: RecordRegistry, name: str = "bundle") -> TransactionBundle:
        bundle = TransactionBundle(name=name)
        for kind in self.ordered_kinds(registry):
            for record in registry.all_records_of_kind(kind):
                method, url = self.instruction_for(record)
                bundle.entries.append(BundleEntry(record=record, method=method, url=url))
        logger.debug(f"Assembled bundle {name} with {len(bundle)} entries")
        return bundle
