"""Record Registry Service.

Per-bundle store of every record created so far. Records are kept in one
ordered list per kind and, when they expose a natural key, in a first-writer-
wins index so that rows of later tables can reference them.

Invariants:
    - Record ids are unique within the registry (DuplicateRecordError)
    - Every non-Patient record belongs to a registered Patient
      (UnknownPatientError)
    - Insertion order is preserved per kind, and the order in which kinds
      were first seen is preserved as well; the Bundle Assembler replays both
    - Records are never removed

Concurrency:
    Single writer during mapping. Reads never mutate, so lookups are stable
    while the bundle is assembled.
"""

import logging
from typing import Iterator, Optional

from src.domain.enums import RecordKind
from src.domain.ports import DuplicateRecordError, UnknownPatientError
from src.domain.records import ClinicalRecord, EncounterRecord, PatientRecord

logger = logging.getLogger(__name__)


class RecordRegistry:
    """Ordered, indexed store of the records of one bundle."""

    def __init__(self):
        self._by_kind: dict[RecordKind, list[ClinicalRecord]] = {}
        self._by_id: dict[str, ClinicalRecord] = {}
        self._by_key: dict[tuple[RecordKind, str], ClinicalRecord] = {}

    def add(self, record: ClinicalRecord) -> ClinicalRecord:
        """Register a record.

        Parameters:
            record: Newly mapped record

        Returns:
            The registered record

        Raises:
            DuplicateRecordError: If another record already uses the id
            UnknownPatientError: If the record's patient is not registered
        """
        if record.id in self._by_id:
            raise DuplicateRecordError(
                f"Record id '{record.id}' is already used by a {self._by_id[record.id].kind.value} record",
                record_id=record.id,
            )
        if record.kind != RecordKind.PATIENT:
            self.require_patient(record.patient_id)

        self._by_kind.setdefault(record.kind, []).append(record)
        self._by_id[record.id] = record
        key = record.natural_key()
        if key is not None:
            self._by_key.setdefault((record.kind, key), record)
        return record

    def require_patient(self, patient_id: str) -> PatientRecord:
        """Return the registered Patient or raise UnknownPatientError."""
        patient = self.lookup(RecordKind.PATIENT, patient_id)
        if patient is None:
            raise UnknownPatientError(
                f"Patient '{patient_id}' is not part of this bundle",
                patient_id=patient_id,
            )
        return patient

    def lookup(self, kind: RecordKind, natural_key: str) -> Optional[ClinicalRecord]:
        """Find the first record of ``kind`` registered under ``natural_key``."""
        return self._by_key.get((kind, natural_key))

    def get(self, record_id: str) -> Optional[ClinicalRecord]:
        """Find a record of any kind by id."""
        return self._by_id.get(record_id)

    def find_encounter(self, encounter_id: str) -> Optional[EncounterRecord]:
        """Find a case or department encounter by id."""
        for kind in (RecordKind.CASE_ENCOUNTER, RecordKind.DEPARTMENT_ENCOUNTER):
            record = self.lookup(kind, encounter_id)
            if record is not None:
                return record
        return None

    def all_records_of_kind(self, kind: RecordKind) -> list[ClinicalRecord]:
        """Records of one kind in insertion order."""
        return list(self._by_kind.get(kind, []))

    def kinds(self) -> list[RecordKind]:
        """Kinds in the order their first record was registered."""
        return list(self._by_kind)

    def patients(self) -> list[PatientRecord]:
        return self.all_records_of_kind(RecordKind.PATIENT)

    def counts(self) -> dict[str, int]:
        """Number of records per kind."""
        return {kind.value: len(records) for kind, records in self._by_kind.items()}

    def __iter__(self) -> Iterator[ClinicalRecord]:
        for records in self._by_kind.values():
            yield from records

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._by_id
