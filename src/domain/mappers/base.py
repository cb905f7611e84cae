"""Shared building blocks of the row mappers.

A row mapper is a pure function ``(row, context) -> MappedRow``. It reads the
registry and allocates ids, but never registers anything itself: the caller
applies the MappedRow, which keeps the order of registration and
back-referencing in one place (``apply_mapped``).
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from src.domain.enums import RecordKind, TableKind
from src.domain.options import ConverterOptions
from src.domain.ports import Row, RowMappingError
from src.domain.records import ClinicalRecord, EncounterLink, EncounterRecord
from src.domain.services.context import ConversionContext
from src.domain.utils import increase_last_number, is_blank

logger = logging.getLogger(__name__)

PATIENT_ID = "Patient-ID"
CASE_ID = "Versorgungsfall-ID"


@dataclass
class PendingLink:
    """Diagnosis-list entry to append to an encounter once its target is registered."""

    encounter_id: str
    link: EncounterLink
    source_id: Optional[str] = None


@dataclass
class MappedRow:
    """Records and back-references produced from one row."""

    records: list[ClinicalRecord] = field(default_factory=list)
    links: list[PendingLink] = field(default_factory=list)


Mapper = Callable[[Row, ConversionContext], MappedRow]


@dataclass(frozen=True)
class TableSpec:
    """Catalogue entry of one input table."""

    table: TableKind
    file_name: str
    required_columns: tuple[str, ...]
    optional_columns: tuple[str, ...]
    mapper: Mapper
    description: str = ""


def full_pid(raw_pid: str, options: ConverterOptions) -> str:
    """Transform a source PID into the bundle's patient id.

    The last digit run is increased by the configured offset (keeping its
    zero-padded width), prefix and suffix are added, and every ``_`` is
    replaced by ``-`` since target servers reject underscores in ids.
    """
    pid = raw_pid.strip()
    if options.pid_last_number_increase_initial_offset > 0:
        pid = increase_last_number(pid, options.pid_last_number_increase_initial_offset)
    pid = f"{options.pid_prefix}{pid}{options.pid_suffix}"
    return pid.replace("_", "-")


def cell(row: Row, column: str) -> Optional[str]:
    """Stripped cell value, None for blanks and absent optional columns."""
    value = row.get(column)
    if is_blank(value):
        return None
    return str(value).strip()


def required_cell(row: Row, column: str) -> str:
    value = cell(row, column)
    if value is None:
        raise RowMappingError(f"Required value '{column}' is empty")
    return value


def patient_id_of(row: Row, context: ConversionContext) -> str:
    return full_pid(required_cell(row, PATIENT_ID), context.options)


def encounter_of(row: Row, context: ConversionContext) -> tuple[Optional[str], Optional[EncounterRecord]]:
    """Encounter id named by the row and the registered encounter, if any."""
    encounter_id = cell(row, CASE_ID)
    if encounter_id is None:
        return None, None
    encounter = context.registry.find_encounter(encounter_id)
    if encounter is None:
        logger.warning(f"Encounter {encounter_id} referenced by a row is not part of the bundle")
    return encounter_id, encounter


def id_context(patient_id: str, encounter_id: Optional[str]) -> str:
    return encounter_id or patient_id


def attach_link(encounter: EncounterRecord, link: EncounterLink) -> bool:
    """Append ``link`` to the encounter's diagnosis list.

    A pending admission entry with the same code is filled in place instead
    of adding a second entry. Returns False if the encounter already lists
    the target.
    """
    if link.target_kind == RecordKind.CONDITION and link.code:
        for position, existing in enumerate(encounter.diagnoses):
            if existing.is_pending and existing.code and existing.code.upper() == link.code.upper():
                updated = list(encounter.diagnoses)
                updated[position] = existing.model_copy(update={"target_id": link.target_id})
                encounter.diagnoses = updated
                return True
    if encounter.has_link(link):
        return False
    encounter.diagnoses = encounter.diagnoses + [link]
    return True


def apply_mapped(mapped: MappedRow, context: ConversionContext) -> list[ClinicalRecord]:
    """Register the records of one row and append its back-references.

    Links whose source record was discarded by validation are dropped.

    Returns:
        The records that were registered
    """
    accepted = []
    discarded = set()
    for record in mapped.records:
        if context.accept(record):
            accepted.append(record)
        else:
            discarded.add(record.id)

    for pending in mapped.links:
        if pending.source_id in discarded:
            continue
        encounter = context.registry.find_encounter(pending.encounter_id)
        if encounter is None:
            continue
        attach_link(encounter, pending.link)
    return accepted
