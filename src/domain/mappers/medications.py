"""Medication table mapper.

Rows typed as an administration (``Gabe``) become MedicationAdministration
records, everything else MedicationStatement. The two kinds use separate
id counters.
"""

import logging

from src.domain.enums import IdentifierKind, MedicationEventType
from src.domain.mappers.base import MappedRow, cell, encounter_of, id_context, patient_id_of, required_cell
from src.domain.ports import Row
from src.domain.records import MedicationRecord
from src.domain.services.context import ConversionContext
from src.domain.utils import parse_date_value, parse_decimal

logger = logging.getLogger(__name__)

ADMINISTRATION_TYPES = frozenset({"gabe", "verabreichung", "administration"})


def event_type_of(value) -> MedicationEventType:
    if value is not None and value.strip().lower() in ADMINISTRATION_TYPES:
        return MedicationEventType.ADMINISTRATION
    return MedicationEventType.STATEMENT


def map_medication(row: Row, context: ConversionContext) -> MappedRow:
    pid = patient_id_of(row, context)
    encounter_id, encounter = encounter_of(row, context)
    event_type = event_type_of(cell(row, "Typ"))
    kind = (
        IdentifierKind.MEDICATION_ADMINISTRATION
        if event_type == MedicationEventType.ADMINISTRATION
        else IdentifierKind.MEDICATION_STATEMENT
    )

    raw_dose = cell(row, "Dosis")
    dose = parse_decimal(raw_dose)
    if raw_dose and dose is None:
        logger.warning(f"Can not parse Dosis <{raw_dose}>")

    raw_time = cell(row, "Zeitstempel")
    effective = parse_date_value(raw_time)
    if raw_time and effective is None:
        logger.warning(f"Can not parse Zeitstempel <{raw_time}>")

    medication = MedicationRecord(
        id=context.make_id(id_context(pid, encounter_id), kind),
        patient_id=pid,
        encounter_id=encounter_id,
        event_type=event_type,
        substance=required_cell(row, "Wirksubstanz"),
        atc=cell(row, "ATC"),
        pzn=cell(row, "PZN"),
        dose=dose,
        unit=cell(row, "Einheit"),
        effective=effective,
        encounter_reference=encounter.id if encounter is not None else None,
    )
    return MappedRow(records=[medication])
