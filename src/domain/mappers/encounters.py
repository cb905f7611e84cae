"""Encounter table mappers.

Case encounters (Versorgungsfall) keep their source id; department
encounters (Abteilungsfall) keep theirs when the export has one and get a
synthetic ``{pid}-E-{n}`` id otherwise. Containment between the two levels is
not in the data and is inferred later by the hierarchy resolver.
"""

import logging
from typing import Optional

from src.domain.enums import DiagnosisRole, IdentifierKind, RecordKind
from src.domain.mappers.base import CASE_ID, MappedRow, cell, patient_id_of, required_cell
from src.domain.ports import Row
from src.domain.records import (
    CaseEncounterRecord,
    Coding,
    ConditionRecord,
    DepartmentEncounterRecord,
    EncounterLink,
    Period,
)
from src.domain.services.context import ConversionContext
from src.domain.utils import parse_date_value, split_codes

logger = logging.getLogger(__name__)

ENCOUNTER_CLASS_SYSTEM = (
    "https://www.medizininformatik-initiative.de/fhir/core/modul-fall/CodeSystem/Versorgungsfallklasse"
)
ADMISSION_DIAGNOSIS_COLUMN = "Versorgungsfallgrund (Aufnahmediagnose)"
DEPARTMENT_ID = "Abteilungsfall-ID"


def _period(row: Row, encounter_label: str) -> Period:
    start_raw, end_raw = cell(row, "Startdatum"), cell(row, "Enddatum")
    start, end = parse_date_value(start_raw), parse_date_value(end_raw)
    if start_raw and start is None:
        logger.warning(f"Can not parse Startdatum <{start_raw}> of encounter {encounter_label}")
    if end_raw and end is None:
        logger.warning(f"Can not parse Enddatum <{end_raw}> of encounter {encounter_label}")
    return Period(start=start, end=end)


def _class_coding(row: Row) -> Optional[Coding]:
    value = cell(row, "Versorgungsfallklasse")
    if value is None:
        return None
    return Coding(system=ENCOUNTER_CLASS_SYSTEM, code=value)


def map_case_encounter(row: Row, context: ConversionContext) -> MappedRow:
    pid = patient_id_of(row, context)
    encounter_id = required_cell(row, CASE_ID)

    diagnoses = []
    codes = split_codes(cell(row, ADMISSION_DIAGNOSIS_COLUMN))
    if not codes:
        logger.warning(f"{ADMISSION_DIAGNOSIS_COLUMN} empty for encounter {encounter_id}")
    for code in codes:
        link = EncounterLink(target_kind=RecordKind.CONDITION, code=code, role=DiagnosisRole.ADMISSION)
        condition = context.registry.lookup(RecordKind.CONDITION, ConditionRecord.key_for(pid, code))
        if condition is not None:
            link = link.model_copy(update={"target_id": condition.id})
        if not any(existing.same_target(link) for existing in diagnoses):
            diagnoses.append(link)

    encounter = CaseEncounterRecord(
        id=encounter_id,
        patient_id=pid,
        identifier_value=encounter_id,
        period=_period(row, encounter_id),
        class_coding=_class_coding(row),
        diagnoses=diagnoses,
    )
    return MappedRow(records=[encounter])


def map_department_encounter(row: Row, context: ConversionContext) -> MappedRow:
    pid = patient_id_of(row, context)
    encounter_id = cell(row, DEPARTMENT_ID) or context.make_id(pid, IdentifierKind.ENCOUNTER_LEVEL_2)

    encounter = DepartmentEncounterRecord(
        id=encounter_id,
        patient_id=pid,
        period=_period(row, encounter_id),
        class_coding=_class_coding(row),
        service_type=required_cell(row, "Fachabteilung"),
    )
    return MappedRow(records=[encounter])
