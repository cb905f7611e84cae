"""Diagnosis and procedure table mappers.

Both relations to the encounter are bidirectional in the target model. Which
side stores the pointer is decided by the reference policy: the record may
carry ``encounter`` and/or the encounter may list the record in its
diagnosis list.
"""

import logging
from typing import Optional

from src.domain.enums import (
    DiagnosisRole,
    IdentifierKind,
    RecordKind,
    ReferenceDirection,
    ReferenceRelation,
)
from src.domain.mappers.base import (
    MappedRow,
    PendingLink,
    cell,
    encounter_of,
    id_context,
    patient_id_of,
    required_cell,
)
from src.domain.ports import Row
from src.domain.records import Coding, ConditionRecord, EncounterLink, ProcedureRecord
from src.domain.services.context import ConversionContext
from src.domain.utils import parse_date_value

logger = logging.getLogger(__name__)

SNOMED_SYSTEM = "http://snomed.info/sct"

DIAGNOSIS_ROLES = {
    "aufnahmediagnose": DiagnosisRole.ADMISSION,
    "hauptdiagnose": DiagnosisRole.CHIEF_COMPLAINT,
    "entlassdiagnose": DiagnosisRole.DISCHARGE,
    "entlassungsdiagnose": DiagnosisRole.DISCHARGE,
    "nebendiagnose": DiagnosisRole.BILLING,
}

# OPS chapter (first code digit) -> SNOMED procedure category
PROCEDURE_CATEGORIES = {
    "1": ("103693007", "Diagnostic procedure"),
    "3": ("363679005", "Imaging"),
    "5": ("387713003", "Surgical procedure"),
    "6": ("18629005", "Administration of medicine"),
    "8": ("277132007", "Therapeutic procedure"),
    "9": ("394841004", "Other category"),
}


def diagnosis_role(value: Optional[str]) -> Optional[DiagnosisRole]:
    if value is None:
        return None
    role = DIAGNOSIS_ROLES.get(value.strip().lower())
    if role is None:
        try:
            role = DiagnosisRole(value.strip())
        except ValueError:
            logger.warning(f"Unknown diagnosis type <{value}>, no role assigned")
    return role


def procedure_category(code: str) -> Optional[Coding]:
    category = PROCEDURE_CATEGORIES.get(code.strip()[:1])
    if category is None:
        return None
    return Coding(system=SNOMED_SYSTEM, code=category[0], display=category[1])


def _date_cell(row: Row, column: str):
    raw = cell(row, column)
    value = parse_date_value(raw)
    if raw and value is None:
        logger.warning(f"Can not parse {column} <{raw}>")
    return value


def map_diagnosis(row: Row, context: ConversionContext) -> MappedRow:
    pid = patient_id_of(row, context)
    code = required_cell(row, "ICD")
    encounter_id, encounter = encounter_of(row, context)
    role = diagnosis_role(cell(row, "Typ"))
    policy = context.policy

    mapped = MappedRow()
    condition = context.registry.lookup(RecordKind.CONDITION, ConditionRecord.key_for(pid, code))
    if condition is None:
        to_encounter = encounter is not None and policy.is_enabled(
            ReferenceRelation.DIAGNOSIS, ReferenceDirection.TO_ENCOUNTER
        )
        condition = ConditionRecord(
            id=context.make_id(id_context(pid, encounter_id), IdentifierKind.DIAGNOSIS),
            patient_id=pid,
            encounter_id=encounter_id,
            code=code,
            display=cell(row, "Bezeichner"),
            recorded_date=_date_cell(row, "Dokumentationsdatum"),
            role=role,
            encounter_reference=encounter.id if to_encounter else None,
        )
        mapped.records.append(condition)
    else:
        logger.debug(f"Diagnosis {code} of patient {pid} already mapped as {condition.id}")

    if encounter is not None and policy.is_enabled(ReferenceRelation.DIAGNOSIS, ReferenceDirection.FROM_ENCOUNTER):
        mapped.links.append(PendingLink(
            encounter_id=encounter.id,
            link=EncounterLink(target_kind=RecordKind.CONDITION, target_id=condition.id, code=code, role=role),
            source_id=condition.id,
        ))
    return mapped


def map_procedure(row: Row, context: ConversionContext) -> MappedRow:
    pid = patient_id_of(row, context)
    code = required_cell(row, "Prozedurencode")
    encounter_id, encounter = encounter_of(row, context)
    policy = context.policy

    category = procedure_category(code)
    if category is None:
        logger.warning(f"No procedure category for OPS code <{code}>")

    to_encounter = encounter is not None and policy.is_enabled(
        ReferenceRelation.PROCEDURE, ReferenceDirection.TO_ENCOUNTER
    )
    procedure = ProcedureRecord(
        id=context.make_id(id_context(pid, encounter_id), IdentifierKind.PROCEDURE),
        patient_id=pid,
        encounter_id=encounter_id,
        code=code,
        display=cell(row, "Prozedurentext"),
        performed=_date_cell(row, "Dokumentationsdatum"),
        category=category,
        encounter_reference=encounter.id if to_encounter else None,
    )
    mapped = MappedRow(records=[procedure])
    if encounter is not None and policy.is_enabled(ReferenceRelation.PROCEDURE, ReferenceDirection.FROM_ENCOUNTER):
        mapped.links.append(PendingLink(
            encounter_id=encounter.id,
            link=EncounterLink(target_kind=RecordKind.PROCEDURE, target_id=procedure.id, code=code),
            source_id=procedure.id,
        ))
    return mapped
