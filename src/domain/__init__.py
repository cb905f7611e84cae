"""Domain layer for Case-Weaver.

This module contains the conversion core: record models, converter options,
the per-bundle services and the row mappers. All domain models are pure
Python with no external dependencies beyond Pydantic.
"""

from .enums import RecordKind, TableKind, IdentifierKind
from .options import ConverterOptions
from .records import (
    PatientRecord,
    CaseEncounterRecord,
    DepartmentEncounterRecord,
    ConditionRecord,
    ProcedureRecord,
    ObservationRecord,
    MedicationRecord,
    DocumentRecord,
)

__all__ = [
    "RecordKind",
    "TableKind",
    "IdentifierKind",
    "ConverterOptions",
    "PatientRecord",
    "CaseEncounterRecord",
    "DepartmentEncounterRecord",
    "ConditionRecord",
    "ProcedureRecord",
    "ObservationRecord",
    "MedicationRecord",
    "DocumentRecord",
]
