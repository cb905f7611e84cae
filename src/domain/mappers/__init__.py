"""Row Mappers.

One pure mapper per table kind, dispatched through the table catalogue. The
catalogue also declares which columns each table requires (a missing one
aborts the table) and which it uses when present.
"""

from src.domain.enums import TableKind
from src.domain.mappers.base import (
    CASE_ID,
    PATIENT_ID,
    MappedRow,
    PendingLink,
    TableSpec,
    apply_mapped,
    attach_link,
    full_pid,
)
from src.domain.mappers.clinical import map_diagnosis, map_procedure
from src.domain.mappers.documents import map_document
from src.domain.mappers.encounters import (
    ADMISSION_DIAGNOSIS_COLUMN,
    DEPARTMENT_ID,
    map_case_encounter,
    map_department_encounter,
)
from src.domain.mappers.medications import map_medication
from src.domain.mappers.observations import map_laboratory, map_vital_signs
from src.domain.mappers.person import COLUMNS as PERSON_COLUMNS, map_person
from src.domain.ports import Row
from src.domain.services.context import ConversionContext

TABLES: dict[TableKind, TableSpec] = {
    spec.table: spec
    for spec in (
        TableSpec(
            table=TableKind.PERSON,
            file_name="Person.csv",
            required_columns=(PATIENT_ID,),
            optional_columns=PERSON_COLUMNS,
            mapper=map_person,
            description="Patient",
        ),
        TableSpec(
            table=TableKind.CASE_ENCOUNTER,
            file_name="Versorgungsfall.csv",
            required_columns=(PATIENT_ID, CASE_ID, "Startdatum", "Enddatum"),
            optional_columns=("Versorgungsfallklasse", ADMISSION_DIAGNOSIS_COLUMN),
            mapper=map_case_encounter,
            description="Encounter (case)",
        ),
        TableSpec(
            table=TableKind.DEPARTMENT_ENCOUNTER,
            file_name="Abteilungsfall.csv",
            required_columns=(PATIENT_ID, "Startdatum", "Enddatum", "Fachabteilung"),
            optional_columns=(DEPARTMENT_ID, "Versorgungsfallklasse"),
            mapper=map_department_encounter,
            description="Encounter (department)",
        ),
        TableSpec(
            table=TableKind.DIAGNOSIS,
            file_name="Diagnose.csv",
            required_columns=(PATIENT_ID, "ICD"),
            optional_columns=("Bezeichner", "Dokumentationsdatum", "Typ", CASE_ID),
            mapper=map_diagnosis,
            description="Condition",
        ),
        TableSpec(
            table=TableKind.PROCEDURE,
            file_name="Prozedur.csv",
            required_columns=(PATIENT_ID, "Prozedurencode"),
            optional_columns=("Prozedurentext", "Dokumentationsdatum", CASE_ID),
            mapper=map_procedure,
            description="Procedure",
        ),
        TableSpec(
            table=TableKind.LABORATORY,
            file_name="Laborbefund.csv",
            required_columns=(PATIENT_ID, "LOINC", "Wert"),
            optional_columns=("Bezeichner", "Einheit", "Zeitstempel", CASE_ID),
            mapper=map_laboratory,
            description="Observation (laboratory)",
        ),
        TableSpec(
            table=TableKind.VITAL_SIGNS,
            file_name="Klinische Dokumentation.csv",
            required_columns=(PATIENT_ID, "LOINC", "Wert"),
            optional_columns=("Bezeichner", "Einheit", "Zeitstempel", CASE_ID),
            mapper=map_vital_signs,
            description="Observation (vital signs)",
        ),
        TableSpec(
            table=TableKind.MEDICATION,
            file_name="Medikation.csv",
            required_columns=(PATIENT_ID, "Wirksubstanz"),
            optional_columns=("ATC", "PZN", "Zeitstempel", "Dosis", "Einheit", "Typ", CASE_ID),
            mapper=map_medication,
            description="MedicationAdministration / MedicationStatement",
        ),
        TableSpec(
            table=TableKind.DOCUMENT,
            file_name="Dokument.csv",
            required_columns=(PATIENT_ID, "URI"),
            optional_columns=("Titel", "Dokumenttyp", "Zeitstempel", CASE_ID),
            mapper=map_document,
            description="DocumentReference",
        ),
    )
}


def map_row(table: TableKind, row: Row, context: ConversionContext) -> MappedRow:
    """Dispatch one row to the mapper of its table kind."""
    return TABLES[table].mapper(row, context)


__all__ = [
    "TABLES",
    "TableSpec",
    "MappedRow",
    "PendingLink",
    "PATIENT_ID",
    "CASE_ID",
    "apply_mapped",
    "attach_link",
    "full_pid",
    "map_row",
]
