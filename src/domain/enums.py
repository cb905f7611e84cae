"""Domain Enumerations.

Closed vocabularies shared by the record models, the row mappers and the
bundle services. Values that end up in serialized resources use the codes of
the corresponding FHIR R4 value sets.
"""

from enum import Enum


class RecordKind(str, Enum):
    """Kind tag of a record held in the registry."""
    PATIENT = "Patient"
    CASE_ENCOUNTER = "CaseEncounter"
    DEPARTMENT_ENCOUNTER = "DepartmentEncounter"
    CONDITION = "Condition"
    PROCEDURE = "Procedure"
    OBSERVATION = "Observation"
    MEDICATION_EVENT = "MedicationEvent"
    DOCUMENT = "Document"

    @property
    def is_encounter(self) -> bool:
        return self in (RecordKind.CASE_ENCOUNTER, RecordKind.DEPARTMENT_ENCOUNTER)


class IdentifierKind(str, Enum):
    """Counter families used by the identifier allocator.

    Each member carries the letter used inside synthetic ids and the name of
    the converter option that offsets its counter.
    """
    DIAGNOSIS = "C"
    ENCOUNTER_LEVEL_2 = "E"
    PROCEDURE = "P"
    OBSERVATION_LABORATORY = "OL"
    OBSERVATION_VITAL_SIGNS = "OV"
    MEDICATION_ADMINISTRATION = "MA"
    MEDICATION_STATEMENT = "MS"
    DOCUMENT_REFERENCE = "D"

    @property
    def letter(self) -> str:
        return self.value

    @property
    def start_option(self) -> str:
        return f"START_ID_{self.name}"


class TableKind(str, Enum):
    """Input tables, in the order they are converted for every bundle."""
    PERSON = "person"
    CASE_ENCOUNTER = "case_encounter"
    DEPARTMENT_ENCOUNTER = "department_encounter"
    DIAGNOSIS = "diagnosis"
    PROCEDURE = "procedure"
    LABORATORY = "laboratory"
    VITAL_SIGNS = "vital_signs"
    MEDICATION = "medication"
    DOCUMENT = "document"


class ReferenceRelation(str, Enum):
    """Bidirectional relations whose stored direction is configurable."""
    DIAGNOSIS = "diagnosis"
    PROCEDURE = "procedure"


class ReferenceDirection(str, Enum):
    """Which side of a relation stores the pointer."""
    TO_ENCOUNTER = "to_encounter"
    FROM_ENCOUNTER = "from_encounter"


class DiagnosisRole(str, Enum):
    """FHIR diagnosis-role codes (http://terminology.hl7.org/CodeSystem/diagnosis-role)."""
    ADMISSION = "AD"
    DISCHARGE = "DD"
    CHIEF_COMPLAINT = "CC"
    COMORBIDITY = "CM"
    PRE_OPERATIVE = "pre-op"
    POST_OPERATIVE = "post-op"
    BILLING = "billing"

    @property
    def display(self) -> str:
        return _DIAGNOSIS_ROLE_DISPLAY[self]


_DIAGNOSIS_ROLE_DISPLAY = {
    DiagnosisRole.ADMISSION: "Admission diagnosis",
    DiagnosisRole.DISCHARGE: "Discharge diagnosis",
    DiagnosisRole.CHIEF_COMPLAINT: "Chief complaint",
    DiagnosisRole.COMORBIDITY: "Comorbidity diagnosis",
    DiagnosisRole.PRE_OPERATIVE: "pre-op diagnosis",
    DiagnosisRole.POST_OPERATIVE: "post-op diagnosis",
    DiagnosisRole.BILLING: "Billing",
}


class AdministrativeGender(str, Enum):
    """FHIR AdministrativeGender."""
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    UNKNOWN = "unknown"


class ObservationCategory(str, Enum):
    """FHIR observation-category codes produced by the converter."""
    LABORATORY = "laboratory"
    VITAL_SIGNS = "vital-signs"


class MedicationEventType(str, Enum):
    """Concrete resource type of a medication row."""
    ADMINISTRATION = "MedicationAdministration"
    STATEMENT = "MedicationStatement"


class BundleMethod(str, Enum):
    """Transaction instruction per bundle entry."""
    CREATE = "POST"
    UPDATE = "PUT"


class ValidationSeverity(str, Enum):
    """Severity of a single validator finding."""
    ERROR = "error"
    WARNING = "warning"
    INFORMATION = "information"


class ValidationStatus(str, Enum):
    """Overall classification of one record, best to worst is VALID..ERROR."""
    VALID = "valid"
    IGNORED = "ignored"
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]


_STATUS_RANK = {
    ValidationStatus.VALID: 0,
    ValidationStatus.IGNORED: 1,
    ValidationStatus.WARNING: 2,
    ValidationStatus.ERROR: 3,
}
