"""Clinical Record Models.

This module defines the typed records produced by the row mappers and held in
the record registry. Every record knows its kind, its bundle-unique id, the
patient it belongs to and, optionally, the encounter it was documented in.

Lifecycle:
    - Payload fields are set once by a row mapper
    - Encounters additionally carry mutable diagnosis links, a class coding and
      absence markers that later mapping steps and the hierarchy resolver fill in
    - Records are never deleted from a bundle

Serialization:
    - ``to_resource()`` renders a FHIR R4 shaped dict
    - Absent-but-required data is rendered as a data-absent-reason extension
"""

from datetime import date, datetime, time
from typing import Any, ClassVar, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from src.domain.enums import (
    AdministrativeGender,
    DiagnosisRole,
    MedicationEventType,
    ObservationCategory,
    RecordKind,
)

DATA_ABSENT_REASON_URL = "http://hl7.org/fhir/StructureDefinition/data-absent-reason"
DIAGNOSIS_ROLE_SYSTEM = "http://terminology.hl7.org/CodeSystem/diagnosis-role"
ICD10_SYSTEM = "http://fhir.de/CodeSystem/bfarm/icd-10-gm"
OPS_SYSTEM = "http://fhir.de/CodeSystem/bfarm/ops"
LOINC_SYSTEM = "http://loinc.org"
ATC_SYSTEM = "http://fhir.de/CodeSystem/bfarm/atc"
PZN_SYSTEM = "http://fhir.de/CodeSystem/ifa/pzn"
OBSERVATION_CATEGORY_SYSTEM = "http://terminology.hl7.org/CodeSystem/observation-category"
UCUM_SYSTEM = "http://unitsofmeasure.org"

DateValue = Union[datetime, date]


def absent_marker(reason: str = "unknown") -> dict:
    """Return the data-absent-reason extension element."""
    return {"extension": [{"url": DATA_ABSENT_REASON_URL, "valueCode": reason}]}


def format_date_value(value: Optional[DateValue]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def reference(resource_type: str, resource_id: str) -> dict:
    return {"reference": f"{resource_type}/{resource_id}"}


class Coding(BaseModel):
    """A single code from a code system."""

    model_config = ConfigDict(frozen=True)

    system: Optional[str] = None
    code: str
    display: Optional[str] = None
    version: Optional[str] = None

    def to_fhir(self) -> dict:
        return self.model_dump(exclude_none=True)


class Period(BaseModel):
    """Time range of an encounter; a missing end means the stay is open."""

    model_config = ConfigDict(frozen=True)

    start: Optional[DateValue] = None
    end: Optional[DateValue] = None

    @staticmethod
    def _lower(value: DateValue) -> datetime:
        if isinstance(value, datetime):
            return value
        return datetime.combine(value, time.min)

    @staticmethod
    def _upper(value: DateValue) -> datetime:
        if isinstance(value, datetime):
            return value
        return datetime.combine(value, time.max)

    @property
    def start_key(self) -> Optional[datetime]:
        """Start as comparable datetime (date-only starts at midnight)."""
        return self._lower(self.start) if self.start is not None else None

    def contains(self, other: "Period") -> bool:
        """Check whether ``other`` lies fully within this period.

        Date-only bounds cover their whole day. An open end on this period is
        unbounded; an open end on ``other`` is only contained by another open
        end. Periods without a start never contain and are never contained.
        """
        if self.start is None or other.start is None:
            return False
        if self._lower(self.start) > self._lower(other.start):
            return False
        if self.end is None:
            return True
        if other.end is None:
            return False
        return self._upper(self.end) >= self._upper(other.end)

    def to_fhir(self) -> dict:
        data = {}
        if self.start is not None:
            data["start"] = format_date_value(self.start)
        if self.end is not None:
            data["end"] = format_date_value(self.end)
        return data


class Address(BaseModel):
    """Postal address of a patient."""

    model_config = ConfigDict(frozen=True)

    lines: list[str] = Field(default_factory=list)
    postal_code: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    text: Optional[str] = None

    def to_fhir(self) -> dict:
        data: dict[str, Any] = {"type": "both"}
        if self.text:
            data["text"] = self.text
        if self.lines:
            data["line"] = list(self.lines)
        if self.city:
            data["city"] = self.city
        if self.postal_code:
            data["postalCode"] = self.postal_code
        if self.country:
            data["country"] = self.country
        return data


class EncounterLink(BaseModel):
    """One entry of an encounter's diagnosis list.

    The target is either a Condition or a Procedure. Admission diagnoses of a
    case encounter are known by ICD code before the matching Condition exists;
    such links stay pending (``target_id`` is None) until resolved.
    """

    target_kind: RecordKind = RecordKind.CONDITION
    target_id: Optional[str] = None
    code: Optional[str] = None
    role: Optional[DiagnosisRole] = None

    @property
    def is_pending(self) -> bool:
        return self.target_id is None

    def same_target(self, other: "EncounterLink") -> bool:
        if self.target_id is not None and other.target_id is not None:
            return self.target_id == other.target_id
        return (self.target_kind, self.code) == (other.target_kind, other.code)

    def to_fhir(self) -> dict:
        resource_type = "Procedure" if self.target_kind == RecordKind.PROCEDURE else "Condition"
        entry: dict[str, Any] = {"condition": reference(resource_type, self.target_id)}
        if self.role is not None:
            entry["use"] = {
                "coding": [{
                    "system": DIAGNOSIS_ROLE_SYSTEM,
                    "code": self.role.value,
                    "display": self.role.display,
                }]
            }
        return entry


class ClinicalRecord(BaseModel):
    """Base of every record kind.

    Parameters:
        id: Synthetic or natural id, unique within the bundle
        patient_id: Id of the Patient record this record belongs to
        encounter_id: Encounter the source row was documented in, if any
    """

    model_config = ConfigDict(validate_assignment=True)

    kind: ClassVar[RecordKind]
    resource_type: ClassVar[str]

    id: str = Field(..., min_length=1)
    patient_id: str = Field(..., min_length=1)
    encounter_id: Optional[str] = None

    def natural_key(self) -> Optional[str]:
        """Key under which later rows may look this record up (None = not indexed)."""
        return None

    def fhir_type(self) -> str:
        return self.resource_type

    def subject(self) -> dict:
        return reference("Patient", self.patient_id)

    def to_resource(self) -> dict:
        raise NotImplementedError


class PatientRecord(ClinicalRecord):
    """Patient demographics; created once per bundle and never mutated."""

    kind: ClassVar[RecordKind] = RecordKind.PATIENT
    resource_type: ClassVar[str] = "Patient"

    source_pid: str
    identifier_system: Optional[str] = None
    family_name: Optional[str] = None
    given_names: list[str] = Field(default_factory=list)
    gender: Optional[AdministrativeGender] = None
    birth_date: Optional[date] = None
    address: Optional[Address] = None
    insurer: Optional[str] = None

    def natural_key(self) -> Optional[str]:
        return self.id

    def to_resource(self) -> dict:
        resource: dict[str, Any] = {
            "resourceType": self.fhir_type(),
            "id": self.id,
            "identifier": [{
                "use": "usual",
                "type": {"coding": [{
                    "system": "http://terminology.hl7.org/CodeSystem/v2-0203",
                    "code": "MR",
                }]},
                "system": self.identifier_system or "urn:pid",
                "value": self.id,
            }],
        }
        if self.family_name or self.given_names:
            name: dict[str, Any] = {"use": "official"}
            if self.family_name:
                name["family"] = self.family_name
            if self.given_names:
                name["given"] = list(self.given_names)
            resource["name"] = [name]
        if self.gender is not None:
            resource["gender"] = self.gender.value
        if self.birth_date is not None:
            resource["birthDate"] = self.birth_date.isoformat()
        if self.address is not None:
            resource["address"] = [self.address.to_fhir()]
        if self.insurer:
            resource["generalPractitioner"] = [{"display": self.insurer}]
        return resource


class EncounterRecord(ClinicalRecord):
    """Hospital stay on either hierarchy level.

    ``diagnoses``, ``class_coding``, ``part_of`` and the two absence flags are
    the only fields changed after creation.
    """

    kind: ClassVar[RecordKind]
    resource_type: ClassVar[str] = "Encounter"

    period: Period = Field(default_factory=Period)
    status: str = "finished"
    class_coding: Optional[Coding] = None
    class_absent: bool = False
    diagnoses: list[EncounterLink] = Field(default_factory=list)
    diagnoses_absent: bool = False
    part_of: Optional[str] = None
    service_type: Optional[str] = None
    identifier_value: Optional[str] = None

    def natural_key(self) -> Optional[str]:
        return self.id

    def resolved_diagnoses(self) -> list[EncounterLink]:
        return [link for link in self.diagnoses if not link.is_pending]

    def has_link(self, link: EncounterLink) -> bool:
        return any(existing.same_target(link) for existing in self.diagnoses)

    def to_resource(self) -> dict:
        resource: dict[str, Any] = {
            "resourceType": self.fhir_type(),
            "id": self.id,
            "status": self.status,
        }
        if self.identifier_value:
            resource["identifier"] = [{
                "type": {"coding": [{
                    "system": "http://terminology.hl7.org/CodeSystem/v2-0203",
                    "code": "VN",
                }]},
                "value": self.identifier_value,
            }]
        if self.class_coding is not None:
            resource["class"] = self.class_coding.to_fhir()
        elif self.class_absent:
            resource["class"] = absent_marker()
        if self.service_type:
            resource["serviceType"] = {"text": self.service_type}
        resource["subject"] = self.subject()
        period = self.period.to_fhir()
        if period:
            resource["period"] = period
        resolved = self.resolved_diagnoses()
        if resolved:
            resource["diagnosis"] = [link.to_fhir() for link in resolved]
        elif self.diagnoses_absent:
            resource["diagnosis"] = [{"condition": absent_marker()}]
        if self.part_of:
            resource["partOf"] = reference("Encounter", self.part_of)
        return resource


class CaseEncounterRecord(EncounterRecord):
    """Top-level stay from admission to discharge."""

    kind: ClassVar[RecordKind] = RecordKind.CASE_ENCOUNTER


class DepartmentEncounterRecord(EncounterRecord):
    """Stay within one department, nested inside a case encounter."""

    kind: ClassVar[RecordKind] = RecordKind.DEPARTMENT_ENCOUNTER


class ConditionRecord(ClinicalRecord):
    """Diagnosis coded in ICD-10."""

    kind: ClassVar[RecordKind] = RecordKind.CONDITION
    resource_type: ClassVar[str] = "Condition"

    code: str
    display: Optional[str] = None
    recorded_date: Optional[DateValue] = None
    role: Optional[DiagnosisRole] = None
    encounter_reference: Optional[str] = None

    @staticmethod
    def key_for(patient_id: str, code: str) -> str:
        return f"{patient_id}|{code.upper()}"

    def natural_key(self) -> Optional[str]:
        return self.key_for(self.patient_id, self.code)

    def to_resource(self) -> dict:
        resource: dict[str, Any] = {
            "resourceType": self.fhir_type(),
            "id": self.id,
            "code": {"coding": [Coding(system=ICD10_SYSTEM, code=self.code).to_fhir()]},
            "subject": self.subject(),
        }
        if self.display:
            resource["code"]["text"] = self.display
        if self.encounter_reference:
            resource["encounter"] = reference("Encounter", self.encounter_reference)
        if self.recorded_date is not None:
            resource["recordedDate"] = format_date_value(self.recorded_date)
        return resource


class ProcedureRecord(ClinicalRecord):
    """Procedure coded in OPS."""

    kind: ClassVar[RecordKind] = RecordKind.PROCEDURE
    resource_type: ClassVar[str] = "Procedure"

    code: str
    display: Optional[str] = None
    performed: Optional[DateValue] = None
    category: Optional[Coding] = None
    status: str = "completed"
    encounter_reference: Optional[str] = None

    def to_resource(self) -> dict:
        resource: dict[str, Any] = {
            "resourceType": self.fhir_type(),
            "id": self.id,
            "status": self.status,
            "code": {"coding": [Coding(system=OPS_SYSTEM, code=self.code).to_fhir()]},
            "subject": self.subject(),
        }
        if self.display:
            resource["code"]["text"] = self.display
        if self.category is not None:
            resource["category"] = {"coding": [self.category.to_fhir()]}
        if self.encounter_reference:
            resource["encounter"] = reference("Encounter", self.encounter_reference)
        if self.performed is not None:
            resource["performedDateTime"] = format_date_value(self.performed)
        return resource


class ObservationRecord(ClinicalRecord):
    """Laboratory result or vital sign coded in LOINC."""

    kind: ClassVar[RecordKind] = RecordKind.OBSERVATION
    resource_type: ClassVar[str] = "Observation"

    category: ObservationCategory
    code: str
    display: Optional[str] = None
    value_quantity: Optional[float] = None
    unit: Optional[str] = None
    value_string: Optional[str] = None
    effective: Optional[DateValue] = None
    status: str = "final"
    encounter_reference: Optional[str] = None

    def to_resource(self) -> dict:
        resource: dict[str, Any] = {
            "resourceType": self.fhir_type(),
            "id": self.id,
            "status": self.status,
            "category": [{"coding": [{
                "system": OBSERVATION_CATEGORY_SYSTEM,
                "code": self.category.value,
            }]}],
            "code": {"coding": [Coding(system=LOINC_SYSTEM, code=self.code).to_fhir()]},
            "subject": self.subject(),
        }
        if self.display:
            resource["code"]["text"] = self.display
        if self.encounter_reference:
            resource["encounter"] = reference("Encounter", self.encounter_reference)
        if self.effective is not None:
            resource["effectiveDateTime"] = format_date_value(self.effective)
        if self.value_quantity is not None:
            quantity: dict[str, Any] = {"value": self.value_quantity}
            if self.unit:
                quantity.update({"unit": self.unit, "system": UCUM_SYSTEM, "code": self.unit})
            resource["valueQuantity"] = quantity
        elif self.value_string is not None:
            resource["valueString"] = self.value_string
        return resource


class MedicationRecord(ClinicalRecord):
    """Medication administration or statement with an inline medication code."""

    kind: ClassVar[RecordKind] = RecordKind.MEDICATION_EVENT

    event_type: MedicationEventType
    substance: str
    atc: Optional[str] = None
    pzn: Optional[str] = None
    dose: Optional[float] = None
    unit: Optional[str] = None
    effective: Optional[DateValue] = None
    encounter_reference: Optional[str] = None

    def fhir_type(self) -> str:
        return self.event_type.value

    def to_resource(self) -> dict:
        codings = []
        if self.atc:
            codings.append(Coding(system=ATC_SYSTEM, code=self.atc).to_fhir())
        if self.pzn:
            codings.append(Coding(system=PZN_SYSTEM, code=self.pzn).to_fhir())
        medication: dict[str, Any] = {"text": self.substance}
        if codings:
            medication["coding"] = codings
        resource: dict[str, Any] = {
            "resourceType": self.fhir_type(),
            "id": self.id,
            "status": "completed",
            "medicationCodeableConcept": medication,
            "subject": self.subject(),
        }
        if self.encounter_reference:
            resource["context"] = reference("Encounter", self.encounter_reference)
        if self.effective is not None:
            resource["effectiveDateTime"] = format_date_value(self.effective)
        if self.dose is not None:
            dose: dict[str, Any] = {"value": self.dose}
            if self.unit:
                dose.update({"unit": self.unit, "system": UCUM_SYSTEM, "code": self.unit})
            if self.event_type == MedicationEventType.ADMINISTRATION:
                resource["dosage"] = {"dose": dose}
            else:
                resource["dosage"] = [{"doseAndRate": [{"doseQuantity": dose}]}]
        return resource


class DocumentRecord(ClinicalRecord):
    """Clinical document referenced by URL."""

    kind: ClassVar[RecordKind] = RecordKind.DOCUMENT
    resource_type: ClassVar[str] = "DocumentReference"

    url: str
    title: Optional[str] = None
    content_type: Optional[str] = None
    document_type: Optional[str] = None
    document_date: Optional[DateValue] = None
    encounter_reference: Optional[str] = None

    def to_resource(self) -> dict:
        attachment: dict[str, Any] = {"url": self.url}
        if self.content_type:
            attachment["contentType"] = self.content_type
        if self.title:
            attachment["title"] = self.title
        resource: dict[str, Any] = {
            "resourceType": self.fhir_type(),
            "id": self.id,
            "status": "current",
            "subject": self.subject(),
            "content": [{"attachment": attachment}],
        }
        if self.document_type:
            resource["type"] = {"text": self.document_type}
        if self.document_date is not None:
            resource["date"] = format_date_value(self.document_date)
        if self.encounter_reference:
            resource["context"] = {"encounter": [reference("Encounter", self.encounter_reference)]}
        return resource
