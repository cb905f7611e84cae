"""Required-Element Validator.

A small, offline stand-in for a profile validator: it checks that every
serialized resource carries the elements its resource type cannot do
without. Full profile and terminology validation stays with external
validators implementing the same port.
"""

import logging
from typing import Any

from src.domain.enums import ValidationSeverity
from src.domain.ports import ValidationFinding, ValidatorPort
from src.domain.records import DATA_ABSENT_REASON_URL

logger = logging.getLogger(__name__)

FINISHED_WITHOUT_DIAGNOSIS = "finished encounter without diagnosis"

REQUIRED_ELEMENTS: dict[str, tuple[str, ...]] = {
    "Patient": ("id", "identifier"),
    "Encounter": ("id", "status", "subject"),
    "Condition": ("id", "code", "subject"),
    "Procedure": ("id", "status", "code", "subject"),
    "Observation": ("id", "status", "code", "subject"),
    "MedicationAdministration": ("id", "status", "medicationCodeableConcept", "subject"),
    "MedicationStatement": ("id", "status", "medicationCodeableConcept", "subject"),
    "DocumentReference": ("id", "status", "subject", "content"),
}

RECOMMENDED_ELEMENTS: dict[str, tuple[str, ...]] = {
    "Patient": ("name", "gender", "birthDate"),
    "Encounter": ("period",),
    "Condition": ("recordedDate",),
    "Procedure": ("performedDateTime",),
    "Observation": ("effectiveDateTime",),
}


def _is_absent(value: Any) -> bool:
    if value is None or value == "" or value == [] or value == {}:
        return True
    if isinstance(value, dict):
        extensions = value.get("extension", [])
        return any(extension.get("url") == DATA_ABSENT_REASON_URL for extension in extensions)
    return False


class RequiredElementValidator(ValidatorPort):
    """Checks mandatory (error) and recommended (warning) elements per resource type."""

    def validate(self, resource: dict) -> list[ValidationFinding]:
        resource_type = resource.get("resourceType")
        if resource_type not in REQUIRED_ELEMENTS:
            return [ValidationFinding(
                severity=ValidationSeverity.ERROR,
                message=f"Unknown resource type {resource_type}",
            )]

        findings = []
        for element in REQUIRED_ELEMENTS[resource_type]:
            if _is_absent(resource.get(element)):
                findings.append(ValidationFinding(
                    severity=ValidationSeverity.ERROR,
                    message=f"{resource_type}.{element}: minimum required = 1, but only found 0",
                    location=f"{resource_type}.{element}",
                ))
        for element in RECOMMENDED_ELEMENTS.get(resource_type, ()):
            if _is_absent(resource.get(element)):
                findings.append(ValidationFinding(
                    severity=ValidationSeverity.WARNING,
                    message=f"{resource_type}.{element} is missing",
                    location=f"{resource_type}.{element}",
                ))

        if resource_type == "Encounter" and resource.get("status") == "finished":
            if not resource.get("diagnosis"):
                findings.append(ValidationFinding(
                    severity=ValidationSeverity.WARNING,
                    message=FINISHED_WITHOUT_DIAGNOSIS,
                    location="Encounter.diagnosis",
                ))
        return findings
