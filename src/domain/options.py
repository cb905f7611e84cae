"""Converter Options.

Immutable, validated view of the named options that steer one conversion run:
reference directionality, encounter inheritance, identifier counter offsets,
patient id transformation and the validation allow-list.

Option names are the UPPER_CASE keys used in options files and in
``CW_OPT_<KEY>`` environment variables; the model accepts those keys as
aliases and the snake_case field names alike. Unknown keys are ignored.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from src.domain.enums import IdentifierKind

TRUE_VALUES = frozenset({"true", "t", "wahr", "w", "yes", "y", "ja", "j", "1"})

DEFAULT_START_ID = 1

DEFAULT_IGNORED_VALIDATION_MESSAGES = (
    "Falls der Encounter abgeschlossen wurde muss eine Diagnose bekannt sein",
    "finished encounter without diagnosis",
    "Unknown code 'http://loinc.org",
    "None of the codings provided are in the value set 'LOINC Codes'",
    "Unable to validate code http://snomed.info/sct",
    "None of the codings provided are in the value set 'SNOMED CT",
    "Unknown code 'http://fhir.de/CodeSystem/ifa/pzn",
    "Unknown code 'http://fhir.de/CodeSystem/ask",
    "http://fhir.de/CodeSystem/ask",
)


def parse_bool(value: Any) -> bool:
    """Interpret an option value as boolean.

    Accepts the English and German truthy spellings (``true``, ``wahr``,
    ``ja``, ``1`` ...); everything else, including blanks, is False.
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUE_VALUES


class ConverterOptions(BaseModel):
    """Named options of one conversion run.

    Parameters:
        set_reference_from_diagnosis_condition_to_encounter: Condition stores ``encounter``
        set_reference_from_encounter_to_diagnosis_condition: Encounter lists its conditions
        set_reference_from_procedure_condition_to_encounter: Procedure stores ``encounter``
        set_reference_from_encounter_to_procedure_condition: Encounter lists its procedures
        add_missing_diagnoses_from_super_encounter: Department stays inherit diagnoses
        add_missing_class_from_super_encounter: Department stays inherit the class coding
        start_id_*: First counter value per identifier kind
        pid_last_number_increase_initial_offset: Added to the last digit run of every PID
        pid_prefix / pid_suffix: Wrapped around every PID
        ignored_validation_messages: Validator message substrings counted as ignorable
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    set_reference_from_diagnosis_condition_to_encounter: bool = Field(
        False, alias="SET_REFERENCE_FROM_DIAGNOSIS_CONDITION_TO_ENCOUNTER"
    )
    set_reference_from_encounter_to_diagnosis_condition: bool = Field(
        True, alias="SET_REFERENCE_FROM_ENCOUNTER_TO_DIAGNOSIS_CONDITION"
    )
    set_reference_from_procedure_condition_to_encounter: bool = Field(
        False, alias="SET_REFERENCE_FROM_PROCEDURE_CONDITION_TO_ENCOUNTER"
    )
    set_reference_from_encounter_to_procedure_condition: bool = Field(
        True, alias="SET_REFERENCE_FROM_ENCOUNTER_TO_PROCEDURE_CONDITION"
    )
    add_missing_diagnoses_from_super_encounter: bool = Field(
        False, alias="ADD_MISSING_DIAGNOSES_FROM_SUPER_ENCOUNTER"
    )
    add_missing_class_from_super_encounter: bool = Field(
        False, alias="ADD_MISSING_CLASS_FROM_SUPER_ENCOUNTER"
    )

    start_id_diagnosis: int = Field(DEFAULT_START_ID, alias="START_ID_DIAGNOSIS")
    start_id_encounter_level_2: int = Field(DEFAULT_START_ID, alias="START_ID_ENCOUNTER_LEVEL_2")
    start_id_procedure: int = Field(DEFAULT_START_ID, alias="START_ID_PROCEDURE")
    start_id_observation_laboratory: int = Field(DEFAULT_START_ID, alias="START_ID_OBSERVATION_LABORATORY")
    start_id_observation_vital_signs: int = Field(DEFAULT_START_ID, alias="START_ID_OBSERVATION_VITAL_SIGNS")
    start_id_medication_administration: int = Field(DEFAULT_START_ID, alias="START_ID_MEDICATION_ADMINISTRATION")
    start_id_medication_statement: int = Field(DEFAULT_START_ID, alias="START_ID_MEDICATION_STATEMENT")
    start_id_document_reference: int = Field(DEFAULT_START_ID, alias="START_ID_DOCUMENT_REFERENCE")

    pid_last_number_increase_initial_offset: int = Field(0, alias="PID_LAST_NUMBER_INCREASE_INITIAL_OFFSET")
    pid_prefix: str = Field("", alias="PID_PREFIX")
    pid_suffix: str = Field("", alias="PID_SUFFIX")

    ignored_validation_messages: tuple[str, ...] = Field(
        DEFAULT_IGNORED_VALIDATION_MESSAGES, alias="IGNORED_VALIDATION_MESSAGES"
    )

    @field_validator(
        "set_reference_from_diagnosis_condition_to_encounter",
        "set_reference_from_encounter_to_diagnosis_condition",
        "set_reference_from_procedure_condition_to_encounter",
        "set_reference_from_encounter_to_procedure_condition",
        "add_missing_diagnoses_from_super_encounter",
        "add_missing_class_from_super_encounter",
        mode="before",
    )
    @classmethod
    def validate_flag(cls, v: Any) -> bool:
        """Accept truthy option spellings."""
        return parse_bool(v)

    @field_validator(
        "start_id_diagnosis",
        "start_id_encounter_level_2",
        "start_id_procedure",
        "start_id_observation_laboratory",
        "start_id_observation_vital_signs",
        "start_id_medication_administration",
        "start_id_medication_statement",
        "start_id_document_reference",
        "pid_last_number_increase_initial_offset",
        mode="before",
    )
    @classmethod
    def validate_number(cls, v: Any, info: ValidationInfo) -> Any:
        """Fall back to the default for blank numeric options."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return cls.model_fields[info.field_name].default
        return v.strip() if isinstance(v, str) else v

    @field_validator("pid_prefix", "pid_suffix", mode="before")
    @classmethod
    def validate_affix(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("ignored_validation_messages", mode="before")
    @classmethod
    def validate_ignored_messages(cls, v: Any) -> tuple[str, ...]:
        """Split ``;``-separated lists as found in options files."""
        if v is None:
            return DEFAULT_IGNORED_VALIDATION_MESSAGES
        if isinstance(v, str):
            v = v.split(";")
        return tuple(str(item).strip() for item in v if str(item).strip())

    def start_id(self, kind: IdentifierKind) -> int:
        """First counter value for ``kind``."""
        return getattr(self, kind.start_option.lower())

    def as_option_dict(self) -> dict[str, Any]:
        """Options keyed by their UPPER_CASE names."""
        return self.model_dump(by_alias=True)
