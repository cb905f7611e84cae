"""Unit tests for the row mappers."""

from datetime import date

import pytest

from src.domain.enums import (
    AdministrativeGender,
    DiagnosisRole,
    MedicationEventType,
    ObservationCategory,
    RecordKind,
    TableKind,
)
from src.domain.mappers import TABLES, apply_mapped, full_pid, map_row
from src.domain.mappers.documents import file_name_of
from src.domain.mappers.person import DUMMY_ADDRESS, parse_address
from src.domain.options import ConverterOptions
from src.domain.ports import RowMappingError, UnknownPatientError
from src.domain.services.context import ConversionContext


def _context(**raw_options) -> ConversionContext:
    return ConversionContext(ConverterOptions.model_validate(raw_options))


def _apply(context: ConversionContext, table: TableKind, row: dict):
    return apply_mapped(map_row(table, row, context), context)


@pytest.fixture
def context_with_case():
    """Context with patient P1 and case encounter V1 registered."""
    context = _context()
    _apply(context, TableKind.PERSON, {"Patient-ID": "P1"})
    _apply(context, TableKind.CASE_ENCOUNTER, {
        "Patient-ID": "P1",
        "Versorgungsfall-ID": "V1",
        "Startdatum": "2021-03-01",
        "Enddatum": "2021-03-04",
    })
    return context


class TestFullPid:
    """Test suite for the patient id transformation."""

    def test_offset_keeps_zero_padding(self):
        """Test that the last digit run is increased with its width kept."""
        options = ConverterOptions.model_validate({"PID_LAST_NUMBER_INCREASE_INITIAL_OFFSET": "5"})
        assert full_pid("P-000012", options) == "P-000017"

    def test_prefix_suffix_and_underscores(self):
        """Test affixes and the underscore replacement."""
        options = ConverterOptions.model_validate({"PID_PREFIX": "TEST_", "PID_SUFFIX": "_X"})
        assert full_pid(" 42_a ", options) == "TEST-42-a-X"

    def test_defaults_leave_pid_untouched(self):
        assert full_pid("P-1", ConverterOptions()) == "P-1"


class TestPersonMapper:
    """Test suite for the Person table."""

    def test_full_row(self):
        """Test a completely filled person row."""
        context = _context()
        records = _apply(context, TableKind.PERSON, {
            "Patient-ID": "P1",
            "Vorname": "Anna Maria",
            "Nachname": "Muster",
            "Anschrift": "Hauptstr. 1, 04103 Leipzig",
            "Geburtsdatum": "01.02.1980",
            "Geschlecht": "weiblich",
            "Krankenkasse": "AOK",
        })
        patient = records[0]
        assert patient.id == "P1"
        assert patient.given_names == ["Anna", "Maria"]
        assert patient.family_name == "Muster"
        assert patient.gender == AdministrativeGender.FEMALE
        assert patient.birth_date == date(1980, 2, 1)
        assert patient.address.city == "Leipzig"
        assert patient.address.postal_code == "04103"
        assert patient.to_resource()["identifier"][0]["value"] == "P1"

    def test_placeholders_for_missing_values(self):
        """Test generated names and the dummy address."""
        context = _context()
        patient = _apply(context, TableKind.PERSON, {"Patient-ID": "P7"})[0]
        assert patient.given_names == ["Vorname-P7"]
        assert patient.family_name == "Nachname-P7"
        assert patient.address == DUMMY_ADDRESS
        assert patient.gender is None

    def test_unknown_gender_fails_row(self):
        """Test that an unparsable gender rejects the row."""
        with pytest.raises(RowMappingError):
            map_row(TableKind.PERSON, {"Patient-ID": "P1", "Geschlecht": "x"}, _context())

    def test_missing_pid_fails_row(self):
        with pytest.raises(RowMappingError):
            map_row(TableKind.PERSON, {"Patient-ID": "  "}, _context())

    def test_address_without_street(self):
        """Test the postal-code-only address form."""
        address = parse_address("04103 Leipzig")
        assert address.postal_code == "04103"
        assert address.lines == []


class TestEncounterMappers:
    """Test suite for both encounter tables."""

    def test_case_encounter_with_pending_admission_diagnoses(self, context_with_case):
        """Test that admission codes without Condition become pending links."""
        _apply(context_with_case, TableKind.CASE_ENCOUNTER, {
            "Patient-ID": "P1",
            "Versorgungsfall-ID": "V2",
            "Startdatum": "2021-04-01",
            "Enddatum": "",
            "Versorgungsfallgrund (Aufnahmediagnose)": "I10 + E11.9",
        })
        case = context_with_case.registry.get("V2")
        assert [(link.code, link.is_pending) for link in case.diagnoses] == [("I10", True), ("E11.9", True)]
        assert case.period.end is None

    def test_department_encounter_gets_synthetic_id(self, context_with_case):
        """Test {pid}-E-{n} ids for department stays without source id."""
        row = {"Patient-ID": "P1", "Startdatum": "2021-03-02", "Enddatum": "2021-03-03", "Fachabteilung": "Innere"}
        first = _apply(context_with_case, TableKind.DEPARTMENT_ENCOUNTER, row)[0]
        second = _apply(context_with_case, TableKind.DEPARTMENT_ENCOUNTER, row)[0]
        assert (first.id, second.id) == ("P1-E-1", "P1-E-2")
        assert first.kind == RecordKind.DEPARTMENT_ENCOUNTER
        assert first.to_resource()["serviceType"] == {"text": "Innere"}

    def test_encounter_for_unknown_patient_is_rejected(self, context_with_case):
        """Test referential closure on encounter rows."""
        with pytest.raises(UnknownPatientError):
            _apply(context_with_case, TableKind.CASE_ENCOUNTER, {
                "Patient-ID": "P9",
                "Versorgungsfall-ID": "V9",
                "Startdatum": "2021-03-01",
                "Enddatum": "2021-03-04",
            })


class TestClinicalMappers:
    """Test suite for diagnoses and procedures."""

    def test_diagnosis_id_and_link(self, context_with_case):
        """Test encounter-scoped id and the back-reference on the encounter."""
        condition = _apply(context_with_case, TableKind.DIAGNOSIS, {
            "Patient-ID": "P1",
            "ICD": "I10",
            "Versorgungsfall-ID": "V1",
            "Typ": "Hauptdiagnose",
        })[0]
        case = context_with_case.registry.get("V1")
        assert condition.id == "V1-C-1"
        assert condition.encounter_reference is None
        assert case.diagnoses[0].target_id == "V1-C-1"
        assert case.diagnoses[0].role == DiagnosisRole.CHIEF_COMPLAINT

    def test_diagnosis_first_writer_wins(self, context_with_case):
        """Test that a repeated code reuses the first Condition."""
        row = {"Patient-ID": "P1", "ICD": "I10", "Versorgungsfall-ID": "V1"}
        _apply(context_with_case, TableKind.DIAGNOSIS, row)
        second = _apply(context_with_case, TableKind.DIAGNOSIS, {**row, "ICD": "i10"})
        assert second == []
        assert len(context_with_case.registry.all_records_of_kind(RecordKind.CONDITION)) == 1
        assert len(context_with_case.registry.get("V1").diagnoses) == 1

    def test_diagnosis_without_encounter_uses_patient_context(self, context_with_case):
        condition = _apply(context_with_case, TableKind.DIAGNOSIS, {"Patient-ID": "P1", "ICD": "E11.9"})[0]
        assert condition.id == "P1-C-1"
        assert condition.encounter_id is None

    def test_diagnosis_to_encounter_policy(self):
        """Test that the Condition stores the encounter when enabled."""
        context = _context(SET_REFERENCE_FROM_DIAGNOSIS_CONDITION_TO_ENCOUNTER="true")
        _apply(context, TableKind.PERSON, {"Patient-ID": "P1"})
        _apply(context, TableKind.CASE_ENCOUNTER, {
            "Patient-ID": "P1", "Versorgungsfall-ID": "V1", "Startdatum": "2021-03-01", "Enddatum": "2021-03-02",
        })
        condition = _apply(context, TableKind.DIAGNOSIS, {"Patient-ID": "P1", "ICD": "I10", "Versorgungsfall-ID": "V1"})[0]
        assert condition.to_resource()["encounter"] == {"reference": "Encounter/V1"}

    def test_procedure_category_and_link(self, context_with_case):
        """Test OPS chapter category and the procedure entry on the encounter."""
        procedure = _apply(context_with_case, TableKind.PROCEDURE, {
            "Patient-ID": "P1",
            "Prozedurencode": "5-470.11",
            "Versorgungsfall-ID": "V1",
            "Dokumentationsdatum": "2021-03-02",
        })[0]
        assert procedure.id == "V1-P-1"
        assert procedure.category.code == "387713003"
        link = context_with_case.registry.get("V1").diagnoses[0]
        assert link.target_kind == RecordKind.PROCEDURE
        assert link.to_fhir()["condition"] == {"reference": "Procedure/V1-P-1"}

    def test_missing_encounter_keeps_row(self, context_with_case):
        """Test that a row naming an unknown encounter still maps."""
        procedure = _apply(context_with_case, TableKind.PROCEDURE, {
            "Patient-ID": "P1", "Prozedurencode": "8-930", "Versorgungsfall-ID": "V404",
        })[0]
        assert procedure.id == "V404-P-1"
        assert procedure.encounter_reference is None


class TestObservationAndMedicationMappers:
    """Test suite for laboratory, vital signs and medication rows."""

    def test_numeric_laboratory_value(self, context_with_case):
        observation = _apply(context_with_case, TableKind.LABORATORY, {
            "Patient-ID": "P1", "LOINC": "2345-7", "Wert": "5,4", "Einheit": "mmol/L", "Versorgungsfall-ID": "V1",
        })[0]
        assert observation.id == "V1-OL-1"
        assert observation.category == ObservationCategory.LABORATORY
        assert observation.to_resource()["valueQuantity"]["value"] == 5.4
        assert observation.encounter_reference == "V1"

    def test_textual_vital_sign_value(self, context_with_case):
        observation = _apply(context_with_case, TableKind.VITAL_SIGNS, {
            "Patient-ID": "P1", "LOINC": "8867-4", "Wert": "regelmäßig", "Einheit": "/min",
        })[0]
        assert observation.id == "P1-OV-1"
        assert observation.value_string == "regelmäßig"
        assert observation.unit is None

    @pytest.mark.parametrize("typ,expected,letter", [
        ("Gabe", MedicationEventType.ADMINISTRATION, "MA"),
        ("Verordnung", MedicationEventType.STATEMENT, "MS"),
        (None, MedicationEventType.STATEMENT, "MS"),
    ])
    def test_medication_event_type(self, context_with_case, typ, expected, letter):
        """Test the administration/statement split and its counters."""
        row = {"Patient-ID": "P1", "Wirksubstanz": "Metformin", "ATC": "A10BA02", "Typ": typ}
        medication = _apply(context_with_case, TableKind.MEDICATION, row)[0]
        assert medication.event_type == expected
        assert medication.id == f"P1-{letter}-1"
        assert medication.to_resource()["resourceType"] == expected.value


class TestDocumentMapper:
    """Test suite for document rows."""

    def test_title_and_content_type_from_uri(self, context_with_case):
        document = _apply(context_with_case, TableKind.DOCUMENT, {
            "Patient-ID": "P1", "URI": "file:///archive/arztbrief.pdf", "Versorgungsfall-ID": "V1",
        })[0]
        assert document.id == "V1-D-1"
        assert document.title == "arztbrief.pdf"
        assert document.content_type == "application/pdf"

    def test_file_name_of_windows_path(self):
        assert file_name_of("C:\\docs\\befund.txt") == "befund.txt"


class TestTableCatalogue:
    """Test suite for the table catalogue."""

    def test_catalogue_order_matches_conversion_order(self):
        assert list(TABLES) == list(TableKind)

    def test_every_table_requires_patient_id(self):
        assert all("Patient-ID" in spec.required_columns for spec in TABLES.values())
