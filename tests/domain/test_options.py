"""Unit tests for ConverterOptions."""

import pytest
from pydantic import ValidationError

from src.domain.enums import IdentifierKind
from src.domain.options import DEFAULT_IGNORED_VALIDATION_MESSAGES, ConverterOptions, parse_bool


class TestParseBool:
    """Test suite for truthy option spellings."""

    @pytest.mark.parametrize("value", ["true", "TRUE", "wahr", "ja", "J", "y", "1", " yes ", True])
    def test_truthy(self, value):
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", ["false", "nein", "0", "", None, "maybe", False])
    def test_falsy(self, value):
        assert parse_bool(value) is False


class TestConverterOptions:
    """Test suite for option parsing and defaults."""

    def test_defaults(self):
        """Test compiled-in defaults."""
        options = ConverterOptions()
        assert options.set_reference_from_encounter_to_diagnosis_condition is True
        assert options.set_reference_from_diagnosis_condition_to_encounter is False
        assert options.add_missing_diagnoses_from_super_encounter is False
        assert options.start_id(IdentifierKind.DIAGNOSIS) == 1
        assert options.pid_prefix == ""
        assert options.ignored_validation_messages == DEFAULT_IGNORED_VALIDATION_MESSAGES

    def test_upper_case_keys_and_field_names(self):
        """Test that both alias and field name are accepted."""
        by_alias = ConverterOptions.model_validate({"START_ID_DOCUMENT_REFERENCE": "7"})
        by_name = ConverterOptions(start_id_document_reference=7)
        assert by_alias.start_id(IdentifierKind.DOCUMENT_REFERENCE) == 7
        assert by_name == by_alias

    def test_blank_number_falls_back_to_default(self):
        options = ConverterOptions.model_validate({"START_ID_PROCEDURE": " ", "PID_LAST_NUMBER_INCREASE_INITIAL_OFFSET": ""})
        assert options.start_id_procedure == 1
        assert options.pid_last_number_increase_initial_offset == 0

    def test_non_numeric_start_id_is_rejected(self):
        with pytest.raises(ValidationError):
            ConverterOptions.model_validate({"START_ID_PROCEDURE": "abc"})

    def test_unknown_keys_are_ignored(self):
        options = ConverterOptions.model_validate({"SOME_FUTURE_OPTION": "x"})
        assert options == ConverterOptions()

    def test_ignored_messages_split_on_semicolon(self):
        options = ConverterOptions.model_validate({"IGNORED_VALIDATION_MESSAGES": "first; second ;;"})
        assert options.ignored_validation_messages == ("first", "second")

    def test_options_are_immutable(self):
        with pytest.raises(ValidationError):
            ConverterOptions().pid_prefix = "X"

    def test_as_option_dict_uses_upper_case_names(self):
        data = ConverterOptions().as_option_dict()
        assert data["ADD_MISSING_CLASS_FROM_SUPER_ENCOUNTER"] is False
        assert "START_ID_ENCOUNTER_LEVEL_2" in data
