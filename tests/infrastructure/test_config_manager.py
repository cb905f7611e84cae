"""Unit tests for the converter options ConfigManager."""

import json

import pytest

from src.domain.enums import IdentifierKind
from src.infrastructure.config_manager import ConfigManager, parse_options_text


class TestParseOptionsText:
    """Test suite for the key/value options format."""

    def test_separators_comments_and_case(self):
        text = (
            "# reference directions\n"
            "SET_REFERENCE_FROM_DIAGNOSIS_CONDITION_TO_ENCOUNTER = true\n"
            "! legacy comment\n"
            "start_id_procedure: 10\n"
            "\n"
            "PID_PREFIX = A=B\n"
            "no separator here\n"
        )
        assert parse_options_text(text) == {
            "SET_REFERENCE_FROM_DIAGNOSIS_CONDITION_TO_ENCOUNTER": "true",
            "START_ID_PROCEDURE": "10",
            "PID_PREFIX": "A=B",
        }


class TestConfigManagerFromFile:
    """Test suite for file-based options."""

    def test_key_value_file(self, tmp_path):
        config_file = tmp_path / "converter.config"
        config_file.write_text("ADD_MISSING_DIAGNOSES_FROM_SUPER_ENCOUNTER = ja\nSTART_ID_DIAGNOSIS = 5\n", encoding="utf-8")

        options = ConfigManager.from_file(str(config_file)).get_converter_options()

        assert options.add_missing_diagnoses_from_super_encounter is True
        assert options.start_id(IdentifierKind.DIAGNOSIS) == 5

    def test_config_extension_fallback(self, tmp_path):
        """Test that '<path>.config' is tried when the path does not exist."""
        (tmp_path / "converter.config").write_text("PID_SUFFIX = -X\n", encoding="utf-8")
        options = ConfigManager.from_file(str(tmp_path / "converter")).get_converter_options()
        assert options.pid_suffix == "-X"

    def test_json_file(self, tmp_path):
        config_file = tmp_path / "options.json"
        config_file.write_text(json.dumps({"START_ID_PROCEDURE": 100, "PID_PREFIX": "T"}), encoding="utf-8")
        options = ConfigManager.from_file(str(config_file)).get_converter_options()
        assert options.start_id_procedure == 100
        assert options.pid_prefix == "T"

    def test_invalid_json(self, tmp_path):
        config_file = tmp_path / "options.json"
        config_file.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError):
            ConfigManager.from_file(str(config_file))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigManager.from_file(str(tmp_path / "nothing"))

    def test_invalid_value_raises_value_error(self, tmp_path):
        config_file = tmp_path / "converter.config"
        config_file.write_text("START_ID_DIAGNOSIS = many\n", encoding="utf-8")
        with pytest.raises(ValueError):
            ConfigManager.from_file(str(config_file)).get_converter_options()

    def test_unknown_keys_are_ignored(self, tmp_path):
        config_file = tmp_path / "converter.config"
        config_file.write_text("FHIR_SERVER_URL = http://localhost\n", encoding="utf-8")
        manager = ConfigManager.from_file(str(config_file))
        assert manager.get("fhir_server_url") == "http://localhost"
        assert manager.get_converter_options().start_id_diagnosis == 1


class TestConfigManagerEnvironment:
    """Test suite for environment overrides."""

    def test_prefixed_variables_only(self):
        manager = ConfigManager.from_environment({
            "CW_OPT_PID_PREFIX": "ENV",
            "CW_LOG_LEVEL": "DEBUG",
            "PATH": "/usr/bin",
        })
        assert manager.get("PID_PREFIX") == "ENV"
        assert manager.get("LOG_LEVEL") is None

    def test_environment_overrides_file(self, tmp_path):
        config_file = tmp_path / "converter.config"
        config_file.write_text("PID_PREFIX = FILE\nPID_SUFFIX = S\n", encoding="utf-8")

        merged = ConfigManager.from_file(str(config_file)).merged(
            ConfigManager.from_environment({"CW_OPT_PID_PREFIX": "ENV"})
        )
        options = merged.get_converter_options()

        assert options.pid_prefix == "ENV"
        assert options.pid_suffix == "S"
        assert merged.source == "environment"
