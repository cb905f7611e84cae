"""Unit tests for the ReferencePolicy."""

from src.domain.enums import ReferenceDirection, ReferenceRelation
from src.domain.options import ConverterOptions
from src.domain.services.reference_policy import ReferencePolicy


class TestReferencePolicy:
    """Test suite for direction flags."""

    def test_defaults_store_only_encounter_to_x(self):
        """Test the cycle-free default configuration."""
        policy = ReferencePolicy.from_options(ConverterOptions())
        assert policy.is_enabled(ReferenceRelation.DIAGNOSIS, ReferenceDirection.FROM_ENCOUNTER) is True
        assert policy.is_enabled(ReferenceRelation.PROCEDURE, ReferenceDirection.FROM_ENCOUNTER) is True
        assert policy.is_enabled(ReferenceRelation.DIAGNOSIS, ReferenceDirection.TO_ENCOUNTER) is False
        assert policy.is_enabled(ReferenceRelation.PROCEDURE, ReferenceDirection.TO_ENCOUNTER) is False

    def test_empty_table_falls_back_to_defaults(self):
        """Test that ReferencePolicy() equals the default options."""
        assert ReferencePolicy().as_dict() == ReferencePolicy.from_options(ConverterOptions()).as_dict()

    def test_flags_are_independent(self):
        """Test that enabling one flag leaves the other three untouched."""
        options = ConverterOptions.model_validate({"SET_REFERENCE_FROM_DIAGNOSIS_CONDITION_TO_ENCOUNTER": "ja"})
        policy = ReferencePolicy.from_options(options)
        assert policy.is_enabled(ReferenceRelation.DIAGNOSIS, ReferenceDirection.TO_ENCOUNTER) is True
        assert policy.is_enabled(ReferenceRelation.DIAGNOSIS, ReferenceDirection.FROM_ENCOUNTER) is True
        assert policy.is_enabled(ReferenceRelation.PROCEDURE, ReferenceDirection.TO_ENCOUNTER) is False
        assert policy.is_enabled(ReferenceRelation.PROCEDURE, ReferenceDirection.FROM_ENCOUNTER) is True

    def test_allows_cycles_only_when_both_directions_enabled(self):
        """Test cycle detection per relation."""
        options = ConverterOptions.model_validate({"SET_REFERENCE_FROM_PROCEDURE_CONDITION_TO_ENCOUNTER": "true"})
        policy = ReferencePolicy.from_options(options)
        assert policy.allows_cycles(ReferenceRelation.PROCEDURE) is True
        assert policy.allows_cycles(ReferenceRelation.DIAGNOSIS) is False
