"""Unit tests for ValidationTally and ValidationCounts."""

from src.domain.enums import ValidationSeverity, ValidationStatus
from src.domain.options import DEFAULT_IGNORED_VALIDATION_MESSAGES
from src.domain.ports import ValidationFinding
from src.domain.services import ValidationCounts, ValidationTally


def _finding(severity: ValidationSeverity, message: str) -> ValidationFinding:
    return ValidationFinding(severity=severity, message=message)


class TestValidationTally:
    """Test suite for finding classification."""

    def test_no_findings_is_valid(self):
        """Test that a clean record counts as valid."""
        assert ValidationTally().classify([]) == ValidationStatus.VALID

    def test_information_findings_are_skipped(self):
        """Test that informational messages never change the status."""
        tally = ValidationTally()
        findings = [_finding(ValidationSeverity.INFORMATION, "note")]
        assert tally.classify(findings) == ValidationStatus.VALID

    def test_error_dominates(self):
        """Test ERROR > WARNING > IGNORED > VALID."""
        tally = ValidationTally(["known issue"])
        findings = [
            _finding(ValidationSeverity.WARNING, "something"),
            _finding(ValidationSeverity.ERROR, "broken"),
            _finding(ValidationSeverity.ERROR, "a known issue here"),
        ]
        assert tally.classify(findings) == ValidationStatus.ERROR

    def test_ignorable_error_is_only_ignored(self):
        """Test that an allow-listed error does not invalidate the record."""
        tally = ValidationTally(DEFAULT_IGNORED_VALIDATION_MESSAGES)
        findings = [_finding(ValidationSeverity.ERROR, "Unknown code 'http://loinc.org#1234-5'")]
        assert tally.classify(findings) == ValidationStatus.IGNORED

    def test_record_counts_statuses(self):
        """Test that record() adds one count per record."""
        tally = ValidationTally(["ignore me"])
        tally.record([], "A")
        tally.record([_finding(ValidationSeverity.WARNING, "hmm")], "B")
        tally.record([_finding(ValidationSeverity.ERROR, "ignore me please")], "C")
        tally.record([_finding(ValidationSeverity.ERROR, "bad")], "D")
        assert tally.counts.to_dict() == {"errors": 1, "warnings": 1, "ignored": 1, "valid": 1}
        assert tally.counts.total == 4

    def test_blank_allow_list_entries_match_nothing(self):
        """Test that an empty entry does not make every finding ignorable."""
        tally = ValidationTally([""])
        findings = [_finding(ValidationSeverity.ERROR, "bad")]
        assert tally.classify(findings) == ValidationStatus.ERROR


class TestValidationCounts:
    """Test suite for count aggregation."""

    def test_merge(self):
        """Test that merging adds field by field."""
        merged = ValidationCounts(errors=1, valid=2).merge(ValidationCounts(errors=2, ignored=1))
        assert merged == ValidationCounts(errors=3, warnings=0, ignored=1, valid=2)
