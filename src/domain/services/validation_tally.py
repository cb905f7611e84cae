"""Validation Tally Service.

Classifies validator findings per record and keeps the counts of record
statuses for one bundle. Findings whose message contains an allow-listed
substring are ignorable: they are counted but never make a record invalid.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Iterable, Optional, Sequence

from src.domain.enums import ValidationSeverity, ValidationStatus
from src.domain.ports import ValidationFinding

logger = logging.getLogger(__name__)


@dataclass
class ValidationCounts:
    """Number of records per overall validation status."""

    errors: int = 0
    warnings: int = 0
    ignored: int = 0
    valid: int = 0

    def add(self, status: ValidationStatus) -> None:
        if status == ValidationStatus.ERROR:
            self.errors += 1
        elif status == ValidationStatus.WARNING:
            self.warnings += 1
        elif status == ValidationStatus.IGNORED:
            self.ignored += 1
        else:
            self.valid += 1

    def merge(self, other: "ValidationCounts") -> "ValidationCounts":
        return ValidationCounts(
            errors=self.errors + other.errors,
            warnings=self.warnings + other.warnings,
            ignored=self.ignored + other.ignored,
            valid=self.valid + other.valid,
        )

    @property
    def total(self) -> int:
        return self.errors + self.warnings + self.ignored + self.valid

    def to_dict(self) -> dict:
        return asdict(self)


class ValidationTally:
    """Status classification plus per-bundle counters.

    Parameters:
        ignored_messages: Message substrings that mark a finding as ignorable
    """

    def __init__(self, ignored_messages: Optional[Sequence[str]] = None):
        self.ignored_messages = tuple(ignored_messages or ())
        self.counts = ValidationCounts()

    def is_ignorable(self, finding: ValidationFinding) -> bool:
        return any(entry and entry in finding.message for entry in self.ignored_messages)

    def classify(self, findings: Iterable[ValidationFinding]) -> ValidationStatus:
        """Overall status of one record; ERROR > WARNING > IGNORED > VALID."""
        status = ValidationStatus.VALID
        for finding in findings:
            if finding.severity == ValidationSeverity.INFORMATION:
                continue
            if self.is_ignorable(finding):
                current = ValidationStatus.IGNORED
            elif finding.severity == ValidationSeverity.ERROR:
                current = ValidationStatus.ERROR
            else:
                current = ValidationStatus.WARNING
            if current.rank > status.rank:
                status = current
        return status

    def record(self, findings: Iterable[ValidationFinding], record_id: Optional[str] = None) -> ValidationStatus:
        """Classify ``findings``, count the status and log non-ignorable findings."""
        findings = list(findings)
        status = self.classify(findings)
        self.counts.add(status)
        for finding in findings:
            if finding.severity == ValidationSeverity.INFORMATION or self.is_ignorable(finding):
                continue
            level = logging.ERROR if finding.severity == ValidationSeverity.ERROR else logging.WARNING
            logger.log(
                level,
                f"{record_id or 'record'}: {finding.message}",
                extra={"extra_fields": {"record_id": record_id, "location": finding.location}},
            )
        return status
