"""Per-bundle conversion state.

A ConversionContext owns every mutable object of one bundle conversion. It is
created by the caller, passed into every row mapper call and discarded once
the bundle is assembled, so parallel bundles never share counters or ids.
"""

import logging
from typing import Optional

from src.domain.enums import IdentifierKind, RecordKind, ReferenceRelation, ValidationStatus
from src.domain.options import ConverterOptions
from src.domain.ports import ValidatorPort
from src.domain.records import ClinicalRecord
from src.domain.services.identifier_allocator import IdentifierAllocator
from src.domain.services.record_registry import RecordRegistry
from src.domain.services.reference_policy import ReferencePolicy
from src.domain.services.validation_tally import ValidationTally

logger = logging.getLogger(__name__)


class ConversionContext:
    """Arena of one bundle conversion.

    Parameters:
        options: Converter options of the run (defaults apply when None)
        validator: Optional validator; records it classifies as ERROR are
            discarded before registration
        name: Bundle name used in logs and output file names
    """

    def __init__(
        self,
        options: Optional[ConverterOptions] = None,
        validator: Optional[ValidatorPort] = None,
        name: str = "bundle",
    ):
        self.options = options or ConverterOptions()
        self.validator = validator
        self.name = name
        self.allocator = IdentifierAllocator(self.options)
        self.registry = RecordRegistry()
        self.policy = ReferencePolicy.from_options(self.options)
        self.tally = ValidationTally(self.options.ignored_validation_messages)
        self.discarded: list[str] = []

        for relation in ReferenceRelation:
            if self.policy.allows_cycles(relation):
                logger.warning(
                    f"Both reference directions enabled for {relation.value}; bundle {name} will contain cycles"
                )

    def make_id(self, context: str, kind: IdentifierKind) -> str:
        return self.allocator.make_id(context, kind)

    def accept(self, record: ClinicalRecord) -> bool:
        """Validate ``record`` (if a validator is set) and register it.

        Returns:
            True if the record was registered, False if validation discarded it

        Raises:
            DuplicateRecordError: If the id is already registered
            UnknownPatientError: If the record's patient is not registered
        """
        if record.kind != RecordKind.PATIENT:
            self.registry.require_patient(record.patient_id)
        if self.validator is not None:
            status = self.tally.record(self.validator.validate(record.to_resource()), record.id)
            if status == ValidationStatus.ERROR:
                self.discarded.append(record.id)
                logger.error(
                    f"Discarding {record.fhir_type()} {record.id} after validation errors",
                    extra={"extra_fields": {"record_id": record.id, "bundle": self.name}},
                )
                return False
        self.registry.add(record)
        return True
