"""Reference Directionality Policy.

Closed table of which side of a bidirectional relation stores the pointer.
Both row mappers and the hierarchy resolver consult the same table, so there
is exactly one place that decides whether e.g. a Condition carries
``encounter`` or the Encounter lists the Condition in ``diagnosis``.
"""

from typing import Mapping, Optional

from src.domain.enums import ReferenceDirection, ReferenceRelation
from src.domain.options import ConverterOptions

PolicyTable = Mapping[tuple[ReferenceRelation, ReferenceDirection], bool]

# Only "encounter -> X" is stored by default
DEFAULT_POLICY: PolicyTable = {
    (ReferenceRelation.DIAGNOSIS, ReferenceDirection.TO_ENCOUNTER): False,
    (ReferenceRelation.DIAGNOSIS, ReferenceDirection.FROM_ENCOUNTER): True,
    (ReferenceRelation.PROCEDURE, ReferenceDirection.TO_ENCOUNTER): False,
    (ReferenceRelation.PROCEDURE, ReferenceDirection.FROM_ENCOUNTER): True,
}


class ReferencePolicy:
    """Immutable lookup of the four direction flags."""

    def __init__(self, table: Optional[PolicyTable] = None):
        merged = dict(DEFAULT_POLICY)
        if table:
            merged.update(table)
        self._table = merged

    @classmethod
    def from_options(cls, options: ConverterOptions) -> "ReferencePolicy":
        return cls({
            (ReferenceRelation.DIAGNOSIS, ReferenceDirection.TO_ENCOUNTER):
                options.set_reference_from_diagnosis_condition_to_encounter,
            (ReferenceRelation.DIAGNOSIS, ReferenceDirection.FROM_ENCOUNTER):
                options.set_reference_from_encounter_to_diagnosis_condition,
            (ReferenceRelation.PROCEDURE, ReferenceDirection.TO_ENCOUNTER):
                options.set_reference_from_procedure_condition_to_encounter,
            (ReferenceRelation.PROCEDURE, ReferenceDirection.FROM_ENCOUNTER):
                options.set_reference_from_encounter_to_procedure_condition,
        })

    def is_enabled(self, relation: ReferenceRelation, direction: ReferenceDirection) -> bool:
        return self._table[(relation, direction)]

    def allows_cycles(self, relation: ReferenceRelation) -> bool:
        """True when both directions of ``relation`` are stored."""
        return all(self.is_enabled(relation, direction) for direction in ReferenceDirection)

    def as_dict(self) -> dict[str, bool]:
        return {f"{relation.value}.{direction.value}": enabled for (relation, direction), enabled in self._table.items()}
