"""Encounter Hierarchy Resolution Service.

Runs once per bundle, after every table has been mapped. It links department
stays to the case stay that contains them, lets department stays inherit
missing diagnoses and class codings, enforces the reference directionality
policy on everything the mappers produced, and finally puts absence markers
on encounters that are still without data.

Algorithm:
    1. Resolve pending admission diagnoses of case encounters against the
       Condition index (patient, ICD code)
    2. Per patient, link every department encounter to the containing case
       encounter; ties are broken by earliest start, then most diagnoses,
       then registration order
    3. Inherit diagnosis (preferred link only) and class coding where the
       department encounter has none and the option is enabled; the preferred
       link is the chief complaint, else the admission diagnosis, else the
       first Condition link, and a Procedure link only when nothing else is left
    4. Enforce the directionality policy (clear disabled pointers)
    5. Mark remaining gaps with data-absent-reason markers

Failure Mode:
    Never raises for data problems. Unlinkable encounters stay unlinked and
    are logged; the bundle is always emittable. Running the resolver a second
    time changes nothing.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Optional

from src.domain.enums import DiagnosisRole, RecordKind, ReferenceDirection, ReferenceRelation
from src.domain.options import ConverterOptions
from src.domain.records import (
    ConditionRecord,
    EncounterLink,
    EncounterRecord,
)
from src.domain.services.record_registry import RecordRegistry
from src.domain.services.reference_policy import ReferencePolicy

logger = logging.getLogger(__name__)

PREFERRED_ROLES = (DiagnosisRole.CHIEF_COMPLAINT, DiagnosisRole.ADMISSION)


@dataclass
class LinkageStats:
    """Outcome of one resolver pass."""

    pending_resolved: int = 0
    pending_unresolved: int = 0
    linked: int = 0
    unlinked: int = 0
    relinked: int = 0
    inherited_diagnoses: int = 0
    inherited_classes: int = 0
    references_cleared: int = 0
    links_stripped: int = 0
    diagnosis_markers: int = 0
    class_markers: int = 0

    @property
    def changes(self) -> int:
        """Number of mutations applied in this pass."""
        return (
            self.pending_resolved
            + self.relinked
            + self.inherited_diagnoses
            + self.inherited_classes
            + self.references_cleared
            + self.links_stripped
            + self.diagnosis_markers
            + self.class_markers
        )

    def merge(self, other: "LinkageStats") -> "LinkageStats":
        merged = asdict(self)
        for name, value in asdict(other).items():
            merged[name] += value
        return LinkageStats(**merged)

    def to_dict(self) -> dict:
        return asdict(self)


def _relation_of(link: EncounterLink) -> ReferenceRelation:
    if link.target_kind == RecordKind.PROCEDURE:
        return ReferenceRelation.PROCEDURE
    return ReferenceRelation.DIAGNOSIS


class HierarchyResolver:
    """Post-mapping pass over one registry.

    Parameters:
        policy: Reference directionality policy of the run
        options: Converter options (inheritance flags)
    """

    def __init__(self, policy: ReferencePolicy, options: Optional[ConverterOptions] = None):
        self.policy = policy
        self.options = options or ConverterOptions()

    def resolve(self, registry: RecordRegistry) -> LinkageStats:
        """Run all resolution steps on ``registry`` and return what happened."""
        stats = LinkageStats()
        cases: list[EncounterRecord] = registry.all_records_of_kind(RecordKind.CASE_ENCOUNTER)
        departments: list[EncounterRecord] = registry.all_records_of_kind(RecordKind.DEPARTMENT_ENCOUNTER)

        self._resolve_pending(registry, cases, stats)

        cases_by_patient: dict[str, list[tuple[int, EncounterRecord]]] = {}
        for position, case in enumerate(cases):
            cases_by_patient.setdefault(case.patient_id, []).append((position, case))

        for department in departments:
            parent = self._find_parent(department, cases_by_patient.get(department.patient_id, []))
            if parent is None:
                stats.unlinked += 1
                logger.warning(
                    f"Department encounter {department.id} has no containing case encounter",
                    extra={"extra_fields": {"record_id": department.id}},
                )
                continue
            stats.linked += 1
            if department.part_of != parent.id:
                department.part_of = parent.id
                stats.relinked += 1
            self._inherit(department, parent, stats)

        self._enforce_policy(registry, cases + departments, stats)
        self._mark_absent(cases + departments, stats)

        logger.debug(f"Hierarchy resolution finished: {stats.to_dict()}")
        return stats

    def _resolve_pending(
        self,
        registry: RecordRegistry,
        cases: list[EncounterRecord],
        stats: LinkageStats,
    ) -> None:
        for case in cases:
            if not any(link.is_pending for link in case.diagnoses):
                continue
            updated = []
            for link in case.diagnoses:
                if link.is_pending and link.code:
                    condition = registry.lookup(
                        RecordKind.CONDITION, ConditionRecord.key_for(case.patient_id, link.code)
                    )
                    if condition is not None:
                        link = link.model_copy(update={"target_id": condition.id})
                        stats.pending_resolved += 1
                    else:
                        stats.pending_unresolved += 1
                        logger.warning(
                            f"Admission diagnosis {link.code} of encounter {case.id} has no Condition",
                            extra={"extra_fields": {"record_id": case.id}},
                        )
                if not any(existing.same_target(link) for existing in updated):
                    updated.append(link)
            case.diagnoses = updated

    @staticmethod
    def _find_parent(
        department: EncounterRecord,
        candidates: list[tuple[int, EncounterRecord]],
    ) -> Optional[EncounterRecord]:
        """Pick the containing case encounter.

        Tie-break: earliest start, then most resolved diagnoses, then the
        case registered first.
        """
        qualifying = [
            (case.period.start_key, -len(case.resolved_diagnoses()), position, case)
            for position, case in candidates
            if case.period.contains(department.period)
        ]
        if not qualifying:
            return None
        return min(qualifying, key=lambda item: item[:3])[3]

    def _preferred_link(self, parent: EncounterRecord) -> Optional[EncounterLink]:
        allowed = [
            link for link in parent.resolved_diagnoses()
            if self.policy.is_enabled(_relation_of(link), ReferenceDirection.FROM_ENCOUNTER)
        ]
        for role in PREFERRED_ROLES:
            for link in allowed:
                if link.role == role:
                    return link
        conditions = [link for link in allowed if link.target_kind == RecordKind.CONDITION]
        return (conditions or allowed or [None])[0]

    def _inherit(self, department: EncounterRecord, parent: EncounterRecord, stats: LinkageStats) -> None:
        if self.options.add_missing_diagnoses_from_super_encounter and not department.resolved_diagnoses():
            link = self._preferred_link(parent)
            if link is not None:
                department.diagnoses = department.diagnoses + [link.model_copy()]
                stats.inherited_diagnoses += 1
                logger.debug(f"Encounter {department.id} inherited diagnosis {link.target_id} from {parent.id}")

        if (
            self.options.add_missing_class_from_super_encounter
            and department.class_coding is None
            and parent.class_coding is not None
        ):
            department.class_coding = parent.class_coding
            stats.inherited_classes += 1

    def _enforce_policy(
        self,
        registry: RecordRegistry,
        encounters: list[EncounterRecord],
        stats: LinkageStats,
    ) -> None:
        for relation, kind in (
            (ReferenceRelation.DIAGNOSIS, RecordKind.CONDITION),
            (ReferenceRelation.PROCEDURE, RecordKind.PROCEDURE),
        ):
            if self.policy.is_enabled(relation, ReferenceDirection.TO_ENCOUNTER):
                continue
            for record in registry.all_records_of_kind(kind):
                if record.encounter_reference is not None:
                    record.encounter_reference = None
                    stats.references_cleared += 1

        for encounter in encounters:
            kept = [
                link for link in encounter.diagnoses
                if self.policy.is_enabled(_relation_of(link), ReferenceDirection.FROM_ENCOUNTER)
            ]
            if len(kept) != len(encounter.diagnoses):
                stats.links_stripped += len(encounter.diagnoses) - len(kept)
                encounter.diagnoses = kept

    @staticmethod
    def _mark_absent(encounters: list[EncounterRecord], stats: LinkageStats) -> None:
        for encounter in encounters:
            diagnoses_absent = not encounter.resolved_diagnoses()
            if diagnoses_absent != encounter.diagnoses_absent:
                encounter.diagnoses_absent = diagnoses_absent
                if diagnoses_absent:
                    stats.diagnosis_markers += 1
            class_absent = encounter.class_coding is None
            if class_absent != encounter.class_absent:
                encounter.class_absent = class_absent
                if class_absent:
                    stats.class_markers += 1
