"""Unit tests for the BundleAssembler service."""

from src.domain.enums import BundleMethod, MedicationEventType
from src.domain.records import (
    CaseEncounterRecord,
    ConditionRecord,
    DepartmentEncounterRecord,
    DocumentRecord,
    MedicationRecord,
    PatientRecord,
)
from src.domain.services import BundleAssembler
from src.domain.services.record_registry import RecordRegistry


def _registry() -> RecordRegistry:
    """Registry filled in an order that differs from the output order."""
    registry = RecordRegistry()
    registry.add(PatientRecord(id="P1", patient_id="P1", source_pid="P1"))
    registry.add(DocumentRecord(id="P1-D-1", patient_id="P1", url="file:///a.pdf"))
    registry.add(DepartmentEncounterRecord(id="P1-E-1", patient_id="P1"))
    registry.add(ConditionRecord(id="P1-C-1", patient_id="P1", code="I10"))
    registry.add(CaseEncounterRecord(id="V1", patient_id="P1"))
    registry.add(PatientRecord(id="P2", patient_id="P2", source_pid="P2"))
    registry.add(MedicationRecord(
        id="P2-MA-1",
        patient_id="P2",
        event_type=MedicationEventType.ADMINISTRATION,
        substance="Metformin",
    ))
    return registry


class TestBundleAssembler:
    """Test suite for ordering and request instructions."""

    def test_leading_kinds_then_first_seen_order(self):
        """Test Patient, case, department first, then the remaining kinds by first registration."""
        bundle = BundleAssembler().assemble(_registry(), name="all")
        assert bundle.ids() == ["P1", "P2", "V1", "P1-E-1", "P1-D-1", "P1-C-1", "P2-MA-1"]

    def test_every_entry_is_put_with_type_and_id(self):
        """Test the idempotent update instruction."""
        bundle = BundleAssembler().assemble(_registry())
        for entry in bundle.entries:
            assert entry.method == BundleMethod.UPDATE
            assert entry.url == f"{entry.record.fhir_type()}/{entry.record.id}"
        medication = bundle.entries[-1]
        assert medication.url == "MedicationAdministration/P2-MA-1"

    def test_serialized_bundle_shape(self):
        """Test the transaction Bundle envelope."""
        data = BundleAssembler().assemble(_registry()).to_dict()
        assert data["resourceType"] == "Bundle"
        assert data["type"] == "transaction"
        first = data["entry"][0]
        assert first["request"] == {"method": "PUT", "url": "Patient/P1"}
        assert first["resource"]["resourceType"] == "Patient"
        assert "fullUrl" not in first

    def test_full_url_only_with_base_url(self):
        """Test that fullUrl is derived from a configured server base."""
        data = BundleAssembler().assemble(_registry()).to_dict(base_url="https://fhir.example.org/fhir/")
        assert data["entry"][0]["fullUrl"] == "https://fhir.example.org/fhir/Patient/P1"

    def test_assembly_is_deterministic(self):
        """Test that identical registries give identical bundles."""
        first = BundleAssembler().assemble(_registry()).to_dict()
        second = BundleAssembler().assemble(_registry()).to_dict()
        assert first == second

    def test_empty_registry_gives_empty_bundle(self):
        """Test that an empty registry still yields a valid envelope."""
        bundle = BundleAssembler().assemble(RecordRegistry(), name="empty")
        assert len(bundle) == 0
        assert bundle.to_dict()["entry"] == []
