"""Laboratory and vital-sign table mappers (LOINC coded observations)."""

import logging

from src.domain.enums import IdentifierKind, ObservationCategory
from src.domain.mappers.base import MappedRow, cell, encounter_of, id_context, patient_id_of, required_cell
from src.domain.ports import Row
from src.domain.records import ObservationRecord
from src.domain.services.context import ConversionContext
from src.domain.utils import parse_date_value, parse_decimal

logger = logging.getLogger(__name__)


def _map_observation(
    row: Row,
    context: ConversionContext,
    category: ObservationCategory,
    kind: IdentifierKind,
) -> MappedRow:
    pid = patient_id_of(row, context)
    encounter_id, encounter = encounter_of(row, context)
    raw_value = required_cell(row, "Wert")

    value = parse_decimal(raw_value)
    if value is None:
        logger.debug(f"Non-numeric observation value <{raw_value}> kept as string")

    raw_time = cell(row, "Zeitstempel")
    effective = parse_date_value(raw_time)
    if raw_time and effective is None:
        logger.warning(f"Can not parse Zeitstempel <{raw_time}>")

    observation = ObservationRecord(
        id=context.make_id(id_context(pid, encounter_id), kind),
        patient_id=pid,
        encounter_id=encounter_id,
        category=category,
        code=required_cell(row, "LOINC"),
        display=cell(row, "Bezeichner"),
        value_quantity=value,
        unit=cell(row, "Einheit") if value is not None else None,
        value_string=None if value is not None else raw_value,
        effective=effective,
        encounter_reference=encounter.id if encounter is not None else None,
    )
    return MappedRow(records=[observation])


def map_laboratory(row: Row, context: ConversionContext) -> MappedRow:
    return _map_observation(row, context, ObservationCategory.LABORATORY, IdentifierKind.OBSERVATION_LABORATORY)


def map_vital_signs(row: Row, context: ConversionContext) -> MappedRow:
    return _map_observation(row, context, ObservationCategory.VITAL_SIGNS, IdentifierKind.OBSERVATION_VITAL_SIGNS)
