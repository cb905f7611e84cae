"""Person table mapper (one Patient per row)."""

import logging
import re
from datetime import datetime
from typing import Optional

from src.domain.enums import AdministrativeGender
from src.domain.mappers.base import MappedRow, PATIENT_ID, cell, patient_id_of, required_cell
from src.domain.ports import Row, RowMappingError
from src.domain.records import Address, PatientRecord
from src.domain.services.context import ConversionContext
from src.domain.utils import parse_date_value

logger = logging.getLogger(__name__)

COLUMNS = ("Vorname", "Nachname", "Anschrift", "Geburtsdatum", "Geschlecht", "Krankenkasse")

GENDER_VALUES = {
    "m": AdministrativeGender.MALE,
    "männlich": AdministrativeGender.MALE,
    "w": AdministrativeGender.FEMALE,
    "weiblich": AdministrativeGender.FEMALE,
    "d": AdministrativeGender.OTHER,
    "divers": AdministrativeGender.OTHER,
    "u": AdministrativeGender.UNKNOWN,
    "unbekannt": AdministrativeGender.UNKNOWN,
}

DEFAULT_COUNTRY = "DE"

# Validators require an address on every patient
DUMMY_ADDRESS = Address(lines=["Dummy Street 1"], postal_code="00000", city="Dummy City")

_POSTAL_CITY = re.compile(r"^(\d{4,5})\s+(.+)$")


def parse_gender(value: Optional[str]) -> Optional[AdministrativeGender]:
    if value is None:
        return None
    gender = GENDER_VALUES.get(value.strip().lower())
    if gender is None:
        raise RowMappingError(f"Geschlecht <{value}> not parsable")
    return gender


def parse_address(value: Optional[str]) -> Optional[Address]:
    """Split ``"Street 1, 12345 City"`` and ``"12345 City"``; keep anything else as text."""
    if value is None:
        return None
    parts = [part.strip() for part in value.split(",")]
    if len(parts) == 2:
        match = _POSTAL_CITY.match(parts[1])
        if match:
            return Address(
                lines=[parts[0]],
                postal_code=match.group(1),
                city=match.group(2),
                country=DEFAULT_COUNTRY,
            )
    match = _POSTAL_CITY.match(value.strip())
    if match:
        return Address(postal_code=match.group(1), city=match.group(2), text=value.strip(), country=DEFAULT_COUNTRY)
    return Address(text=value.strip(), country=DEFAULT_COUNTRY)


def map_person(row: Row, context: ConversionContext) -> MappedRow:
    pid = patient_id_of(row, context)

    given = cell(row, "Vorname")
    if given is None:
        given = f"Vorname-{pid}"
        logger.warning(f"Empty Vorname replaced by {given}")
    family = cell(row, "Nachname")
    if family is None:
        family = f"Nachname-{pid}"
        logger.warning(f"Empty Nachname replaced by {family}")

    birth_date = None
    raw_birth_date = cell(row, "Geburtsdatum")
    if raw_birth_date is not None:
        parsed = parse_date_value(raw_birth_date)
        if parsed is None:
            logger.warning(f"Can not parse Geburtsdatum <{raw_birth_date}> of patient {pid}")
        else:
            birth_date = parsed.date() if isinstance(parsed, datetime) else parsed

    gender = parse_gender(cell(row, "Geschlecht"))
    if gender is None:
        logger.warning(f"Geschlecht empty for patient {pid}")

    address = parse_address(cell(row, "Anschrift"))
    if address is None:
        logger.warning(f"Anschrift empty for patient {pid}, creating dummy address")
        address = DUMMY_ADDRESS

    patient = PatientRecord(
        id=pid,
        patient_id=pid,
        source_pid=required_cell(row, PATIENT_ID),
        family_name=family,
        given_names=given.split(),
        gender=gender,
        birth_date=birth_date,
        address=address,
        insurer=cell(row, "Krankenkasse"),
    )
    return MappedRow(records=[patient])
