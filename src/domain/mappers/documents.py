"""Document table mapper (attachments referenced by URI)."""

import logging
import mimetypes
from pathlib import PurePosixPath
from urllib.parse import urlparse

from src.domain.enums import IdentifierKind
from src.domain.mappers.base import MappedRow, cell, encounter_of, id_context, patient_id_of, required_cell
from src.domain.ports import Row
from src.domain.records import DocumentRecord
from src.domain.services.context import ConversionContext
from src.domain.utils import parse_date_value

logger = logging.getLogger(__name__)


def file_name_of(uri: str) -> str:
    path = urlparse(uri).path if "://" in uri else uri.replace("\\", "/")
    return PurePosixPath(path).name or uri


def map_document(row: Row, context: ConversionContext) -> MappedRow:
    pid = patient_id_of(row, context)
    encounter_id, encounter = encounter_of(row, context)
    uri = required_cell(row, "URI")
    file_name = file_name_of(uri)

    content_type, _ = mimetypes.guess_type(file_name)
    if content_type is None:
        logger.debug(f"No content type known for document {file_name}")

    document = DocumentRecord(
        id=context.make_id(id_context(pid, encounter_id), IdentifierKind.DOCUMENT_REFERENCE),
        patient_id=pid,
        encounter_id=encounter_id,
        url=uri,
        title=cell(row, "Titel") or file_name,
        content_type=content_type,
        document_type=cell(row, "Dokumenttyp"),
        document_date=parse_date_value(cell(row, "Zeitstempel")),
        encounter_reference=encounter.id if encounter is not None else None,
    )
    return MappedRow(records=[document])
