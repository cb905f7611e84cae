"""Domain Utilities - value parsing helpers shared by the row mappers.

Source exports mix ISO and German date notation and use a comma as decimal
separator. These helpers normalize such cell values; they never raise and
return None for values they cannot interpret.
"""

import re
from datetime import date, datetime
from typing import Optional, Union

DATE_FORMATS = (
    "%Y-%m-%d",
    "%d.%m.%Y",
    "%Y%m%d",
)

DATETIME_FORMATS = (
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%d.%m.%Y %H:%M:%S",
    "%d.%m.%Y %H:%M",
)

_NUMBER_PATTERN = re.compile(r"^[+-]?\d+(?:[.,]\d+)?$")


def is_blank(value: Optional[str]) -> bool:
    """Return True for None, empty and whitespace-only cell values."""
    return value is None or not str(value).strip()


def parse_date_value(value: Optional[str]) -> Optional[Union[date, datetime]]:
    """Parse a date or timestamp cell.

    Date-only values are returned as ``date`` so that their precision survives
    serialization; values with a time part are returned as ``datetime``.

    Parameters:
        value: Raw cell value

    Returns:
        Parsed date/datetime, or None if blank or unparsable
    """
    if is_blank(value):
        return None
    text = str(value).strip()
    # Fractional seconds and a trailing "Z" occur in some exports
    text = re.sub(r"\.\d+(?=Z?$)", "", text).rstrip("Z")

    for fmt in DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_decimal(value: Optional[str]) -> Optional[float]:
    """Parse a numeric cell, accepting ',' as decimal separator."""
    if is_blank(value):
        return None
    text = str(value).strip()
    if not _NUMBER_PATTERN.match(text):
        return None
    return float(text.replace(",", "."))


def split_codes(value: Optional[str], separator: str = "+") -> list[str]:
    """Split a multi-code cell such as ``"I10 + E11.9"`` into single codes."""
    if is_blank(value):
        return []
    return [code.strip() for code in str(value).split(separator) if code.strip()]


def increase_last_number(value: str, offset: int) -> str:
    """Increase the last run of digits in ``value`` by ``offset``.

    The zero-padded width of the digit run is kept, so ``P-000012`` with an
    offset of 5 becomes ``P-000017``. Values without digits are returned
    unchanged.
    """
    matches = list(re.finditer(r"\d+", value))
    if not matches:
        return value
    last = matches[-1]
    digits = last.group(0)
    increased = str(int(digits) + offset).zfill(len(digits))
    return value[:last.start()] + increased + value[last.end():]
