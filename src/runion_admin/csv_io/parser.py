"""Spreadsheet-friendly CSV reading.

Exports from Excel and LibreOffice arrive with a BOM, an optional
``sep=;`` directive, localized headers, and any of ``;``, ``,``, tab or
``|`` as delimiter.  ``detect_delimiter`` picks the first delimiter under
which every required column is present in the header.
"""

import csv
from typing import Literal

from pydantic import BaseModel

from runion_admin.errors import CsvValidationError

DEFAULT_DELIMITERS = (";", ",", "\t", "|")

_DELIMITER_NAMES = {";": ";", ",": ",", "\t": "tab", "|": "|"}


class ColumnSpec(BaseModel):
    """A header column recognized by any of its (lower-case) synonyms."""

    name: str
    synonyms: tuple[str, ...]
    required: bool = True
    match: Literal["exact", "contains"] = "exact"

    def find(self, headers: list[str]) -> int:
        """Index of the first matching header, or -1."""
        for index, header in enumerate(headers):
            if self.match == "exact" and header in self.synonyms:
                return index
            if self.match == "contains" and any(s in header for s in self.synonyms):
                return index
        return -1


class CsvLayout(BaseModel):
    """Detected delimiter and column positions (-1 for an absent optional column)."""

    delimiter: str
    headers: list[str]
    indices: dict[str, int]

    @property
    def required_width(self) -> int:
        """Minimum number of fields a data row needs."""
        return max(self.indices.values()) + 1


def parse_csv_line(line: str, delimiter: str) -> list[str]:
    """Split one line into fields.

    A ``"`` opening a field starts a quoted region in which the delimiter
    is literal and ``""`` stands for one quote.  A quote anywhere else is
    kept as-is.

    >>> parse_csv_line('A;"B;C";"D""E"', ";")
    ['A', 'B;C', 'D"E']
    """
    if len(delimiter) != 1:
        raise ValueError("delimiter must be a single character")
    if not line:
        return [""]
    reader = csv.reader([line], delimiter=delimiter, quotechar='"', doublequote=True, strict=False)
    return next(reader, [""])


def split_lines(text: str | bytes) -> list[str]:
    """Non-blank lines of ``text`` with the BOM and a leading ``sep=`` directive removed."""
    if isinstance(text, bytes):
        text = text.decode("utf-8-sig")
    text = text.lstrip("\ufeff")
    lines = [line for line in text.splitlines() if line.strip()]
    if lines and lines[0].strip().lower().startswith("sep="):
        lines = lines[1:]
    return lines


def normalize_header(value: str) -> str:
    return value.strip().strip('"').strip().lower()


def detect_delimiter(
    header_line: str,
    columns: list[ColumnSpec],
    delimiters: tuple[str, ...] = DEFAULT_DELIMITERS,
) -> CsvLayout:
    """Find the delimiter under which the header holds every required column.

    A delimiter that actually splits the header wins over one that leaves
    it whole; substring matching can otherwise accept the unsplit line.

    Raises:
        CsvValidationError: If no candidate delimiter qualifies. The
            message names the required columns and their accepted headers.
    """
    required = [column for column in columns if column.required]
    missing = required
    unsplit: CsvLayout | None = None
    for delimiter in delimiters:
        headers = [normalize_header(h) for h in parse_csv_line(header_line, delimiter)]
        indices = {column.name: column.find(headers) for column in columns}
        absent = [column for column in required if indices[column.name] < 0]
        if not absent:
            layout = CsvLayout(delimiter=delimiter, headers=headers, indices=indices)
            if len(headers) > 1:
                return layout
            unsplit = unsplit or layout
        elif len(absent) < len(missing):
            missing = absent

    if unsplit is not None:
        return unsplit

    names = ", ".join(f"'{column.name}' ({' / '.join(column.synonyms)})" for column in missing)
    tried = ", ".join(_DELIMITER_NAMES.get(d, d) for d in delimiters)
    raise CsvValidationError(
        f"Could not detect the CSV format: missing column(s) {names} "
        f"(delimiters tried: {tried})"
    )
