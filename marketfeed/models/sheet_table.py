"""Lightweight, column-addressed view over raw spreadsheet values.

Sheets come back from the API as ragged lists of strings: rows may be shorter
than the header, headers may be blank or repeated. ``SheetTable`` keeps the
raw values untouched and exposes lookups that return ``None`` instead of
raising, so callers must handle "column absent" and "cell empty" explicitly.
"""
from typing import Any, List, Optional, Sequence


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    return str(value)


class SheetTable:
    """Header row plus data rows, addressed by header position."""

    def __init__(self, values: Optional[Sequence[Sequence[Any]]]):
        values = values or []
        self._headers: List[str] = (
            [_to_text(h).strip() for h in values[0]] if values else []
        )
        self._rows: List[List[str]] = [
            [_to_text(cell) for cell in (row or [])] for row in values[1:]
        ]

    @property
    def headers(self) -> List[str]:
        """Stripped header names; blank headers are kept as empty strings."""
        return list(self._headers)

    @property
    def rows(self) -> List[List[str]]:
        """Data rows (everything after the header row)."""
        return self._rows

    @property
    def is_empty(self) -> bool:
        return not self._headers

    def column_index(self, name: str) -> Optional[int]:
        """Return the first column whose header equals ``name``, or None."""
        name = name.strip()
        for index, header in enumerate(self._headers):
            if header == name:
                return index
        return None

    def has_column(self, name: str) -> bool:
        return self.column_index(name) is not None

    @staticmethod
    def cell(row: Sequence[str], index: Optional[int]) -> Optional[str]:
        """Return the stripped cell at ``index``.

        None means the column is absent or the row is too short; an empty
        string means the cell exists but holds nothing.
        """
        if index is None or index < 0 or index >= len(row):
            return None
        return _to_text(row[index]).strip()

    @staticmethod
    def is_blank_row(row: Sequence[str]) -> bool:
        """A row is blank when all of its cells joined together are empty."""
        return "".join(_to_text(cell) for cell in row).strip() == ""

    def __len__(self) -> int:
        return len(self._rows)
