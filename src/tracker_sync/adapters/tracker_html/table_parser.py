"""Parser for upstream tracker pages (BeautifulSoup).

The parser is a pure function over the page text: it performs no I/O and
keeps no state between calls.
"""

import math
import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import timedelta
from itertools import chain, repeat
from typing import TypeVar

from bs4 import BeautifulSoup, Tag

from tracker_sync.adapters.tracker_html.constants import (
    BODY_CELL_SELECTOR,
    BODY_ROW_SELECTOR,
    CHECKS_TABLE,
    COLUMN_CHECKS,
    COLUMN_ENTRANCE,
    COLUMN_FINDER,
    COLUMN_FOUND,
    COLUMN_GAME,
    COLUMN_ITEM,
    COLUMN_LAST_ACTIVITY,
    COLUMN_LOCATION,
    COLUMN_NAME,
    COLUMN_POSITION,
    COLUMN_RECEIVER,
    COLUMN_STATUS,
    HEADER_CELL_SELECTOR,
    HEADER_ROW_SELECTOR,
    HINTS_TABLE,
    LAST_ACTIVITY_NONE,
    TABLE_SELECTORS,
    U32_MAX,
)
from tracker_sync.domain.errors import TrackerParseError
from tracker_sync.domain.models import (
    Checks,
    HintRecord,
    SlotRecord,
    TrackerGameStatus,
)

T = TypeVar("T")


def _cell_text(cell: Tag) -> str:
    return cell.get_text().strip()


@dataclass(frozen=True)
class TableRow:
    """One body row, keyed by header text."""

    table: str
    number: int  # 1-based
    cells: dict[str, str]

    def get(self, column: str) -> str:
        """Get the raw text of a cell.

        Raises:
            TrackerParseError: If the table has no such column.
        """
        try:
            return self.cells[column]
        except KeyError:
            raise TrackerParseError(
                self.table, "missing column", row=self.number, column=column
            ) from None

    def parse(self, column: str, decode: Callable[[str], T]) -> T:
        """Decode a cell, turning ``ValueError`` into a parse error for this cell."""
        value = self.get(column)
        try:
            return decode(value)
        except ValueError as e:
            raise TrackerParseError(
                self.table,
                f"unable to parse value {value!r}: {e}",
                row=self.number,
                column=column,
            ) from e


class TableReader:
    """Reads the body rows of a tracker table using its header row.

    Missing trailing cells read as empty strings and cells under unknown
    headers are ignored.
    """

    def __init__(self, table: Tag, name: str) -> None:
        """Initialize the reader.

        Args:
            table: The ``<table>`` element.
            name: Table name used in error messages.

        Raises:
            TrackerParseError: If the table has no header row.
        """
        header = table.select_one(HEADER_ROW_SELECTOR)
        if header is None:
            raise TrackerParseError(name, "missing table header row")

        self.name = name
        self.columns = [_cell_text(th) for th in header.select(HEADER_CELL_SELECTOR)]
        self._rows = iter(table.select(BODY_ROW_SELECTOR))
        self.consumed = 0

    def __iter__(self) -> Iterator[TableRow]:
        for tr in self._rows:
            self.consumed += 1
            cells = [_cell_text(td) for td in tr.select(BODY_CELL_SELECTOR)]
            yield TableRow(
                table=self.name,
                number=self.consumed,
                cells=dict(zip(self.columns, chain(cells, repeat("")))),
            )

    def finish(self) -> None:
        """Verify that every body row was consumed.

        Raises:
            TrackerParseError: If rows remain, reporting actual and expected counts.
        """
        remaining = sum(1 for _ in self._rows)
        if remaining:
            raise TrackerParseError(
                self.name,
                f"invalid length {self.consumed + remaining}, "
                f"expected {self.consumed} element(s)",
            )


# Plain decimal or scientific notation; no underscores, no non-ASCII digits.
_FLOAT_PATTERN = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


def _find_table(soup: BeautifulSoup, name: str) -> Tag:
    table = soup.select_one(TABLE_SELECTORS[name])
    if table is None:
        raise TrackerParseError(name, f"missing {name} table")
    return table


def _parse_u32(value: str) -> int:
    if not (value.isascii() and value.isdecimal()):
        raise ValueError("expected a non-negative integer")
    number = int(value)
    if number > U32_MAX:
        raise ValueError("number too large")
    return number


def _parse_checks(value: str) -> Checks:
    checks = Checks.parse(value)
    if checks.completed > U32_MAX or checks.total > U32_MAX:
        raise ValueError("number too large")
    return checks


def _parse_last_activity(value: str) -> timedelta | None:
    """Parse seconds since the last activity, or the ``None`` sentinel."""
    if value == LAST_ACTIVITY_NONE:
        return None

    if not _FLOAT_PATTERN.fullmatch(value):
        raise ValueError(f"unknown duration format: {value!r}")
    seconds = float(value)
    if not math.isfinite(seconds):
        raise ValueError(f"unknown duration format: {value!r}")
    try:
        return timedelta(milliseconds=int(seconds * 1000))
    except OverflowError as e:
        raise ValueError(f"duration out of range: {value!r}") from e


def _parse_found(value: str) -> bool:
    return value != ""


def _parse_slot(row: TableRow) -> SlotRecord:
    return SlotRecord(
        position=row.parse(COLUMN_POSITION, _parse_u32),
        name=row.get(COLUMN_NAME),
        game=row.get(COLUMN_GAME),
        status=row.parse(COLUMN_STATUS, TrackerGameStatus.from_label),
        checks=row.parse(COLUMN_CHECKS, _parse_checks),
        last_activity=row.parse(COLUMN_LAST_ACTIVITY, _parse_last_activity),
    )


def _parse_hint(row: TableRow) -> HintRecord:
    return HintRecord(
        finder=row.get(COLUMN_FINDER),
        receiver=row.get(COLUMN_RECEIVER),
        item=row.get(COLUMN_ITEM),
        location=row.get(COLUMN_LOCATION),
        entrance=row.get(COLUMN_ENTRANCE),
        found=row.parse(COLUMN_FOUND, _parse_found),
    )


def _parse_table(soup: BeautifulSoup, name: str, parse_row: Callable[[TableRow], T]) -> list[T]:
    reader = TableReader(_find_table(soup, name), name)
    records = [parse_row(row) for row in reader]
    reader.finish()
    return records


def parse_tracker_html(html: str) -> tuple[list[SlotRecord], list[HintRecord]]:
    """Parse an upstream tracker page into slot and hint records.

    Args:
        html: The page source.

    Returns:
        Slot records and hint records, in page order.

    Raises:
        TrackerParseError: If a table, header row or column is missing, or a cell is malformed.
    """
    soup = BeautifulSoup(html, "html.parser")
    return (
        _parse_table(soup, CHECKS_TABLE, _parse_slot),
        _parse_table(soup, HINTS_TABLE, _parse_hint),
    )
