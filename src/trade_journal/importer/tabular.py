"""Tabular parsing: raw content -> ``RawTable``.

Delimited text is split with the ``csv`` module after choosing the
separator that gives a consistent column count.  HTML reports are parsed
structurally; every ``<table>`` is collected and the one that looks most
like a trade ledger becomes the ``RawTable``.

Usage::

    table, warnings = parse_table(content, FileType.DELIMITED)
    print(table.headers)
"""

from __future__ import annotations

import csv
import io
import logging
import re
from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Iterator

from trade_journal.core.enums import FileType
from trade_journal.core.errors import (
    MalformedContentError,
    TableNotFoundError,
    UnrecognizedFormatError,
)
from trade_journal.core.models import RawTable

from .coercion import is_numeric, parse_date
from .detector import SEPARATORS

logger = logging.getLogger(__name__)

# Words that mark a header row of a trade ledger table
LEDGER_KEYWORDS = frozenset({
    "symbol", "item", "pair", "instrument", "type", "profit", "price",
    "volume", "size", "lots", "lot", "ticket", "time", "direction", "deal",
    "position", "order", "commission", "swap", "sl", "tp", "s/l", "t/p",
})
# At least one of these must be present for a row to count as a header
_LEDGER_ANCHORS = frozenset({"symbol", "item", "pair", "instrument", "profit"})

QUOTE_CHAR = '"'
# Largest single delimited cell accepted (long free-text notes fit)
FIELD_SIZE_LIMIT = 1 << 20


# ---------------------------------------------------------------------------
# Header helpers
# ---------------------------------------------------------------------------

def unique_headers(names: list[str]) -> list[str]:
    """Strip header names, fill blanks and suffix duplicates.

    ``["Time", "Price", "Time", "Price", ""]`` becomes
    ``["Time", "Price", "Time 2", "Price 2", "Column 5"]``.
    """
    seen: Counter[str] = Counter()
    result: list[str] = []
    for i, raw in enumerate(names, start=1):
        name = " ".join((raw or "").split()) or f"Column {i}"
        seen[name] += 1
        if seen[name] > 1:
            candidate = f"{name} {seen[name]}"
            while candidate in seen:
                seen[name] += 1
                candidate = f"{name} {seen[name]}"
            seen[candidate] += 1
            name = candidate
        result.append(name)
    return result


def looks_like_data_row(cells: list[str]) -> bool:
    """True when most non-empty cells are numbers or dates."""
    filled = [c for c in cells if c.strip()]
    if not filled:
        return False
    data_like = sum(1 for c in filled if is_numeric(c) or parse_date(c) is not None)
    return data_like * 2 > len(filled)


def _build_rows(
    headers: list[str], records: list[list[str]]
) -> tuple[list[dict[str, str]], int]:
    """Zip records onto headers; returns rows and the count of truncated rows."""
    width = len(headers)
    rows: list[dict[str, str]] = []
    truncated = 0
    for cells in records:
        if len(cells) > width:
            if any(c.strip() for c in cells[width:]):
                truncated += 1
            cells = cells[:width]
        elif len(cells) < width:
            cells = cells + [""] * (width - len(cells))
        rows.append({h: c.strip() for h, c in zip(headers, cells)})
    return rows, truncated


# ---------------------------------------------------------------------------
# Delimited text
# ---------------------------------------------------------------------------

@contextmanager
def _field_size_limit(limit: int) -> Iterator[None]:
    previous = csv.field_size_limit(limit)
    try:
        yield
    finally:
        csv.field_size_limit(previous)


def _read_records(content: str, delimiter: str) -> list[tuple[int, list[str]]]:
    """Read non-blank CSV records with their 1-based starting line number.

    Raises
    ------
    MalformedContentError
        A field exceeds ``FIELD_SIZE_LIMIT`` or a quoted field is never
        closed before the end of the file.
    """
    lines = io.StringIO(content).readlines()
    reader = csv.reader(lines, delimiter=delimiter, quotechar=QUOTE_CHAR)
    records: list[tuple[int, list[str]]] = []
    prev_line = 0
    start_line = 0
    with _field_size_limit(FIELD_SIZE_LIMIT):
        try:
            for cells in reader:
                start_line = prev_line + 1
                prev_line = reader.line_num
                if not any(c.strip() for c in cells):
                    continue
                records.append((start_line, cells))
        except csv.Error as exc:
            raise MalformedContentError(
                f"Malformed delimited content at line {reader.line_num}: {exc}"
            ) from exc

    # Without strict mode an open quote silently swallows the rest of the file
    if prev_line > start_line:
        tail = "".join(lines[start_line - 1:])
        if tail.count(QUOTE_CHAR) % 2:
            raise MalformedContentError(
                f"Unterminated quoted field starting at line {start_line}"
            )
    return records


def choose_separator(content: str, sniff_lines: int = 20) -> str:
    """Pick the separator giving a consistent column count.

    Candidates are tried in order of frequency on the first non-empty
    line; the first whose header width is matched by a majority of the
    next *sniff_lines* records wins.  Falls back to the most frequent
    candidate.

    Raises
    ------
    UnrecognizedFormatError
        No candidate separator occurs on the first line.
    MalformedContentError
        The content cannot be tokenized with the chosen candidate.
    """
    first_line = next((ln for ln in content.splitlines() if ln.strip()), "")
    counts = {sep: first_line.count(sep) for sep in SEPARATORS}
    candidates = [
        sep for sep, n in sorted(counts.items(), key=lambda kv: -kv[1]) if n > 0
    ]
    if not candidates:
        raise UnrecognizedFormatError()

    for sep in candidates:
        records = _read_records(content, sep)[: sniff_lines + 1]
        if not records:
            continue
        width = len(records[0][1])
        sample = records[1:]
        if not sample:
            return sep
        consistent = sum(1 for _, cells in sample if len(cells) == width)
        if consistent * 2 > len(sample):
            return sep
    return candidates[0]


def parse_delimited(
    content: str, *, sniff_lines: int = 20
) -> tuple[RawTable, list[str]]:
    """Parse delimited text into a ``RawTable``.

    Returns
    -------
    tuple[RawTable, list[str]]
        The table and any parser warnings.

    Raises
    ------
    TableNotFoundError
        No header or data lines were found.
    MalformedContentError
        A field is oversized or a quoted field is never closed.
    """
    warnings: list[str] = []
    sep = choose_separator(content, sniff_lines)
    records = _read_records(content, sep)
    if not records:
        raise TableNotFoundError("No data lines found in delimited file")

    first_line, first_cells = records[0]
    if looks_like_data_row(first_cells):
        headers = [f"Column {i}" for i in range(1, len(first_cells) + 1)]
        body = records
        warnings.append(
            "First line looks like data, not a header; "
            f"generated {len(headers)} column names (Column 1..{len(headers)})"
        )
    else:
        headers = unique_headers(first_cells)
        body = records[1:]

    rows, truncated = _build_rows(headers, [cells for _, cells in body])
    if truncated:
        warnings.append(
            f"{truncated} rows had more cells than the header; extra cells ignored"
        )
    if not rows:
        raise TableNotFoundError("Delimited file has a header but no data rows")

    logger.debug(
        "Parsed delimited file: separator=%r columns=%d rows=%d",
        sep, len(headers), len(rows),
    )
    table = RawTable(
        headers=headers,
        rows=rows,
        row_numbers=[line for line, _ in body],
    )
    return table, warnings


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------

@dataclass
class HtmlTable:
    """Cell text of one ``<table>``, row by row (nested tables excluded)."""

    index: int
    rows: list[list[str]] = field(default_factory=list)
    closed: bool = True  # False when the document ended before </table>


class _TableCollector(HTMLParser):
    """Collect the text of every table cell, keeping tables separate."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.tables: list[HtmlTable] = []
        self._stack: list[HtmlTable] = []
        self._row: list[str] | None = None
        self._cell: list[str] | None = None
        self._row_stack: list[tuple[list[str] | None, list[str] | None]] = []

    # -- helpers --------------------------------------------------------

    def _close_cell(self) -> None:
        if self._cell is not None and self._row is not None:
            self._row.append(" ".join("".join(self._cell).split()))
        self._cell = None

    def _close_row(self) -> None:
        self._close_cell()
        if self._row is not None and self._stack:
            self._stack[-1].rows.append(self._row)
        self._row = None

    # -- HTMLParser hooks ----------------------------------------------

    def handle_starttag(self, tag: str, attrs) -> None:
        if tag == "table":
            self._row_stack.append((self._row, self._cell))
            self._row, self._cell = None, None
            table = HtmlTable(index=len(self.tables))
            self.tables.append(table)
            self._stack.append(table)
        elif not self._stack:
            return
        elif tag == "tr":
            self._close_row()
            self._row = []
        elif tag in ("td", "th"):
            self._close_cell()
            if self._row is None:
                self._row = []
            self._cell = []
        elif tag == "br" and self._cell is not None:
            self._cell.append(" ")

    def handle_endtag(self, tag: str) -> None:
        if not self._stack:
            return
        if tag == "table":
            self._close_row()
            self._stack.pop()
            self._row, self._cell = self._row_stack.pop()
        elif tag == "tr":
            self._close_row()
        elif tag in ("td", "th"):
            self._close_cell()

    def handle_data(self, data: str) -> None:
        if self._cell is not None:
            self._cell.append(data)

    def close(self) -> None:
        """Flush cells, rows and tables left open by a truncated document."""
        super().close()
        while self._stack:
            self._close_row()
            self._stack.pop().closed = False
            self._row, self._cell = self._row_stack.pop()


def collect_tables(content: str) -> list[HtmlTable]:
    """Parse *content* and return every table in document order."""
    collector = _TableCollector()
    collector.feed(content)
    collector.close()
    return collector.tables


def _cell_tokens(cell: str) -> set[str]:
    lowered = cell.lower().strip()
    tokens = set(re.split(r"[^a-z0-9/]+", lowered)) - {""}
    tokens.add(lowered)
    tokens.add(lowered.replace(" ", ""))
    return tokens


def is_ledger_header(cells: list[str]) -> bool:
    """True when a row names at least two trade-ledger columns."""
    hits: set[str] = set()
    for cell in cells:
        hits |= _cell_tokens(cell) & LEDGER_KEYWORDS
    return len(hits) >= 2 and bool(hits & _LEDGER_ANCHORS)


@dataclass
class _LedgerCandidate:
    table_index: int
    header_index: int
    headers: list[str]
    body: list[tuple[int, list[str]]]
    skipped: int


def _ledger_in_table(table: HtmlTable) -> _LedgerCandidate | None:
    header_index = next(
        (i for i, row in enumerate(table.rows) if is_ledger_header(row)), None
    )
    if header_index is None:
        return None
    header_cells = table.rows[header_index]
    width = len(header_cells)
    body: list[tuple[int, list[str]]] = []
    skipped = 0
    for i in range(header_index + 1, len(table.rows)):
        cells = table.rows[i]
        if is_ledger_header(cells):
            break
        if not any(c for c in cells):
            continue
        if len(cells) != width:
            skipped += 1
            continue
        body.append((i + 1, cells))
    return _LedgerCandidate(
        table_index=table.index,
        header_index=header_index,
        headers=unique_headers(header_cells),
        body=body,
        skipped=skipped,
    )


def parse_html(content: str) -> tuple[RawTable, list[str]]:
    """Locate the trade-ledger table of an HTML report.

    The ledger is the table whose header row carries trading keywords and
    that has the most data rows (earliest table wins ties).  Row numbers
    are 1-based ``<tr>`` positions within that table.

    Raises
    ------
    TableNotFoundError
        No table with a recognizable trade header and data rows exists.
    """
    tables = collect_tables(content)
    candidates = [c for c in map(_ledger_in_table, tables) if c and c.body]
    if not candidates:
        raise TableNotFoundError(
            f"No trade table found among {len(tables)} HTML tables"
        )
    best = max(candidates, key=lambda c: (len(c.body), -c.table_index))

    warnings: list[str] = []
    if not tables[best.table_index].closed:
        warnings.append(
            "HTML report ends inside the trade table; rows left open at the "
            "end of the file were kept"
        )
    if best.skipped:
        warnings.append(
            f"{best.skipped} rows in the trade table did not match the header "
            "layout and were ignored"
        )
    rows, _ = _build_rows(best.headers, [cells for _, cells in best.body])
    logger.debug(
        "Selected HTML table %d of %d: columns=%d rows=%d",
        best.table_index, len(tables), len(best.headers), len(rows),
    )
    table = RawTable(
        headers=best.headers,
        rows=rows,
        row_numbers=[n for n, _ in best.body],
    )
    return table, warnings


def parse_table(
    content: str, file_type: FileType, *, sniff_lines: int = 20
) -> tuple[RawTable, list[str]]:
    """Dispatch to the parser for *file_type*."""
    if file_type == FileType.DELIMITED:
        return parse_delimited(content, sniff_lines=sniff_lines)
    if file_type == FileType.BROKER_HTML:
        return parse_html(content)
    raise UnrecognizedFormatError()
