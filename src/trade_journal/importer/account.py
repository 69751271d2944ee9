"""Account metadata from broker report headers.

MT4 statements put ``Account: 2088888  Name: J. Doe  Currency: USD`` in
one header row; MT5 reports use label and value cells side by side
(``Name:`` | ``J. Doe``) and pack the currency and server into the
account cell: ``12345678 (USD, Broker-Server, real, Hedge)``.  Both are
handled, and free text outside tables is scanned as a fallback.
Extraction is best-effort: missing labels are simply absent.
"""

from __future__ import annotations

import html
import logging
import re

from trade_journal.core.enums import FileType
from trade_journal.core.models import AccountInfo

from .coercion import parse_number
from .tabular import collect_tables

logger = logging.getLogger(__name__)

# Normalized label -> extracted key
LABELS: dict[str, str] = {
    "name": "name",
    "account name": "name",
    "client": "name",
    "account": "account_number",
    "account number": "account_number",
    "account no": "account_number",
    "login": "account_number",
    "company": "broker",
    "broker": "broker",
    "server": "server",
    "currency": "currency",
    "initial deposit": "deposit",
    "deposit": "deposit",
}
# Labels that only delimit a value, never extracted
_STOP_LABELS = ("leverage", "date", "balance", "equity")

_LABEL_RE = re.compile(
    r"\b("
    + "|".join(
        re.escape(label)
        for label in sorted([*LABELS, *_STOP_LABELS], key=len, reverse=True)
    )
    + r")\s*:\s*",
    re.IGNORECASE,
)
_MT5_ACCOUNT = re.compile(r"^\s*(\d+)\s*\(([^)]*)\)")
_CURRENCY = re.compile(r"^[A-Z]{3,4}$")
_TAG = re.compile(r"<[^>]+>")


class _Found:
    """First valid value seen for each key."""

    def __init__(self) -> None:
        self.values: dict[str, str] = {}

    def offer(self, label: str, value: str) -> None:
        key = LABELS.get(label.lower().strip())
        value = " ".join((value or "").split())
        if key is None or not value or key in self.values:
            return
        if key == "deposit" and parse_number(value) is None:
            return
        if key == "currency":
            value = value.upper()
            if not _CURRENCY.match(value):
                return
        if key == "account_number" and not any(ch.isdigit() for ch in value):
            return
        self.values[key] = value


def _scan_text(text: str, found: _Found, following: list[str] | None = None) -> bool:
    """Offer every ``Label: value`` in *text*; return True if a label matched.

    A trailing label with no value takes the first non-empty cell of
    *following*.
    """
    matches = list(_LABEL_RE.finditer(text))
    for i, m in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        value = text[m.end():end].strip()
        if not value and i + 1 == len(matches) and following:
            value = next((c for c in following if c.strip()), "")
        found.offer(m.group(1), value)
    return bool(matches)


def _scan_tables(content: str, found: _Found) -> None:
    for table in collect_tables(content):
        for row in table.rows:
            for i, cell in enumerate(row):
                rest = row[i + 1:]
                if _scan_text(cell, found, rest):
                    continue
                label = cell.lower().rstrip(":").strip()
                if label in LABELS and rest:
                    found.offer(label, rest[0])


def _scan_free_text(content: str, found: _Found) -> None:
    text = html.unescape(_TAG.sub("\n", content))
    for line in text.splitlines():
        if line.strip():
            _scan_text(line, found)


def _split_mt5_account(values: dict[str, str]) -> None:
    """Unpack ``12345678 (USD, Server, real, Hedge)`` in place."""
    raw = values.get("account_number")
    m = _MT5_ACCOUNT.match(raw or "")
    if m is None:
        if raw:
            values["account_number"] = raw.split()[0]
        return
    values["account_number"] = m.group(1)
    details = [p.strip() for p in m.group(2).split(",")]
    if details and _CURRENCY.match(details[0].upper()):
        values.setdefault("currency", details[0].upper())
    if len(details) > 1 and details[1]:
        values.setdefault("server", details[1])


def extract_account_info(
    content: str, file_type: FileType
) -> tuple[AccountInfo | None, float | None]:
    """Return ``(account_info, starting_balance)`` from a broker report.

    Delimited files carry no account header and always give
    ``(None, None)``.  ``account_info`` is ``None`` when no label was
    found; ``starting_balance`` comes from an initial deposit.
    """
    if file_type != FileType.BROKER_HTML:
        return None, None

    found = _Found()
    _scan_tables(content, found)
    _scan_free_text(content, found)
    values = found.values
    _split_mt5_account(values)

    info = AccountInfo(
        name=values.get("name"),
        account_number=values.get("account_number"),
        broker=values.get("broker") or values.get("server"),
        currency=values.get("currency"),
    )
    balance = parse_number(values["deposit"]) if "deposit" in values else None
    logger.debug(
        "Account header: found=%s starting_balance=%s", sorted(values), balance
    )
    return (None if info.is_empty else info), balance
