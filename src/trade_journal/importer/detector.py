"""Format detection and byte decoding for uploaded broker files.

Classifies raw content as delimited text, a broker HTML report, or
unknown.  The filename is a hint only; content evidence always wins.
"""

from __future__ import annotations

import codecs
import logging
import re

from trade_journal.core.enums import FileType
from trade_journal.core.errors import EmptyContentError, UnrecognizedFormatError

logger = logging.getLogger(__name__)

SEPARATORS = (",", ";", "\t")

_HTML_OPENING = re.compile(
    r"^(?:<\?xml[^>]*>\s*)?<\s*(?:!doctype\s+html|html|head|body|table|meta|title)\b",
    re.IGNORECASE,
)

# Strings that identify MT4/MT5 and similar statement exports
BROKER_MARKERS = (
    "trade history report",
    "statement:",
    "closed transactions:",
    "metatrader",
    "detailed statement",
)

_HTML_EXTENSIONS = (".htm", ".html")

# Number of non-empty lines inspected for separator consistency
_SNIFF_LINES = 20


def decode_content(data: bytes) -> str:
    """Decode uploaded bytes to text.

    MT5 writes its HTML reports as UTF-16 with a BOM, most CSV exports are
    UTF-8 (often with a BOM) and older desktop tools emit cp1252.
    """
    if data.startswith(codecs.BOM_UTF8):
        return data[len(codecs.BOM_UTF8):].decode("utf-8", errors="replace")
    if data.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        return data.decode("utf-16", errors="replace")
    for enc in ("utf-8", "cp1252", "latin-1"):
        try:
            return data.decode(enc)
        except UnicodeDecodeError:
            continue
    return data.decode("utf-8", errors="replace")


def dominant_separator(lines: list[str]) -> str | None:
    """Return the separator with a consistent non-zero count on most lines.

    A separator qualifies when the most common per-line count is non-zero
    and shared by a strict majority of *lines*.  Among qualifying
    separators the one with the larger count wins.
    """
    if not lines:
        return None
    best: tuple[int, str] | None = None
    for sep in SEPARATORS:
        counts = [line.count(sep) for line in lines]
        modal = max(set(counts), key=lambda c: (counts.count(c), c))
        if modal == 0:
            continue
        if counts.count(modal) * 2 <= len(lines):
            continue
        if best is None or modal > best[0]:
            best = (modal, sep)
    return best[1] if best else None


def looks_like_html(content: str) -> bool:
    head = content.lstrip()[:2048]
    if _HTML_OPENING.match(head):
        return True
    lowered = content[:65536].lower()
    return "<table" in lowered and any(m in lowered for m in BROKER_MARKERS)


def detect_format(content: str, filename: str = "") -> FileType:
    """Classify *content* as delimited text, broker HTML or unknown.

    Parameters
    ----------
    content : str
        Decoded file content.
    filename : str
        Original filename.  ``.htm``/``.html`` tips markup-looking content
        that lacks a proper opening tag towards HTML; other extensions are
        ignored.

    Returns
    -------
    FileType
    """
    if not content or not content.strip():
        return FileType.UNKNOWN

    if looks_like_html(content):
        return FileType.BROKER_HTML

    stripped = content.lstrip()
    if (
        filename.lower().endswith(_HTML_EXTENSIONS)
        and stripped.startswith("<")
        and "</" in stripped
    ):
        return FileType.BROKER_HTML

    if "\n" in content.strip():
        lines = [ln for ln in content.splitlines() if ln.strip()][:_SNIFF_LINES]
        if dominant_separator(lines) is not None:
            return FileType.DELIMITED

    return FileType.UNKNOWN


def require_format(content: str, filename: str = "") -> FileType:
    """Like :func:`detect_format` but raise on empty or unknown content.

    Raises
    ------
    EmptyContentError
        The file is empty or whitespace only.
    UnrecognizedFormatError
        No supported structure was found.
    """
    if not content or not content.strip():
        raise EmptyContentError(
            f"File {filename!r} is empty" if filename else "File is empty"
        )
    file_type = detect_format(content, filename)
    if file_type == FileType.UNKNOWN:
        raise UnrecognizedFormatError(filename)
    logger.debug("Detected %s content for %r", file_type.value, filename)
    return file_type
