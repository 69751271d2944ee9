"""Import orchestration: bytes -> ``ImportResult``.

Wires detector, parser, mapper, account extractor and normalizer
together.  File-level failures raised by the stages (``ImportFailure``)
are turned into a failed ``ImportResult`` here and nowhere else.

Usage::

    result = import_file(data, "statement.htm")

    # Two-step flow: review mappings before converting
    preview = prepare_import(data, "trades.csv")
    mappings = apply_overrides(preview.mappings, {"Strategy": "setup"})
    result = convert(preview, mappings)
"""

from __future__ import annotations

from typing import Iterable, Mapping

from trade_journal.core.config import Settings
from trade_journal.core.enums import CanonicalField, FileType
from trade_journal.core.errors import ImportFailure
from trade_journal.core.ids import content_hash
from trade_journal.core.instruments import broker_min_lot
from trade_journal.core.models import ColumnMapping, ImportPreview, ImportResult
from trade_journal.observability.logger import (
    current_import_id,
    get_logger,
    import_context,
)

from .account import extract_account_info
from .detector import decode_content, require_format
from .mapper import apply_overrides, detect_column_mappings
from .normalizer import convert_rows
from .tabular import parse_table

log = get_logger(__name__)

Overrides = (
    Mapping[str, CanonicalField | str | None]
    | Iterable[tuple[str, CanonicalField | str | None]]
)


def _as_text(data: bytes | str) -> str:
    return data if isinstance(data, str) else decode_content(data)


def _fingerprint(content: str) -> str:
    return content_hash(content) if content.strip() else ""


def _build_preview(
    content: str,
    filename: str,
    file_type: FileType,
    overrides: Overrides | None,
    settings: Settings,
) -> ImportPreview:
    cfg = settings.importer
    table, warnings = parse_table(content, file_type, sniff_lines=cfg.sniff_lines)
    mappings = detect_column_mappings(
        table, threshold=cfg.mapping_threshold, sample_size=cfg.sample_size
    )
    mappings = apply_overrides(mappings, cfg.mapping_overrides, warnings)
    mappings = apply_overrides(mappings, overrides, warnings)
    account_info, starting_balance = extract_account_info(content, file_type)

    preview = ImportPreview(
        filename=filename,
        import_id=current_import_id(),
        content_hash=_fingerprint(content),
        file_type=file_type,
        table=table,
        mappings=mappings,
        account_info=account_info,
        starting_balance=starting_balance,
        warnings=warnings,
    )
    log.info(
        "import_prepared",
        file_type=file_type.value,
        content_hash=preview.content_hash,
        rows=len(table.rows),
        columns=len(table.headers),
        unmapped=preview.unmapped_columns,
    )
    return preview


def prepare_import(
    data: bytes | str,
    filename: str = "",
    *,
    overrides: Overrides | None = None,
    settings: Settings | None = None,
) -> ImportPreview:
    """Detect, parse and auto-map *data* without converting any rows.

    Raises
    ------
    ImportFailure
        The content is empty, of an unknown format, or has no trade table.
        A preview cannot exist without a table; use :func:`import_file`
        for a call that never raises.
    """
    settings = settings or Settings()
    with import_context(filename):
        content = _as_text(data)
        file_type = require_format(content, filename)
        return _build_preview(content, filename, file_type, overrides, settings)


def convert(
    preview: ImportPreview,
    mappings: list[ColumnMapping] | None = None,
    *,
    settings: Settings | None = None,
) -> ImportResult:
    """Convert the rows of a prepared import with the reviewed *mappings*.

    ``mappings`` defaults to the preview's own.  The minimum lot comes
    from the detected broker when known, otherwise from settings.  Log
    events and the result carry the preview's ``import_id``.
    """
    with import_context(preview.filename, import_id=preview.import_id or None):
        return _convert(preview, mappings, settings or Settings())


def _convert(
    preview: ImportPreview,
    mappings: list[ColumnMapping] | None,
    settings: Settings,
) -> ImportResult:
    cfg = settings.importer
    broker = preview.account_info.broker if preview.account_info else None
    result = convert_rows(
        preview.table,
        mappings if mappings is not None else preview.mappings,
        min_lot=broker_min_lot(broker, default=cfg.min_lot),
        default_setup=cfg.default_setup,
    )
    result = result.model_copy(
        update={
            "import_id": current_import_id(),
            "content_hash": preview.content_hash,
            "file_type": preview.file_type,
            "account_info": preview.account_info,
            "starting_balance": preview.starting_balance,
            "warnings": preview.warnings + result.warnings,
        }
    )
    log.info(
        "import_converted",
        imported=result.imported_count,
        skipped=result.skipped_rows,
        errors=len(result.errors),
        warnings=len(result.warnings),
    )
    return result


def import_file(
    data: bytes | str,
    filename: str = "",
    *,
    overrides: Overrides | None = None,
    settings: Settings | None = None,
) -> ImportResult:
    """Run the full import for one file.  Never raises for bad content.

    Parameters
    ----------
    data : bytes | str
        Raw file bytes (decoded here) or already-decoded text.
    filename : str
        Original filename, used only as a format hint.
    overrides : mapping or list of pairs, optional
        ``source header -> CanonicalField`` (``None`` unmaps), applied
        on top of auto-detection and configured overrides.
    settings : Settings, optional
        Defaults to ``Settings()``.
    """
    settings = settings or Settings()
    with import_context(filename) as import_id:
        file_type = FileType.UNKNOWN
        digest = ""
        try:
            content = _as_text(data)
            digest = _fingerprint(content)
            file_type = require_format(content, filename)
            preview = _build_preview(content, filename, file_type, overrides, settings)
        except ImportFailure as exc:
            log.warning("import_failed", file_type=file_type.value, error=str(exc))
            return ImportResult.failed(
                str(exc), file_type, import_id=import_id, content_hash=digest
            )
        return _convert(preview, None, settings)
