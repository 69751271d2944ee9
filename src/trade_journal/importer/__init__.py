"""Broker file import: raw bytes -> canonical trades.

Key components
--------------
detect_format          Delimited text vs broker HTML vs unknown
parse_table            Content -> RawTable (csv module / html.parser)
detect_column_mappings Header + sample-shape scoring -> ColumnMapping list
apply_overrides        Caller mapping corrections
convert_rows           RawTable rows -> Trade records, errors and warnings
extract_account_info   Account header of MT4/MT5 reports
import_file            The whole pipeline, never raising for bad content
prepare_import/convert Two-step flow with mapping review in between
"""

from .account import extract_account_info
from .detector import decode_content, detect_format
from .mapper import add_sample_values, apply_overrides, detect_column_mappings
from .normalizer import convert_rows
from .pipeline import convert, import_file, prepare_import
from .tabular import parse_delimited, parse_html, parse_table

__all__ = [
    "extract_account_info",
    "decode_content",
    "detect_format",
    "add_sample_values",
    "apply_overrides",
    "detect_column_mappings",
    "convert_rows",
    "convert",
    "import_file",
    "prepare_import",
    "parse_delimited",
    "parse_html",
    "parse_table",
]
