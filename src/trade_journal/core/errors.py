"""Custom exception hierarchy for the trade journal core.

Expected bad input never escapes the import pipeline as an exception:
``ImportFailure`` subclasses are raised by the detector and parsers and
converted into a failed ``ImportResult`` at the pipeline boundary.
"""


class TradeJournalError(Exception):
    """Base exception for all trade journal errors."""


# --- Configuration ---
class ConfigError(TradeJournalError):
    """Invalid or missing configuration."""


# --- Import (file-level, fatal) ---
class ImportFailure(TradeJournalError):
    """The file as a whole cannot be imported."""


class EmptyContentError(ImportFailure):
    """File is empty or contains only whitespace."""


class UnrecognizedFormatError(ImportFailure):
    """Content is neither delimited text nor a broker HTML report."""

    def __init__(self, filename: str = ""):
        self.filename = filename
        target = f"'{filename}'" if filename else "file"
        super().__init__(
            f"Unrecognized format for {target}: expected delimited text "
            "(comma, semicolon or tab) or an HTML trade-history report"
        )


class TableNotFoundError(ImportFailure):
    """No trade table or data lines could be located."""


class MalformedContentError(ImportFailure):
    """Delimited text cannot be tokenized (oversized or unterminated field)."""


# --- Analytics ---
class AnalyticsError(TradeJournalError):
    """Analytics input is unusable (e.g. invalid quantile)."""
