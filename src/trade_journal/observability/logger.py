"""Structured logging for import runs.

structlog renders pipeline events as JSON or console lines.  While an
import runs, :func:`import_context` binds the run's ``import_id`` and
filename into structlog's context variables, so every event from the
detector, parser and normalizer can be tied back to one file.  The
two-step flow re-enters the same context for ``convert`` by passing the
preview's ``import_id`` back in.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator

import structlog

from trade_journal.core.config import ObservabilityConfig
from trade_journal.core.ids import new_id


@contextmanager
def import_context(
    filename: str = "", import_id: str | None = None, **fields: Any
) -> Iterator[str]:
    """Bind ``import_id``, ``filename`` and *fields* for the duration of a run.

    Yields the import id (a new one unless *import_id* is given).  Previous
    bindings are restored on exit, so consecutive imports never share
    context.
    """
    iid = import_id or new_id()
    with structlog.contextvars.bound_contextvars(
        import_id=iid, filename=filename, **fields
    ):
        yield iid


def current_import_id() -> str:
    """The ``import_id`` bound by the enclosing :func:`import_context`, or ""."""
    return structlog.contextvars.get_contextvars().get("import_id", "")


def setup_logging(config: ObservabilityConfig | None = None) -> None:
    """Configure structlog and the stdlib root logger from *config*.

    ``log_format = "json"`` renders one JSON object per event with
    exceptions as text; anything else uses the console renderer.
    """
    config = config or ObservabilityConfig()
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if config.log_format == "json":
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
