"""CLI entry point for the trade journal import and analytics core."""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Any

import click

from .core.config import Settings, load_settings
from .core.enums import CanonicalField
from .core.errors import ConfigError
from .core.models import ImportResult
from .observability.logger import setup_logging


@click.group()
def main() -> None:
    """Trade journal import & analytics."""


def _parse_map_options(values: tuple[str, ...]) -> dict[str, CanonicalField | None]:
    """``HEADER=field`` pairs; an empty field unmaps the column."""
    overrides: dict[str, CanonicalField | None] = {}
    for item in values:
        header, sep, target = item.rpartition("=")
        if not sep or not header:
            raise click.BadParameter(f"expected HEADER=field, got {item!r}", param_hint="--map")
        target = target.strip()
        if not target:
            overrides[header] = None
            continue
        try:
            overrides[header] = CanonicalField(target)
        except ValueError:
            choices = ", ".join(f.value for f in CanonicalField)
            raise click.BadParameter(
                f"unknown field {target!r} (choose from {choices})", param_hint="--map"
            ) from None
    return overrides


def _load(config: str | None) -> Settings:
    try:
        settings = load_settings(config)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    setup_logging(settings.observability)
    return settings


def _import_summary(result: ImportResult, error_limit: int) -> dict[str, Any]:
    return {
        "success": result.success,
        "import_id": result.import_id,
        "content_hash": result.content_hash,
        "file_type": result.file_type.value,
        "total_rows": result.total_rows,
        "imported": result.imported_count,
        "skipped": result.skipped_rows,
        "errored_rows": result.errored_rows,
        "errors": [e.model_dump() for e in result.error_preview(error_limit)],
        "warnings": result.warnings,
        "file_errors": result.file_errors,
        "account_info": result.account_info.model_dump() if result.account_info else None,
        "starting_balance": result.starting_balance,
    }


def _echo_json(payload: dict[str, Any]) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def _run_import(
    file: Path, maps: tuple[str, ...], settings: Settings
) -> ImportResult:
    from .importer.pipeline import import_file

    return import_file(
        file.read_bytes(),
        file.name,
        overrides=_parse_map_options(maps),
        settings=settings,
    )


@main.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--map", "maps", multiple=True, help="Column override HEADER=field (repeatable)")
@click.option("--config", default=None, help="Config file path")
@click.option("--errors", "error_limit", default=10, type=int, help="Row errors to show")
def import_cmd(file: Path, maps: tuple[str, ...], config: str | None, error_limit: int) -> None:
    """Import a broker export and print the result summary as JSON."""
    settings = _load(config)
    result = _run_import(file, maps, settings)
    _echo_json(_import_summary(result, error_limit))
    if not result.success:
        raise SystemExit(1)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--map", "maps", multiple=True, help="Column override HEADER=field (repeatable)")
@click.option("--config", default=None, help="Config file path")
@click.option("--base-risk", default=None, type=float, help="Currency amount equal to 1R")
@click.option("--starting-balance", default=None, type=float, help="Opening balance for drawdown")
def analyze(
    file: Path,
    maps: tuple[str, ...],
    config: str | None,
    base_risk: float | None,
    starting_balance: float | None,
) -> None:
    """Import a broker export and print its analytics as JSON."""
    from .analytics import (
        calculate_risk_metrics,
        calculate_summary,
        daily_streaks,
        ecdf_percentiles,
        expectancy_by_setup,
        r_multiple_ecdf,
        session_heatmap,
    )

    settings = _load(config)
    result = _run_import(file, maps, settings)
    if not result.success:
        _echo_json({"import": _import_summary(result, 10)})
        raise SystemExit(1)

    trades = result.trades
    risk = base_risk if base_risk is not None else settings.analytics.base_risk
    if risk <= 0:
        raise click.BadParameter("must be positive", param_hint="--base-risk")
    boundaries = settings.analytics.session_boundaries
    # Setups below this sample size are flagged, never dropped
    min_trades = settings.analytics.min_trades_per_setup
    balance = starting_balance if starting_balance is not None else result.starting_balance

    ecdf = r_multiple_ecdf(trades, risk)
    heatmap = session_heatmap(trades, boundaries, risk)
    _echo_json({
        "import": _import_summary(result, 10),
        "base_risk": risk,
        "risk_metrics": calculate_risk_metrics(trades, starting_balance=balance).to_dict(),
        "summary": asdict(calculate_summary(trades, risk, boundaries)),
        "ecdf": [asdict(p) for p in ecdf],
        "percentiles": ecdf_percentiles(ecdf),
        "expectancy_by_setup": [
            {**asdict(s), "low_sample": s.trades < min_trades}
            for s in expectancy_by_setup(trades, risk)
        ],
        "session_heatmap": asdict(heatmap),
        "daily_streaks": asdict(daily_streaks(trades)),
    })


if __name__ == "__main__":
    main()
