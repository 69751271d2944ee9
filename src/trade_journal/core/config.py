"""Configuration management.

Loads from TOML config files + environment variables.
Uses pydantic-settings for validation and env var overriding.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from .enums import CanonicalField
from .errors import ConfigError


# ---------------------------------------------------------------------------
# Sub-configs
# ---------------------------------------------------------------------------

class ImportConfig(BaseModel):
    min_lot: float = 0.01  # Broker minimum lot; smaller non-zero sizes are reset to 0
    mapping_threshold: float = 0.75  # Minimum header similarity for auto-mapping
    sample_size: int = 3  # Sample values attached per column for review
    sniff_lines: int = 20  # Lines sampled for separator consistency
    default_setup: str = "Unknown"
    # Source header -> canonical field (None unmaps the column)
    mapping_overrides: dict[str, CanonicalField | None] = Field(default_factory=dict)

    @field_validator("mapping_threshold")
    @classmethod
    def threshold_must_be_fraction(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError(f"mapping_threshold must be in (0, 1], got {v}")
        return v

    @field_validator("min_lot")
    @classmethod
    def min_lot_must_be_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"min_lot must be non-negative, got {v}")
        return v


class AnalyticsConfig(BaseModel):
    base_risk: float = 10.0  # Currency amount that equals 1R
    # Start hours (local) of the asia, london and new_york sessions
    session_boundaries: tuple[int, int, int] = (0, 8, 16)
    min_trades_per_setup: int = 3  # Display filter, applied by presentation only

    @field_validator("base_risk")
    @classmethod
    def base_risk_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"base_risk must be positive, got {v}")
        return v

    @field_validator("session_boundaries")
    @classmethod
    def boundaries_must_be_distinct_hours(
        cls, v: tuple[int, int, int]
    ) -> tuple[int, int, int]:
        if any(h < 0 or h > 23 for h in v):
            raise ValueError(f"session boundaries must be hours 0-23, got {v}")
        if len(set(v)) != len(v):
            raise ValueError(f"session boundaries must be distinct, got {v}")
        return v


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"


# ---------------------------------------------------------------------------
# Top-level settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """Top-level settings.

    Loaded from TOML config files, overridden by environment variables
    (``TRADE_JOURNAL_ANALYTICS__BASE_RISK=25``).
    """

    importer: ImportConfig = Field(default_factory=ImportConfig)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    model_config = {"env_prefix": "TRADE_JOURNAL_", "env_nested_delimiter": "__"}


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Load settings from TOML file + env vars.

    Args:
        config_path: Path to TOML config file (optional).
        overrides: Dict of overrides to apply on top.

    Raises:
        ConfigError: The file is not valid TOML or a value fails validation.
    """
    data: dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            import tomli

            with open(path, "rb") as f:
                try:
                    data = tomli.load(f)
                except tomli.TOMLDecodeError as exc:
                    raise ConfigError(f"Invalid TOML in {path}: {exc}") from exc

    if overrides:
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(data.get(key), dict):
                data[key] = {**data[key], **value}
            else:
                data[key] = value

    try:
        return Settings(**data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
