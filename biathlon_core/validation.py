"""
Race configuration schema using Pydantic v2
Validates the JSON configuration consumed by the report pipeline
"""

import json
import logging
import re
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Every time-of-day in the package lives on this date (strptime default).
CLOCK_BASE = datetime(1900, 1, 1)

_HMS_RE = re.compile(r"([0-9]{2}):([0-9]{2}):([0-9]{2})")

# ==================== PARSERS ====================


def parse_duration(value: str) -> timedelta:
    """Parse an ``HH:MM:SS`` string as a duration (not a wall-clock time).

    Raises:
        ValueError: If the string is not strictly ``HH:MM:SS``
    """
    match = _HMS_RE.fullmatch(value.strip())
    if not match:
        raise ValueError(f"expected HH:MM:SS, got {value!r}")
    hours, minutes, seconds = (int(part) for part in match.groups())
    if minutes > 59 or seconds > 59:
        raise ValueError(f"minutes and seconds must be 0-59, got {value!r}")
    return timedelta(hours=hours, minutes=minutes, seconds=seconds)


def parse_clock(value: str) -> datetime:
    """Parse an ``HH:MM:SS`` time of day onto CLOCK_BASE."""
    offset = parse_duration(value)
    if offset >= timedelta(days=1):
        raise ValueError(f"hours must be 0-23, got {value!r}")
    return CLOCK_BASE + offset


# ==================== CONFIG MODEL ====================


class RaceConfig(BaseModel):
    """Race parameters; JSON keys use the timing system's camelCase names"""

    laps: int = Field(..., ge=1, description="Number of main laps")
    lap_len: float = Field(..., alias="lapLen", gt=0, description="Main lap length")
    penalty_len: float = Field(
        ..., alias="penaltyLen", gt=0, description="Penalty loop length"
    )
    firing_lines: int = Field(
        ..., alias="firingLines", ge=1, description="Number of firing lines"
    )
    start: datetime = Field(..., description="Planned race start (HH:MM:SS)")
    start_delta: timedelta = Field(
        ...,
        alias="startDelta",
        description="Allowed delay after the drawn start time (HH:MM:SS)",
    )

    @field_validator("start", mode="before")
    @classmethod
    def validate_start(cls, v: Any) -> Any:
        """Accept the HH:MM:SS clock string used in config files"""
        if not isinstance(v, str):
            raise ValueError(f"start must be an HH:MM:SS string, got {v!r}")
        return parse_clock(v)

    @field_validator("start_delta", mode="before")
    @classmethod
    def validate_start_delta(cls, v: Any) -> Any:
        """HH:MM:SS is a duration here, never a time of day"""
        if not isinstance(v, str):
            raise ValueError(f"startDelta must be an HH:MM:SS string, got {v!r}")
        return parse_duration(v)

    @property
    def shots_total(self) -> int:
        """Five targets per firing line"""
        return 5 * self.firing_lines

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="allow")


def load_config(path: Union[str, Path]) -> RaceConfig:
    """
    Read and validate a JSON configuration file

    Returns:
        RaceConfig: Validated configuration

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"cannot read config {path}: {e}") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"config {path} is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"config {path} must be a JSON object")

    try:
        config = RaceConfig.model_validate(raw)
    except ValidationError as e:
        logger.warning(f"Config validation failed: {e}")
        raise ConfigurationError(f"invalid config {path}: {e}") from e

    logger.debug(
        f"Loaded config: laps={config.laps} lapLen={config.lap_len} "
        f"penaltyLen={config.penalty_len} firingLines={config.firing_lines}"
    )
    return config


# ==================== EXPORT ====================

__all__ = [
    "CLOCK_BASE",
    "RaceConfig",
    "load_config",
    "parse_clock",
    "parse_duration",
]
