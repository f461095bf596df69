"""Modelos tipados para lecturas de glucosa, umbrales y ventanas del gráfico."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


@dataclass(frozen=True)
class GlucoseReading:
    """One glucose measurement (mg/dL) at a point in time."""

    timestamp: datetime
    mg_dl: float


@dataclass(frozen=True)
class ThresholdSet:
    """User defined limits, all in mg/dL.

    Expected ascending (urgent_low < low < high < urgent_high) but not checked.
    """

    urgent_low: float = 60.0
    low: float = 80.0
    high: float = 170.0
    urgent_high: float = 250.0


class GlucoseBand(str, Enum):
    """Color band for a single glucose value."""

    URGENT = "urgent"
    WARNING = "warning"
    NORMAL = "normal"


class SensorTier(str, Enum):
    """Severity tier for the remaining sensor life."""

    EXPIRED = "expired"
    URGENT = "urgent"
    WARNING = "warning"
    NORMAL = "normal"


@dataclass(frozen=True)
class SensorProgress:
    """Sensor life used, as a fraction, plus its tier."""

    progress: float
    tier: SensorTier
    minutes_left: float


@dataclass(frozen=True)
class DisplayWindow:
    """Readings that fall inside the trailing chart window.

    Values and dates are parallel sequences in the caller's order.
    """

    values: tuple[float, ...]
    dates: tuple[datetime, ...]
    start: datetime
    now: datetime

    def __post_init__(self) -> None:
        check_parallel(self.values, self.dates)

    def __len__(self) -> int:
        return len(self.values)

    def readings(self) -> list[GlucoseReading]:
        """Return the window as reading objects."""
        return [
            GlucoseReading(timestamp=d, mg_dl=v)
            for v, d in zip(self.values, self.dates)
        ]


def check_parallel(values: Sequence[float], dates: Sequence[datetime]) -> None:
    """Raise ValueError if the parallel sequences differ in length."""
    if len(values) != len(dates):
        raise ValueError(
            "values and dates must have the same length "
            f"({len(values)} != {len(dates)})"
        )
