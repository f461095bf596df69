"""Configuración de la vista: ventana del gráfico, sensor y zona horaria."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import tzinfo
from enum import Enum, unique

from dateutil import tz

LOCAL_TZ = tz.tzlocal()

MGDL_TO_MMOLL = 0.0555
MGDL_UNIT = "mg/dL"
MMOLL_UNIT = "mmol/L"

# Remaining sensor life (minutes) at which the progress bar changes tier.
SENSOR_URGENT_MINUTES = 60 * 12.0
SENSOR_WARNING_MINUTES = 60 * 24.0


@unique
class ChartPreset(Enum):
    """Surfaces that show a glucose chart.

    Values are (key, hours to show, hours between ticks); the key keeps
    surfaces with the same chart settings as distinct members.
    """

    WATCH_APP = ("watch_app", 4.0, 1)
    WATCH_COMPLICATION = ("watch_complication", 2.0, 1)
    WIDGET_SMALL = ("widget_small", 3.0, 1)
    WIDGET_LARGE = ("widget_large", 8.0, 2)
    LIVE_ACTIVITY = ("live_activity", 3.0, 1)
    LIVE_ACTIVITY_EXPANDED = ("live_activity_expanded", 12.0, 2)

    @property
    def key(self) -> str:
        return self.value[0]

    @property
    def hours_to_show(self) -> float:
        return self.value[1]

    @property
    def interval_between_axis_values(self) -> int:
        return self.value[2]


@dataclass(frozen=True)
class DisplayConfig:
    """Display settings shared by the chart and the state model."""

    hours_to_show: float = ChartPreset.WATCH_APP.hours_to_show
    interval_between_axis_values: int = (
        ChartPreset.WATCH_APP.interval_between_axis_values
    )
    sensor_urgent_minutes: float = SENSOR_URGENT_MINUTES
    sensor_warning_minutes: float = SENSOR_WARNING_MINUTES
    timezone: tzinfo = field(default_factory=lambda: LOCAL_TZ)

    @classmethod
    def from_preset(cls, preset: ChartPreset, **overrides: object) -> DisplayConfig:
        """Build a config with the chart settings of a preset.

        Args:
            preset: Surface the chart is drawn on.
            **overrides: Any other DisplayConfig field.

        Returns:
            New configuration.
        """
        return cls(
            hours_to_show=preset.hours_to_show,
            interval_between_axis_values=preset.interval_between_axis_values,
            **overrides,  # type: ignore[arg-type]
        )


def timezone_from_name(name: str | None) -> tzinfo:
    """Resolve an IANA timezone name; None or empty means local time.

    Raises:
        ValueError: If the name is unknown.
    """
    if not name:
        return LOCAL_TZ
    zone = tz.gettz(name)
    if zone is None:
        raise ValueError(f"Unknown timezone: {name}")
    return zone
