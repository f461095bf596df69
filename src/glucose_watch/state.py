"""Estado inmutable del reloj y decodificación de los snapshots del teléfono."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, tzinfo
from typing import Any

from dateutil import parser as date_parser
from dateutil import tz

from glucose_watch import formatting
from glucose_watch.chart import GlucoseChart, build_chart
from glucose_watch.config import LOCAL_TZ, DisplayConfig
from glucose_watch.model import (
    GlucoseBand,
    SensorProgress,
    ThresholdSet,
    check_parallel,
)
from glucose_watch.sensor import sensor_progress
from glucose_watch.thresholds import classify

# Dates are encoded by the phone as seconds since this instant.
REFERENCE_DATE = datetime(2001, 1, 1, tzinfo=tz.UTC)

# Fallbacks used when a snapshot omits a field.
SNAPSHOT_DEFAULTS = ThresholdSet(
    urgent_low=60.0, low=80.0, high=180.0, urgent_high=240.0
)
DEFAULT_SLOPE_ORDINAL = 5
DEFAULT_DELTA_MG_DL = 2.0


class SnapshotDecodeError(ValueError):
    """Raised when a snapshot payload cannot be decoded."""


@dataclass(frozen=True)
class Snapshot:
    """Decoded snapshot; optional fields are None when absent."""

    bg_reading_values: tuple[float, ...]
    bg_reading_dates: tuple[datetime, ...]
    is_mg_dl: bool | None = None
    slope_ordinal: int | None = None
    delta_change_mg_dl: float | None = None
    urgent_low_limit_mg_dl: float | None = None
    low_limit_mg_dl: float | None = None
    high_limit_mg_dl: float | None = None
    urgent_high_limit_mg_dl: float | None = None
    updated_date: datetime | None = None
    active_sensor_description: str | None = None
    sensor_age_minutes: float | None = None
    sensor_max_age_minutes: float | None = None


@dataclass(frozen=True)
class WatchState:
    """Everything the watch displays. Replaced wholesale on every snapshot.

    Readings are ordered most recent first.
    """

    bg_reading_values: tuple[float, ...] = ()
    bg_reading_dates: tuple[datetime, ...] = ()
    is_mg_dl: bool = True
    slope_ordinal: int = DEFAULT_SLOPE_ORDINAL
    delta_change_mg_dl: float = DEFAULT_DELTA_MG_DL
    thresholds: ThresholdSet = field(default_factory=ThresholdSet)
    updated_date: datetime = field(
        default_factory=lambda: datetime.now(tz=LOCAL_TZ)
    )
    active_sensor_description: str = ""
    sensor_age_minutes: float = 0.0
    sensor_max_age_minutes: float = 0.0
    updated_string: str = ""

    def __post_init__(self) -> None:
        check_parallel(self.bg_reading_values, self.bg_reading_dates)

    @classmethod
    def initial(cls, now: datetime | None = None) -> WatchState:
        """Placeholder state shown until the first snapshot arrives."""
        now = now or datetime.now(tz=LOCAL_TZ)
        return cls(
            bg_reading_values=(123.0,),
            bg_reading_dates=(now - timedelta(seconds=200),),
            delta_change_mg_dl=3.0,
            thresholds=ThresholdSet(),
            updated_date=now,
            sensor_age_minutes=2880.0,
            sensor_max_age_minutes=14400.0,
            updated_string="Updated: --:--",
        )

    def bg_value_mg_dl(self) -> float | None:
        """Latest glucose value, None without readings."""
        return self.bg_reading_values[0] if self.bg_reading_values else None

    def bg_reading_date(self) -> datetime | None:
        """Date of the latest reading, None without readings."""
        return self.bg_reading_dates[0] if self.bg_reading_dates else None

    def bg_band(self) -> GlucoseBand | None:
        value = self.bg_value_mg_dl()
        if value is None:
            return None
        return classify(value, self.thresholds)

    def bg_value_string(self) -> str:
        value = self.bg_value_mg_dl()
        if value is None:
            return "---"
        return formatting.value_string(value, self.is_mg_dl)

    def bg_unit_string(self) -> str:
        return formatting.unit_string(self.is_mg_dl)

    def delta_change_string(self) -> str:
        return formatting.delta_change_string(self.delta_change_mg_dl, self.is_mg_dl)

    def trend_arrow(self) -> str:
        return formatting.trend_arrow(self.slope_ordinal)

    def sensor_progress(self, config: DisplayConfig | None = None) -> SensorProgress:
        """Progress of the active sensor with the configured tier limits."""
        config = config or DisplayConfig()
        return sensor_progress(
            self.sensor_age_minutes,
            self.sensor_max_age_minutes,
            urgent_minutes=config.sensor_urgent_minutes,
            warning_minutes=config.sensor_warning_minutes,
        )

    def chart(
        self, config: DisplayConfig | None = None, now: datetime | None = None
    ) -> GlucoseChart:
        """Chart of the recent readings; recomputed on every call."""
        return build_chart(
            self.bg_reading_values,
            self.bg_reading_dates,
            self.thresholds,
            config=config,
            now=now,
        )


def decode_snapshot(data: bytes | str) -> Snapshot:
    """Parse a JSON snapshot sent by the phone.

    Args:
        data: UTF-8 JSON object.

    Returns:
        Decoded snapshot.

    Raises:
        SnapshotDecodeError: If the payload is not a valid snapshot.
    """
    try:
        raw: Any = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise SnapshotDecodeError(f"Invalid snapshot JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise SnapshotDecodeError("Snapshot must be a JSON object")

    values = raw.get("bgReadingValues")
    dates = raw.get("bgReadingDates")
    if not isinstance(values, list) or not isinstance(dates, list):
        raise SnapshotDecodeError(
            "bgReadingValues and bgReadingDates are required lists"
        )
    if len(values) != len(dates):
        raise SnapshotDecodeError(
            "bgReadingValues and bgReadingDates differ in length"
        )

    return Snapshot(
        bg_reading_values=tuple(_number(v, "bgReadingValues") for v in values),
        bg_reading_dates=tuple(_parse_date(d, "bgReadingDates") for d in dates),
        is_mg_dl=_optional_bool(raw, "isMgDl"),
        slope_ordinal=_optional_int(raw, "slopeOrdinal"),
        delta_change_mg_dl=_optional_number(raw, "deltaChangeInMgDl"),
        urgent_low_limit_mg_dl=_optional_number(raw, "urgentLowLimitInMgDl"),
        low_limit_mg_dl=_optional_number(raw, "lowLimitInMgDl"),
        high_limit_mg_dl=_optional_number(raw, "highLimitInMgDl"),
        urgent_high_limit_mg_dl=_optional_number(raw, "urgentHighLimitInMgDl"),
        updated_date=_optional_date(raw, "updatedDate"),
        active_sensor_description=_optional_str(raw, "activeSensorDescription"),
        sensor_age_minutes=_optional_number(raw, "sensorAgeInMinutes"),
        sensor_max_age_minutes=_optional_number(raw, "sensorMaxAgeInMinutes"),
    )


def apply_snapshot(
    snapshot: Snapshot,
    received_at: datetime | None = None,
    timezone: tzinfo = LOCAL_TZ,
) -> WatchState:
    """Build the new state from a snapshot, falling back to defaults.

    Args:
        snapshot: Decoded snapshot.
        received_at: When the snapshot arrived (default: now).
        timezone: Zone used for the "updated" text.

    Returns:
        Replacement state.
    """
    received_at = received_at or datetime.now(tz=LOCAL_TZ)
    thresholds = ThresholdSet(
        urgent_low=_or(snapshot.urgent_low_limit_mg_dl, SNAPSHOT_DEFAULTS.urgent_low),
        low=_or(snapshot.low_limit_mg_dl, SNAPSHOT_DEFAULTS.low),
        high=_or(snapshot.high_limit_mg_dl, SNAPSHOT_DEFAULTS.high),
        urgent_high=_or(
            snapshot.urgent_high_limit_mg_dl, SNAPSHOT_DEFAULTS.urgent_high
        ),
    )
    state = WatchState(
        bg_reading_values=snapshot.bg_reading_values,
        bg_reading_dates=snapshot.bg_reading_dates,
        is_mg_dl=_or(snapshot.is_mg_dl, True),
        slope_ordinal=_or(snapshot.slope_ordinal, DEFAULT_SLOPE_ORDINAL),
        delta_change_mg_dl=_or(snapshot.delta_change_mg_dl, DEFAULT_DELTA_MG_DL),
        thresholds=thresholds,
        updated_date=_or(snapshot.updated_date, received_at),
        active_sensor_description=_or(snapshot.active_sensor_description, ""),
        sensor_age_minutes=_or(snapshot.sensor_age_minutes, 0.0),
        sensor_max_age_minutes=_or(snapshot.sensor_max_age_minutes, 0.0),
    )
    return replace(
        state,
        updated_string=formatting.updated_string(
            state.bg_reading_date(), received_at, timezone
        ),
    )


def _or(value: Any, default: Any) -> Any:
    return default if value is None else value


def _number(value: Any, key: str) -> float:
    # bool es subclase de int: no es un número válido aquí
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise SnapshotDecodeError(f"{key}: expected a number, got {value!r}")
    return float(value)


def _parse_date(value: Any, key: str) -> datetime:
    """Fecha como segundos desde 2001-01-01 UTC o texto ISO-8601."""
    if isinstance(value, str):
        try:
            parsed = date_parser.isoparse(value)
        except ValueError as exc:
            raise SnapshotDecodeError(f"{key}: invalid date {value!r}") from exc
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=tz.UTC)
        return parsed
    try:
        return REFERENCE_DATE + timedelta(seconds=_number(value, key))
    except OverflowError as exc:
        raise SnapshotDecodeError(f"{key}: date out of range {value!r}") from exc


def _optional_number(raw: Mapping[str, Any], key: str) -> float | None:
    value = raw.get(key)
    return None if value is None else _number(value, key)


def _optional_int(raw: Mapping[str, Any], key: str) -> int | None:
    value = raw.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise SnapshotDecodeError(f"{key}: expected an integer, got {value!r}")
    return value


def _optional_bool(raw: Mapping[str, Any], key: str) -> bool | None:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise SnapshotDecodeError(f"{key}: expected a boolean, got {value!r}")
    return value


def _optional_str(raw: Mapping[str, Any], key: str) -> str | None:
    value = raw.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise SnapshotDecodeError(f"{key}: expected a string, got {value!r}")
    return value


def _optional_date(raw: Mapping[str, Any], key: str) -> datetime | None:
    value = raw.get(key)
    return None if value is None else _parse_date(value, key)
