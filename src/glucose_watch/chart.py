"""Cálculos del gráfico de glucosa: ventana temporal, ejes y líneas de umbral.

Nothing here draws; the functions return what a chart surface needs to draw
(points with their band, axis ticks, domains and the visible limit lines).
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

import pandas as pd

from glucose_watch.config import LOCAL_TZ, DisplayConfig
from glucose_watch.model import (
    DisplayWindow,
    GlucoseBand,
    ThresholdSet,
    check_parallel,
)
from glucose_watch.thresholds import classify

# Padding (mg/dL) above and below the y domain.
Y_DOMAIN_PADDING = 6.0
# Bounds used for the y domain when there are no readings.
Y_DOMAIN_EMPTY_MIN = 40.0
Y_DOMAIN_EMPTY_MAX = 400.0
# Phantom point after the last reading, for context.
X_DOMAIN_TRAILING = timedelta(minutes=5)

WINDOW_COLUMNS = ["datetime", "glucose_mg_dl", "band"]


@dataclass(frozen=True)
class ChartPoint:
    """One plotted reading."""

    timestamp: datetime
    mg_dl: float
    band: GlucoseBand


@dataclass(frozen=True)
class ThresholdLine:
    """Horizontal limit line shown on the chart."""

    mg_dl: float
    band: GlucoseBand


@dataclass(frozen=True)
class GlucoseChart:
    """Everything a surface needs to render the glucose chart."""

    window: DisplayWindow
    points: list[ChartPoint]
    x_ticks: list[datetime]
    x_domain: tuple[datetime, datetime]
    y_domain: tuple[float, float]
    threshold_lines: list[ThresholdLine]


def filter_window(
    values: Sequence[float],
    dates: Sequence[datetime],
    hours_to_show: float,
    now: datetime | None = None,
) -> DisplayWindow:
    """Keep only readings newer than ``now - hours_to_show``.

    The lower bound is strict. There is no upper bound, so readings dated in
    the future are kept. Input order is preserved.

    Args:
        values: Glucose values in mg/dL.
        dates: Reading dates, parallel to ``values``.
        hours_to_show: Lookback in hours.
        now: Reference time. Defaults to the current time, aware in local
            time or naive, matching the first date.

    Returns:
        The filtered window.

    Raises:
        ValueError: If values and dates differ in length.
    """
    check_parallel(values, dates)
    now = now or _now_like(dates)
    start = now - timedelta(hours=hours_to_show)

    kept_values: list[float] = []
    kept_dates: list[datetime] = []
    for value, date in zip(values, dates):
        if date > start:
            kept_values.append(value)
            kept_dates.append(date)
    return DisplayWindow(
        values=tuple(kept_values), dates=tuple(kept_dates), start=start, now=now
    )


def x_axis_values(
    window: DisplayWindow, interval_between_axis_values: int = 1
) -> list[datetime]:
    """Generate x axis ticks on full hours, from the window start up to now.

    The first tick is the hour after the earliest reading (or after the
    window start when there are no readings). A stride below 1 is treated
    as 1.

    Args:
        window: Filtered readings.
        interval_between_axis_values: Hours between two ticks.

    Returns:
        Tick dates; empty when the start is not before now.
    """
    start = min(window.dates) if window.dates else window.start
    full_hours = math.ceil((window.now - start).total_seconds() / 3600)
    if full_hours <= 0:
        return []

    stride = max(1, interval_between_axis_values)
    start_hour = _floor_to_hour(start)
    return [start_hour + timedelta(hours=i) for i in range(1, full_hours + 1, stride)]


def y_domain(values: Sequence[float], thresholds: ThresholdSet) -> tuple[float, float]:
    """Return the y range: readings and urgent limits, padded."""
    lowest = min(values) if values else Y_DOMAIN_EMPTY_MIN
    highest = max(values) if values else Y_DOMAIN_EMPTY_MAX
    return (
        min(lowest, thresholds.urgent_low) - Y_DOMAIN_PADDING,
        max(highest, thresholds.urgent_high) + Y_DOMAIN_PADDING,
    )


def x_domain(hours_to_show: float, now: datetime) -> tuple[datetime, datetime]:
    """Return the x range, from the window start to a bit after now."""
    return now - timedelta(hours=hours_to_show), now + X_DOMAIN_TRAILING


def threshold_lines(
    domain: tuple[float, float], thresholds: ThresholdSet
) -> list[ThresholdLine]:
    """Return the limit lines that fall inside the y domain."""
    candidates = [
        ThresholdLine(thresholds.urgent_low, GlucoseBand.URGENT),
        ThresholdLine(thresholds.urgent_high, GlucoseBand.URGENT),
        ThresholdLine(thresholds.low, GlucoseBand.WARNING),
        ThresholdLine(thresholds.high, GlucoseBand.WARNING),
    ]
    lower, upper = domain
    return [line for line in candidates if lower <= line.mg_dl <= upper]


def chart_points(window: DisplayWindow, thresholds: ThresholdSet) -> list[ChartPoint]:
    """Classify every reading of the window."""
    return [
        ChartPoint(timestamp=date, mg_dl=value, band=classify(value, thresholds))
        for value, date in zip(window.values, window.dates)
    ]


def window_frame(window: DisplayWindow, thresholds: ThresholdSet) -> pd.DataFrame:
    """Window as a DataFrame (datetime, glucose_mg_dl, band), oldest first."""
    rows = [
        {
            "datetime": p.timestamp,
            "glucose_mg_dl": p.mg_dl,
            "band": p.band.value,
        }
        for p in chart_points(window, thresholds)
    ]
    if not rows:
        return pd.DataFrame(columns=WINDOW_COLUMNS)
    df = pd.DataFrame(rows, columns=WINDOW_COLUMNS)
    return df.sort_values("datetime").reset_index(drop=True)


def build_chart(
    values: Sequence[float],
    dates: Sequence[datetime],
    thresholds: ThresholdSet,
    config: DisplayConfig | None = None,
    now: datetime | None = None,
) -> GlucoseChart:
    """Compute the whole chart for one render.

    Args:
        values: Glucose values in mg/dL (any amount of history).
        dates: Reading dates, parallel to ``values``.
        thresholds: User defined limits.
        config: Window length and tick stride.
        now: Reference time (default: current time, see filter_window).

    Returns:
        Chart description.
    """
    config = config or DisplayConfig()
    window = filter_window(values, dates, config.hours_to_show, now)
    domain = y_domain(window.values, thresholds)
    return GlucoseChart(
        window=window,
        points=chart_points(window, thresholds),
        x_ticks=x_axis_values(window, config.interval_between_axis_values),
        x_domain=x_domain(config.hours_to_show, window.now),
        y_domain=domain,
        threshold_lines=threshold_lines(domain, thresholds),
    )


def _now_like(dates: Sequence[datetime]) -> datetime:
    """Current time, naive when the dates are naive."""
    if dates and dates[0].tzinfo is None:
        return datetime.now()
    return datetime.now(tz=LOCAL_TZ)


def _floor_to_hour(value: datetime) -> datetime:
    """Round down to a full hour of the epoch (keeps the tzinfo)."""
    seconds = math.floor(value.timestamp() / 3600) * 3600
    return datetime.fromtimestamp(seconds, tz=value.tzinfo)
