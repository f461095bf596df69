"""CLI para inspeccionar un snapshot del teléfono tal como lo mostraría el reloj."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from datetime import datetime, tzinfo
from pathlib import Path

from dateutil import parser as date_parser

from glucose_watch.chart import window_frame
from glucose_watch.config import ChartPreset, DisplayConfig, timezone_from_name
from glucose_watch.state import SnapshotDecodeError, apply_snapshot, decode_snapshot

logger = logging.getLogger(__name__)

_PRESETS = {p.key: p for p in ChartPreset}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed argparse namespace.
    """
    parser = argparse.ArgumentParser(
        description="Show the watch display derived from a glucose snapshot."
    )
    parser.add_argument("snapshot", help="JSON snapshot file sent by the phone.")
    parser.add_argument(
        "--preset",
        choices=sorted(_PRESETS),
        default="watch_app",
        help="Chart surface (default: watch_app).",
    )
    parser.add_argument(
        "--hours",
        type=float,
        default=None,
        help="Hours of history to show (overrides the preset).",
    )
    parser.add_argument(
        "--now",
        default=None,
        help="Reference time, ISO-8601 (default: current time).",
    )
    parser.add_argument(
        "--tz",
        default=None,
        help="IANA timezone for displayed times (default: local).",
    )
    parser.add_argument("--verbose", action="store_true", help="Log at INFO level.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run the snapshot inspection CLI.

    Returns:
        Exit code (0 on success, 1 if the snapshot cannot be decoded).
    """
    ns = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if ns.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = DisplayConfig.from_preset(
        _PRESETS[ns.preset], timezone=timezone_from_name(ns.tz)
    )
    if ns.hours is not None:
        config = replace(config, hours_to_show=ns.hours)
    now = _parse_now(ns.now, config.timezone)

    path = Path(ns.snapshot).expanduser()
    if not path.exists():
        raise FileNotFoundError(str(path))
    try:
        snapshot = decode_snapshot(path.read_bytes())
    except SnapshotDecodeError as exc:
        print(f"ERROR: {path}: {exc}", file=sys.stderr)
        return 1
    logger.info("Decoded snapshot with %d readings", len(snapshot.bg_reading_values))

    state = apply_snapshot(snapshot, received_at=now, timezone=config.timezone)
    chart = state.chart(config, now=now)
    sensor = state.sensor_progress(config)
    band = state.bg_band()

    print(
        f"{state.bg_value_string()} {state.bg_unit_string()} "
        f"{state.trend_arrow()} {state.delta_change_string()} "
        f"({band.value if band else 'no data'})"
    )
    print(state.updated_string)
    print(
        f"Sensor: {state.active_sensor_description or '-'} "
        f"{sensor.progress:.0%} ({sensor.tier.value})"
    )
    ticks = ", ".join(
        t.astimezone(config.timezone).strftime("%H:%M") for t in chart.x_ticks
    )
    print(f"Ticks: {ticks or '-'}")
    print(f"Range: {chart.y_domain[0]:.0f}-{chart.y_domain[1]:.0f} mg/dL")

    frame = window_frame(chart.window, state.thresholds)
    print(f"Readings in the last {config.hours_to_show:g} h: {len(frame)}")
    if not frame.empty:
        print(frame.to_string(index=False))
    return 0


def _parse_now(value: str | None, timezone: tzinfo) -> datetime:
    if not value:
        return datetime.now(tz=timezone)
    parsed = date_parser.isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone)
    return parsed
