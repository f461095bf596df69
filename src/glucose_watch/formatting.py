"""Textos de la pantalla: unidad, valor, delta, flecha de tendencia y hora."""

from __future__ import annotations

from datetime import datetime, tzinfo

from glucose_watch.config import LOCAL_TZ, MGDL_TO_MMOLL, MGDL_UNIT, MMOLL_UNIT

_TREND_ARROWS: dict[int, str] = {
    1: "↑↑",
    2: "↑",
    3: "↗",
    4: "→",
    5: "↘",
    6: "↓",
    7: "↓↓",
}


def unit_string(is_mg_dl: bool) -> str:
    """Return the display unit label."""
    return MGDL_UNIT if is_mg_dl else MMOLL_UNIT


def to_user_unit(mg_dl: float, is_mg_dl: bool) -> float:
    """Convert a mg/dL value to the user chosen unit."""
    return mg_dl if is_mg_dl else mg_dl * MGDL_TO_MMOLL


def value_string(mg_dl: float, is_mg_dl: bool) -> str:
    """Format a mg/dL value in the user chosen unit (no decimals for mg/dL)."""
    value = to_user_unit(mg_dl, is_mg_dl)
    return f"{value:.0f}" if is_mg_dl else f"{value:.1f}"


def delta_change_string(delta_mg_dl: float, is_mg_dl: bool) -> str:
    """Format a delta change with an explicit sign.

    Deltas that would round to zero are shown as "+0" / "+0.0" (Nightscout
    convention), never as "-0".

    Args:
        delta_mg_dl: Signed change in mg/dL.
        is_mg_dl: Whether the user displays mg/dL (else mmol/L).

    Returns:
        Formatted delta, e.g. "+6", "-6" or "+0.4".
    """
    value = to_user_unit(delta_mg_dl, is_mg_dl)
    if is_mg_dl:
        if -1 < value < 1:
            return "+0"
        text = f"{value:.0f}"
    else:
        if -0.1 < value < 0.1:
            return "+0.0"
        text = f"{value:.1f}"
    return f"+{text}" if value > 0 else text


def trend_arrow(slope_ordinal: int) -> str:
    """Return the trend arrow for a slope ordinal (1 rising fast .. 7 falling fast)."""
    return _TREND_ARROWS.get(slope_ordinal, "")


def updated_string(
    reading_date: datetime | None,
    state_date: datetime,
    timezone: tzinfo = LOCAL_TZ,
) -> str:
    """Describe when the last reading was taken and when the state arrived."""
    return (
        f"BG: {_short_time(reading_date, timezone)} / "
        f"State: {_short_time(state_date, timezone)}"
    )


def _short_time(value: datetime | None, timezone: tzinfo) -> str:
    if value is None:
        return "--:--"
    return value.astimezone(timezone).strftime("%H:%M")
