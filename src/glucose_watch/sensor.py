"""Progreso de vida del sensor activo."""

from __future__ import annotations

from glucose_watch.config import SENSOR_URGENT_MINUTES, SENSOR_WARNING_MINUTES
from glucose_watch.model import SensorProgress, SensorTier


def sensor_progress(
    age_minutes: float,
    max_age_minutes: float,
    *,
    urgent_minutes: float = SENSOR_URGENT_MINUTES,
    warning_minutes: float = SENSOR_WARNING_MINUTES,
) -> SensorProgress:
    """Compute how much of the sensor life has been used.

    Exactly zero minutes left is not expired yet; it falls in the urgent tier.
    A max age of zero or less means there is no active sensor.

    Args:
        age_minutes: Current sensor age.
        max_age_minutes: Maximum sensor lifetime.
        urgent_minutes: Minutes left at or below which the tier is urgent.
        warning_minutes: Minutes left at or below which the tier is warning.

    Returns:
        Progress in [0, 1], tier and minutes left.
    """
    minutes_left = max_age_minutes - age_minutes

    if max_age_minutes <= 0:
        return SensorProgress(progress=0.0, tier=SensorTier.NORMAL, minutes_left=0.0)

    # expirado: todo al color de expirado, sin importar el resto
    if minutes_left < 0:
        return SensorProgress(
            progress=1.0, tier=SensorTier.EXPIRED, minutes_left=minutes_left
        )

    progress = _clamp(1 - minutes_left / max_age_minutes)
    if minutes_left <= urgent_minutes:
        tier = SensorTier.URGENT
    elif minutes_left <= warning_minutes:
        tier = SensorTier.WARNING
    else:
        tier = SensorTier.NORMAL
    return SensorProgress(progress=progress, tier=tier, minutes_left=minutes_left)


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))
