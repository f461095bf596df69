"""Clasificación de un valor de glucosa según los límites del usuario."""

from __future__ import annotations

from glucose_watch.model import GlucoseBand, ThresholdSet


def classify(mg_dl: float, thresholds: ThresholdSet) -> GlucoseBand:
    """Return the color band for a glucose value.

    Boundaries are inclusive and urgent wins over warning.

    Args:
        mg_dl: Glucose value in mg/dL.
        thresholds: User defined limits.

    Returns:
        URGENT, WARNING or NORMAL.
    """
    if mg_dl >= thresholds.urgent_high or mg_dl <= thresholds.urgent_low:
        return GlucoseBand.URGENT
    if mg_dl >= thresholds.high or mg_dl <= thresholds.low:
        return GlucoseBand.WARNING
    return GlucoseBand.NORMAL
