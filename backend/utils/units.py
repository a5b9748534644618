"""Unit conversion helpers for weight and duration."""

KG_PER_LB = 0.45359237
MINUTES_PER_HOUR = 60.0


def lb_to_kg(lb: float) -> float:
    return lb * KG_PER_LB


def minutes_to_hours(minutes: float) -> float:
    return float(minutes or 0) / MINUTES_PER_HOUR
