"""Energy expenditure estimates for logged exercise."""

from utils.units import lb_to_kg, minutes_to_hours

CALORIES_PER_POINT = 50.0


def calculate_calories_burned(metabolic_equivalent: float, minutes: int, weight_in_pounds: float) -> int:
    """kcal = MET * body weight (kg) * duration (hours), truncated."""
    weight_kg = lb_to_kg(float(weight_in_pounds or 0.0))
    hours = minutes_to_hours(minutes)
    return int(float(metabolic_equivalent or 0.0) * weight_kg * hours)


def calculate_points_burned(metabolic_equivalent: float, minutes: int, weight_in_pounds: float) -> float:
    calories = calculate_calories_burned(metabolic_equivalent, minutes, weight_in_pounds)
    return round(calories / CALORIES_PER_POINT, 1)
