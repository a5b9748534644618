"""Per-serving nutrition helpers for logged food."""

PROTEIN_PER_POINT = 10.9375
CARBS_PER_POINT = 9.2105
FAT_PER_POINT = 3.8889
FIBER_PER_POINT = 12.5


def calculate_points(protein: float, carbs: float, fat: float, fiber: float) -> float:
    """PointsPlus value for one serving, floored at zero."""
    points = (
        (protein or 0.0) / PROTEIN_PER_POINT
        + (carbs or 0.0) / CARBS_PER_POINT
        + (fat or 0.0) / FAT_PER_POINT
        - (fiber or 0.0) / FIBER_PER_POINT
    )
    return max(points, 0.0)


def serving_ratio(serving_qty: float | None, default_serving_qty: float | None) -> float:
    qty = float(serving_qty if serving_qty is not None else 1.0)
    base = float(default_serving_qty or 1.0)
    if base <= 0:
        base = 1.0
    return max(qty, 0.0) / base
