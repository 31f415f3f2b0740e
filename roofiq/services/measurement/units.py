from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

# Literal conversion constants used by every report consumer. The area factor
# is NOT FEET_PER_METER ** 2.
FEET_PER_METER = 3.28084
SQUARE_FEET_PER_SQUARE_METER = 10.7639
SQUARE_FEET_PER_ROOFING_SQUARE = 100.0


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round half away from zero on the exact binary value of ``value``.

    Python's ``round`` uses banker's rounding; report figures must match
    fixed-point display rounding instead (2.5 -> 3, -2.5 -> -3).
    """
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def round_whole(value: float) -> int:
    return int(round_half_up(value, 0))


def meters_to_feet(meters: float) -> float:
    return meters * FEET_PER_METER


def square_meters_to_square_feet(square_meters: float) -> float:
    return square_meters * SQUARE_FEET_PER_SQUARE_METER


def roofing_squares(area_square_feet: float) -> float:
    """Area in 100 sq ft roofing squares, rounded to 2 decimals"""
    return round_half_up(area_square_feet / SQUARE_FEET_PER_ROOFING_SQUARE, 2)


__all__ = [
    "FEET_PER_METER",
    "SQUARE_FEET_PER_SQUARE_METER",
    "SQUARE_FEET_PER_ROOFING_SQUARE",
    "round_half_up",
    "round_whole",
    "meters_to_feet",
    "square_meters_to_square_feet",
    "roofing_squares",
]
