from __future__ import annotations

import logging
import math
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Sequence

from roofiq.errors import InvalidMeasurementError
from roofiq.services.measurement.units import SQUARE_FEET_PER_ROOFING_SQUARE, round_whole

logger = logging.getLogger(__name__)

# Industry report columns; the spacing is irregular on purpose
WASTE_PERCENTAGES = (0, 1, 6, 11, 14, 16, 18, 21, 26)
SUGGESTED_WASTE_PERCENT = 16


@dataclass(frozen=True)
class WasteRow:
    waste_percent: int
    adjusted_area_square_feet: int
    squares: float
    is_suggested: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def squares_to_nearest_third(area_square_feet: float) -> float:
    """Roofing squares rounded UP to the nearest 1/3 square (bundle size)"""
    return math.ceil((area_square_feet / SQUARE_FEET_PER_ROOFING_SQUARE) * 3) / 3


class WasteTableGenerator:
    """Expands a base roof area into the waste-percentage table used in reports."""

    def __init__(self, percentages: Sequence[int] = WASTE_PERCENTAGES,
                 suggested_percent: int = SUGGESTED_WASTE_PERCENT):
        self.percentages = tuple(percentages)
        self.suggested_percent = suggested_percent

    def generate(self, base_area_square_feet: float) -> List[WasteRow]:
        try:
            base = float(base_area_square_feet)
        except (TypeError, ValueError):
            raise InvalidMeasurementError(f"Base area must be numeric, got {base_area_square_feet!r}")
        if not math.isfinite(base) or base < 0:
            raise InvalidMeasurementError(f"Base area must be a non-negative number, got {base_area_square_feet}")

        rows = []
        for pct in self.percentages:
            adjusted = round_whole(base * (1 + pct / 100))
            rows.append(WasteRow(
                waste_percent=pct,
                adjusted_area_square_feet=adjusted,
                squares=squares_to_nearest_third(adjusted),
                is_suggested=(pct == self.suggested_percent),
            ))
        logger.debug(f"Waste table for {base} sq ft: {[r.adjusted_area_square_feet for r in rows]}")
        return rows


def suggested_row(rows: Sequence[WasteRow]) -> Optional[WasteRow]:
    for row in rows:
        if row.is_suggested:
            return row
    return None


__all__ = [
    "WASTE_PERCENTAGES",
    "SUGGESTED_WASTE_PERCENT",
    "WasteRow",
    "WasteTableGenerator",
    "squares_to_nearest_third",
    "suggested_row",
]
