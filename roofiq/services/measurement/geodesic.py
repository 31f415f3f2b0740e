from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np
from pyproj import Geod

from roofiq.errors import InvalidGeometryError
from roofiq.services.measurement.units import (
    FEET_PER_METER,
    SQUARE_FEET_PER_SQUARE_METER,
    meters_to_feet,
    roofing_squares,
    round_whole,
    square_meters_to_square_feet,
)

logger = logging.getLogger(__name__)

Point = Tuple[float, float]  # (lon, lat) degrees, WGS84

MIN_VERTICES = 3


@dataclass(frozen=True)
class Measurement:
    """Roof measurement derived from one traced polygon. Never mutated."""
    area_square_feet: int
    perimeter_feet: int
    roofing_squares: float
    area_square_meters: float
    perimeter_meters: float
    vertex_count: int
    closed: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def measurement_from_feet(area_square_feet: float, perimeter_feet: float) -> Measurement:
    """Rebuild a Measurement from previously reported figures (no polygon at hand)."""
    area_ft2 = round_whole(area_square_feet)
    perimeter_ft = round_whole(perimeter_feet)
    return Measurement(
        area_square_feet=area_ft2,
        perimeter_feet=perimeter_ft,
        roofing_squares=roofing_squares(area_ft2),
        area_square_meters=area_square_feet / SQUARE_FEET_PER_SQUARE_METER,
        perimeter_meters=perimeter_feet / FEET_PER_METER,
        vertex_count=0,
        closed=True,
    )


def normalize_polygon(polygon: Sequence[Sequence[float]]) -> List[Point]:
    """Validate a [[lon, lat], ...] sequence and return it as float tuples."""
    if polygon is None or len(polygon) < MIN_VERTICES:
        n = 0 if polygon is None else len(polygon)
        raise InvalidGeometryError(f"Polygon needs at least {MIN_VERTICES} points, got {n}")
    points: List[Point] = []
    for idx, pt in enumerate(polygon):
        if not isinstance(pt, (list, tuple, np.ndarray)) or len(pt) != 2:
            raise InvalidGeometryError(f"Point {idx} must be a [longitude, latitude] pair")
        try:
            lon, lat = float(pt[0]), float(pt[1])
        except (TypeError, ValueError):
            raise InvalidGeometryError(f"Point {idx} has non-numeric coordinates")
        points.append((lon, lat))
    arr = np.asarray(points, dtype=float)
    if not np.all(np.isfinite(arr)):
        raise InvalidGeometryError("Polygon coordinates must be finite")
    if np.any(np.abs(arr[:, 0]) > 180.0) or np.any(np.abs(arr[:, 1]) > 90.0):
        raise InvalidGeometryError("Longitude must be within [-180, 180] and latitude within [-90, 90]")
    return points


def is_closed(points: Sequence[Point]) -> bool:
    return len(points) > 1 and tuple(points[0]) == tuple(points[-1])


class GeodesicMeasurer:
    """
    Converts a traced roof polygon into area and perimeter in feet.

    Area is the geodesic polygon area on the WGS84 ellipsoid, so winding order
    and an explicit closing vertex do not change it. Perimeter sums the
    geodesic lengths of consecutive vertices as supplied: for a closed ring
    (first == last, the GeoJSON convention) that is the full outline. An open
    ring is only closed when ``close_rings`` is set.
    """

    def __init__(self, close_rings: bool = False, ellps: str = "WGS84"):
        self.close_rings = close_rings
        self.geod = Geod(ellps=ellps)

    def measure(self, polygon: Sequence[Sequence[float]]) -> Measurement:
        points = normalize_polygon(polygon)
        closed = is_closed(points)

        lons = [p[0] for p in points]
        lats = [p[1] for p in points]
        area_m2, _ = self.geod.polygon_area_perimeter(lons, lats)
        area_m2 = abs(float(area_m2))

        path = points
        if not closed:
            if self.close_rings:
                path = [*points, points[0]]
            else:
                logger.warning(f"Measuring open ring of {len(points)} points; closing edge not included in perimeter")
        perimeter_m = self._path_length([p[0] for p in path], [p[1] for p in path])

        area_ft2 = round_whole(square_meters_to_square_feet(area_m2))
        perimeter_ft = round_whole(meters_to_feet(perimeter_m))
        measurement = Measurement(
            area_square_feet=area_ft2,
            perimeter_feet=perimeter_ft,
            roofing_squares=roofing_squares(area_ft2),
            area_square_meters=area_m2,
            perimeter_meters=perimeter_m,
            vertex_count=len(points),
            closed=closed,
        )
        logger.debug(f"Measured polygon: {area_ft2} sq ft, {perimeter_ft} ft, {measurement.roofing_squares} squares")
        return measurement

    def _path_length(self, lons: List[float], lats: List[float]) -> float:
        segments = self.geod.line_lengths(lons, lats)
        return float(np.sum(segments)) if len(segments) else 0.0


__all__ = ["GeodesicMeasurer", "Measurement", "Point", "measurement_from_feet", "normalize_polygon", "is_closed"]
