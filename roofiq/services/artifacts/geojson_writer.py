from __future__ import annotations

import json
import os
import time
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from roofiq.services.measurement import Measurement


def _ensure_ring_closed(ring: List[Tuple[float, float]]) -> List[Tuple[float, float]]:
    if not ring:
        return ring
    if ring[0] != ring[-1]:
        return [*ring, ring[0]]
    return ring


def _clip_lon_lat(lon: float, lat: float) -> Tuple[float, float]:
    lon_c = float(min(180.0, max(-180.0, lon)))
    lat_c = float(min(90.0, max(-90.0, lat)))
    return lon_c, lat_c


def measurement_to_feature(polygon: Sequence[Sequence[float]],
                           measurement: Measurement,
                           props: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """GeoJSON Feature of the traced roof outline with its measurement attached"""
    ring = [_clip_lon_lat(float(p[0]), float(p[1])) for p in polygon]
    ring = _ensure_ring_closed(ring)
    properties: Dict[str, Any] = {
        "kind": "roof_outline",
        "area_sq_ft": measurement.area_square_feet,
        "perimeter_ft": measurement.perimeter_feet,
        "roofing_squares": measurement.roofing_squares,
        "area_m2": measurement.area_square_meters,
        "perimeter_m": measurement.perimeter_meters,
    }
    if props:
        properties.update(props)
    return {
        "type": "Feature",
        "geometry": {"type": "Polygon", "coordinates": [[list(coord) for coord in ring]]},
        "properties": properties,
    }


def _write_json(payload: Dict[str, Any], suffix: str, out_dir: Optional[str], filename: Optional[str]) -> str:
    base_dir = Path(out_dir or os.getenv("ARTIFACT_DIR", "./artifacts"))
    base_dir.mkdir(parents=True, exist_ok=True)
    stem = filename or f"roof_{int(time.time())}_{uuid.uuid4().hex[:8]}"
    path = base_dir / f"{stem}{suffix}"
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
    return str(path)


def write_geojson(polygon: Sequence[Sequence[float]],
                  measurement: Measurement,
                  out_dir: Optional[str] = None,
                  filename: Optional[str] = None) -> str:
    """
    Write a FeatureCollection GeoJSON holding the measured roof outline.
    Returns the local path to the written file.
    """
    out = {"type": "FeatureCollection", "features": [measurement_to_feature(polygon, measurement)]}
    return _write_json(out, ".geojson", out_dir, filename)


def write_report_json(document: Dict[str, Any],
                      out_dir: Optional[str] = None,
                      filename: Optional[str] = None) -> str:
    """Write a serialized report document for the PDF renderer. Returns the local path."""
    stem = filename or f"{document.get('report_id') or 'report'}_{uuid.uuid4().hex[:8]}"
    return _write_json(document, ".report.json", out_dir, stem)


__all__ = ["write_geojson", "write_report_json", "measurement_to_feature"]
