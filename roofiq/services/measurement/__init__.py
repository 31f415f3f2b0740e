"""
Roof measurement services

Turns a roof outline traced on a satellite map (WGS84 lon/lat ring) into the
figures printed on a measurement report:

- geodesic area and perimeter, converted to square feet / feet
- roofing squares (100 sq ft units)
- the waste-percentage table with the suggested 16% row flagged

Everything here is pure and synchronous; callers may measure concurrently.
"""

from .geodesic import GeodesicMeasurer, Measurement
from .waste_table import WasteTableGenerator, WasteRow, WASTE_PERCENTAGES, suggested_row

__all__ = ["GeodesicMeasurer", "Measurement", "WasteTableGenerator", "WasteRow", "WASTE_PERCENTAGES", "suggested_row"]
