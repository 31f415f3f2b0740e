import base64
import io
import math
import re
import struct
import zlib
from datetime import datetime

import numpy as np
import pytest
from PIL import Image
from pyproj import Geod

from roofiq.errors import InvalidGeometryError, InvalidMeasurementError, MissingMeasurementError
from roofiq.models.report import DIAGRAM_NOTE, ReportAssembler, compute_line_lengths
from roofiq.services.image_service import decode_captured_image
from roofiq.services.measurement import GeodesicMeasurer, WasteTableGenerator
from roofiq.services.measurement.geodesic import measurement_from_feet
from roofiq.services.measurement.units import SQUARE_FEET_PER_SQUARE_METER

NOW = datetime(2026, 3, 7, 14, 30, 0)


def create_test_png(width: int = 64, height: int = 48) -> bytes:
    """Small RGB image standing in for a map capture"""
    arr = np.zeros((height, width, 3), dtype=np.uint8)
    arr[8:40, 8:56, :] = 200
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format="PNG")
    return buf.getvalue()


def oversized_png_header(width: int = 20000, height: int = 20000) -> bytes:
    """PNG carrying only an IHDR (and IEND) that claims a huge canvas"""
    def chunk(tag: bytes, data: bytes) -> bytes:
        return struct.pack(">I", len(data)) + tag + data + struct.pack(">I", zlib.crc32(tag + data) & 0xFFFFFFFF)
    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IEND", b"")


def square_polygon(lon0: float, lat0: float, area_sq_ft: float):
    geod = Geod(ellps="WGS84")
    side = math.sqrt(area_sq_ft / SQUARE_FEET_PER_SQUARE_METER)
    lon1, lat1, _ = geod.fwd(lon0, lat0, 90, side)
    lon2, lat2, _ = geod.fwd(lon1, lat1, 0, side)
    lon3, lat3, _ = geod.fwd(lon0, lat0, 0, side)
    return [[lon0, lat0], [lon1, lat1], [lon2, lat2], [lon3, lat3], [lon0, lat0]]


@pytest.fixture
def measurement():
    return GeodesicMeasurer().measure(square_polygon(-96.797, 32.7767, 3500))


class TestLineLengths:
    def test_fixed_ratio_formulas(self):
        m = measurement_from_feet(2500, 200)
        lengths = compute_line_lengths(m)
        assert lengths.ridge_ft == 60   # sqrt(2500) * 1.2
        assert lengths.eave_ft == 140   # sqrt(2500) * 2.8
        assert lengths.rake_ft == 60    # 200 * 0.3
        assert lengths.valley_ft == 0
        assert lengths.hip_ft == 0


class TestImageDecoding:
    def test_decodes_raw_bytes(self):
        img = decode_captured_image(create_test_png(64, 48))
        assert img is not None
        assert (img.width, img.height) == (64, 48)
        assert img.source_format == "PNG"

    def test_decodes_data_url(self):
        data_url = "data:image/png;base64," + base64.b64encode(create_test_png()).decode()
        img = decode_captured_image(data_url)
        assert img is not None
        assert base64.b64decode(img.png_base64).startswith(b"\x89PNG")

    @pytest.mark.parametrize("payload", [None, "", b"not an image", "%%%not-base64%%%", base64.b64encode(b"garbage").decode()])
    def test_undecodable_payload_yields_none(self, payload):
        assert decode_captured_image(payload) is None

    def test_oversized_image_header_yields_none(self):
        assert decode_captured_image(oversized_png_header()) is None


class TestReportAssembler:
    def test_missing_measurement(self):
        with pytest.raises(MissingMeasurementError):
            ReportAssembler().assemble(address="1 Main St", coordinates=(-96.8, 32.8), measurement=None)

    def test_negative_measurement_rejected(self):
        with pytest.raises(InvalidMeasurementError):
            ReportAssembler().assemble(address="1 Main St", coordinates=(-96.8, 32.8),
                                       measurement=measurement_from_feet(-10, 40))

    def test_bad_coordinates_rejected(self, measurement):
        with pytest.raises(InvalidGeometryError):
            ReportAssembler().assemble(address="1 Main St", coordinates=(1.0,), measurement=measurement)

    def test_end_to_end_square(self, measurement):
        assert measurement.area_square_feet == pytest.approx(3500, rel=0.01)
        rows = WasteTableGenerator().generate(measurement.area_square_feet)
        doc = ReportAssembler().assemble(
            address="1500 Marilla St, Dallas, TX",
            coordinates=(-96.797, 32.7767),
            measurement=measurement,
            waste_table=rows,
            captured_image=create_test_png(),
            now=NOW,
        )
        assert len(doc.pages) == 2
        page1, page2 = doc.pages
        assert page1.kinds() == ["header", "key_value", "table", "label", "waste_table", "totals", "key_value"]
        assert page2.kinds() == ["header", "label", "line_lengths", "image", "note"]

        waste = page1.find("waste_table")
        assert len(waste.rows) == 9
        assert [r.waste_percent for r in waste.rows if r.is_suggested] == [16]

        area = measurement.area_square_feet
        totals = page1.find("totals")
        assert totals.line_lengths.ridge_ft == round(math.sqrt(area) * 1.2)
        assert totals.line_lengths.rake_ft == round(measurement.perimeter_feet * 0.3)
        assert totals.line_lengths.eave_ft == round(math.sqrt(area) * 2.8)
        assert totals.total_area_square_feet == area
        assert f"Total Area (All Pitches) = {area:,} sq ft" in totals.lines

        lengths = page2.find("line_lengths")
        assert lengths.valleys_ft == 0
        assert lengths.ridges_ft == totals.line_lengths.ridge_ft
        assert page2.find("note").text == DIAGRAM_NOTE

        image = page2.find("image")
        assert (image.x, image.y, image.width, image.height) == (50, 280, 400, 300)

    def test_page_one_details(self, measurement):
        doc = ReportAssembler().assemble(address="12 Elm St", coordinates=(-96.797, 32.7767),
                                         measurement=measurement, now=NOW)
        page1 = doc.pages[0]
        header = page1.find("header")
        assert header.title == "RoofIQ Premium Report"
        assert header.date == "3/7/2026"
        assert re.fullmatch(r"RQ-\d{6}", doc.report_id)

        pitch_table = page1.find("table")
        assert pitch_table.title == "Areas per Pitch"
        assert pitch_table.rows == (("6/12", f"{measurement.area_square_feet:,}", "100%"),)

        complexity = page1.find("label")
        assert complexity.value == "Normal"

        location = page1.sections[-1]
        assert location.title == "Property Location"
        assert [e.display for e in location.entries] == ["Longitude = -96.797000", "Latitude = 32.776700"]

    def test_waste_table_generated_when_omitted(self, measurement):
        doc = ReportAssembler().assemble(address="12 Elm St", coordinates=(0, 0), measurement=measurement)
        rows = doc.pages[0].find("waste_table").rows
        assert list(rows) == WasteTableGenerator().generate(measurement.area_square_feet)

    def test_pitch_threaded_through(self, measurement):
        doc = ReportAssembler().assemble(address="12 Elm St", coordinates=(0, 0),
                                         measurement=measurement, predominant_pitch="8/12")
        assert doc.pages[0].find("totals").predominant_pitch == "8/12"
        assert doc.pages[0].find("table").rows[0][0] == "8/12"

    def test_corrupt_image_is_omitted(self, measurement):
        doc = ReportAssembler().assemble(address="12 Elm St", coordinates=(0, 0),
                                         measurement=measurement, captured_image=b"\x00\x01corrupt")
        assert "image" not in doc.pages[1].kinds()
        assert doc.pages[1].find("note") is not None

    def test_oversized_image_is_omitted(self, measurement):
        doc = ReportAssembler().assemble(address="12 Elm St", coordinates=(0, 0),
                                         measurement=measurement, captured_image=oversized_png_header())
        assert "image" not in doc.pages[1].kinds()

    def test_document_is_write_once(self, measurement):
        doc = ReportAssembler().assemble(address="12 Elm St", coordinates=(0, 0), measurement=measurement)
        with pytest.raises(AttributeError):
            doc.report_id = "RQ-000000"  # type: ignore[misc]
        with pytest.raises(AttributeError):
            doc.pages[0].find("totals").facets = 2  # type: ignore[misc]
        assert isinstance(doc.pages, tuple)
        assert isinstance(doc.pages[0].sections, tuple)

    def test_to_dict_is_json_ready(self, measurement):
        import json
        doc = ReportAssembler().assemble(address="12 Elm St", coordinates=(0, 0), measurement=measurement,
                                         captured_image=create_test_png(), now=NOW)
        data = json.loads(json.dumps(doc.to_dict()))
        assert data["pages"][0]["sections"][4]["kind"] == "waste_table"
        assert len(data["pages"][0]["sections"][4]["rows"]) == 9
        assert data["pages"][1]["sections"][3]["image"]["width"] == 64
        assert data["measurement"]["area_square_feet"] == measurement.area_square_feet
