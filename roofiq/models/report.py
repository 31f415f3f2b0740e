import logging
import math
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple

from roofiq.errors import InvalidGeometryError, InvalidMeasurementError, MissingMeasurementError
from roofiq.services.image_service import CapturedImage, ImageSource, decode_captured_image
from roofiq.services.measurement import Measurement, WasteRow, WasteTableGenerator
from roofiq.services.measurement.units import round_half_up, round_whole

logger = logging.getLogger(__name__)

DIAGRAM_NOTE = "Note: This diagram contains segment lengths (rounded to the nearest whole number) over 5.0 Feet."
COMPLEXITY_OPTIONS = ("Simple", "Normal", "Complex")

# Placeholder ratios matching the report template's proportions
RIDGE_RATIO = 1.2
RAKE_RATIO = 0.3
EAVE_RATIO = 2.8

# Page-2 image placement, in points on a letter page
IMAGE_X, IMAGE_Y = 50, 280
IMAGE_WIDTH, IMAGE_HEIGHT = 400, 300


@dataclass(frozen=True)
class LineLengths:
    """Total roof line lengths in feet"""
    ridge_ft: int
    hip_ft: int
    valley_ft: int
    rake_ft: int
    eave_ft: int


def compute_line_lengths(measurement: Measurement) -> LineLengths:
    """Heuristic line lengths; no hip/valley detection exists so both are 0"""
    root_area = math.sqrt(measurement.area_square_feet)
    return LineLengths(
        ridge_ft=round_whole(root_area * RIDGE_RATIO),
        hip_ft=0,
        valley_ft=0,
        rake_ft=round_whole(measurement.perimeter_feet * RAKE_RATIO),
        eave_ft=round_whole(root_area * EAVE_RATIO),
    )


@dataclass(frozen=True)
class KeyValue:
    label: str
    value: Any
    display: str


@dataclass(frozen=True)
class HeaderSection:
    kind: ClassVar[str] = "header"
    title: str
    date: str


@dataclass(frozen=True)
class KeyValueSection:
    kind: ClassVar[str] = "key_value"
    title: Optional[str]
    entries: Tuple[KeyValue, ...]


@dataclass(frozen=True)
class TableSection:
    kind: ClassVar[str] = "table"
    title: str
    columns: Tuple[str, ...]
    rows: Tuple[Tuple[str, ...], ...]


@dataclass(frozen=True)
class LabelSection:
    kind: ClassVar[str] = "label"
    title: str
    value: Optional[str] = None
    options: Tuple[str, ...] = ()


@dataclass(frozen=True)
class WasteTableSection:
    kind: ClassVar[str] = "waste_table"
    title: str
    rows: Tuple[WasteRow, ...]


@dataclass(frozen=True)
class TotalsSection:
    kind: ClassVar[str] = "totals"
    title: str
    facets: int
    line_lengths: LineLengths
    predominant_pitch: str
    total_area_square_feet: int
    lines: Tuple[str, ...]


@dataclass(frozen=True)
class LineLengthsSection:
    kind: ClassVar[str] = "line_lengths"
    title: str
    ridges_ft: int
    valleys_ft: int
    rakes_ft: int
    eaves_ft: int


@dataclass(frozen=True)
class ImageSection:
    kind: ClassVar[str] = "image"
    image: CapturedImage
    x: int = IMAGE_X
    y: int = IMAGE_Y
    width: int = IMAGE_WIDTH
    height: int = IMAGE_HEIGHT
    labels: Tuple[Dict[str, Any], ...] = ()


@dataclass(frozen=True)
class NoteSection:
    kind: ClassVar[str] = "note"
    text: str


def section_to_dict(section: Any) -> Dict[str, Any]:
    return {"kind": section.kind, **asdict(section)}


@dataclass(frozen=True)
class ReportPage:
    number: int
    sections: Tuple[Any, ...]

    def kinds(self) -> List[str]:
        return [s.kind for s in self.sections]

    def find(self, kind: str) -> Optional[Any]:
        for s in self.sections:
            if s.kind == kind:
                return s
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"number": self.number, "sections": [section_to_dict(s) for s in self.sections]}


@dataclass(frozen=True)
class ReportDocument:
    """Two-page report structure handed to an external PDF/HTML renderer"""
    report_id: str
    generated_date: str
    title: str
    address: str
    coordinates: Tuple[float, float]
    measurement: Measurement
    line_lengths: LineLengths
    pages: Tuple[ReportPage, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_id": self.report_id,
            "generated_date": self.generated_date,
            "title": self.title,
            "address": self.address,
            "coordinates": list(self.coordinates),
            "measurement": self.measurement.to_dict(),
            "line_lengths": asdict(self.line_lengths),
            "pages": [p.to_dict() for p in self.pages],
        }


class ReportAssembler:
    """
    Composes a measurement, its waste table and property metadata into the
    page-oriented report document.

    The document is pure data; rendering to PDF bytes happens elsewhere.
    """

    def __init__(self, title: str = "RoofIQ Premium Report",
                 report_id_prefix: str = "RQ",
                 default_pitch: str = "6/12",
                 waste_generator: Optional[WasteTableGenerator] = None):
        self.title = title
        self.report_id_prefix = report_id_prefix
        self.default_pitch = default_pitch
        self.waste_generator = waste_generator or WasteTableGenerator()

    def assemble(self, address: str,
                 coordinates: Sequence[float],
                 measurement: Optional[Measurement],
                 waste_table: Optional[Sequence[WasteRow]] = None,
                 captured_image: Optional[ImageSource] = None,
                 predominant_pitch: Optional[str] = None,
                 now: Optional[datetime] = None) -> ReportDocument:
        """
        Build the report document.

        Args:
            address: Property address as typed by the user
            coordinates: Property (longitude, latitude)
            measurement: Result of GeodesicMeasurer.measure
            waste_table: Rows from WasteTableGenerator; generated when omitted
            captured_image: Map capture as bytes, base64 or data URL
            predominant_pitch: Pitch label threaded through as metadata
            now: Report timestamp (defaults to the current time)

        Returns:
            ReportDocument with two pages
        """
        if measurement is None:
            raise MissingMeasurementError("Cannot assemble a report without a measurement")
        self._check_measurement(measurement)
        lon, lat = self._check_coordinates(coordinates)

        rows = tuple(waste_table) if waste_table is not None else tuple(self.waste_generator.generate(measurement.area_square_feet))
        if any(r.adjusted_area_square_feet < 0 for r in rows):
            raise InvalidMeasurementError("Waste table contains negative areas")

        now = now or datetime.now()
        pitch = predominant_pitch or self.default_pitch
        lengths = compute_line_lengths(measurement)
        report_id = self._generate_report_id(now)
        image = decode_captured_image(captured_image)

        pages = (
            ReportPage(number=1, sections=tuple(self._summary_page(address, report_id, (lon, lat), measurement, rows, lengths, pitch, now))),
            ReportPage(number=2, sections=tuple(self._diagram_page(lengths, image, now))),
        )
        logger.info(f"Assembled report {report_id} for '{address}' ({measurement.area_square_feet} sq ft, image={'yes' if image else 'no'})")
        return ReportDocument(
            report_id=report_id,
            generated_date=now.isoformat(),
            title=self.title,
            address=address,
            coordinates=(lon, lat),
            measurement=measurement,
            line_lengths=lengths,
            pages=pages,
        )

    def _summary_page(self, address: str, report_id: str, coordinates: Tuple[float, float],
                      measurement: Measurement, rows: Tuple[WasteRow, ...], lengths: LineLengths,
                      pitch: str, now: datetime) -> List[Any]:
        area = measurement.area_square_feet
        lon, lat = coordinates
        totals_lines = [
            "Total Roof Facets = 1",
            f"Ridges = {lengths.ridge_ft} ft (1 Ridge)",
            f"Hips = {lengths.hip_ft} ft (0 Hips)",
            f"Valleys = {lengths.valley_ft} ft (0 Valleys)",
            f"Rakes = {lengths.rake_ft} ft (2 Rakes)",
            f"Eaves/Starter = {lengths.eave_ft} ft (4 Eaves)",
            f"Predominant Pitch = {pitch}",
            f"Total Area (All Pitches) = {area:,} sq ft",
        ]
        return [
            self._header(now),
            KeyValueSection(title=None, entries=(
                KeyValue("Address", address, f"Address: {address}"),
                KeyValue("Report #", report_id, f"Report #: {report_id}"),
            )),
            TableSection(
                title="Areas per Pitch",
                columns=("Roof Pitches", "Area (sq ft)", "% of Roof"),
                rows=((pitch, f"{area:,}", "100%"),),
            ),
            # Always "Normal" until facets are classified
            LabelSection(title="Structure Complexity", value="Normal", options=COMPLEXITY_OPTIONS),
            WasteTableSection(title="Waste Calculation", rows=rows),
            TotalsSection(
                title="All Structures Totals",
                facets=1,
                line_lengths=lengths,
                predominant_pitch=pitch,
                total_area_square_feet=area,
                lines=tuple(totals_lines),
            ),
            KeyValueSection(title="Property Location", entries=(
                KeyValue("Longitude", lon, f"Longitude = {round_half_up(lon, 6):.6f}"),
                KeyValue("Latitude", lat, f"Latitude = {round_half_up(lat, 6):.6f}"),
            )),
        ]

    def _diagram_page(self, lengths: LineLengths, image: Optional[CapturedImage], now: datetime) -> List[Any]:
        sections: List[Any] = [
            self._header(now),
            LabelSection(title="LENGTH DIAGRAM"),
            LineLengthsSection(
                title="Total Line Lengths:",
                ridges_ft=lengths.ridge_ft,
                valleys_ft=lengths.valley_ft,
                rakes_ft=lengths.rake_ft,
                eaves_ft=lengths.eave_ft,
            ),
        ]
        if image is not None:
            sections.append(ImageSection(image=image, labels=(
                {"text": f"{lengths.ridge_ft}'", "x": 200, "y": 350},
                {"text": f"{lengths.eave_ft}'", "x": 250, "y": 520},
            )))
        sections.append(NoteSection(text=DIAGRAM_NOTE))
        return sections

    def _header(self, now: datetime) -> HeaderSection:
        return HeaderSection(title=self.title, date=f"{now.month}/{now.day}/{now.year}")

    def _generate_report_id(self, now: datetime) -> str:
        millis = str(int(now.timestamp() * 1000))
        return f"{self.report_id_prefix}-{millis[-6:]}"

    @staticmethod
    def _check_measurement(measurement: Measurement) -> None:
        for name in ("area_square_feet", "perimeter_feet"):
            value = getattr(measurement, name)
            if not math.isfinite(value) or value < 0:
                raise InvalidMeasurementError(f"Measurement {name} must be non-negative, got {value}")

    @staticmethod
    def _check_coordinates(coordinates: Sequence[float]) -> Tuple[float, float]:
        try:
            lon, lat = (float(c) for c in coordinates)
        except (TypeError, ValueError):
            raise InvalidGeometryError("Property coordinates must be a (longitude, latitude) pair")
        if not (math.isfinite(lon) and math.isfinite(lat)):
            raise InvalidGeometryError("Property coordinates must be finite")
        return lon, lat


__all__ = [
    "ReportAssembler",
    "ReportDocument",
    "ReportPage",
    "LineLengths",
    "compute_line_lengths",
    "DIAGRAM_NOTE",
]
