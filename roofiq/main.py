from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import List, Optional
import logging
import os

from roofiq.errors import MissingMeasurementError
from roofiq.middleware.request_id import add_request_id_middleware
from roofiq.models.report import ReportAssembler
from roofiq.services.artifacts.geojson_writer import measurement_to_feature
from roofiq.services.artifacts.storage import ArtifactStorage
from roofiq.services.image_service import fetch_image_bytes
from roofiq.services.measurement import GeodesicMeasurer, WasteTableGenerator, suggested_row
from roofiq.services.measurement.geodesic import measurement_from_feet
from roofiq.settings import get_settings

logger = logging.getLogger(__name__)

SETTINGS = get_settings()

app = FastAPI(
    title="RoofIQ Measurement Service",
    description="Roof polygon measurement, waste tables and report documents",
    version="1.0.0"
)

add_request_id_middleware(app, log_requests=SETTINGS.enable_request_id_logging)

# CORS middleware (configurable via CORS_ALLOW_ORIGINS)
# Accept comma-separated list of origins, e.g.:
#   CORS_ALLOW_ORIGINS=http://localhost:8080,http://127.0.0.1:8080
cors_env = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
if cors_env:
    allow_origins = [o.strip() for o in cors_env.split(",") if o.strip()]
else:
    allow_origins = [
        "http://localhost:3000",
        "http://localhost:8080",
        "http://127.0.0.1:8080",
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

measurer = GeodesicMeasurer(close_rings=SETTINGS.measure_close_rings)
waste_generator = WasteTableGenerator()
report_assembler = ReportAssembler(
    title=SETTINGS.report_title,
    report_id_prefix=SETTINGS.report_id_prefix,
    default_pitch=SETTINGS.default_pitch,
    waste_generator=waste_generator,
)
artifact_storage = ArtifactStorage()


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "roofiq-measure"}


@app.get("/config/map")
async def map_config():
    """Map view settings for the drawing UI; the token is passed explicitly, never set globally"""
    return {
        "style": SETTINGS.map_style,
        "zoom": SETTINGS.map_zoom,
        "access_token": SETTINGS.map_access_token or None,
    }


class MeasureRequest(BaseModel):
    polygon: List[List[float]] = Field(..., description="Roof outline as [[longitude, latitude], ...], ideally a closed ring")


@app.post("/measure")
async def measure_polygon(request: MeasureRequest):
    """
    Measure a traced roof polygon

    Args:
        request: MeasureRequest with the polygon ring

    Returns:
        Measurement in feet, the suggested waste row and a GeoJSON feature
    """
    try:
        measurement = measurer.measure(request.polygon)
        rows = waste_generator.generate(measurement.area_square_feet)
        suggested = suggested_row(rows)
        return {
            "measurement": measurement.to_dict(),
            "suggested_waste": suggested.to_dict() if suggested else None,
            "geojson": measurement_to_feature(request.polygon, measurement),
        }
    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Measurement failed: {str(e)}")


class WasteTableRequest(BaseModel):
    area_square_feet: float = Field(..., allow_inf_nan=False, description="Base roof area in square feet")


@app.post("/waste-table")
async def waste_table(request: WasteTableRequest):
    """Waste-percentage table for a base roof area"""
    try:
        rows = waste_generator.generate(request.area_square_feet)
        return {"rows": [r.to_dict() for r in rows]}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


class Coordinates(BaseModel):
    latitude: float = Field(..., ge=-90, le=90, description="Latitude coordinate")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude coordinate")


class MeasurementInput(BaseModel):
    area_square_feet: float = Field(..., allow_inf_nan=False, description="Measured roof area in square feet")
    perimeter_feet: float = Field(..., allow_inf_nan=False, description="Measured perimeter in feet")


class ReportRequest(BaseModel):
    address: str = Field(..., min_length=1, description="Property address")
    coordinates: Coordinates
    polygon: Optional[List[List[float]]] = Field(default=None, description="Roof outline to measure")
    measurement: Optional[MeasurementInput] = Field(default=None, description="Previously computed measurement")
    captured_image_base64: Optional[str] = Field(default=None, description="Map capture as base64 or data URL")
    captured_image_url: Optional[str] = None
    predominant_pitch: Optional[str] = Field(default=None, description="Pitch label, e.g. 6/12")
    store: bool = False


@app.post("/report")
def generate_report(request: ReportRequest):
    """
    Assemble the two-page measurement report document

    Args:
        request: ReportRequest with property details and a polygon or measurement

    Returns:
        Serialized ReportDocument, plus artifact_url when stored
    """
    try:
        if request.polygon is not None:
            measurement = measurer.measure(request.polygon)
        elif request.measurement is not None:
            measurement = measurement_from_feet(request.measurement.area_square_feet,
                                                request.measurement.perimeter_feet)
        else:
            raise MissingMeasurementError("Provide a polygon or a measurement to generate a report")

        image = request.captured_image_base64
        if image is None and request.captured_image_url:
            image = fetch_image_bytes(request.captured_image_url)

        document = report_assembler.assemble(
            address=request.address,
            coordinates=(request.coordinates.longitude, request.coordinates.latitude),
            measurement=measurement,
            captured_image=image,
            predominant_pitch=request.predominant_pitch,
        )
        response = document.to_dict()
        if request.store or SETTINGS.store_reports:
            response["artifact_url"] = artifact_storage.store_report(response)
        return response
    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Report generation failed: {e}")
        raise HTTPException(status_code=500, detail=f"Report generation failed: {str(e)}")


@app.get("/")
async def root():
    """Root endpoint with service information"""
    return {
        "service": "RoofIQ Measurement Service",
        "version": "1.0.0",
        "endpoints": {
            "health": "/health",
            "measure": "/measure",
            "waste_table": "/waste-table",
            "report": "/report",
            "map_config": "/config/map",
            "docs": "/docs"
        }
    }
