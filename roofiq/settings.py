import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Load .env from project root even if CWD differs
_BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
load_dotenv(os.path.join(_BASE_DIR, ".env"))


@dataclass
class Settings:
    enable_request_id_logging: bool = os.getenv("ENABLE_REQUEST_ID_LOGGING", "true").lower() == "true"
    # Add the closing edge to the perimeter of rings that are not explicitly closed
    measure_close_rings: bool = os.getenv("MEASURE_CLOSE_RINGS", "false").lower() == "true"
    report_title: str = os.getenv("REPORT_TITLE", "RoofIQ Premium Report")
    report_id_prefix: str = os.getenv("REPORT_ID_PREFIX", "RQ")
    default_pitch: str = os.getenv("DEFAULT_PITCH", "6/12")
    store_reports: bool = os.getenv("STORE_REPORTS", "false").lower() == "true"
    # Map view handed to the front-end renderer; the token is never set globally
    map_style: str = os.getenv("MAP_STYLE", "mapbox://styles/mapbox/satellite-v9")
    map_zoom: float = float(os.getenv("MAP_ZOOM", "20"))
    map_access_token: str = os.getenv("MAP_ACCESS_TOKEN", "")


def get_settings() -> Settings:
    return Settings()
