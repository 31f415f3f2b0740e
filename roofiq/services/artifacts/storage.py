from __future__ import annotations

import logging
import mimetypes
import os
from pathlib import Path
from typing import Any, Dict, Optional

from roofiq.services.artifacts.geojson_writer import write_report_json

try:
    from google.cloud import storage  # type: ignore
    _HAS_GCS = True
except ImportError:  # pragma: no cover
    storage = None  # type: ignore
    _HAS_GCS = False

logger = logging.getLogger(__name__)


class ArtifactStorage:
    """
    Where generated report documents and roof outlines end up.

      - Local directory, optionally exposed through a base URL
      - Google Cloud Storage bucket when configured and the client is installed

    Env variables:
      - ARTIFACT_DIR (default: ./artifacts)
      - ARTIFACT_BASE_URL (optional; e.g., http://localhost:8000/static)
      - GCS_ARTIFACTS_BUCKET (optional)
    """

    def __init__(self,
                 artifact_dir: Optional[str] = None,
                 base_url: Optional[str] = None,
                 gcs_bucket: Optional[str] = None) -> None:
        self.artifact_dir = Path(artifact_dir or os.getenv("ARTIFACT_DIR", "./artifacts")).resolve()
        self.base_url = base_url or os.getenv("ARTIFACT_BASE_URL")
        self.gcs_bucket_name = gcs_bucket or os.getenv("GCS_ARTIFACTS_BUCKET")

        self._gcs_bucket = None
        if self.gcs_bucket_name:
            if not _HAS_GCS:
                logger.warning("GCS_ARTIFACTS_BUCKET is set but google-cloud-storage is not installed; storing locally")
            else:
                client = storage.Client()  # type: ignore[union-attr]
                self._gcs_bucket = client.bucket(self.gcs_bucket_name)

    def _relpath(self, p: Path) -> Optional[str]:
        try:
            return p.resolve().relative_to(self.artifact_dir).as_posix()
        except ValueError:
            return None

    def url_for_local(self, file_path: str) -> str:
        p = Path(file_path)
        rel = self._relpath(p)
        if self.base_url and rel is not None:
            return f"{self.base_url.rstrip('/')}/{rel}"
        return p.resolve().as_uri()

    def upload_gcs(self, file_path: str, object_name: Optional[str] = None) -> Optional[str]:
        if self._gcs_bucket is None:
            return None
        src = Path(file_path).resolve()
        if object_name is None:
            object_name = self._relpath(src) or src.name
        content_type = mimetypes.guess_type(src.name)[0] or "application/json"
        blob = self._gcs_bucket.blob(object_name)
        blob.upload_from_filename(str(src), content_type=content_type)
        # gs:// URI; the bucket is not assumed to be public
        return f"gs://{self.gcs_bucket_name}/{object_name}"

    def store(self, file_path: str) -> str:
        """Store an artifact and return its URL. Prefers GCS when configured."""
        if not Path(file_path).exists():
            raise FileNotFoundError(file_path)
        gcs_url = self.upload_gcs(file_path)
        if gcs_url:
            return gcs_url
        return self.url_for_local(file_path)

    def store_report(self, document: Dict[str, Any]) -> str:
        """Persist a serialized ReportDocument and return its URL"""
        path = write_report_json(document, out_dir=str(self.artifact_dir))
        url = self.store(path)
        logger.info(f"Stored report {document.get('report_id')} at {url}")
        return url


__all__ = ["ArtifactStorage"]
