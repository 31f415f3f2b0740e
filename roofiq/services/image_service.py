import base64
import binascii
import io
import logging
from dataclasses import dataclass
from typing import Optional, Union

import requests
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

ImageSource = Union[bytes, bytearray, str]


@dataclass(frozen=True)
class CapturedImage:
    """Decoded map capture, re-encoded as PNG for the renderer"""
    width: int
    height: int
    source_format: Optional[str]
    png_base64: str


def _to_bytes(source: ImageSource) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    text = source.strip()
    # Canvas captures arrive as data URLs: data:image/png;base64,....
    if text.startswith("data:"):
        _, _, text = text.partition(",")
    return base64.b64decode(text, validate=True)


def decode_captured_image(source: Optional[ImageSource]) -> Optional[CapturedImage]:
    """
    Decode a captured roof image from raw bytes, base64 text or a data URL.

    Returns None when nothing was supplied or the payload does not decode as
    an image; the caller simply leaves the image out.
    """
    if source is None or (isinstance(source, (str, bytes, bytearray)) and len(source) == 0):
        return None
    try:
        raw = _to_bytes(source)
        img = Image.open(io.BytesIO(raw))
        img.load()
        source_format = img.format
        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGB")
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return CapturedImage(
            width=img.size[0],
            height=img.size[1],
            source_format=source_format,
            png_base64=base64.b64encode(buf.getvalue()).decode(),
        )
    except (binascii.Error, ValueError, UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        logger.warning(f"Captured image could not be decoded, omitting it: {e}")
        return None


def fetch_image_bytes(url: str, timeout_s: int = 10) -> Optional[bytes]:
    """Download an image for embedding; failures are logged and yield None."""
    try:
        r = requests.get(url, timeout=timeout_s, headers={"User-Agent": "roofiq-measure/1.0"})
        r.raise_for_status()
        return r.content
    except requests.RequestException as e:
        logger.warning(f"Captured image download failed url={url}: {e}")
        return None


__all__ = ["CapturedImage", "decode_captured_image", "fetch_image_bytes"]
