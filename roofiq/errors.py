"""Errors raised by the measurement and report core.

All of them subclass ValueError so the HTTP layer can map them to a 400
response the same way it handles any other rejected input.
"""


class MeasurementError(ValueError):
    """Base class for measurement/report computation failures"""


class InvalidGeometryError(MeasurementError):
    """Polygon has fewer than 3 vertices or malformed coordinates"""


class InvalidMeasurementError(MeasurementError):
    """Negative or non-finite area/perimeter handed to a downstream step"""


class MissingMeasurementError(MeasurementError):
    """Report assembly attempted without a measurement"""


__all__ = [
    "MeasurementError",
    "InvalidGeometryError",
    "InvalidMeasurementError",
    "MissingMeasurementError",
]
