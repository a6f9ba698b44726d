"""
Geometry matching and owner resolution for AgroAlert.

The orchestrating pipeline lives in ``agroalert.processing.pipeline``.
"""

from .geometry import GeometryError, build_alert_shape, build_parcel_shape, intersects, load_parcel
from .resolver import AffectedOwnerResolver

__all__ = [
    "GeometryError",
    "build_alert_shape",
    "build_parcel_shape",
    "intersects",
    "load_parcel",
    "AffectedOwnerResolver",
]
