"""
Parcel and alert geometry for AgroAlert.

Parcels store a two-feature GeoJSON collection: the boundary tagged
``name: polygon`` and an interior point tagged ``name: pointOnFeature``.
"""

import logging
from typing import Any, Dict, Optional

from shapely.errors import ShapelyError
from shapely.geometry import shape
from shapely.geometry.base import BaseGeometry

from ..core.models import GeometryKind, Parcel, ParcelShape, WeatherAlert

logger = logging.getLogger(__name__)

POLYGON_FEATURE = "polygon"
POINT_FEATURE = "pointOnFeature"


class GeometryError(Exception):
    """Geometry construction error."""

    pass


def find_feature(feature_collection: Any, name: str) -> Optional[Dict[str, Any]]:
    """Return the feature whose ``properties.name`` equals name."""
    if not isinstance(feature_collection, dict):
        return None
    for feature in feature_collection.get("features") or []:
        if not isinstance(feature, dict):
            continue
        props = feature.get("properties")
        if isinstance(props, dict) and props.get("name") == name:
            return feature
    return None


def is_ring_structure(coordinates: Any) -> bool:
    """True for a list of rings of positions, e.g. ``[[[x, y], ...]]``."""
    return (
        isinstance(coordinates, list)
        and len(coordinates) > 0
        and isinstance(coordinates[0], list)
        and len(coordinates[0]) > 0
        and isinstance(coordinates[0][0], list)
    )


def build_parcel_shape(feature_collection: Any) -> ParcelShape:
    """Classify a stored parcel geometry into a typed shape."""
    feature = find_feature(feature_collection, POLYGON_FEATURE)
    if feature is None:
        if find_feature(feature_collection, POINT_FEATURE) is not None:
            return ParcelShape(GeometryKind.POINT, reason="no polygon feature")
        return ParcelShape(GeometryKind.INVALID, reason="no polygon feature")

    geometry = feature.get("geometry")
    coordinates = geometry.get("coordinates") if isinstance(geometry, dict) else None
    if not is_ring_structure(coordinates):
        return ParcelShape(GeometryKind.INVALID, reason="polygon coordinates are not nested rings")

    try:
        polygon = shape({"type": "Polygon", "coordinates": coordinates})
    except (ShapelyError, ValueError, TypeError, IndexError) as e:
        return ParcelShape(GeometryKind.INVALID, reason=f"cannot build polygon: {e}")

    if polygon.is_empty:
        return ParcelShape(GeometryKind.INVALID, reason="polygon is empty")
    return ParcelShape(GeometryKind.POLYGON, geometry=polygon)


def load_parcel(parcel_id: str, feature_collection: Dict[str, Any]) -> Parcel:
    """Build a Parcel with its typed shape; never raises on bad geometry."""
    parcel_shape = build_parcel_shape(feature_collection)
    if parcel_shape.kind is GeometryKind.INVALID:
        logger.warning(f"Parcel {parcel_id} has malformed geometry: {parcel_shape.reason}")
    return Parcel(id=str(parcel_id), geometry=feature_collection, shape=parcel_shape)


def build_alert_shape(alert: WeatherAlert) -> BaseGeometry:
    """
    Build the shapely geometry of an alert area.

    Raises:
        GeometryError: If the alert geometry is not a usable polygon
    """
    try:
        area = shape(alert.geometry.model_dump())
    except (ShapelyError, ValueError, TypeError, IndexError, AttributeError) as e:
        raise GeometryError(f"Invalid alert geometry: {e}") from e

    if area.is_empty or area.geom_type not in ("Polygon", "MultiPolygon"):
        raise GeometryError(f"Alert geometry is not an area: {area.geom_type}")
    return area


def intersects(alert_shape: BaseGeometry, parcel_shape: ParcelShape) -> bool:
    """
    Boolean intersection of an alert area and a parcel boundary.

    Touching boundaries count as intersecting. Parcels without a polygon
    and geometry engine errors yield False.
    """
    if not parcel_shape.is_polygon:
        return False
    try:
        return bool(alert_shape.intersects(parcel_shape.geometry))
    except ShapelyError as e:
        logger.error(f"Geometry intersection failed: {e}")
        return False
