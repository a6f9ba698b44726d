"""
Core data models for AgroAlert.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from shapely.geometry.base import BaseGeometry

WEATHER_ALERT_NOTIFICATION = "WEATHER_ALERT"


class AlertProperties(BaseModel):
    """Property bag of a weather alert, keyed as the provider sends it."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    level: Optional[str] = Field(None, alias="nivel", description="Warning level (e.g. amarillo, naranja, rojo)")
    phenomenon: Optional[str] = Field(None, alias="fenomeno", description="Hazard phenomenon label")
    area_desc: Optional[str] = Field(None, alias="areaDesc", description="Affected area description")
    description: Optional[str] = Field(None, alias="descripcion", description="Free-text description")
    instruction: Optional[str] = Field(None, description="Free-text instructions")
    severity: Optional[str] = Field(None, description="CAP severity")
    certainty: Optional[str] = Field(None, description="CAP certainty")
    urgency: Optional[str] = Field(None, description="CAP urgency")
    onset: Optional[datetime] = Field(None, description="Hazard onset timestamp")
    expires: Optional[datetime] = Field(None, description="Alert expiration timestamp")

    def to_payload(self) -> Dict[str, Any]:
        """Dump back to the provider's keys, unknown keys included."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class AlertGeometry(BaseModel):
    """GeoJSON geometry of an alert."""

    type: str = Field(..., description="GeoJSON geometry type")
    coordinates: Any = Field(..., description="GeoJSON coordinates")


class WeatherAlert(BaseModel):
    """Weather alert model. Alerts carry no identifier of their own."""

    type: str = Field("Feature", description="GeoJSON object type")
    geometry: AlertGeometry = Field(..., description="Affected area")
    properties: AlertProperties = Field(default_factory=AlertProperties, description="Alert properties")

    @property
    def label(self) -> str:
        """Short human readable label used in logs."""
        parts = [self.properties.level, self.properties.phenomenon, self.properties.area_desc]
        return " / ".join(p for p in parts if p) or "unlabelled alert"


class AlertCollection(BaseModel):
    """A GeoJSON FeatureCollection of weather alerts."""

    type: str = Field("FeatureCollection", description="GeoJSON object type")
    features: List[WeatherAlert] = Field(default_factory=list, description="Alerts")
    fetched_at: Optional[datetime] = Field(None, description="When the collection was fetched")


class GeometryKind(str, Enum):
    """Kinds of stored parcel geometry."""

    POLYGON = "polygon"
    POINT = "point"
    INVALID = "invalid"


@dataclass(frozen=True)
class ParcelShape:
    """Typed parcel geometry, built once when the parcel is loaded."""

    kind: GeometryKind
    geometry: Optional[BaseGeometry] = None
    reason: Optional[str] = None

    @property
    def is_polygon(self) -> bool:
        return self.kind is GeometryKind.POLYGON


@dataclass(frozen=True)
class Parcel:
    """A registered land parcel."""

    id: str
    geometry: Dict[str, Any]
    shape: ParcelShape


class User(BaseModel):
    """A parcel owner."""

    id: str = Field(..., description="User identifier")
    email: Optional[str] = Field(None, description="Email address")
    phone_number: Optional[str] = Field(None, description="Phone number in E.164 format")
    parcels: List[str] = Field(default_factory=list, description="Owned parcel identifiers")

    @property
    def is_notifiable(self) -> bool:
        return bool(self.email)


class NotificationPayload(BaseModel):
    """Payload handed to the notification executor."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    email: str = Field(...)
    phone_number: Optional[str] = Field(None, alias="phoneNumber")
    notification_type: str = Field(WEATHER_ALERT_NOTIFICATION, alias="notificationType")
    data: Dict[str, Any] = Field(default_factory=dict)

    def to_bytes(self) -> bytes:
        return self.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")


class CacheStatus(BaseModel):
    """Diagnostic view of the alert cache."""

    exists: bool
    age_seconds: Optional[float] = None
    is_valid: bool = False
    last_updated: Optional[datetime] = None
