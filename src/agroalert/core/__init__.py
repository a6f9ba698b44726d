"""
Core components for AgroAlert.
"""

from .config import AppConfig, AlertFeedConfig, CacheConfig, DatabaseConfig, NotificationConfig, LoggingConfig
from .models import (
    AlertCollection,
    AlertGeometry,
    AlertProperties,
    CacheStatus,
    GeometryKind,
    NotificationPayload,
    Parcel,
    ParcelShape,
    User,
    WeatherAlert,
)
from .cache import AlertCache, CacheEntry

__all__ = [
    "AppConfig",
    "AlertFeedConfig",
    "CacheConfig",
    "DatabaseConfig",
    "NotificationConfig",
    "LoggingConfig",
    "AlertCollection",
    "AlertGeometry",
    "AlertProperties",
    "CacheStatus",
    "GeometryKind",
    "NotificationPayload",
    "Parcel",
    "ParcelShape",
    "User",
    "WeatherAlert",
    "AlertCache",
    "CacheEntry",
]
