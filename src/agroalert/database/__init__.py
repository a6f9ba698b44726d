"""
Parcel and user persistence for AgroAlert.
"""

from .manager import DatabaseManager, DatabaseError
from .models import Base, UserRecord, ParcelRecord, user_parcels

__all__ = [
    "DatabaseManager",
    "DatabaseError",
    "Base",
    "UserRecord",
    "ParcelRecord",
    "user_parcels",
]
