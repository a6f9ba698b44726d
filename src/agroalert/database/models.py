"""
Database models for AgroAlert.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, JSON, ForeignKey, Table
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# The user holds the parcel references; parcels carry no owner column.
user_parcels = Table(
    "user_parcels",
    Base.metadata,
    Column("user_id", String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("parcel_id", String, ForeignKey("parcels.id", ondelete="CASCADE"), primary_key=True, index=True),
)


class UserRecord(Base):
    """Database model for parcel owners."""

    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=True, index=True)
    phone_number = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    parcels = relationship("ParcelRecord", secondary=user_parcels, lazy="selectin")


class ParcelRecord(Base):
    """Database model for land parcels."""

    __tablename__ = "parcels"

    id = Column(String, primary_key=True)
    geometry = Column(JSON, nullable=False)  # FeatureCollection: polygon + pointOnFeature
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
