"""
Database manager for AgroAlert parcels and users.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.exc import SQLAlchemyError

from .models import Base, ParcelRecord, UserRecord, user_parcels
from ..core.config import DatabaseConfig
from ..core.models import Parcel, User
from ..processing.geometry import load_parcel

logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Database operation error."""

    pass


def _to_user(record: UserRecord) -> User:
    return User(
        id=record.id,
        email=record.email,
        phone_number=record.phone_number,
        parcels=[parcel.id for parcel in record.parcels],
    )


class DatabaseManager:
    """Parcel and user store backed by SQLAlchemy."""

    def __init__(self, config: DatabaseConfig):
        """
        Initialize database manager.

        Args:
            config: Database configuration
        """
        self.config = config
        self.engine = None
        self.async_session_factory = None
        self._is_initialized = False

    async def initialize(self, database_url: Optional[str] = None) -> None:
        """
        Initialize database connection and create tables.

        Args:
            database_url: Database URL (defaults to config, then SQLite in data_dir)
        """
        if self._is_initialized:
            return

        database_url = database_url or self.config.url
        try:
            if not database_url:
                self.config.data_dir.mkdir(parents=True, exist_ok=True)
                db_path = self.config.data_dir / "agroalert.db"
                database_url = f"sqlite+aiosqlite:///{db_path}"

            self.engine = create_async_engine(
                database_url,
                echo=False,
                pool_pre_ping=True,
            )

            self.async_session_factory = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False
            )

            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            self._is_initialized = True
            logger.info(f"Database initialized: {database_url}")

        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Failed to initialize database: {e}")
            raise DatabaseError(f"Database initialization failed: {e}") from e

    async def close(self) -> None:
        """Close database connections."""
        if self.engine:
            await self.engine.dispose()
            self._is_initialized = False
            logger.info("Database connections closed")

    def get_session(self) -> AsyncSession:
        """Get a database session."""
        if not self._is_initialized:
            raise DatabaseError("Database not initialized")
        return self.async_session_factory()

    async def add_user(
        self, user_id: str, email: Optional[str] = None, phone_number: Optional[str] = None
    ) -> None:
        """Insert or update a user."""
        try:
            async with self.get_session() as session:
                record = await session.get(UserRecord, user_id)
                if record is None:
                    session.add(UserRecord(id=user_id, email=email, phone_number=phone_number))
                else:
                    record.email = email
                    record.phone_number = phone_number
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to store user {user_id}: {e}")
            raise DatabaseError(f"Failed to store user: {e}") from e

    async def add_parcel(self, parcel_id: str, geometry: Dict[str, Any], owner_id: Optional[str] = None) -> None:
        """Insert or update a parcel, optionally linking it to its owner."""
        try:
            async with self.get_session() as session:
                record = await session.get(ParcelRecord, parcel_id)
                if record is None:
                    session.add(ParcelRecord(id=parcel_id, geometry=geometry))
                else:
                    record.geometry = geometry
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to store parcel {parcel_id}: {e}")
            raise DatabaseError(f"Failed to store parcel: {e}") from e

        if owner_id is not None:
            await self.link_parcel(owner_id, parcel_id)

    async def link_parcel(self, user_id: str, parcel_id: str) -> None:
        """Add a parcel reference to a user's parcel list."""
        try:
            async with self.get_session() as session:
                user = await session.get(UserRecord, user_id)
                parcel = await session.get(ParcelRecord, parcel_id)
                if user is None or parcel is None:
                    raise DatabaseError(f"Cannot link parcel {parcel_id} to user {user_id}: not found")
                if parcel not in user.parcels:
                    user.parcels.append(parcel)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to link parcel {parcel_id} to user {user_id}: {e}")
            raise DatabaseError(f"Failed to link parcel: {e}") from e

    async def find_all_parcels(self) -> List[Parcel]:
        """List every stored parcel with its typed geometry."""
        try:
            async with self.get_session() as session:
                result = await session.execute(select(ParcelRecord).order_by(ParcelRecord.id))
                records = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to list parcels: {e}")
            raise DatabaseError(f"Failed to list parcels: {e}") from e

        return [load_parcel(record.id, record.geometry) for record in records]

    async def find_owner_of(self, parcel_id: str) -> Optional[User]:
        """Find the user whose parcel list references parcel_id."""
        try:
            async with self.get_session() as session:
                result = await session.execute(
                    select(UserRecord)
                    .join(user_parcels, user_parcels.c.user_id == UserRecord.id)
                    .where(user_parcels.c.parcel_id == parcel_id)
                    .limit(1)
                )
                record = result.scalars().first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to find owner of parcel {parcel_id}: {e}")
            raise DatabaseError(f"Failed to find parcel owner: {e}") from e

        return _to_user(record) if record is not None else None

    async def find_by_id(self, user_id: str) -> Optional[User]:
        """Find a user by identifier."""
        try:
            async with self.get_session() as session:
                record = await session.get(UserRecord, user_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to load user {user_id}: {e}")
            raise DatabaseError(f"Failed to load user: {e}") from e

        return _to_user(record) if record is not None else None
