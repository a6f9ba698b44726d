"""
Tests for the SQLAlchemy parcel and user store on a temporary SQLite database.
"""

import pytest
import pytest_asyncio

from agroalert.core.cache import AlertCache
from agroalert.core.config import DatabaseConfig
from agroalert.core.models import AlertCollection, GeometryKind
from agroalert.database.manager import DatabaseError, DatabaseManager
from agroalert.notifications.dispatcher import NotificationDispatcher
from agroalert.processing.pipeline import AlertCorrelationPipeline
from agroalert.processing.resolver import AffectedOwnerResolver

from conftest import FakeAlertSource, RecordingExecutor, make_alert, parcel_geometry, square


@pytest_asyncio.fixture
async def db(tmp_path):
    manager = DatabaseManager(DatabaseConfig(data_dir=tmp_path))
    await manager.initialize()
    yield manager
    await manager.close()


@pytest.mark.asyncio
async def test_uninitialized_manager_raises():
    manager = DatabaseManager(DatabaseConfig())

    with pytest.raises(DatabaseError):
        await manager.find_by_id("u1")


@pytest.mark.asyncio
async def test_initialize_creates_database_file(db, tmp_path):
    assert (tmp_path / "agroalert.db").exists()


@pytest.mark.asyncio
async def test_user_round_trip(db):
    await db.add_user("u1", "u1@example.com", "+34600000000")

    user = await db.find_by_id("u1")

    assert user.email == "u1@example.com"
    assert user.phone_number == "+34600000000"
    assert user.parcels == []
    assert await db.find_by_id("ghost") is None


@pytest.mark.asyncio
async def test_add_user_updates_existing(db):
    await db.add_user("u1", "old@example.com")
    await db.add_user("u1", "new@example.com")

    assert (await db.find_by_id("u1")).email == "new@example.com"


@pytest.mark.asyncio
async def test_parcels_listed_with_typed_shapes(db):
    await db.add_parcel("b", parcel_geometry(point=[0.5, 0.5]))
    await db.add_parcel("a", parcel_geometry(polygon=square(0, 0, 1)))

    parcels = await db.find_all_parcels()

    assert [p.id for p in parcels] == ["a", "b"]
    assert parcels[0].shape.kind is GeometryKind.POLYGON
    assert parcels[1].shape.kind is GeometryKind.POINT


@pytest.mark.asyncio
async def test_owner_lookup(db):
    await db.add_user("u1", "u1@example.com")
    await db.add_parcel("p1", parcel_geometry(polygon=square(0, 0, 1)), owner_id="u1")
    await db.add_parcel("p2", parcel_geometry(polygon=square(2, 2, 1)))

    owner = await db.find_owner_of("p1")

    assert owner.id == "u1"
    assert owner.parcels == ["p1"]
    assert await db.find_owner_of("p2") is None


@pytest.mark.asyncio
async def test_link_is_idempotent(db):
    await db.add_user("u1", "u1@example.com")
    await db.add_parcel("p1", parcel_geometry(polygon=square(0, 0, 1)))

    await db.link_parcel("u1", "p1")
    await db.link_parcel("u1", "p1")

    assert (await db.find_by_id("u1")).parcels == ["p1"]


@pytest.mark.asyncio
async def test_link_unknown_records_raises(db):
    await db.add_user("u1", "u1@example.com")

    with pytest.raises(DatabaseError):
        await db.link_parcel("u1", "missing")


@pytest.mark.asyncio
async def test_pipeline_against_database(db, clock):
    await db.add_user("u1", "u1@example.com")
    await db.add_user("u2")
    await db.add_parcel("p1", parcel_geometry(polygon=square(0.1, 0.1, 0.2)), owner_id="u1")
    await db.add_parcel("p2", parcel_geometry(polygon=square(0.6, 0.6, 0.2)), owner_id="u1")
    await db.add_parcel("p3", parcel_geometry(polygon=square(0.4, 0.4, 0.2)), owner_id="u2")
    await db.add_parcel("p4", parcel_geometry(polygon=square(0.5, 0.1, 0.2)))

    executor = RecordingExecutor()
    dispatcher = NotificationDispatcher(db, executor, AffectedOwnerResolver(db, db))
    pipeline = AlertCorrelationPipeline(AlertCache(FakeAlertSource(AlertCollection()), clock=clock), dispatcher)

    assert await pipeline.process_weather_alerts([make_alert()]) == 1
    assert [p["userId"] for p in executor.payloads] == ["u1"]
