"""
Shared fixtures and in-memory collaborators for the AgroAlert tests.
"""

import asyncio
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from agroalert.core.cache import AlertCache
from agroalert.core.models import AlertCollection, AlertGeometry, AlertProperties, Parcel, User, WeatherAlert
from agroalert.database.manager import DatabaseError
from agroalert.notifications.dispatcher import NotificationDispatcher
from agroalert.notifications.executor import ExecutorError
from agroalert.processing.geometry import load_parcel
from agroalert.processing.pipeline import AlertCorrelationPipeline
from agroalert.processing.resolver import AffectedOwnerResolver

UNIT_SQUARE = [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]]


def square(x: float, y: float, size: float) -> List[List[List[float]]]:
    """Closed square ring with its lower-left corner at (x, y)."""
    return [[[x, y], [x + size, y], [x + size, y + size], [x, y + size], [x, y]]]


def make_alert(coordinates=None, **properties) -> WeatherAlert:
    props = {"nivel": "naranja", "fenomeno": "lluvias", "areaDesc": "Vega baja"}
    props.update(properties)
    return WeatherAlert(
        geometry=AlertGeometry(type="Polygon", coordinates=coordinates or UNIT_SQUARE),
        properties=AlertProperties.model_validate(props),
    )


def parcel_geometry(polygon=None, point=None) -> Dict[str, Any]:
    """Stored parcel FeatureCollection; omit polygon to build a point-only parcel."""
    features = []
    if polygon is not None:
        features.append({
            "type": "Feature",
            "properties": {"name": "polygon"},
            "geometry": {"type": "Polygon", "coordinates": polygon},
        })
    if point is not None:
        features.append({
            "type": "Feature",
            "properties": {"name": "pointOnFeature"},
            "geometry": {"type": "Point", "coordinates": point},
        })
    return {"type": "FeatureCollection", "features": features}


class MutableClock:
    """Controllable clock for cache tests."""

    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class FakeAlertSource:
    """Alert source returning queued results; exceptions in the queue are raised."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    async def fetch_alerts(self) -> AlertCollection:
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class InMemoryStore:
    """Parcel and user store keeping everything in dicts."""

    def __init__(self):
        self.parcels: Dict[str, Dict[str, Any]] = {}
        self.users: Dict[str, User] = {}
        self.unreachable = False
        self.owner_queries: List[str] = []

    def add_parcel(self, parcel_id: str, geometry: Dict[str, Any], owner: Optional[str] = None) -> None:
        self.parcels[parcel_id] = geometry
        if owner is not None:
            self.users[owner].parcels.append(parcel_id)

    def add_user(self, user_id: str, email: Optional[str] = None, phone_number: Optional[str] = None) -> User:
        user = User(id=user_id, email=email, phone_number=phone_number)
        self.users[user_id] = user
        return user

    async def find_all_parcels(self) -> List[Parcel]:
        if self.unreachable:
            raise DatabaseError("parcel store unreachable")
        return [load_parcel(parcel_id, geometry) for parcel_id, geometry in self.parcels.items()]

    async def find_owner_of(self, parcel_id: str) -> Optional[User]:
        self.owner_queries.append(parcel_id)
        for user in self.users.values():
            if parcel_id in user.parcels:
                return user
        return None

    async def find_by_id(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)


class RecordingExecutor:
    """Notification executor that records decoded payloads."""

    def __init__(self, fail_for=(), reject_for=(), delay: float = 0.0):
        self.fail_for = set(fail_for)
        self.reject_for = set(reject_for)
        self.delay = delay
        self.payloads: List[Dict[str, Any]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def invoke_async(self, payload: bytes) -> bool:
        message = json.loads(payload)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if message["userId"] in self.fail_for:
                raise ExecutorError("invocation failed")
            self.payloads.append(message)
            return message["userId"] not in self.reject_for
        finally:
            self.in_flight -= 1


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def executor():
    return RecordingExecutor()


@pytest.fixture
def resolver(store):
    return AffectedOwnerResolver(store, store)


@pytest.fixture
def dispatcher(store, executor, resolver):
    return NotificationDispatcher(store, executor, resolver, max_concurrent=4)


@pytest.fixture
def clock():
    return MutableClock()


@pytest.fixture
def pipeline(dispatcher, clock):
    source = FakeAlertSource(AlertCollection(features=[make_alert()]))
    cache = AlertCache(source, ttl=timedelta(hours=1), clock=clock)
    return AlertCorrelationPipeline(cache, dispatcher)
