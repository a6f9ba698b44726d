"""
Collaborator protocols for the alert correlation pipeline.
"""

from typing import List, Optional, Protocol

from .models import AlertCollection, Parcel, User


class AlertSource(Protocol):
    """Upstream provider of the weather-alert feed."""

    async def fetch_alerts(self) -> AlertCollection:
        """Fetch the current alert collection, raising on failure."""


class ParcelStore(Protocol):
    """Read-only listing of persisted parcels."""

    async def find_all_parcels(self) -> List[Parcel]:
        """Return every stored parcel."""


class UserStore(Protocol):
    """Lookup of parcel owners."""

    async def find_owner_of(self, parcel_id: str) -> Optional[User]:
        """Return the user whose parcel list references parcel_id."""

    async def find_by_id(self, user_id: str) -> Optional[User]:
        """Return the user with the given identifier."""


class NotificationExecutor(Protocol):
    """Fire-and-forget remote notification executor."""

    async def invoke_async(self, payload: bytes) -> bool:
        """Submit payload; True once the invocation request is accepted."""
