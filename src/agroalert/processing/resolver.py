"""
Resolution of the users whose parcels are hit by weather alerts.
"""

import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..core.interfaces import ParcelStore, UserStore
from ..core.models import GeometryKind, Parcel, User, WeatherAlert
from ..utils.logging import PipelineLogger
from .geometry import GeometryError, build_alert_shape, intersects

logger = logging.getLogger(__name__)


class AffectedOwnerResolver:
    """
    Scans every stored parcel against each alert and maps hits to owners.

    The scan is O(alerts x parcels). Parcels are listed once per batch and
    owner lookups are memoized for the batch, so a parcel hit by several
    alerts costs one user-store query.
    """

    def __init__(
        self,
        parcel_store: ParcelStore,
        user_store: UserStore,
        pipeline_logger: Optional[PipelineLogger] = None,
    ):
        self.parcel_store = parcel_store
        self.user_store = user_store
        self.pipeline_logger = pipeline_logger or PipelineLogger(logger)

    async def load_parcels(self) -> List[Parcel]:
        """List all parcels. Store errors propagate."""
        parcels = await self.parcel_store.find_all_parcels()
        logger.debug(f"Loaded {len(parcels)} parcels for correlation")
        return parcels

    async def resolve_alert(
        self,
        alert: WeatherAlert,
        parcels: Sequence[Parcel],
        owner_cache: Optional[Dict[str, Optional[User]]] = None,
    ) -> Set[str]:
        """
        Return the distinct owners of parcels intersecting one alert.

        Args:
            alert: Alert to correlate
            parcels: Parcels to scan
            owner_cache: Parcel id -> owner memo shared across a batch

        Returns:
            Set of user identifiers
        """
        if owner_cache is None:
            owner_cache = {}

        try:
            alert_shape = build_alert_shape(alert)
        except GeometryError as e:
            logger.error(f"Skipping alert {alert.label}: {e}")
            return set()

        self.pipeline_logger.log_alert_received(alert.label, len(parcels))

        affected: Set[str] = set()
        for parcel in parcels:
            if parcel.shape.kind is not GeometryKind.POLYGON:
                self.pipeline_logger.log_parcel_skipped(parcel.id, parcel.shape.reason or parcel.shape.kind.value)
                continue

            if not intersects(alert_shape, parcel.shape):
                continue

            owner = await self._find_owner(parcel.id, owner_cache)
            if owner is None:
                self.pipeline_logger.log_orphaned_parcel(parcel.id, alert_label=alert.label)
                continue

            affected.add(owner.id)

        logger.info(f"Alert {alert.label} affects {len(affected)} users")
        return affected

    async def resolve_per_alert(
        self, alerts: Sequence[WeatherAlert]
    ) -> List[Tuple[WeatherAlert, Set[str]]]:
        """Resolve each alert of a batch against one parcel listing."""
        parcels = await self.load_parcels()
        owner_cache: Dict[str, Optional[User]] = {}
        results = []
        for alert in alerts:
            affected = await self.resolve_alert(alert, parcels, owner_cache)
            results.append((alert, affected))
        return results

    async def resolve(self, alerts: Sequence[WeatherAlert]) -> Set[str]:
        """Distinct users affected by at least one alert of the batch."""
        affected: Set[str] = set()
        for _, user_ids in await self.resolve_per_alert(alerts):
            affected |= user_ids
        return affected

    async def _find_owner(self, parcel_id: str, owner_cache: Dict[str, Optional[User]]) -> Optional[User]:
        if parcel_id not in owner_cache:
            owner_cache[parcel_id] = await self.user_store.find_owner_of(parcel_id)
        return owner_cache[parcel_id]
