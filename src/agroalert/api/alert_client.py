"""
Weather-alert feed client for fetching hazard polygons.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging
import asyncio
import httpx
from pydantic import ValidationError

from ..core.config import AlertFeedConfig
from ..core.models import AlertCollection, AlertGeometry, AlertProperties, WeatherAlert

logger = logging.getLogger(__name__)

AREA_GEOMETRY_TYPES = ("Polygon", "MultiPolygon")


class AlertFeedError(Exception):
    """Alert feed client error."""

    pass


def parse_alert(feature: Dict[str, Any]) -> WeatherAlert:
    """Parse a GeoJSON feature into a WeatherAlert."""
    if not isinstance(feature, dict):
        raise AlertFeedError("Feature is not an object")

    props = feature.get("properties")
    if not isinstance(props, dict):
        raise AlertFeedError("Feature missing or invalid 'properties'")

    geometry = feature.get("geometry")
    if not isinstance(geometry, dict) or geometry.get("type") not in AREA_GEOMETRY_TYPES:
        raise AlertFeedError("Feature has no polygon geometry")

    try:
        return WeatherAlert(
            geometry=AlertGeometry(type=geometry["type"], coordinates=geometry.get("coordinates")),
            properties=AlertProperties.model_validate(props),
        )
    except ValidationError as e:
        raise AlertFeedError(f"Invalid alert feature: {e}") from e


def load_alert_collection(data: Dict[str, Any], fetched_at: Optional[datetime] = None) -> AlertCollection:
    """
    Build an AlertCollection from a GeoJSON FeatureCollection.

    Features that cannot be parsed are skipped.
    """
    if not isinstance(data, dict):
        raise AlertFeedError("Alert feed did not return a JSON object")

    alerts = []
    for feature in data.get("features") or []:
        try:
            alerts.append(parse_alert(feature))
        except AlertFeedError as e:
            logger.debug("Skipping invalid alert feature: %s", e)
            continue

    return AlertCollection(features=alerts, fetched_at=fetched_at)


class AlertFeedClient:
    """Client for the upstream GeoJSON weather-alert feed."""

    def __init__(self, config: AlertFeedConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the feed client.

        Args:
            config: Alert feed configuration
            transport: Optional httpx transport (used to stub the network)
        """
        self.config = config
        self.max_retries = config.max_retries
        headers = {"User-Agent": config.user_agent, "Accept": "application/geo+json, application/json"}
        if config.api_key:
            headers["api_key"] = config.api_key
        self.client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout,
            headers=headers,
            follow_redirects=True,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _fetch_with_retry(self, url: str, retry_count: int = 0) -> Dict[str, Any]:
        """
        Fetch JSON from the feed with retry logic.

        Args:
            url: URL to fetch
            retry_count: Current retry attempt

        Returns:
            JSON response data
        """
        try:
            response = await self.client.get(url)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code >= 500 and retry_count < self.max_retries:
                logger.warning(
                    f"Server error {e.response.status_code}, retrying... ({retry_count + 1}/{self.max_retries})"
                )
                await asyncio.sleep(2 ** retry_count)  # Exponential backoff
                return await self._fetch_with_retry(url, retry_count + 1)
            logger.error(f"HTTP error: {e.response.status_code} - {e.response.text}")
            raise AlertFeedError(f"HTTP error: {e.response.status_code}") from e
        except httpx.RequestError as e:
            if retry_count < self.max_retries:
                logger.warning(f"Request error, retrying... ({retry_count + 1}/{self.max_retries})")
                await asyncio.sleep(2 ** retry_count)
                return await self._fetch_with_retry(url, retry_count + 1)
            logger.error(f"Request error: {e}")
            raise AlertFeedError(f"Request failed: {e}") from e
        except ValueError as e:
            logger.error(f"Alert feed returned invalid JSON: {e}")
            raise AlertFeedError(f"Invalid JSON: {e}") from e

    async def fetch_alerts(self) -> AlertCollection:
        """
        Fetch the current weather-alert collection.

        Returns:
            Parsed alert collection

        Raises:
            AlertFeedError: If the feed cannot be reached or parsed
        """
        logger.debug(f"Fetching alerts from {self.config.alerts_path}")
        data = await self._fetch_with_retry(self.config.alerts_path)
        collection = load_alert_collection(data, fetched_at=datetime.now(timezone.utc))
        logger.debug(f"Retrieved {len(collection.features)} alerts")
        return collection

    async def test_connection(self) -> bool:
        """
        Test connection to the alert feed.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            response = await self.client.get(self.config.alerts_path)
            response.raise_for_status()
            logger.info("Alert feed connection test successful")
            return True
        except httpx.HTTPError as e:
            logger.error(f"Alert feed connection test failed: {e}")
            return False
