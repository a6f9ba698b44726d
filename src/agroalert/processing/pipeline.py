"""
Weather-alert correlation pipeline for AgroAlert.
"""

import logging
from typing import Any, Dict, Optional, Sequence

from ..core.cache import AlertCache
from ..core.models import WeatherAlert
from ..notifications.dispatcher import NotificationDispatcher
from ..utils.logging import PerformanceLogger, PipelineLogger

logger = logging.getLogger(__name__)


class ProcessingError(Exception):
    """Alert batch could not be processed."""

    pass


class AlertCorrelationPipeline:
    """Alert cache -> affected owner resolution -> notification fan-out."""

    def __init__(
        self,
        cache: AlertCache,
        dispatcher: NotificationDispatcher,
        performance_logger: Optional[PerformanceLogger] = None,
        pipeline_logger: Optional[PipelineLogger] = None,
    ):
        self.cache = cache
        self.dispatcher = dispatcher
        self.performance_logger = performance_logger or PerformanceLogger(logger)
        self.pipeline_logger = pipeline_logger or PipelineLogger(logger)
        self._processing_stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            "batches": 0,
            "failed_batches": 0,
            "alerts_processed": 0,
            "notifications_sent": 0,
        }

    async def process_weather_alerts(self, alerts: Sequence[WeatherAlert]) -> int:
        """
        Correlate a batch of alerts with the stored parcels and notify owners.

        Args:
            alerts: Validated weather alerts

        Returns:
            Number of notifications accepted by the executor

        Raises:
            ProcessingError: If the batch could not begin (store unreachable)
        """
        logger.info(f"Processing {len(alerts)} weather alerts")
        timer_id = self.performance_logger.start_timer("process_weather_alerts")

        try:
            sent = await self.dispatcher.dispatch_batch(alerts)
        except Exception as e:
            self._processing_stats["batches"] += 1
            self._processing_stats["failed_batches"] += 1
            self.performance_logger.end_timer(timer_id, success=False, alert_count=len(alerts))
            logger.error(f"Weather alert batch failed: {e}", exc_info=True)
            raise ProcessingError(f"Weather alert batch failed: {e}") from e

        self._processing_stats["batches"] += 1
        self._processing_stats["alerts_processed"] += len(alerts)
        self._processing_stats["notifications_sent"] += sent

        duration_ms = self.performance_logger.end_timer(timer_id, success=True, alert_count=len(alerts))
        self.pipeline_logger.log_batch_completed(len(alerts), sent, duration_ms=duration_ms)
        return sent

    async def process_current_alerts(self) -> int:
        """Process the alert collection currently served by the cache."""
        collection = await self.cache.get_alerts()
        return await self.process_weather_alerts(collection.features)

    def get_processing_stats(self) -> Dict[str, Any]:
        """Get processing statistics."""
        stats = self._processing_stats.copy()
        if stats["batches"] > 0:
            stats["success_rate"] = (stats["batches"] - stats["failed_batches"]) / stats["batches"]
        else:
            stats["success_rate"] = 0.0
        return stats

    def reset_stats(self) -> None:
        """Reset processing statistics."""
        self._processing_stats = self._empty_stats()
        logger.info("Processing statistics reset")
