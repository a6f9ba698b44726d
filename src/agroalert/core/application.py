"""
Composition of the AgroAlert components.
"""

import logging
from datetime import timedelta
from typing import Optional

from .config import AppConfig
from .cache import AlertCache
from ..api.alert_client import AlertFeedClient
from ..database.manager import DatabaseManager
from ..notifications.dispatcher import NotificationDispatcher
from ..notifications.executor import LambdaNotificationExecutor
from ..processing.pipeline import AlertCorrelationPipeline
from ..processing.resolver import AffectedOwnerResolver
from ..utils.logging import setup_logging, PerformanceLogger, PipelineLogger

logger = logging.getLogger(__name__)


class AgroAlertApplication:
    """Builds the alert cache and correlation pipeline once per process."""

    def __init__(self, config: AppConfig):
        """
        Initialize the application.

        Args:
            config: Application configuration
        """
        self.config = config
        self.feed_client: Optional[AlertFeedClient] = None
        self.database_manager: Optional[DatabaseManager] = None
        self.alert_cache: Optional[AlertCache] = None
        self.pipeline: Optional[AlertCorrelationPipeline] = None
        self.performance_logger: Optional[PerformanceLogger] = None
        self.pipeline_logger: Optional[PipelineLogger] = None

    async def initialize(self, with_executor: bool = True) -> None:
        """Initialize the application components."""
        _, self.performance_logger, self.pipeline_logger = setup_logging(self.config.logging)
        logger.info("Initializing AgroAlert application")

        self.feed_client = AlertFeedClient(self.config.alert_feed)
        self.alert_cache = AlertCache(
            self.feed_client,
            ttl=timedelta(seconds=self.config.cache.ttl_seconds),
            fetch_timeout=self.config.cache.fetch_timeout_seconds,
            single_flight=self.config.cache.single_flight,
        )

        self.database_manager = DatabaseManager(self.config.database)
        await self.database_manager.initialize()

        if not with_executor:
            return

        resolver = AffectedOwnerResolver(
            self.database_manager,
            self.database_manager,
            pipeline_logger=self.pipeline_logger,
        )
        dispatcher = NotificationDispatcher(
            self.database_manager,
            LambdaNotificationExecutor(self.config.notifications),
            resolver,
            max_concurrent=self.config.notifications.max_concurrent_dispatches,
            dispatch_timeout=self.config.notifications.dispatch_timeout_seconds,
            pipeline_logger=self.pipeline_logger,
        )
        self.pipeline = AlertCorrelationPipeline(
            self.alert_cache,
            dispatcher,
            performance_logger=self.performance_logger,
            pipeline_logger=self.pipeline_logger,
        )
        logger.info("AgroAlert application initialized")

    async def shutdown(self) -> None:
        """Release network and database resources."""
        if self.feed_client:
            await self.feed_client.close()
        if self.database_manager:
            await self.database_manager.close()
        logger.info("AgroAlert application shut down")
