"""
Fan-out of weather-alert notifications to affected users.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Set

from ..core.interfaces import NotificationExecutor, UserStore
from ..core.models import NotificationPayload, WEATHER_ALERT_NOTIFICATION, WeatherAlert
from ..processing.resolver import AffectedOwnerResolver
from ..utils.logging import PipelineLogger

logger = logging.getLogger(__name__)


class DispatchOutcome(str, Enum):
    """Outcome of one dispatch."""

    ACCEPTED = "accepted"
    USER_NOT_FOUND = "user_not_found"
    INELIGIBLE = "ineligible"
    FAILED = "failed"


class NotificationDispatcher:
    """Turns affected users into best-effort executor invocations."""

    def __init__(
        self,
        user_store: UserStore,
        executor: NotificationExecutor,
        resolver: AffectedOwnerResolver,
        max_concurrent: int = 10,
        dispatch_timeout: Optional[float] = None,
        pipeline_logger: Optional[PipelineLogger] = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            user_store: User lookups
            executor: Remote notification executor
            resolver: Affected owner resolver used by dispatch_batch
            max_concurrent: Maximum number of dispatches in flight
            dispatch_timeout: Upper bound in seconds for one dispatch
            pipeline_logger: Structured event logger
        """
        self.user_store = user_store
        self.executor = executor
        self.resolver = resolver
        self.max_concurrent = max_concurrent
        self.dispatch_timeout = dispatch_timeout
        self.pipeline_logger = pipeline_logger or PipelineLogger(logger)

    async def dispatch_to(self, user_id: str, payload: Dict[str, Any]) -> bool:
        """
        Notify one user.

        Returns:
            True if the executor accepted the invocation
        """
        outcome = await self._dispatch(user_id, payload)
        return outcome is DispatchOutcome.ACCEPTED

    async def _dispatch(self, user_id: str, payload: Dict[str, Any]) -> DispatchOutcome:
        try:
            user = await self.user_store.find_by_id(user_id)
        except Exception as e:
            self.pipeline_logger.log_dispatch_failed(user_id, f"user lookup failed: {e}")
            return DispatchOutcome.FAILED

        if user is None:
            self.pipeline_logger.log_notification_ineligible(user_id, "user not found")
            return DispatchOutcome.USER_NOT_FOUND

        if not user.is_notifiable:
            self.pipeline_logger.log_notification_ineligible(user_id, "no email configured")
            return DispatchOutcome.INELIGIBLE

        message = NotificationPayload(
            user_id=user.id,
            email=user.email,
            phone_number=user.phone_number,
            notification_type=WEATHER_ALERT_NOTIFICATION,
            data=payload,
        )

        try:
            invocation = self.executor.invoke_async(message.to_bytes())
            if self.dispatch_timeout is not None:
                accepted = await asyncio.wait_for(invocation, timeout=self.dispatch_timeout)
            else:
                accepted = await invocation
        except asyncio.TimeoutError:
            self.pipeline_logger.log_dispatch_failed(user_id, f"timed out after {self.dispatch_timeout}s")
            return DispatchOutcome.FAILED
        except Exception as e:
            self.pipeline_logger.log_dispatch_failed(user_id, str(e))
            return DispatchOutcome.FAILED

        if not accepted:
            self.pipeline_logger.log_dispatch_failed(user_id, "invocation not accepted")
            return DispatchOutcome.FAILED

        self.pipeline_logger.log_dispatch_accepted(user_id)
        return DispatchOutcome.ACCEPTED

    async def dispatch_alert(self, alert: WeatherAlert, user_ids: Set[str]) -> int:
        """Dispatch one alert's properties to each user; returns accepted count."""
        if not user_ids:
            return 0

        payload = alert.properties.to_payload()
        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def dispatch_with_semaphore(user_id: str) -> bool:
            async with semaphore:
                return await self.dispatch_to(user_id, payload)

        results = await asyncio.gather(
            *(dispatch_with_semaphore(user_id) for user_id in sorted(user_ids)),
            return_exceptions=True,
        )

        sent = 0
        for user_id, result in zip(sorted(user_ids), results):
            if isinstance(result, BaseException):
                self.pipeline_logger.log_dispatch_failed(user_id, str(result))
            elif result:
                sent += 1
        return sent

    async def dispatch_batch(self, alerts: Sequence[WeatherAlert]) -> int:
        """
        Resolve and notify the users affected by each alert of a batch.

        A user hit by two alerts receives two notifications. Per-user
        failures are counted as non-successes; only store failures raised
        while resolving propagate.

        Returns:
            Number of accepted dispatches
        """
        sent = 0
        for alert, user_ids in await self.resolver.resolve_per_alert(alerts):
            sent += await self.dispatch_alert(alert, user_ids)
        return sent
