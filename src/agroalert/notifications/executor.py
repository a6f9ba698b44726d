"""
Serverless notification executor for AgroAlert.
"""

import asyncio
import logging
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..core.config import NotificationConfig

logger = logging.getLogger(__name__)

ACCEPTED_STATUS = 202


class ExecutorError(Exception):
    """Notification executor error."""

    pass


class LambdaNotificationExecutor:
    """Fire-and-forget invocation of the notification function."""

    def __init__(self, config: NotificationConfig, client: Optional[Any] = None):
        """
        Initialize the executor.

        Args:
            config: Notification configuration
            client: Optional preconfigured boto3 Lambda client
        """
        self.config = config
        self.function_name = config.function_name
        if client is None:
            timeout = config.dispatch_timeout_seconds
            client = boto3.client(
                "lambda",
                region_name=config.region,
                config=Config(
                    connect_timeout=timeout,
                    read_timeout=timeout,
                    retries={"max_attempts": 2, "mode": "standard"},
                ),
            )
        self.client = client

    def _invoke(self, payload: bytes) -> bool:
        try:
            response = self.client.invoke(
                FunctionName=self.function_name,
                InvocationType="Event",
                Payload=payload,
            )
        except (ClientError, BotoCoreError) as e:
            raise ExecutorError(f"Lambda invocation failed: {e}") from e

        status = response.get("StatusCode")
        if status != ACCEPTED_STATUS:
            logger.warning(f"Notification function did not accept invocation (status {status})")
            return False
        return True

    async def invoke_async(self, payload: bytes) -> bool:
        """
        Submit a payload to the notification function.

        Returns True once the invocation request is accepted; delivery
        itself happens later inside the function.
        """
        return await asyncio.to_thread(self._invoke, payload)
