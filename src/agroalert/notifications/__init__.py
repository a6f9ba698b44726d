"""
Notification fan-out and delivery for AgroAlert.
"""

from .dispatcher import NotificationDispatcher, DispatchOutcome
from .executor import LambdaNotificationExecutor, ExecutorError
from .templates import NotificationTemplate, TemplateEngine

__all__ = [
    "NotificationDispatcher",
    "DispatchOutcome",
    "LambdaNotificationExecutor",
    "ExecutorError",
    "NotificationTemplate",
    "TemplateEngine",
]
