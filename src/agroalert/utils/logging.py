"""
Enhanced logging utilities for AgroAlert.
"""

import logging
import logging.handlers
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
import structlog
from structlog.stdlib import LoggerFactory

from ..core.config import LoggingConfig

_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName',
}


class AgroAlertFormatter(logging.Formatter):
    """JSON formatter for AgroAlert logs."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with structured data."""
        extra_data = {
            key: value for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS
        }

        log_entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if extra_data:
            log_entry['data'] = extra_data

        if record.exc_info:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info),
            }

        return json.dumps(log_entry, default=str)


class PerformanceLogger:
    """Logger for performance metrics."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self._metrics: Dict[str, Any] = {}

    def start_timer(self, operation: str) -> str:
        """Start timing an operation."""
        timer_id = f"{operation}_{datetime.now(timezone.utc).timestamp()}_{len(self._metrics)}"
        self._metrics[timer_id] = {
            'operation': operation,
            'start_time': datetime.now(timezone.utc),
        }
        return timer_id

    def end_timer(self, timer_id: str, success: bool = True, **extra_data) -> Optional[float]:
        """End timing an operation, log the result and return its duration in ms."""
        metric = self._metrics.pop(timer_id, None)
        if metric is None:
            self.logger.warning(f"Timer {timer_id} not found")
            return None

        end_time = datetime.now(timezone.utc)
        duration_ms = round((end_time - metric['start_time']).total_seconds() * 1000, 2)

        self.logger.info(
            f"Operation completed: {metric['operation']}",
            extra={
                'operation': metric['operation'],
                'duration_ms': duration_ms,
                'success': success,
                'end_time': end_time.isoformat(),
                **extra_data
            }
        )
        return duration_ms


class PipelineLogger:
    """Structured events of the alert correlation pipeline."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def log_alert_received(self, alert_label: str, parcel_count: int, **extra_data) -> None:
        self.logger.info(
            f"Alert received: {alert_label}",
            extra={
                'event_type': 'alert_received',
                'alert_label': alert_label,
                'parcel_count': parcel_count,
                **extra_data
            }
        )

    def log_parcel_skipped(self, parcel_id: str, reason: str, **extra_data) -> None:
        """Parcel without a usable polygon; excluded from the scan."""
        self.logger.debug(
            f"Parcel {parcel_id} skipped: {reason}",
            extra={
                'event_type': 'parcel_skipped',
                'parcel_id': parcel_id,
                'reason': reason,
                **extra_data
            }
        )

    def log_orphaned_parcel(self, parcel_id: str, **extra_data) -> None:
        self.logger.warning(
            f"Parcel {parcel_id} intersects an alert but has no owner",
            extra={
                'event_type': 'orphaned_parcel',
                'parcel_id': parcel_id,
                **extra_data
            }
        )

    def log_notification_ineligible(self, user_id: str, reason: str, **extra_data) -> None:
        """User resolved but cannot be notified. Not a delivery failure."""
        self.logger.warning(
            f"User {user_id} not notifiable: {reason}",
            extra={
                'event_type': 'notification_ineligible',
                'user_id': user_id,
                'reason': reason,
                **extra_data
            }
        )

    def log_dispatch_accepted(self, user_id: str, **extra_data) -> None:
        self.logger.info(
            f"Notification accepted for user {user_id}",
            extra={
                'event_type': 'dispatch_accepted',
                'user_id': user_id,
                **extra_data
            }
        )

    def log_dispatch_failed(self, user_id: str, error: str, **extra_data) -> None:
        self.logger.error(
            f"Notification dispatch failed for user {user_id}: {error}",
            extra={
                'event_type': 'dispatch_failed',
                'user_id': user_id,
                'error': error,
                **extra_data
            }
        )

    def log_batch_completed(self, alert_count: int, notifications_sent: int, **extra_data) -> None:
        self.logger.info(
            f"Weather alert batch completed: {notifications_sent} notifications sent",
            extra={
                'event_type': 'batch_completed',
                'alert_count': alert_count,
                'notifications_sent': notifications_sent,
                **extra_data
            }
        )


def setup_logging(config: LoggingConfig) -> tuple[logging.Logger, PerformanceLogger, PipelineLogger]:
    """
    Setup enhanced logging for AgroAlert.

    Args:
        config: Logging configuration

    Returns:
        Tuple of (main_logger, performance_logger, pipeline_logger)
    """
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logger = logging.getLogger('agroalert')
    logger.setLevel(getattr(logging, config.level.upper()))
    logger.handlers.clear()

    if config.format == 'json':
        formatter = AgroAlertFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if config.file:
        file_path = Path(config.file)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            file_path,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    performance_logger = PerformanceLogger(logger)
    pipeline_logger = PipelineLogger(logger)

    logger.info("Logging system initialized", extra={
        'log_level': config.level,
        'log_format': config.format,
        'log_file': str(config.file) if config.file else None
    })

    return logger, performance_logger, pipeline_logger


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger bound under the agroalert namespace."""
    return structlog.get_logger(f'agroalert.{name}')
