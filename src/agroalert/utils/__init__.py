"""
Utilities for AgroAlert.
"""

from .logging import setup_logging, get_logger, PerformanceLogger, PipelineLogger

__all__ = [
    "setup_logging",
    "get_logger",
    "PerformanceLogger",
    "PipelineLogger",
]
