"""
API clients for external services.
"""

from .alert_client import AlertFeedClient, AlertFeedError, load_alert_collection

__all__ = ["AlertFeedClient", "AlertFeedError", "load_alert_collection"]
