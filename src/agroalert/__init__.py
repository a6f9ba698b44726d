"""
AgroAlert - weather-alert correlation and notification fan-out for land parcels.
"""

__version__ = "1.0.0"
