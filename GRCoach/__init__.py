"""
GR Coach: telemetry ingestion and live driving analytics for GR Cup data
"""

__version__ = "0.1.0"
