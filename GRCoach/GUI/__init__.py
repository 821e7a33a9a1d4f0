"""Qt bridge: background loading and timer-driven coaching for a PyQt6 host"""
from .TelemetryLoadWorker import TelemetryLoadWorker
from .CoachTicker import CoachTicker

__all__ = ['TelemetryLoadWorker', 'CoachTicker']
