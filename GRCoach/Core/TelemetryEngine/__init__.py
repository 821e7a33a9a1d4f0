"""
Telemetry Engine for GR Cup racing data
"""

from .telemetry_loader import TelemetryLoader, FilePreview, validate_preview
from .record_stream import RecordStream
from .pivot import FIELD_CHANNELS, SamplePivot, pivot_records
from .state_processor import materialize_samples, normalize_coordinates, samples_to_frame

__all__ = [
    'TelemetryLoader', 'FilePreview', 'validate_preview', 'RecordStream',
    'FIELD_CHANNELS', 'SamplePivot', 'pivot_records',
    'materialize_samples', 'normalize_coordinates', 'samples_to_frame',
]
