"""
Long-to-wide pivot: folds per-field rows into one builder per (timestamp, vehicle)
"""

import logging
from typing import Dict, Iterable, Optional

from GRCoach.Core.models import RawRecord, SampleBuilder, SampleKey

logger = logging.getLogger(__name__)

# Source telemetry_name -> TelemetrySample channel
FIELD_CHANNELS = {
    'VBOX_Lat_Min': 'latitude',
    'VBOX_Long_Minutes': 'longitude',
    'Speed': 'speed',
    'gear': 'gear',
    'nmot': 'rpm',
    'ath': 'throttle',
    'aps': 'accelerator_position',
    'pbrake_f': 'brake_front',
    'pbrake_r': 'brake_rear',
    'accx_can': 'accel_forward',
    'accy_can': 'accel_lateral',
    'Steering_Angle': 'steering_angle',
    'Laptrigger_lapdist_dls': 'lap_distance',
}

_CHANNELS_BY_LOWER_NAME = {name.lower(): channel for name, channel in FIELD_CHANNELS.items()}


def channel_for(field_name: str) -> Optional[str]:
    """Channel for a source field name, or None if the field is not tracked."""
    return _CHANNELS_BY_LOWER_NAME.get(str(field_name).lower())


class SamplePivot:
    """
    Accumulates RawRecords into SampleBuilders, keyed by SampleKey.

    The number of distinct keys is capped. Once the cap is reached, a record that
    would open a new key is refused and the pivot reports itself as capped.
    Records for keys already open are still applied.
    """

    def __init__(self, max_samples: int = 50_000):
        self.max_samples = max_samples
        self.builders: Dict[SampleKey, SampleBuilder] = {}
        self.records_seen = 0
        self.capped = False

    def add(self, record: RawRecord) -> bool:
        """
        Route one record into its builder.

        Returns:
            False if the record was refused because the key budget is spent
        """
        key = SampleKey(record.timestamp_key, record.vehicle_id)
        builder = self.builders.get(key)
        if builder is None:
            if len(self.builders) >= self.max_samples:
                self.capped = True
                return False
            builder = SampleBuilder(
                timestamp=record.timestamp_key,
                vehicle_id=record.vehicle_id,
                vehicle_number=record.vehicle_number,
                lap=record.lap,
            )
            self.builders[key] = builder

        self.records_seen += 1
        channel = channel_for(record.field_name)
        if channel is not None:
            builder.channels[channel] = record.field_value
        return True


def pivot_records(records: Iterable[RawRecord], max_samples: int = 50_000) -> SamplePivot:
    """
    Pivot a record stream, stopping early when the sample budget is reached.

    If the stream has a close() method it is called on early stop so the
    underlying reader discards the rest of the input.
    """
    pivot = SamplePivot(max_samples)
    iterator = iter(records)
    for record in iterator:
        if not pivot.add(record):
            logger.info("Sample budget of %d reached, discarding remaining input", max_samples)
            close = getattr(records, 'close', None) or getattr(iterator, 'close', None)
            if close is not None:
                close()
            break
    return pivot
