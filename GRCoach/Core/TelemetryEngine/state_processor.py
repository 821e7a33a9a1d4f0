"""
State processor: turns pivoted builders into TelemetrySamples in the local frame
"""

import logging
import math
from dataclasses import asdict, fields, replace
from typing import Iterable, List, Optional

import numpy as np
import pandas as pd

from GRCoach.Core.models import SampleBuilder, TelemetrySample

logger = logging.getLogger(__name__)

METERS_PER_DEGREE = 111_000.0

_OPTIONAL_CHANNELS = (
    'speed', 'gear', 'rpm', 'throttle', 'accelerator_position', 'brake_front',
    'brake_rear', 'accel_forward', 'accel_lateral', 'steering_angle', 'lap_distance',
)


def _safe_int(value, default=0):
    """Safely convert value to int, handling blanks and junk."""
    try:
        if value is None or pd.isna(value):
            return default
        return int(float(value))
    except (ValueError, TypeError, OverflowError):
        return default


def _finite_or_none(value) -> Optional[float]:
    if value is None:
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def materialize_samples(builders: Iterable[SampleBuilder]) -> List[TelemetrySample]:
    """
    Emit one TelemetrySample per builder that carries a usable GPS fix.

    Builders missing latitude or longitude, or carrying non-finite values, are
    dropped. Non-finite channel values are stored as missing.
    """
    samples = []
    dropped = 0
    for builder in builders:
        lat = _finite_or_none(builder.channels.get('latitude'))
        lon = _finite_or_none(builder.channels.get('longitude'))
        if lat is None or lon is None:
            dropped += 1
            continue

        channels = {name: _finite_or_none(builder.channels.get(name)) for name in _OPTIONAL_CHANNELS}
        samples.append(TelemetrySample(
            timestamp=builder.timestamp,
            vehicle_id=builder.vehicle_id,
            vehicle_number=_safe_int(builder.vehicle_number),
            lap=_safe_int(builder.lap),
            latitude=lat,
            longitude=lon,
            **channels,
        ))

    if dropped:
        logger.debug("Dropped %d samples without GPS", dropped)
    return samples


def normalize_coordinates(samples: List[TelemetrySample],
                          meters_per_degree: float = METERS_PER_DEGREE) -> List[TelemetrySample]:
    """
    Project lat/lon into a flat local frame with the first sample at the origin.

    Equirectangular small-angle approximation, good over one circuit:
        z = (lat - lat0) * meters_per_degree
        x = (lon - lon0) * meters_per_degree * cos(lat0)

    Args:
        samples: Samples in source order
        meters_per_degree: Length of one degree of latitude

    Returns:
        New samples with x (east-west) and z (north-south) filled in, y = 0
    """
    if not samples:
        return []

    lat = np.array([s.latitude for s in samples], dtype=float)
    lon = np.array([s.longitude for s in samples], dtype=float)
    ref_lat, ref_lon = lat[0], lon[0]

    z = (lat - ref_lat) * meters_per_degree
    x = (lon - ref_lon) * meters_per_degree * math.cos(math.radians(ref_lat))

    normalized = [
        replace(sample, x=float(xi), z=float(zi), y=0.0)
        for sample, xi, zi in zip(samples, x, z)
    ]
    logger.info("Geo reference set to %s, %s (%d samples)", ref_lat, ref_lon, len(normalized))
    return normalized


def samples_to_frame(samples: List[TelemetrySample]) -> pd.DataFrame:
    """One row per sample, one column per field; for chart and table consumers."""
    if not samples:
        return pd.DataFrame(columns=[f.name for f in fields(TelemetrySample)])
    return pd.DataFrame([asdict(s) for s in samples])
