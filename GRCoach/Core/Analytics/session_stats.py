"""
Whole-session statistics for the report summary
"""

from typing import Sequence

import numpy as np

from GRCoach.Core.models import SessionStats, TelemetrySample


def _column(samples, name):
    return np.array([getattr(s, name) if getattr(s, name) is not None else np.nan
                     for s in samples], dtype=float)


def _nanmax(values, default=0.0):
    return float(np.nanmax(values)) if np.isfinite(values).any() else default


def session_stats(samples: Sequence[TelemetrySample]) -> SessionStats:
    """Calculate session statistics"""
    if not samples:
        return SessionStats(0, 0.0, 0.0, 0.0, 0.0, 0.0, 50.0, 0.0)

    speed = _column(samples, 'speed')
    lat_g = np.abs(_column(samples, 'accel_lateral'))
    brake_f = _column(samples, 'brake_front')
    brake_r = _column(samples, 'brake_rear')
    pedal = _column(samples, 'accelerator_position')
    lap_dist = _column(samples, 'lap_distance')

    # Coasting: off the throttle and off the brakes
    coasting = (np.nan_to_num(pedal) < 5) & (np.nan_to_num(brake_f) < 1)
    coasting_pct = float(coasting.sum()) / len(samples) * 100

    # Brake bias only when braking hard
    hard = np.nan_to_num(brake_f) > 10
    brake_bias = 50.0
    if hard.any():
        front = np.nan_to_num(brake_f[hard])
        total = front + np.nan_to_num(brake_r[hard])
        with np.errstate(divide='ignore', invalid='ignore'):
            bias = np.nanmean(np.where(total > 0, front / total * 100, np.nan))
        if np.isfinite(bias):
            brake_bias = float(bias)

    distance = 0.0
    if np.isfinite(lap_dist).any():
        distance = float(np.nanmax(lap_dist) - np.nanmin(lap_dist))

    return SessionStats(
        sample_count=len(samples),
        top_speed=_nanmax(speed),
        average_speed=float(np.nanmean(speed)) if np.isfinite(speed).any() else 0.0,
        max_lateral_g=_nanmax(lat_g),
        peak_brake=_nanmax(brake_f),
        coasting_pct=coasting_pct,
        brake_bias=brake_bias,
        distance=distance,
    )
