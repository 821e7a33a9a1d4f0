"""
Corner segmentation over a full session
"""

from typing import List, Optional, Sequence

import numpy as np
from scipy.ndimage import label

from GRCoach.config import CoachSettings
from GRCoach.Core.models import CornerInsight, TelemetrySample
from GRCoach.Core.Analytics.scoring import throttle_input


def analyze_corners(samples: Sequence[TelemetrySample],
                    settings: Optional[CoachSettings] = None) -> List[CornerInsight]:
    """
    Split the session into corners: contiguous runs where |lateral G| is above
    the cornering threshold. Corner ids start at 1 in session order.
    """
    settings = settings or CoachSettings()
    if not samples:
        return []

    lat_g = np.array([abs(s.accel_lateral or 0.0) for s in samples], dtype=float)
    runs, count = label(lat_g > settings.lateral_g_threshold)

    corners = []
    for corner_id in range(1, count + 1):
        frames = np.flatnonzero(runs == corner_id)
        start, end = int(frames[0]), int(frames[-1])
        corners.append(_build_corner(corner_id, samples[start:end + 1], start, end, settings))
    return corners


def _build_corner(corner_id: int, frames: Sequence[TelemetrySample], start: int, end: int,
                  settings: CoachSettings) -> CornerInsight:
    speeds = np.array([s.speed or 0.0 for s in frames], dtype=float)
    brake = np.array([s.brake_front or 0.0 for s in frames], dtype=float)
    lat_g = np.array([abs(s.accel_lateral or 0.0) for s in frames], dtype=float)

    braking = brake > settings.brake_threshold
    brake_samples = int(braking.sum())
    trail_samples = int((braking & (lat_g > settings.lateral_g_threshold)).sum())
    trail_ratio = trail_samples / brake_samples if brake_samples else 0.0

    throttle = np.array([throttle_input(s) for s in frames], dtype=float)
    changes = np.abs(np.diff(throttle))
    if len(changes):
        smoothness = 100 - min(changes.mean() * settings.corner_throttle_gain, 100)
    else:
        smoothness = 100.0

    return CornerInsight(
        id=corner_id,
        start_frame=start,
        end_frame=end,
        average_speed=float(speeds.mean()),
        trail_brake_ratio=trail_ratio,
        throttle_smoothness=float(smoothness),
    )


def corner_at(corners: Sequence[CornerInsight], frame_index: int) -> Optional[CornerInsight]:
    for corner in corners:
        if corner.contains(frame_index):
            return corner
    return None
