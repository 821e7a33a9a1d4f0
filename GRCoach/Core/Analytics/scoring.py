"""
Windowed driving score, feedback rules and report card grading
"""

import math
from typing import Dict, List, Optional, Sequence

import numpy as np

from GRCoach.config import CoachSettings
from GRCoach.Core.models import (CornerInsight, FeedbackEvent, FrictionPoint, ReportCard,
                                 ScoreBreakdown, ScoreSnapshot, Severity, TelemetrySample)

GRADE_BREAKPOINTS = (
    (95, 'A+'),
    (90, 'A'),
    (85, 'A-'),
    (80, 'B+'),
    (75, 'B'),
    (70, 'B-'),
    (65, 'C+'),
    (60, 'C'),
    (50, 'D'),
)

IMPROVEMENT_HINTS = {
    'braking': 'Work on blending off the brakes as you turn in.',
    'throttle': 'Modulate the throttle. Roll on instead of stabbing.',
    'smoothness': 'Calm the hands. Aim for one clean steering arc per corner.',
}

BRAKING_MESSAGE = 'Try to trail brake deeper into the corner.'
THROTTLE_MESSAGE = 'Throttle application is spiky. Roll into the power.'
STEERING_MESSAGE = 'Hands are busy. Aim for smoother steering inputs.'
PRAISE_MESSAGE = 'Great rhythm through this sector!'


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _value(v: Optional[float]) -> float:
    return 0.0 if v is None else v


def throttle_input(sample: TelemetrySample) -> float:
    """Throttle blade if present, else pedal position, else 0."""
    if sample.throttle is not None:
        return sample.throttle
    return _value(sample.accelerator_position)


def score_window(samples: Sequence[TelemetrySample], frame_index: int,
                 size: int = 180) -> Sequence[TelemetrySample]:
    """Up to `size` samples ending at the cursor, clamped to the data."""
    if not samples:
        return samples[:0]
    frame_index = int(clamp(frame_index, 0, len(samples) - 1))
    start = max(0, frame_index - size + 1)
    return samples[start:frame_index + 1]


def braking_score(window: Sequence[TelemetrySample], settings: CoachSettings) -> float:
    lat_g = np.array([abs(_value(s.accel_lateral)) for s in window], dtype=float)
    brake = np.array([_value(s.brake_front) for s in window], dtype=float)

    braking = brake > settings.brake_threshold
    cornering = lat_g > settings.lateral_g_threshold
    total_braking = int(braking.sum())

    if total_braking:
        trail_frames = int((braking & cornering).sum())
        return clamp(trail_frames / total_braking * 100, settings.braking_floor, 100)
    if cornering.any():
        return settings.braking_no_brake_cornering
    return settings.braking_clean_straight


def throttle_score(window: Sequence[TelemetrySample], settings: CoachSettings) -> float:
    values = np.array([throttle_input(s) for s in window], dtype=float)
    changes = np.abs(np.diff(values))
    instability = changes.sum() / max(len(changes), 1)
    return clamp(100 - instability * settings.throttle_gain, settings.throttle_floor, 100)


def smoothness_score(window: Sequence[TelemetrySample], settings: CoachSettings) -> float:
    steering = np.array([_value(s.steering_angle) for s in window], dtype=float)
    variance = float(np.var(steering)) if len(steering) else 0.0
    return clamp(100 - variance * settings.smoothness_gain, settings.smoothness_floor, 100)


def compute_score(window: Sequence[TelemetrySample],
                  settings: Optional[CoachSettings] = None) -> ScoreSnapshot:
    """
    Score a window of samples.

    Braking rewards braking while cornering (trail braking), throttle rewards
    steady pedal changes, smoothness rewards low steering variance. Missing
    channels count as 0.
    """
    settings = settings or CoachSettings()
    breakdown = ScoreBreakdown(
        braking=round_half_up(braking_score(window, settings)),
        throttle=round_half_up(throttle_score(window, settings)),
        smoothness=round_half_up(smoothness_score(window, settings)),
    )
    w_brake, w_throttle, w_smooth = settings.weights
    overall = round_half_up(
        breakdown.braking * w_brake
        + breakdown.throttle * w_throttle
        + breakdown.smoothness * w_smooth
    )
    return ScoreSnapshot(overall=int(clamp(overall, 0, 100)), breakdown=breakdown)


def feedback_for(breakdown: ScoreBreakdown, frame_index: int,
                 settings: Optional[CoachSettings] = None,
                 corner_label: Optional[str] = None) -> Optional[FeedbackEvent]:
    """First matching coaching rule for a breakdown, or None."""
    settings = settings or CoachSettings()

    if breakdown.braking < settings.braking_feedback_below:
        suffix, severity, message = 'brake', Severity.WARNING, BRAKING_MESSAGE
    elif breakdown.throttle < settings.throttle_feedback_below:
        suffix, severity, message = 'throttle', Severity.WARNING, THROTTLE_MESSAGE
    elif breakdown.smoothness < settings.smoothness_feedback_below:
        suffix, severity, message = 'smooth', Severity.INFO, STEERING_MESSAGE
    elif min(breakdown.braking, breakdown.throttle, breakdown.smoothness) > settings.praise_above:
        suffix, severity, message = 'praise', Severity.INFO, PRAISE_MESSAGE
    else:
        return None

    return FeedbackEvent(
        id=f"fb-{frame_index}-{suffix}",
        frame_index=frame_index,
        severity=severity,
        message=message,
        corner_label=corner_label,
    )


def friction_point(sample: Optional[TelemetrySample], limit_g: float = 1.5) -> FrictionPoint:
    """Position on the G-G diagram and how much of the grip budget is used."""
    if sample is None:
        return FrictionPoint()
    lat_g = _value(sample.accel_lateral)
    long_g = _value(sample.accel_forward)
    utilization = min(math.sqrt(lat_g * lat_g + long_g * long_g) / limit_g, 1.0)
    return FrictionPoint(lat_g=lat_g, long_g=long_g, utilization=utilization)


def grade_from_score(score: int) -> str:
    for threshold, grade in GRADE_BREAKPOINTS:
        if score >= threshold:
            return grade
    return 'F'


def build_report(snapshot: ScoreSnapshot, corners: List[CornerInsight]) -> ReportCard:
    best_corner = None
    for corner in corners:
        if best_corner is None or corner.average_speed > best_corner.average_speed:
            best_corner = corner

    scores: Dict[str, int] = snapshot.breakdown.as_dict()
    weakest = min(scores, key=scores.get)

    return ReportCard(
        grade=grade_from_score(snapshot.overall),
        summary_text=f"Driving score {snapshot.overall}/100",
        breakdown=snapshot.breakdown,
        best_corner_label=best_corner.label if best_corner else None,
        improvement_hint=IMPROVEMENT_HINTS[weakest],
    )
