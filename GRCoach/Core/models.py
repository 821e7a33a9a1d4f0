"""
Data model shared by the ingestion pipeline and the driving analytics engine
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, NamedTuple, Optional


@dataclass(frozen=True)
class RawRecord:
    """One row of the long-format log: a single named field for one instant"""
    timestamp_key: str
    vehicle_id: str
    vehicle_number: str
    lap: str
    field_name: str
    field_value: float


class SampleKey(NamedTuple):
    """Composite pivot key. Rows sharing it belong to the same sample."""
    timestamp_key: str
    vehicle_id: str


@dataclass
class SampleBuilder:
    """Mutable accumulator for all fields seen under one SampleKey"""
    timestamp: str
    vehicle_id: str
    vehicle_number: str = '0'
    lap: str = '0'
    channels: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class TelemetrySample:
    """Dense per-instant record with GPS projected into the local frame"""
    timestamp: str
    vehicle_id: str
    vehicle_number: int
    lap: int
    latitude: float
    longitude: float
    x: float = 0.0  # east-west, meters from origin
    z: float = 0.0  # north-south, meters from origin
    y: float = 0.0  # elevation, not supplied by the source
    speed: Optional[float] = None
    gear: Optional[float] = None
    rpm: Optional[float] = None
    throttle: Optional[float] = None
    accelerator_position: Optional[float] = None
    brake_front: Optional[float] = None
    brake_rear: Optional[float] = None
    accel_forward: Optional[float] = None
    accel_lateral: Optional[float] = None
    steering_angle: Optional[float] = None
    lap_distance: Optional[float] = None


@dataclass(frozen=True)
class ScoreBreakdown:
    braking: int
    throttle: int
    smoothness: int

    def as_dict(self) -> Dict[str, int]:
        return {
            'braking': self.braking,
            'throttle': self.throttle,
            'smoothness': self.smoothness,
        }


@dataclass(frozen=True)
class ScoreSnapshot:
    overall: int
    breakdown: ScoreBreakdown


class Severity(str, Enum):
    INFO = 'info'
    WARNING = 'warning'
    CRITICAL = 'critical'


@dataclass(frozen=True)
class FeedbackEvent:
    id: str
    frame_index: int
    severity: Severity
    message: str
    corner_label: Optional[str] = None


@dataclass(frozen=True)
class CornerInsight:
    """A contiguous run of samples above the cornering threshold"""
    id: int
    start_frame: int
    end_frame: int
    average_speed: float
    trail_brake_ratio: float
    throttle_smoothness: float

    @property
    def label(self) -> str:
        return f"Corner {self.id}"

    def contains(self, frame_index: int) -> bool:
        return self.start_frame <= frame_index <= self.end_frame


@dataclass(frozen=True)
class FrictionPoint:
    lat_g: float = 0.0
    long_g: float = 0.0
    utilization: float = 0.0


@dataclass(frozen=True)
class ReportCard:
    grade: str
    summary_text: str
    breakdown: ScoreBreakdown
    best_corner_label: Optional[str] = None
    improvement_hint: Optional[str] = None


@dataclass(frozen=True)
class SessionStats:
    sample_count: int
    top_speed: float
    average_speed: float
    max_lateral_g: float
    peak_brake: float
    coasting_pct: float
    brake_bias: float
    distance: float
