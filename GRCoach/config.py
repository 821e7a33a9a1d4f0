"""
Tunable constants for ingestion and coaching, with optional YAML overrides.

The scoring constants were chosen empirically. They are kept here so they can be
tuned without touching the algorithms.
"""

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml


@dataclass(frozen=True)
class IngestionSettings:
    max_samples: int = 50_000
    preview_bytes: int = 512 * 1024
    preview_rows: int = 500
    chunk_size: int = 100_000  # rows per pandas chunk
    filename_marker: str = 'telemetry'
    meters_per_degree: float = 111_000.0


@dataclass(frozen=True)
class CoachSettings:
    update_interval_ms: float = 120.0
    window_size: int = 180
    lateral_g_threshold: float = 0.5
    brake_threshold: float = 5.0

    # braking
    braking_floor: float = 25.0
    braking_no_brake_cornering: float = 55.0
    braking_clean_straight: float = 80.0
    # throttle
    throttle_gain: float = 1.5
    throttle_floor: float = 20.0
    # smoothness
    smoothness_gain: float = 0.2
    smoothness_floor: float = 15.0

    weights: Tuple[float, float, float] = (0.35, 0.35, 0.30)  # braking, throttle, smoothness

    braking_feedback_below: int = 60
    throttle_feedback_below: int = 60
    smoothness_feedback_below: int = 55
    praise_above: int = 85

    feed_size: int = 5
    report_end_margin: int = 2
    friction_limit_g: float = 1.5
    corner_throttle_gain: float = 1.2


@dataclass(frozen=True)
class Settings:
    ingestion: IngestionSettings = field(default_factory=IngestionSettings)
    coach: CoachSettings = field(default_factory=CoachSettings)


def _apply_section(defaults, raw: Optional[Dict[str, Any]], section: str):
    if not raw:
        return defaults
    if not isinstance(raw, dict):
        raise ValueError(f"Section '{section}' must be a mapping")

    known = {f.name: f for f in fields(defaults)}
    unknown = set(raw) - set(known)
    if unknown:
        raise ValueError(f"Unknown {section} settings: {sorted(unknown)}")

    overrides = {}
    for key, value in raw.items():
        current = getattr(defaults, key)
        try:
            if isinstance(current, tuple):
                value = tuple(float(v) for v in value)
                if len(value) != len(current):
                    raise ValueError(f"expected {len(current)} values, got {len(value)}")
                overrides[key] = value
            else:
                overrides[key] = type(current)(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid {section} setting '{key}': {e}") from e
    return replace(defaults, **overrides)


def load_settings(path: Optional[Path] = None) -> Settings:
    """
    Load settings from a YAML file with optional `ingestion` and `coach` sections.

    Args:
        path: YAML file, or None for the built-in defaults

    Returns:
        Settings with the file's overrides applied
    """
    if path is None:
        return Settings()

    try:
        raw = yaml.safe_load(Path(path).read_text())
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid settings file: {path}: {e}") from e
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid settings file: {path}")

    unknown = set(raw) - {'ingestion', 'coach'}
    if unknown:
        raise ValueError(f"Unknown settings sections: {sorted(unknown)}")

    return Settings(
        ingestion=_apply_section(IngestionSettings(), raw.get('ingestion'), 'ingestion'),
        coach=_apply_section(CoachSettings(), raw.get('coach'), 'coach'),
    )
