import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from GRCoach.Core.models import TelemetrySample  # noqa: E402

LONG_HEADER = "timestamp,vehicle_id,vehicle_number,lap,telemetry_name,telemetry_value\n"

BASE_LAT = 33.5300
BASE_LON = -86.6200


def long_rows(count: int, vehicle_id: str = 'GR86-004-78', with_gps: bool = True,
              extra: Optional[Dict[str, float]] = None) -> List[str]:
    """Long-format rows for `count` instants of one car moving north-east."""
    rows = []
    for i in range(count):
        ts = f"2025-04-04T18:10:{i // 10:02d}.{i % 10}00Z"
        prefix = f"{ts},{vehicle_id},78,1"
        if with_gps:
            rows.append(f"{prefix},VBOX_Lat_Min,{BASE_LAT + i * 0.0001}")
            rows.append(f"{prefix},VBOX_Long_Minutes,{BASE_LON + i * 0.0001}")
        rows.append(f"{prefix},Speed,{100 + i}")
        rows.append(f"{prefix},pbrake_f,0")
        for name, value in (extra or {}).items():
            rows.append(f"{prefix},{name},{value}")
    return rows


def write_long_csv(path: Path, rows: Iterable[str]) -> Path:
    path.write_text(LONG_HEADER + "\n".join(rows) + "\n")
    return path


@pytest.fixture
def long_csv(tmp_path):
    """Factory writing a long-format export into tmp_path."""
    def _write(count: int = 10, name: str = 'R1_barber_telemetry_data.csv', **kwargs) -> Path:
        return write_long_csv(tmp_path / name, long_rows(count, **kwargs))
    return _write


@pytest.fixture
def wide_csv(tmp_path):
    """Factory writing a wide (one sample per row) export into tmp_path."""
    def _write(count: int = 10, name: str = 'R1_barber_telemetry_wide.csv') -> Path:
        lines = ["timestamp,vehicle_id,lap,VBOX_Lat_Min,VBOX_Long_Minutes,Speed,accy_can"]
        for i in range(count):
            lines.append(f"t{i},GR86-002-2,3,{BASE_LAT + i * 0.0001},{BASE_LON},{80 + i},0.2")
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n")
        return path
    return _write


def make_sample(index: int = 0, **channels) -> TelemetrySample:
    values = dict(
        timestamp=str(index),
        vehicle_id='GR86-004-78',
        vehicle_number=78,
        lap=1,
        latitude=BASE_LAT,
        longitude=BASE_LON,
    )
    values.update(channels)
    return TelemetrySample(**values)


@pytest.fixture
def sample_factory():
    return make_sample


@pytest.fixture
def straight_line():
    """Sixty samples of steady cruising: no braking, no cornering."""
    return [make_sample(i, speed=120.0, throttle=80.0, steering_angle=0.0) for i in range(60)]
