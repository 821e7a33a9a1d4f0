"""
GR Coach command line: load a telemetry export, replay it through the coach
and print the report card.
"""

import argparse
import logging
import sys

from GRCoach.config import load_settings
from GRCoach.Core.errors import TelemetryLoadError
from GRCoach.Core.race_store import RaceStore
from GRCoach.Core.Analytics import RaceCoach, session_stats
from GRCoach.Core.TelemetryEngine import TelemetryLoader

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Replay GR Cup telemetry and grade the driving")
    parser.add_argument('telemetry', help="Path to a *_telemetry_data.csv export")
    parser.add_argument('--config', default=None, help="YAML file overriding ingestion/coach settings")
    parser.add_argument('--verbose', '-v', action='store_true', help="Debug logging")
    return parser.parse_args(argv)


def replay(store: RaceStore):
    """Play the whole session through the store, one frame at a time, then stop."""
    store.set_is_playing(True)
    for index in range(len(store.telemetry_data)):
        store.set_current_frame_index(index)
    store.set_is_playing(False)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='[%(levelname)s] %(message)s',
    )

    try:
        settings = load_settings(args.config)
    except (OSError, ValueError) as e:
        print(f"Invalid settings: {e}")
        return 1

    store = RaceStore()
    loader = TelemetryLoader(settings.ingestion, store=store)
    # Replay time: one update interval per frame, so every frame is scored
    interval = settings.coach.update_interval_ms
    coach = RaceCoach(settings.coach, clock=lambda: store.current_frame_index * interval)
    coach.bind(store)

    try:
        samples = loader.load_file(args.telemetry)
    except TelemetryLoadError as e:
        print(e)
        return 1
    except OSError as e:
        print(f"Unable to read telemetry file: {e}")
        return 1

    replay(store)
    coach.unbind()

    stats = session_stats(samples)
    report = coach.report_card

    print("=" * 60)
    print(f"Samples:        {stats.sample_count}" + (" (capped)" if loader.capped else ""))
    print(f"Top speed:      {stats.top_speed:.1f}")
    print(f"Average speed:  {stats.average_speed:.1f}")
    print(f"Max lateral G:  {stats.max_lateral_g:.2f}")
    print(f"Coasting:       {stats.coasting_pct:.1f}%")
    print(f"Brake bias:     {stats.brake_bias:.1f}% front")
    print(f"Corners:        {len(coach.corner_insights)}")
    print("=" * 60)
    if report is not None:
        print(f"Grade: {report.grade}  ({report.summary_text})")
        for name, value in report.breakdown.as_dict().items():
            print(f"  {name:<11} {value}")
        if report.best_corner_label:
            print(f"Best corner: {report.best_corner_label}")
        if report.improvement_hint:
            print(f"Next step: {report.improvement_hint}")
    for event in coach.feedback_events:
        print(f"- [{event.severity.value}] {event.message}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
