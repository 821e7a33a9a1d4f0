import pytest

from GRCoach.config import CoachSettings
from GRCoach.Core.models import CornerInsight, ScoreBreakdown, ScoreSnapshot, Severity
from GRCoach.Core.Analytics import build_report, compute_score, feedback_for, friction_point, score_window
from GRCoach.Core.Analytics.scoring import (BRAKING_MESSAGE, PRAISE_MESSAGE, STEERING_MESSAGE,
                                            THROTTLE_MESSAGE, grade_from_score, round_half_up)

from tests.conftest import make_sample


def test_clean_straight(straight_line):
    snapshot = compute_score(straight_line)

    assert snapshot.breakdown == ScoreBreakdown(braking=80, throttle=100, smoothness=100)
    # 80 * 0.35 + 100 * 0.35 + 100 * 0.30
    assert snapshot.overall == 93


def test_trail_braking_ratio():
    window = [make_sample(i, brake_front=20.0, accel_lateral=0.8 if i < 6 else 0.0)
              for i in range(10)]

    assert compute_score(window).breakdown.braking == 60


def test_braking_floor():
    window = [make_sample(i, brake_front=30.0, accel_lateral=0.0) for i in range(10)]

    assert compute_score(window).breakdown.braking == 25


def test_cornering_without_braking():
    window = [make_sample(i, accel_lateral=-1.1) for i in range(10)]

    assert compute_score(window).breakdown.braking == 55


def test_throttle_steady_ramp():
    window = [make_sample(i, throttle=float(i * 10)) for i in range(10)]

    assert compute_score(window).breakdown.throttle == 85


def test_throttle_stabbing_hits_floor():
    window = [make_sample(i, throttle=0.0 if i % 2 else 100.0) for i in range(10)]

    assert compute_score(window).breakdown.throttle == 20


def test_throttle_falls_back_to_pedal_position():
    window = [make_sample(i, accelerator_position=float(i * 10)) for i in range(10)]

    assert compute_score(window).breakdown.throttle == 85


def test_steering_variance():
    window = [make_sample(i, steering_angle=10.0 if i % 2 else -10.0) for i in range(10)]

    # variance 100 -> 100 - 100 * 0.2
    assert compute_score(window).breakdown.smoothness == 80


def test_missing_channels_count_as_zero():
    snapshot = compute_score([make_sample(i) for i in range(5)])

    assert snapshot.breakdown == ScoreBreakdown(braking=80, throttle=100, smoothness=100)


def test_empty_window():
    assert compute_score([]).overall == 93


def test_custom_weights(straight_line):
    settings = CoachSettings(weights=(1.0, 0.0, 0.0))

    assert compute_score(straight_line, settings).overall == 80


def test_round_half_up():
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(92.49) == 92


def test_score_window_bounds():
    samples = [make_sample(i) for i in range(300)]

    window = score_window(samples, 250)
    assert len(window) == 180
    assert window[0].timestamp == '71'
    assert window[-1].timestamp == '250'

    assert len(score_window(samples, 10)) == 11
    assert score_window(samples, 999)[-1].timestamp == '299'
    assert len(score_window([], 5)) == 0


@pytest.mark.parametrize('breakdown, suffix, message, severity', [
    (ScoreBreakdown(50, 50, 50), 'brake', BRAKING_MESSAGE, Severity.WARNING),
    (ScoreBreakdown(70, 50, 40), 'throttle', THROTTLE_MESSAGE, Severity.WARNING),
    (ScoreBreakdown(70, 70, 40), 'smooth', STEERING_MESSAGE, Severity.INFO),
    (ScoreBreakdown(90, 90, 90), 'praise', PRAISE_MESSAGE, Severity.INFO),
])
def test_feedback_rules(breakdown, suffix, message, severity):
    event = feedback_for(breakdown, 42, corner_label='Corner 3')

    assert event.id == f"fb-42-{suffix}"
    assert event.frame_index == 42
    assert event.message == message
    assert event.severity is severity
    assert event.corner_label == 'Corner 3'


def test_no_feedback_in_the_middle():
    assert feedback_for(ScoreBreakdown(70, 70, 70), 1) is None
    assert feedback_for(ScoreBreakdown(86, 86, 85), 1) is None


@pytest.mark.parametrize('score, grade', [
    (100, 'A+'), (95, 'A+'), (94, 'A'), (90, 'A'), (89, 'A-'), (80, 'B+'),
    (75, 'B'), (70, 'B-'), (65, 'C+'), (60, 'C'), (59, 'D'), (50, 'D'), (49, 'F'), (0, 'F'),
])
def test_grades(score, grade):
    assert grade_from_score(score) == grade


def corner(corner_id, speed):
    return CornerInsight(corner_id, corner_id * 10, corner_id * 10 + 5, speed, 0.0, 100.0)


def test_report_card():
    snapshot = ScoreSnapshot(overall=93, breakdown=ScoreBreakdown(80, 100, 70))
    report = build_report(snapshot, [corner(1, 100.0), corner(2, 150.0), corner(3, 150.0)])

    assert report.grade == 'A'
    assert report.summary_text == "Driving score 93/100"
    assert report.best_corner_label == 'Corner 2'
    assert report.improvement_hint == 'Calm the hands. Aim for one clean steering arc per corner.'


def test_report_card_without_corners():
    snapshot = ScoreSnapshot(overall=40, breakdown=ScoreBreakdown(40, 40, 90))
    report = build_report(snapshot, [])

    assert report.grade == 'F'
    assert report.best_corner_label is None
    assert report.improvement_hint == 'Work on blending off the brakes as you turn in.'


def test_friction_point():
    point = friction_point(make_sample(accel_lateral=0.3, accel_forward=0.4))

    assert point.lat_g == 0.3
    assert point.long_g == 0.4
    assert point.utilization == pytest.approx(0.5 / 1.5)
    assert friction_point(make_sample(accel_lateral=1.8, accel_forward=-1.2)).utilization == 1.0
    assert friction_point(None).utilization == 0.0
