"""Driving analytics: live score, coaching feedback and report card"""
from .race_coach import RaceCoach, CoachState
from .scoring import compute_score, feedback_for, friction_point, build_report, score_window
from .corners import analyze_corners
from .session_stats import session_stats

__all__ = [
    'RaceCoach', 'CoachState', 'compute_score', 'feedback_for', 'friction_point',
    'build_report', 'score_window', 'analyze_corners', 'session_stats',
]
