"""
Live driving coach: throttled scoring, feedback feed and end-of-session report
"""

import logging
import time
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from GRCoach.config import CoachSettings
from GRCoach.Core.models import (CornerInsight, FeedbackEvent, FrictionPoint, ReportCard,
                                 ScoreSnapshot, TelemetrySample)
from GRCoach.Core.race_store import RaceStore
from GRCoach.Core.Analytics.corners import analyze_corners, corner_at
from GRCoach.Core.Analytics.scoring import (build_report, compute_score, feedback_for,
                                            friction_point, score_window)

logger = logging.getLogger(__name__)


class CoachState(Enum):
    IDLE = 'idle'
    SCORING = 'scoring'
    REPORTED = 'reported'


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class RaceCoach:
    """
    Scores the driving around the playback cursor and coaches on it.

    The caller owns the tick source: call tick() whenever the cursor or the
    playing flag changes (or on a timer). Recomputation is throttled to
    settings.update_interval_ms; stop and end-of-data detection runs on every tick.

    A report card is produced once per stop event (playing -> stopped) or end
    event (cursor arrives within report_end_margin samples of the end). Moving
    the cursor away from the report frame, or resuming playback, re-arms it.
    """

    def __init__(self, settings: Optional[CoachSettings] = None,
                 clock: Optional[Callable[[], float]] = None):
        """
        Args:
            settings: Scoring constants
            clock: Milliseconds source used when tick() gets no timestamp
        """
        self.settings = settings or CoachSettings()
        self._clock = clock or _monotonic_ms
        self._unbind: Optional[Callable[[], None]] = None
        self.load(())

    # ------------------------------------------------------------------ state

    def load(self, samples: Sequence[TelemetrySample]):
        """Start a new session over `samples`; clears score, feed and report."""
        self._samples: Tuple[TelemetrySample, ...] = tuple(samples)
        self._corners = analyze_corners(self._samples, self.settings)
        self._state = CoachState.SCORING if self._samples else CoachState.IDLE

        self._score: Optional[ScoreSnapshot] = None
        self._feedback: List[FeedbackEvent] = []
        self._latest_feedback: Optional[FeedbackEvent] = None
        self._last_message: Optional[str] = None
        self._report: Optional[ReportCard] = None
        self._report_visible = False
        self._report_frame: Optional[int] = None
        self.reports_issued = 0

        self._frame_index = 0
        self._last_update_ms: Optional[float] = None
        self._was_playing = False
        self._was_at_end = False

        if self._samples:
            logger.info("Coach loaded %d samples, %d corners", len(self._samples), len(self._corners))

    @property
    def state(self) -> CoachState:
        return self._state

    @property
    def samples(self) -> Tuple[TelemetrySample, ...]:
        return self._samples

    @property
    def score(self) -> Optional[ScoreSnapshot]:
        return self._score

    @property
    def feedback_events(self) -> List[FeedbackEvent]:
        """Most recent distinct feedback, newest first."""
        return list(self._feedback)

    @property
    def latest_feedback(self) -> Optional[FeedbackEvent]:
        return self._latest_feedback

    @property
    def report_card(self) -> Optional[ReportCard]:
        return self._report

    @property
    def report_visible(self) -> bool:
        return self._report_visible

    @property
    def corner_insights(self) -> List[CornerInsight]:
        return list(self._corners)

    def dismiss_report(self):
        self._report_visible = False

    def friction_point(self, frame_index: Optional[int] = None) -> FrictionPoint:
        """G-G point for a frame (default: the current cursor)."""
        index = self._frame_index if frame_index is None else frame_index
        if not 0 <= index < len(self._samples):
            return friction_point(None, self.settings.friction_limit_g)
        return friction_point(self._samples[index], self.settings.friction_limit_g)

    # ------------------------------------------------------------------ ticks

    def tick(self, frame_index: int, is_playing: bool, now_ms: Optional[float] = None) -> bool:
        """
        Advance the coach to a cursor position.

        Args:
            frame_index: Current sample index
            is_playing: Whether playback is running
            now_ms: Current time in milliseconds (default: the coach's clock)

        Returns:
            True if the score was recomputed on this tick
        """
        if not self._samples:
            self._was_playing = is_playing
            return False

        frame_index = max(0, min(int(frame_index), len(self._samples) - 1))
        self._frame_index = frame_index

        now = self._clock() if now_ms is None else now_ms
        recomputed = False
        if self._last_update_ms is None or now - self._last_update_ms >= self.settings.update_interval_ms:
            self._last_update_ms = now
            self._recompute(frame_index)
            recomputed = True

        at_end = frame_index >= len(self._samples) - self.settings.report_end_margin
        stopped = self._was_playing and not is_playing
        reached_end = at_end and not self._was_at_end
        self._was_playing = is_playing
        self._was_at_end = at_end

        if (stopped or reached_end) and self._state is not CoachState.REPORTED:
            self._issue_report(frame_index)
        elif self._state is CoachState.REPORTED and not at_end:
            if is_playing or frame_index != self._report_frame:
                self._state = CoachState.SCORING

        return recomputed

    def _recompute(self, frame_index: int):
        window = score_window(self._samples, frame_index, self.settings.window_size)
        self._score = compute_score(window, self.settings)

        corner = corner_at(self._corners, frame_index)
        event = feedback_for(self._score.breakdown, frame_index, self.settings,
                             corner.label if corner else None)
        if event is None or event.message == self._last_message:
            return

        self._last_message = event.message
        self._latest_feedback = event
        self._feedback = [event] + self._feedback[:self.settings.feed_size - 1]
        logger.debug("Feedback at frame %d: %s", frame_index, event.message)

    def _issue_report(self, frame_index: int):
        if self._score is None:
            window = score_window(self._samples, frame_index, self.settings.window_size)
            self._score = compute_score(window, self.settings)

        self._report = build_report(self._score, self._corners)
        self._report_visible = True
        self._report_frame = frame_index
        self._state = CoachState.REPORTED
        self.reports_issued += 1
        logger.info("Report card: %s (%s)", self._report.grade, self._report.summary_text)

    # ------------------------------------------------------------------ store

    def bind(self, store: RaceStore) -> Callable[[], None]:
        """
        Follow a RaceStore: reload on new telemetry, tick on cursor changes.
        Binding again replaces the previous store.
        """
        self.unbind()

        def on_change(s: RaceStore):
            if s.telemetry_data is not self._samples:
                self.load(s.telemetry_data)
            self.tick(s.current_frame_index, s.is_playing)

        self._unbind = store.subscribe(on_change)
        on_change(store)
        return self.unbind

    def unbind(self):
        if self._unbind is not None:
            self._unbind()
            self._unbind = None
