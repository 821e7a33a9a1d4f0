from typing import Optional, Sequence

from PyQt6.QtCore import QObject, QTimer, pyqtSignal, pyqtSlot

from GRCoach.Core.Analytics.race_coach import RaceCoach
from GRCoach.Core.models import TelemetrySample


class CoachTicker(QObject):
    """
    Drives a RaceCoach from playback signals and a QTimer.

    Playback position changes tick the coach immediately. While playing, the
    timer keeps ticking so a throttled recomputation is never left pending.
    """

    scoreUpdated = pyqtSignal(object)     # ScoreSnapshot
    feedbackAdded = pyqtSignal(object)    # FeedbackEvent
    reportReady = pyqtSignal(object)      # ReportCard

    def __init__(self, coach: Optional[RaceCoach] = None, parent=None):
        super().__init__(parent)
        self.coach = coach or RaceCoach()
        self.frame_index = 0
        self.is_playing = False

        self.timer = QTimer(self)
        self.timer.setInterval(int(self.coach.settings.update_interval_ms))
        self.timer.timeout.connect(self.tick)

    @pyqtSlot(object)
    def set_telemetry_data(self, samples: Sequence[TelemetrySample]):
        self.coach.load(samples)
        self.frame_index = 0
        self.tick()

    @pyqtSlot(int)
    def update_from_playback(self, current_index: int):
        self.frame_index = current_index
        self.tick()

    @pyqtSlot(bool)
    def set_playing(self, playing: bool):
        self.is_playing = playing
        if playing:
            self.timer.start()
        else:
            self.timer.stop()
        self.tick()

    @pyqtSlot()
    def tick(self):
        latest = self.coach.latest_feedback
        reports = self.coach.reports_issued

        if self.coach.tick(self.frame_index, self.is_playing):
            self.scoreUpdated.emit(self.coach.score)
        if self.coach.latest_feedback is not None and self.coach.latest_feedback is not latest:
            self.feedbackAdded.emit(self.coach.latest_feedback)
        if self.coach.reports_issued != reports:
            self.reportReady.emit(self.coach.report_card)
