import pytest

QtCore = pytest.importorskip("PyQt6.QtCore")

from GRCoach.config import IngestionSettings  # noqa: E402
from GRCoach.Core.race_store import RaceStore  # noqa: E402
from GRCoach.GUI import CoachTicker, TelemetryLoadWorker  # noqa: E402


@pytest.fixture(scope="module")
def qt_app():
    app = QtCore.QCoreApplication.instance() or QtCore.QCoreApplication([])
    yield app


def test_worker_publishes_on_success(qt_app, long_csv):
    store = RaceStore()
    worker = TelemetryLoadWorker(store=store)
    loaded, failed = [], []
    worker.telemetryLoaded.connect(loaded.append)
    worker.loadFailed.connect(failed.append)

    worker.load(str(long_csv(5)), blocking=True)

    assert failed == []
    assert len(loaded) == 1 and len(loaded[0]) == 5
    assert store.telemetry_data == loaded[0]
    assert not worker.is_loading


def test_worker_reports_failure(qt_app, tmp_path):
    store = RaceStore()
    worker = TelemetryLoadWorker(store=store)
    failed = []
    worker.loadFailed.connect(failed.append)

    worker.load(str(tmp_path / 'results.csv'), blocking=True)

    assert failed == ["Invalid File. Please look for a file ending in '_telemetry_data.csv'"]
    assert store.telemetry_data == ()


def test_worker_reports_missing_file(qt_app, tmp_path):
    worker = TelemetryLoadWorker()
    failed = []
    worker.loadFailed.connect(failed.append)

    worker.load(str(tmp_path / 'missing_telemetry_data.csv'), blocking=True)

    assert len(failed) == 1
    assert failed[0].startswith("Unable to read telemetry file")


def test_background_load(qt_app, long_csv):
    worker = TelemetryLoadWorker()
    loaded = []
    worker.telemetryLoaded.connect(loaded.append)

    worker.load(str(long_csv(5)))
    worker.wait()
    qt_app.processEvents()

    assert len(loaded) == 1
    assert not worker.is_loading


def test_second_load_supersedes_first(qt_app, long_csv, tmp_path):
    store = RaceStore()
    worker = TelemetryLoadWorker(store=store)
    loaded = []
    worker.telemetryLoaded.connect(loaded.append)
    first = long_csv(8)
    second = long_csv(3, name='R2_barber_telemetry_data.csv')

    worker.load(str(first))
    worker.load(str(second))
    worker.wait()
    qt_app.processEvents()

    assert len(loaded) == 1
    assert len(loaded[0]) == 3
    assert store.telemetry_data == loaded[0]
    assert not worker.is_loading


def test_worker_reports_capped_file(qt_app, long_csv):
    worker = TelemetryLoadWorker(IngestionSettings(max_samples=4))
    loaded = []
    worker.telemetryLoaded.connect(loaded.append)

    worker.load(str(long_csv(10)), blocking=True)

    assert len(loaded[0]) == 4
    assert worker.capped


def test_ticker_emits_score_and_report(qt_app, straight_line):
    ticker = CoachTicker()
    scores, reports = [], []
    ticker.scoreUpdated.connect(scores.append)
    ticker.reportReady.connect(reports.append)

    ticker.set_telemetry_data(straight_line)
    ticker.set_playing(True)
    assert ticker.timer.isActive()

    ticker.update_from_playback(10)
    ticker.set_playing(False)

    assert scores and scores[0].overall == 93
    assert len(reports) == 1
    assert reports[0].grade == 'A'
    assert not ticker.timer.isActive()
