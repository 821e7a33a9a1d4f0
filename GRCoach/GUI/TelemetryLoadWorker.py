import logging
from typing import Dict, Optional, Set, Tuple

from PyQt6.QtCore import QObject, Qt, QThread, pyqtSignal, pyqtSlot

from GRCoach.config import IngestionSettings
from GRCoach.Core.errors import LoadCancelled, TelemetryLoadError
from GRCoach.Core.race_store import RaceStore
from GRCoach.Core.TelemetryEngine.telemetry_loader import TelemetryLoader

logger = logging.getLogger(__name__)


class _LoadJob(QObject):
    """Runs one load on whatever thread it was moved to"""

    finished = pyqtSignal(int, object, bool, str)  # request id, samples or None, capped, error message

    def __init__(self, settings: IngestionSettings, filepath: str, request_id: int, is_stale):
        super().__init__()
        # One loader per job: a superseded job never touches the state of a newer one
        self.loader = TelemetryLoader(settings)
        self.filepath = filepath
        self.request_id = request_id
        self.is_stale = is_stale

    @pyqtSlot()
    def run(self):
        try:
            samples = self.loader.load_file(self.filepath, should_cancel=self.is_stale)
        except LoadCancelled:
            self.finished.emit(self.request_id, None, False, '')
        except TelemetryLoadError as e:
            self.finished.emit(self.request_id, None, False, str(e))
        except OSError as e:
            self.finished.emit(self.request_id, None, False, f"Unable to read telemetry file: {e}")
        else:
            self.finished.emit(self.request_id, samples, self.loader.capped, '')


class TelemetryLoadWorker(QObject):
    """
    Loads telemetry files off the UI thread.

    A new load() supersedes the one in flight: the old job is cancelled at its
    next chunk and its result is dropped. Samples are published to the store on
    the worker's own thread, only for the latest request.
    """

    loadStarted = pyqtSignal(str)
    telemetryLoaded = pyqtSignal(object)  # tuple of TelemetrySample
    loadFailed = pyqtSignal(str)

    def __init__(self, settings: Optional[IngestionSettings] = None,
                 store: Optional[RaceStore] = None, parent=None):
        super().__init__(parent)
        self.settings = settings or IngestionSettings()
        self.store = store
        self.capped = False  # whether the last published file hit the sample cap
        self._request_id = 0
        self._pending: Set[int] = set()
        self._threads: Dict[int, Tuple[QThread, _LoadJob]] = {}

    @property
    def is_loading(self) -> bool:
        return bool(self._pending)

    def wait(self):
        """Block until every background load has finished."""
        for thread, _ in list(self._threads.values()):
            thread.wait()
        self._prune()

    def _prune(self):
        for request_id, (thread, _) in list(self._threads.items()):
            if thread.isFinished():
                del self._threads[request_id]

    def load(self, filepath: str, blocking: bool = False):
        """
        Start loading `filepath`.

        Args:
            filepath: Telemetry CSV
            blocking: Run on the calling thread (scripts and tests)
        """
        self._prune()
        self._request_id += 1
        request_id = self._request_id
        job = _LoadJob(self.settings, str(filepath), request_id,
                       lambda: request_id != self._request_id)
        job.finished.connect(self._on_job_finished)
        self.loadStarted.emit(str(filepath))

        if blocking:
            self._pending.add(request_id)
            job.run()
            return

        thread = QThread()
        job.moveToThread(thread)
        thread.started.connect(job.run)
        # quit() from the job's own thread so wait() does not depend on the caller's event loop
        job.finished.connect(thread.quit, type=Qt.ConnectionType.DirectConnection)
        self._pending.add(request_id)
        self._threads[request_id] = (thread, job)
        thread.start()

    @pyqtSlot(int, object, bool, str)
    def _on_job_finished(self, request_id: int, samples, capped: bool, error: str):
        self._pending.discard(request_id)
        if request_id != self._request_id:
            logger.debug("Dropping result of superseded load #%d", request_id)
            return
        if error:
            self.loadFailed.emit(error)
            return
        if samples is None:
            return

        self.capped = capped
        if self.store is not None:
            self.store.set_telemetry_data(samples)
        self.telemetryLoaded.emit(tuple(samples))
