"""
Replay store: the published sample list plus the playback cursor
"""

from typing import Callable, List, Sequence, Tuple

from GRCoach.Core.models import TelemetrySample

Listener = Callable[['RaceStore'], None]


class RaceStore:
    """
    Holds the state shared between the loader (writer) and its readers.

    The sample list is replaced wholesale, never mutated, so readers can hold on
    to it without copying. Listeners are called synchronously after every change.
    """

    def __init__(self):
        self._telemetry_data: Tuple[TelemetrySample, ...] = ()
        self._current_frame_index = 0
        self._is_playing = False
        self._listeners: List[Listener] = []

    @property
    def telemetry_data(self) -> Tuple[TelemetrySample, ...]:
        return self._telemetry_data

    @property
    def current_frame_index(self) -> int:
        return self._current_frame_index

    @property
    def is_playing(self) -> bool:
        return self._is_playing

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_telemetry_data(self, samples: Sequence[TelemetrySample]):
        self._telemetry_data = tuple(samples)
        self._current_frame_index = 0
        self._is_playing = False
        self._notify()

    def set_current_frame_index(self, index: int):
        self._current_frame_index = index
        self._notify()

    def set_is_playing(self, playing: bool):
        self._is_playing = playing
        self._notify()

    def reset_replay(self):
        self._current_frame_index = 0
        self._is_playing = False
        self._notify()

    def _notify(self):
        for listener in list(self._listeners):
            listener(self)
