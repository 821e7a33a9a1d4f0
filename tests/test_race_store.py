from GRCoach.Core.race_store import RaceStore

from tests.conftest import make_sample


def test_set_telemetry_data_resets_replay():
    store = RaceStore()
    store.set_current_frame_index(12)
    store.set_is_playing(True)

    samples = [make_sample(i) for i in range(3)]
    store.set_telemetry_data(samples)

    assert store.telemetry_data == tuple(samples)
    assert store.current_frame_index == 0
    assert not store.is_playing


def test_listeners_and_unsubscribe():
    store = RaceStore()
    seen = []
    unsubscribe = store.subscribe(lambda s: seen.append((s.current_frame_index, s.is_playing)))

    store.set_current_frame_index(4)
    store.set_is_playing(True)
    store.reset_replay()
    unsubscribe()
    store.set_current_frame_index(9)

    assert seen == [(4, False), (4, True), (0, False)]
