import threading

import pytest
from dbus_fast import Variant

from mpris_bridge.application.state_store import MprisStateStore, StatePoisonedError
from mpris_bridge.domain.playback import MprisState, PlaybackStatus


def test_read_returns_independent_copies():
    store = MprisStateStore(MprisState(volume=0.8, metadata={"xesam:title": Variant("s", "A")}))

    first = store.read()
    first.volume = 0.1
    first.metadata["xesam:title"] = Variant("s", "changed")

    second = store.read()
    assert second.volume == 0.8
    assert second.metadata["xesam:title"] == Variant("s", "A")


def test_writer_is_handed_out_once():
    store = MprisStateStore()
    store.writer()
    with pytest.raises(RuntimeError):
        store.writer()


def test_update_reports_changed_fields_only():
    store = MprisStateStore()
    writer = store.writer()

    changed = writer.update(playback_status=PlaybackStatus.PLAYING, volume=1.0, shuffle=False)

    assert changed == {"playback_status"}
    assert store.read().playback_status is PlaybackStatus.PLAYING


def test_update_stores_volume_unclamped():
    store = MprisStateStore()
    store.writer().update(volume=1.7)
    assert store.read().volume == 1.7


def test_update_rejects_unknown_fields():
    store = MprisStateStore()
    with pytest.raises(AttributeError):
        store.writer().update(rate=2.0)


def test_update_copies_metadata_mapping():
    store = MprisStateStore()
    metadata = {"xesam:title": Variant("s", "A")}
    store.writer().update(metadata=metadata)
    metadata["xesam:album"] = Variant("s", "late write")

    assert "xesam:album" not in store.read().metadata


def test_edit_commits_atomically():
    store = MprisStateStore()
    writer = store.writer()

    with writer.edit() as state:
        state.position = 5_000_000
        state.loop_status = "Track"
        assert store.read().position == 0

    snapshot = store.read()
    assert snapshot.position == 5_000_000
    assert snapshot.loop_status == "Track"


def test_failed_edit_poisons_store():
    store = MprisStateStore()
    writer = store.writer()

    with pytest.raises(ValueError):
        with writer.edit() as state:
            state.position = 1
            raise ValueError("engine crashed mid-write")

    assert store.poisoned is True
    assert writer.poisoned is True
    with pytest.raises(StatePoisonedError):
        store.read()
    with pytest.raises(StatePoisonedError):
        writer.update(volume=0.5)


def test_listeners_receive_changes_and_seeks(logger):
    store = MprisStateStore(logger=logger)
    writer = store.writer()
    changes = []
    store.add_listener(changes.append)

    writer.update(volume=1.0)  # default value, nothing changes
    writer.update(volume=0.5, shuffle=True)
    writer.seeked(0)  # same position still signals the jump

    assert len(changes) == 2
    assert changes[0].changed == {"volume", "shuffle"}
    assert changes[0].snapshot.volume == 0.5
    assert changes[0].seeked is False
    assert changes[1].changed == frozenset()
    assert changes[1].seeked is True

    store.remove_listener(changes.append)
    writer.update(volume=0.1)
    assert len(changes) == 2


def test_failing_listener_is_logged_and_skipped(logger):
    store = MprisStateStore(logger=logger)
    seen = []

    def _broken(_change):
        raise RuntimeError("boom")

    store.add_listener(_broken)
    store.add_listener(seen.append)
    store.writer().update(position=10)

    assert len(seen) == 1
    assert logger.exceptions and "State listener failed" in logger.exceptions[0]


def test_concurrent_reads_never_see_mixed_writes():
    store = MprisStateStore(MprisState(volume=0.0, position=0))
    writer = store.writer()
    stop = threading.Event()
    torn = []

    def _write():
        for value in range(1, 3000):
            writer.update(volume=float(value), position=value)
        stop.set()

    def _read():
        while not stop.is_set():
            snapshot = store.read()
            if snapshot.position != int(snapshot.volume):
                torn.append(snapshot)

    readers = [threading.Thread(target=_read) for _ in range(4)]
    for thread in readers:
        thread.start()
    _write()
    for thread in readers:
        thread.join()

    assert torn == []
    assert store.read().position == 2999
