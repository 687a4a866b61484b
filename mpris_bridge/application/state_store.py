"""Lock-protected MPRIS state shared by the bus adapters and the engine."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any, Callable, Iterator

from ..domain.playback import STATE_FIELDS, MprisState


class StatePoisonedError(RuntimeError):
    """A writer failed halfway through an edit; the state can't be trusted."""


@dataclass(frozen=True)
class StateChange:
    snapshot: MprisState
    changed: frozenset[str]
    seeked: bool = False


StateListener = Callable[[StateChange], None]


class MprisStateStore:
    """Single state object guarded by one lock.

    Readers get copies. Writing goes through the one ``StateWriter`` handed
    out by ``writer()``, which is meant to live on the engine's thread.
    """

    def __init__(self, initial: MprisState | None = None, *, logger=None) -> None:
        self._lock = threading.Lock()
        self._state = (initial or MprisState()).copy()
        self._poisoned = False
        self._writer: StateWriter | None = None
        self._listeners: list[StateListener] = []
        self._listeners_lock = threading.Lock()
        self.logger = logger

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    def read(self) -> MprisState:
        with self._lock:
            if self._poisoned:
                raise StatePoisonedError("MPRIS state was poisoned by a failed write.")
            return self._state.copy()

    def writer(self) -> "StateWriter":
        with self._lock:
            if self._writer is not None:
                raise RuntimeError("State writer was already handed out.")
            self._writer = StateWriter(self)
            return self._writer

    def add_listener(self, listener: StateListener) -> None:
        with self._listeners_lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        with self._listeners_lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

    def _commit(self, values: dict[str, Any], *, seeked: bool = False) -> frozenset[str]:
        unknown = set(values) - STATE_FIELDS
        if unknown:
            raise AttributeError(f"Unknown state fields: {', '.join(sorted(unknown))}")
        if "metadata" in values:
            values = {**values, "metadata": dict(values["metadata"])}
        with self._lock:
            if self._poisoned:
                raise StatePoisonedError("MPRIS state was poisoned by a failed write.")
            changed = frozenset(
                name for name, value in values.items() if getattr(self._state, name) != value
            )
            if changed:
                self._state = replace(self._state, **values)
            snapshot = self._state.copy() if changed or seeked else None
        if snapshot is not None:
            self._notify(StateChange(snapshot=snapshot, changed=changed, seeked=seeked))
        return changed

    def _poison(self) -> None:
        with self._lock:
            self._poisoned = True

    def _notify(self, change: StateChange) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(change)
            except Exception:
                if self.logger is not None:
                    self.logger.exception("State listener failed: %r", listener)


class StateWriter:
    """Write handle owned by the playback engine."""

    def __init__(self, store: MprisStateStore) -> None:
        self._store = store

    @property
    def poisoned(self) -> bool:
        return self._store.poisoned

    def update(self, **values: Any) -> frozenset[str]:
        """Apply all values in one critical section; returns changed field names."""
        return self._store._commit(values)

    def seeked(self, position: int) -> frozenset[str]:
        """Record a position jump so listeners can announce ``Seeked``."""
        return self._store._commit({"position": int(position)}, seeked=True)

    @contextmanager
    def edit(self) -> Iterator[MprisState]:
        """Yield a working copy committed atomically on exit.

        An exception inside the block poisons the store and propagates.
        """
        working = self._store.read()
        try:
            yield working
        except BaseException:
            self._store._poison()
            raise
        values = {name: getattr(working, name) for name in STATE_FIELDS}
        self._store._commit(values)
