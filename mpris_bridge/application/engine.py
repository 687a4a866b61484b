"""Reference playback engine: consumes commands and owns the MPRIS state.

The engine is the only writer of the state store. It runs on its own thread,
waits for at most one tick for a command, applies it against the current
transport status and then advances playback progress.
"""

from __future__ import annotations

import random
import threading
from dataclasses import replace
from typing import Callable, Sequence

from ..constants import PREVIOUS_RESTART_THRESHOLD_US
from ..domain.commands import (
    MprisCommand,
    Next,
    Pause,
    Play,
    PlayPause,
    Previous,
    Seek,
    SetLoopStatus,
    SetPosition,
    SetShuffle,
    SetVolume,
    Stop,
    command_to_payload,
)
from ..domain.metadata import TrackInfo, build_track_metadata
from ..domain.playback import LoopStatus, PlaybackStatus, is_valid_loop_status
from ..utils import clamp
from .command_channel import CommandReceiver
from .ports import PlaybackBackendPort
from .state_store import StateWriter


class PlaybackEngine:
    def __init__(
        self,
        backend: PlaybackBackendPort,
        receiver: CommandReceiver,
        writer: StateWriter,
        logger,
        *,
        playlist: Sequence[str] = (),
        tick_seconds: float = 0.25,
        initial_volume: float = 1.0,
        loop_status: str = LoopStatus.NONE,
        shuffle: bool = False,
        rng: random.Random | None = None,
        on_fatal: Callable[[BaseException], None] | None = None,
    ) -> None:
        self.backend = backend
        self.receiver = receiver
        self.writer = writer
        self.logger = logger
        self.playlist = list(playlist)
        self.tick_seconds = max(0.01, float(tick_seconds))
        self._rng = rng or random.Random()
        self.on_fatal = on_fatal
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

        self.status = PlaybackStatus.STOPPED
        self.index: int | None = 0 if self.playlist else None
        self.loaded_index: int | None = None
        self.position_us = 0
        self.volume = clamp(float(initial_volume), 0.0, 1.0)
        self.loop_status = loop_status if is_valid_loop_status(loop_status) else LoopStatus.NONE
        self.shuffle = bool(shuffle)
        self.order: list[int] = list(range(len(self.playlist)))
        self._track_info: dict[int, TrackInfo] = {}
        if self.shuffle:
            self._reshuffle()

        self._handlers: dict[type, Callable] = {
            Play: self._on_play,
            Pause: self._on_pause,
            PlayPause: self._on_play_pause,
            Next: self._on_next,
            Previous: self._on_previous,
            Stop: self._on_stop,
            Seek: self._on_seek,
            SetPosition: self._on_set_position,
            SetVolume: self._on_set_volume,
            SetLoopStatus: self._on_set_loop_status,
            SetShuffle: self._on_set_shuffle,
        }

        self._apply_volume()
        self.publish()

    # Lifecycle

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self.run, name="playback-engine", daemon=True)
        self._thread.start()
        self.logger.info("Playback engine started with %s track(s)", len(self.playlist))

    def stop(self, timeout: float = 2.0) -> None:
        self._stop_event.set()
        self.receiver.close()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        try:
            self.backend.release()
        except Exception:
            self.logger.exception("Failed to release audio backend")
        self.logger.info("Playback engine stopped")

    def run(self) -> None:
        while not self._stop_event.is_set():
            command = self.receiver.recv(timeout=self.tick_seconds)
            if command is None and self.receiver.closed:
                break
            try:
                if command is not None:
                    self.handle(command)
                self.tick()
            except Exception as exc:
                if not self.writer.poisoned:
                    raise
                self.logger.critical("Playback state is poisoned; engine stops: %s", exc)
                if self.on_fatal is not None:
                    self.on_fatal(exc)
                break

    # Command processing

    def handle(self, command: MprisCommand) -> None:
        handler = self._handlers.get(type(command))
        if handler is None:
            self.logger.warning("Ignoring unknown command: %r", command)
            return
        self.logger.debug("Command %s", command_to_payload(command))
        try:
            handler(command)
        except Exception:
            self.logger.exception("Command failed: %r", command)
        self.publish()

    def _on_play(self, _command: Play) -> None:
        if self.status is PlaybackStatus.PLAYING or self.index is None:
            return
        if self.status is PlaybackStatus.PAUSED and self.loaded_index == self.index:
            self.backend.set_pause(False)
        else:
            self._ensure_loaded()
            self.backend.play()
        self.status = PlaybackStatus.PLAYING

    def _on_pause(self, _command: Pause) -> None:
        if self.status is not PlaybackStatus.PLAYING:
            return
        self.backend.set_pause(True)
        self.position_us = self.backend.get_time_ms() * 1000
        self.status = PlaybackStatus.PAUSED

    def _on_play_pause(self, _command: PlayPause) -> None:
        if self.status is PlaybackStatus.PLAYING:
            self._on_pause(Pause())
        else:
            self._on_play(Play())

    def _on_stop(self, _command: Stop) -> None:
        if self.status is PlaybackStatus.STOPPED:
            return
        self.backend.stop()
        self.status = PlaybackStatus.STOPPED
        self.position_us = 0

    def _on_next(self, _command: Next) -> None:
        target = self._step(+1, wrap=self.loop_status == LoopStatus.PLAYLIST)
        if target is None:
            self._on_stop(Stop())
            return
        self._switch_to(target)

    def _on_previous(self, _command: Previous) -> None:
        if self.index is None:
            return
        if self.position_us > PREVIOUS_RESTART_THRESHOLD_US:
            self._jump_to(0)
            return
        target = self._step(-1, wrap=self.loop_status == LoopStatus.PLAYLIST)
        if target is None:
            if self.status is not PlaybackStatus.STOPPED:
                self._jump_to(0)
            return
        self._switch_to(target)

    def _on_seek(self, command: Seek) -> None:
        if self.index is None or self.status is PlaybackStatus.STOPPED:
            return
        target = max(0, self.position_us + int(command.offset))
        length = self._length_us()
        if length > 0 and target > length:
            self._on_next(Next())
            return
        self._jump_to(target)

    def _on_set_position(self, command: SetPosition) -> None:
        if self.index is None or self.status is PlaybackStatus.STOPPED:
            return
        position = int(command.position)
        length = self._length_us()
        if position < 0 or (length > 0 and position > length):
            self.logger.debug("Ignoring out-of-range position %s (length=%s)", position, length)
            return
        self._jump_to(position)

    def _on_set_volume(self, command: SetVolume) -> None:
        self.volume = clamp(float(command.volume), 0.0, 1.0)
        self._apply_volume()

    def _on_set_loop_status(self, command: SetLoopStatus) -> None:
        if not is_valid_loop_status(command.status):
            self.logger.warning("Ignoring invalid loop status: %r", command.status)
            return
        self.loop_status = command.status

    def _on_set_shuffle(self, command: SetShuffle) -> None:
        shuffle = bool(command.shuffle)
        if shuffle == self.shuffle:
            return
        self.shuffle = shuffle
        if shuffle:
            self._reshuffle()
        else:
            self.order = list(range(len(self.playlist)))

    # Progress

    def tick(self) -> None:
        if self.status is not PlaybackStatus.PLAYING:
            return
        try:
            if self.backend.is_ended():
                self._on_track_end()
            else:
                self.position_us = self.backend.get_time_ms() * 1000
                self._refresh_length()
        except Exception:
            self.logger.exception("Playback progress update failed")
        self.publish()

    def _on_track_end(self) -> None:
        if self.loop_status == LoopStatus.TRACK and self.index is not None:
            self._switch_to(self.index, force_play=True)
            return
        target = self._step(+1, wrap=self.loop_status == LoopStatus.PLAYLIST)
        if target is None:
            self._halt()
            return
        self._switch_to(target, force_play=True)

    # State publication

    def publish(self) -> None:
        """Commit every field in one edit; a failure inside poisons the store."""
        with self.writer.edit() as state:
            state.playback_status = self.status
            state.metadata = (
                build_track_metadata(self._info(self.index), self.index)
                if self.index is not None
                else {}
            )
            state.position = self.position_us
            state.volume = self.volume
            state.shuffle = self.shuffle
            state.loop_status = self.loop_status

    # Helpers

    def _step(self, direction: int, *, wrap: bool) -> int | None:
        if self.index is None or not self.order:
            return None
        pos = self.order.index(self.index) + direction
        if 0 <= pos < len(self.order):
            return self.order[pos]
        if wrap:
            return self.order[pos % len(self.order)]
        return None

    def _switch_to(self, index: int, *, force_play: bool = False) -> None:
        if force_play or self.status is PlaybackStatus.PLAYING:
            # The cursor only moves once the new track is actually playing.
            try:
                self.backend.load(self.playlist[index])
                self.loaded_index = index
                self.backend.play()
            except Exception:
                self.loaded_index = None
                self._halt()
                raise
            self.index = index
            self.position_us = 0
            self.status = PlaybackStatus.PLAYING
            return
        self.index = index
        self.position_us = 0
        self.loaded_index = None
        self.backend.stop()
        # Paused stays paused; the next Play loads the new track.
        if self.status is not PlaybackStatus.PAUSED:
            self.status = PlaybackStatus.STOPPED

    def _halt(self) -> None:
        try:
            self.backend.stop()
        except Exception:
            self.logger.exception("Failed to stop audio backend")
        self.status = PlaybackStatus.STOPPED
        self.position_us = 0

    def _jump_to(self, position_us: int) -> None:
        self.backend.set_time_ms(position_us // 1000)
        self.position_us = position_us
        self.writer.seeked(position_us)

    def _ensure_loaded(self) -> None:
        if self.index is None or self.loaded_index == self.index:
            return
        self.backend.load(self.playlist[self.index])
        self.loaded_index = self.index

    def _apply_volume(self) -> None:
        try:
            self.backend.set_volume(int(round(self.volume * 100)))
        except Exception:
            self.logger.exception("Failed to set backend volume")

    def _reshuffle(self) -> None:
        order = list(range(len(self.playlist)))
        self._rng.shuffle(order)
        if self.index is not None:
            order.remove(self.index)
            order.insert(0, self.index)
        self.order = order

    def _info(self, index: int) -> TrackInfo:
        info = self._track_info.get(index)
        if info is None:
            path = self.playlist[index]
            try:
                info = self.backend.read_track_info(path)
            except Exception:
                self.logger.exception("Failed to read track tags: %s", path)
                info = TrackInfo(path=path)
            self._track_info[index] = info
        return info

    def _length_us(self) -> int:
        if self.index is None:
            return 0
        return self._info(self.index).length_us

    def _refresh_length(self) -> None:
        if self.index is None or self._length_us() > 0:
            return
        length_ms = self.backend.get_length_ms()
        if length_ms > 0:
            info = self._info(self.index)
            self._track_info[self.index] = replace(info, length_us=length_ms * 1000)
