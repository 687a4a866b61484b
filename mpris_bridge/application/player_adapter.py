"""``org.mpris.MediaPlayer2.Player``: state queries and command dispatch."""

from __future__ import annotations

from typing import Any

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
)
from .command_channel import CommandSender
from .state_store import MprisStateStore

FIXED_RATE = 1.0


class MediaPlayer2Player:
    """Reads go to the state store, writes become commands for the engine.

    The adapter keeps no state of its own. Mutating calls never wait for the
    engine, so a query right after a mutation may still see the old value.
    Values are forwarded untouched; range policy belongs to the engine.
    """

    def __init__(self, store: MprisStateStore, sender: CommandSender, logger=None) -> None:
        self.store = store
        self.sender = sender
        self.logger = logger

    def _send(self, command: MprisCommand) -> None:
        if not self.sender.send(command) and self.logger is not None:
            self.logger.debug("Engine is gone; dropped %r", command)

    # Methods

    def play(self) -> None:
        self._send(Play())

    def pause(self) -> None:
        self._send(Pause())

    def play_pause(self) -> None:
        self._send(PlayPause())

    def next(self) -> None:
        self._send(Next())

    def previous(self) -> None:
        self._send(Previous())

    def stop(self) -> None:
        self._send(Stop())

    def seek(self, offset: int) -> None:
        self._send(Seek(offset))

    def set_position(self, track_id: str, position: int) -> None:
        _ = track_id
        self._send(SetPosition(position))

    def open_uri(self, uri: str) -> None:
        _ = uri

    # Properties

    def playback_status(self) -> str:
        return self.store.read().playback_status.value

    def loop_status(self) -> str:
        return self.store.read().loop_status

    def set_loop_status(self, status: str) -> None:
        self._send(SetLoopStatus(status))

    def shuffle(self) -> bool:
        return self.store.read().shuffle

    def set_shuffle(self, shuffle: bool) -> None:
        self._send(SetShuffle(shuffle))

    def metadata(self) -> dict[str, Any]:
        return self.store.read().metadata

    def volume(self) -> float:
        return self.store.read().volume

    def set_volume(self, volume: float) -> None:
        self._send(SetVolume(volume))

    def position(self) -> int:
        return self.store.read().position

    def rate(self) -> float:
        return FIXED_RATE

    def set_rate(self, rate: float) -> None:
        _ = rate

    def minimum_rate(self) -> float:
        return FIXED_RATE

    def maximum_rate(self) -> float:
        return FIXED_RATE

    def can_play(self) -> bool:
        return True

    def can_pause(self) -> bool:
        return True

    def can_seek(self) -> bool:
        return True

    def can_control(self) -> bool:
        return True

    def can_go_next(self) -> bool:
        return True

    def can_go_previous(self) -> bool:
        return True
