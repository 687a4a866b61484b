"""Application-level ports for the audio backend driven by the engine."""

from __future__ import annotations

from typing import Protocol

from ..domain.metadata import TrackInfo


class PlaybackBackendPort(Protocol):
    """What the playback engine needs from an audio output."""

    def load(self, path: str) -> None: ...

    def play(self) -> None: ...

    def set_pause(self, on: bool) -> None: ...

    def stop(self) -> None: ...

    def set_volume(self, vol_0_100: int) -> None: ...

    def get_time_ms(self) -> int: ...

    def get_length_ms(self) -> int: ...

    def set_time_ms(self, ms: int) -> None: ...

    def is_ended(self) -> bool: ...

    def read_track_info(self, path: str) -> TrackInfo: ...

    def release(self) -> None: ...
