"""Player-visible playback state shared between the engine and the bus."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any


class PlaybackStatus(str, Enum):
    """Transport status; values are the literal MPRIS strings."""

    PLAYING = "Playing"
    PAUSED = "Paused"
    STOPPED = "Stopped"


class LoopStatus:
    NONE = "None"
    TRACK = "Track"
    PLAYLIST = "Playlist"

    ALL = (NONE, TRACK, PLAYLIST)


def is_valid_loop_status(value: object) -> bool:
    return isinstance(value, str) and value in LoopStatus.ALL


@dataclass(slots=True)
class MprisState:
    """One snapshot of everything the MPRIS surface can report.

    ``metadata`` maps MPRIS keys (``xesam:title``, ``mpris:length`` ...) to
    ``dbus_fast.Variant`` values. ``volume`` is stored exactly as written by
    the engine.
    """

    playback_status: PlaybackStatus = PlaybackStatus.STOPPED
    metadata: dict[str, Any] = field(default_factory=dict)
    position: int = 0
    volume: float = 1.0
    shuffle: bool = False
    loop_status: str = LoopStatus.NONE

    def copy(self) -> "MprisState":
        # Variants are immutable; only the mapping itself needs copying.
        return replace(self, metadata=dict(self.metadata))


STATE_FIELDS = frozenset(f.name for f in fields(MprisState))
