"""Domain types for playback state, commands and track metadata."""

from .commands import (
    COMMAND_TYPES,
    CommandPayloadError,
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
    command_from_payload,
    command_name,
    command_to_payload,
)
from .metadata import TrackInfo, build_track_metadata, split_artists, track_object_path
from .playback import (
    STATE_FIELDS,
    LoopStatus,
    MprisState,
    PlaybackStatus,
    is_valid_loop_status,
)

__all__ = [
    "COMMAND_TYPES",
    "STATE_FIELDS",
    "CommandPayloadError",
    "LoopStatus",
    "MprisCommand",
    "MprisState",
    "Next",
    "Pause",
    "Play",
    "PlayPause",
    "PlaybackStatus",
    "Previous",
    "Seek",
    "SetLoopStatus",
    "SetPosition",
    "SetShuffle",
    "SetVolume",
    "Stop",
    "TrackInfo",
    "build_track_metadata",
    "command_from_payload",
    "command_name",
    "command_to_payload",
    "is_valid_loop_status",
    "split_artists",
    "track_object_path",
]
