"""Application layer: shared state, command channel, adapters and engine."""

from .bindings import (
    STATE_FIELD_PROPERTIES,
    InterfaceBinding,
    MethodBinding,
    PropertyBinding,
    SignalBinding,
    build_player_binding,
    build_root_binding,
)
from .bootstrap import AppServices, initialize_app_services
from .command_channel import CommandChannel, CommandReceiver, CommandSender
from .engine import PlaybackEngine
from .player_adapter import MediaPlayer2Player
from .ports import PlaybackBackendPort
from .root_adapter import MediaPlayer2Root
from .state_store import MprisStateStore, StateChange, StatePoisonedError, StateWriter

__all__ = [
    "STATE_FIELD_PROPERTIES",
    "AppServices",
    "CommandChannel",
    "CommandReceiver",
    "CommandSender",
    "InterfaceBinding",
    "MediaPlayer2Player",
    "MediaPlayer2Root",
    "MethodBinding",
    "MprisStateStore",
    "PlaybackBackendPort",
    "PlaybackEngine",
    "PropertyBinding",
    "SignalBinding",
    "StateChange",
    "StatePoisonedError",
    "StateWriter",
    "build_player_binding",
    "build_root_binding",
    "initialize_app_services",
]
