"""Explicit name tables for the two MPRIS interfaces.

Every D-Bus method, property and signal is registered here by its exact
MPRIS name together with its signature and the adapter callable that serves
it. The bus layer only consults these tables.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from ..constants import PLAYER_INTERFACE, ROOT_INTERFACE
from .player_adapter import MediaPlayer2Player
from .root_adapter import MediaPlayer2Root


@dataclass(frozen=True)
class MethodBinding:
    name: str
    in_signature: str
    handler: Callable[..., None]
    arg_names: tuple[str, ...] = ()


@dataclass(frozen=True)
class PropertyBinding:
    name: str
    signature: str
    getter: Callable[[], Any]
    setter: Callable[[Any], None] | None = None
    emits_change: bool = True
    # Store field read straight from a snapshot by GetAll.
    state_field: str | None = None

    @property
    def writable(self) -> bool:
        return self.setter is not None


@dataclass(frozen=True)
class SignalBinding:
    name: str
    signature: str
    arg_names: tuple[str, ...] = ()


@dataclass
class InterfaceBinding:
    name: str
    methods: dict[str, MethodBinding] = field(default_factory=dict)
    properties: dict[str, PropertyBinding] = field(default_factory=dict)
    signals: dict[str, SignalBinding] = field(default_factory=dict)

    def add_method(
        self,
        name: str,
        in_signature: str,
        handler: Callable[..., None],
        arg_names: tuple[str, ...] = (),
    ) -> None:
        if name in self.methods:
            raise ValueError(f"{self.name}.{name} is already registered")
        if len(arg_names) not in (0, len(in_signature_args(in_signature))):
            raise ValueError(f"{self.name}.{name}: argument names do not match signature")
        self.methods[name] = MethodBinding(name, in_signature, handler, arg_names)

    def add_property(
        self,
        name: str,
        signature: str,
        getter: Callable[[], Any],
        setter: Callable[[Any], None] | None = None,
        *,
        emits_change: bool = True,
        state_field: str | None = None,
    ) -> None:
        if name in self.properties:
            raise ValueError(f"{self.name}.{name} is already registered")
        self.properties[name] = PropertyBinding(
            name, signature, getter, setter, emits_change, state_field
        )

    def add_signal(self, name: str, signature: str, arg_names: tuple[str, ...] = ()) -> None:
        self.signals[name] = SignalBinding(name, signature, arg_names)


def in_signature_args(signature: str) -> list[str]:
    """Split a signature made of basic types into one code per argument."""
    return list(signature)


# Store fields announced through PropertiesChanged. Position is left out:
# clients extrapolate it and jumps are reported with Seeked.
STATE_FIELD_PROPERTIES = {
    "playback_status": "PlaybackStatus",
    "loop_status": "LoopStatus",
    "shuffle": "Shuffle",
    "metadata": "Metadata",
    "volume": "Volume",
}


def build_root_binding(root: MediaPlayer2Root) -> InterfaceBinding:
    binding = InterfaceBinding(ROOT_INTERFACE)
    binding.add_method("Raise", "", root.raise_)
    binding.add_method("Quit", "", root.quit)
    binding.add_property("CanQuit", "b", root.can_quit, emits_change=False)
    binding.add_property("CanRaise", "b", root.can_raise, emits_change=False)
    binding.add_property("HasTrackList", "b", root.has_track_list, emits_change=False)
    binding.add_property("Identity", "s", root.identity, emits_change=False)
    binding.add_property("DesktopEntry", "s", root.desktop_entry, emits_change=False)
    binding.add_property("SupportedUriSchemes", "as", root.supported_uri_schemes, emits_change=False)
    binding.add_property("SupportedMimeTypes", "as", root.supported_mime_types, emits_change=False)
    return binding


def build_player_binding(player: MediaPlayer2Player) -> InterfaceBinding:
    binding = InterfaceBinding(PLAYER_INTERFACE)
    binding.add_method("Play", "", player.play)
    binding.add_method("Pause", "", player.pause)
    binding.add_method("PlayPause", "", player.play_pause)
    binding.add_method("Next", "", player.next)
    binding.add_method("Previous", "", player.previous)
    binding.add_method("Stop", "", player.stop)
    binding.add_method("Seek", "x", player.seek, ("Offset",))
    binding.add_method("SetPosition", "ox", player.set_position, ("TrackId", "Position"))
    binding.add_method("OpenUri", "s", player.open_uri, ("Uri",))

    binding.add_property(
        "PlaybackStatus", "s", player.playback_status, state_field="playback_status"
    )
    binding.add_property(
        "LoopStatus", "s", player.loop_status, player.set_loop_status, state_field="loop_status"
    )
    binding.add_property(
        "Shuffle", "b", player.shuffle, player.set_shuffle, state_field="shuffle"
    )
    binding.add_property("Metadata", "a{sv}", player.metadata, state_field="metadata")
    binding.add_property(
        "Volume", "d", player.volume, player.set_volume, state_field="volume"
    )
    binding.add_property(
        "Position", "x", player.position, emits_change=False, state_field="position"
    )
    binding.add_property("Rate", "d", player.rate, player.set_rate, emits_change=False)
    binding.add_property("MinimumRate", "d", player.minimum_rate, emits_change=False)
    binding.add_property("MaximumRate", "d", player.maximum_rate, emits_change=False)
    binding.add_property("CanPlay", "b", player.can_play, emits_change=False)
    binding.add_property("CanPause", "b", player.can_pause, emits_change=False)
    binding.add_property("CanSeek", "b", player.can_seek, emits_change=False)
    binding.add_property("CanControl", "b", player.can_control, emits_change=False)
    binding.add_property("CanGoNext", "b", player.can_go_next, emits_change=False)
    binding.add_property("CanGoPrevious", "b", player.can_go_previous, emits_change=False)

    binding.add_signal("Seeked", "x", ("Position",))
    return binding
