"""Control commands sent from the MPRIS adapters to the playback engine.

Each command is a small frozen dataclass. They carry no identifiers and no
reply channel: the sender learns about the outcome only by reading state
later on.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Mapping, Union


class CommandPayloadError(ValueError):
    """Raised when a payload does not describe a known command."""


@dataclass(frozen=True, slots=True)
class Play:
    pass


@dataclass(frozen=True, slots=True)
class Pause:
    pass


@dataclass(frozen=True, slots=True)
class PlayPause:
    pass


@dataclass(frozen=True, slots=True)
class Next:
    pass


@dataclass(frozen=True, slots=True)
class Previous:
    pass


@dataclass(frozen=True, slots=True)
class Stop:
    pass


@dataclass(frozen=True, slots=True)
class Seek:
    offset: int  # microseconds, relative


@dataclass(frozen=True, slots=True)
class SetPosition:
    position: int  # microseconds, absolute


@dataclass(frozen=True, slots=True)
class SetVolume:
    volume: float


@dataclass(frozen=True, slots=True)
class SetLoopStatus:
    status: str


@dataclass(frozen=True, slots=True)
class SetShuffle:
    shuffle: bool


MprisCommand = Union[
    Play,
    Pause,
    PlayPause,
    Next,
    Previous,
    Stop,
    Seek,
    SetPosition,
    SetVolume,
    SetLoopStatus,
    SetShuffle,
]

COMMAND_TYPES: dict[str, type] = {
    cls.__name__: cls
    for cls in (
        Play,
        Pause,
        PlayPause,
        Next,
        Previous,
        Stop,
        Seek,
        SetPosition,
        SetVolume,
        SetLoopStatus,
        SetShuffle,
    )
}

# bool is a subclass of int, so integer fields reject it explicitly.
_FIELD_CHECKS = {
    "offset": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "position": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "volume": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "status": lambda v: isinstance(v, str),
    "shuffle": lambda v: isinstance(v, bool),
}


def command_name(command: MprisCommand) -> str:
    return type(command).__name__


def command_to_payload(command: MprisCommand) -> dict[str, Any]:
    if type(command).__name__ not in COMMAND_TYPES:
        raise CommandPayloadError(f"Not a command: {command!r}")
    payload: dict[str, Any] = {"command": command_name(command)}
    payload.update(asdict(command))
    return payload


def command_from_payload(payload: Mapping[str, Any]) -> MprisCommand:
    if not isinstance(payload, Mapping):
        raise CommandPayloadError("Command payload must be a mapping.")
    name = payload.get("command")
    cls = COMMAND_TYPES.get(name) if isinstance(name, str) else None
    if cls is None:
        raise CommandPayloadError(f"Unknown command: {name!r}")
    kwargs: dict[str, Any] = {}
    for item in fields(cls):
        if item.name not in payload:
            raise CommandPayloadError(f"{name} payload is missing '{item.name}'")
        value = payload[item.name]
        if not _FIELD_CHECKS[item.name](value):
            raise CommandPayloadError(
                f"{name}.{item.name} has unexpected type {type(value).__name__}"
            )
        kwargs[item.name] = float(value) if item.name == "volume" else value
    return cls(**kwargs)
