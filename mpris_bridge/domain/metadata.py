"""Builders for the MPRIS ``Metadata`` mapping."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from dbus_fast import Variant

from ..constants import TRACK_PATH_PREFIX


@dataclass(frozen=True)
class TrackInfo:
    """Tag data for one playlist entry, as read by the audio backend."""

    path: str
    title: str | None = None
    artists: tuple[str, ...] = field(default_factory=tuple)
    album: str | None = None
    length_us: int = 0
    art_url: str | None = None


def track_object_path(index: int) -> str:
    return f"{TRACK_PATH_PREFIX}{max(0, int(index))}"


def file_uri(path: str) -> str:
    try:
        return Path(path).resolve().as_uri()
    except ValueError:
        return path


def split_artists(value: str | Sequence[str] | None) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        parts = [part.strip() for part in value.split(";")]
    else:
        parts = [str(part).strip() for part in value]
    return tuple(part for part in parts if part)


def build_track_metadata(track: TrackInfo, index: int) -> dict[str, Variant]:
    """Project a track onto MPRIS metadata keys.

    ``mpris:trackid`` is always present. Optional keys are left out rather
    than sent empty, which is what shells like GNOME and KDE expect.
    """
    metadata: dict[str, Variant] = {
        "mpris:trackid": Variant("o", track_object_path(index)),
        "xesam:url": Variant("s", file_uri(track.path)),
        "xesam:title": Variant("s", track.title or Path(track.path).stem),
    }
    if track.length_us > 0:
        metadata["mpris:length"] = Variant("x", int(track.length_us))
    if track.artists:
        metadata["xesam:artist"] = Variant("as", list(track.artists))
    if track.album:
        metadata["xesam:album"] = Variant("s", track.album)
    if track.art_url:
        metadata["mpris:artUrl"] = Variant("s", track.art_url)
    return metadata
