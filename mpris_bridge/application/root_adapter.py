"""``org.mpris.MediaPlayer2``: static description of the application."""

from __future__ import annotations

from ..constants import (
    DEFAULT_DESKTOP_ENTRY,
    DEFAULT_IDENTITY,
    SUPPORTED_MIME_TYPES,
    SUPPORTED_URI_SCHEMES,
)


class MediaPlayer2Root:
    """Raise/Quit are accepted and ignored; there is no window or track list."""

    def __init__(
        self,
        identity: str = DEFAULT_IDENTITY,
        desktop_entry: str = DEFAULT_DESKTOP_ENTRY,
    ) -> None:
        self._identity = identity
        self._desktop_entry = desktop_entry

    def raise_(self) -> None:
        pass

    def quit(self) -> None:
        pass

    def can_quit(self) -> bool:
        return False

    def can_raise(self) -> bool:
        return False

    def has_track_list(self) -> bool:
        return False

    def identity(self) -> str:
        return self._identity

    def desktop_entry(self) -> str:
        return self._desktop_entry

    def supported_uri_schemes(self) -> list[str]:
        return list(SUPPORTED_URI_SCHEMES)

    def supported_mime_types(self) -> list[str]:
        return list(SUPPORTED_MIME_TYPES)
