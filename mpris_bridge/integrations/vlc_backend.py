"""libVLC audio output used by the playback engine."""

from __future__ import annotations

import os
import sys

from ..domain.metadata import TrackInfo, split_artists

try:
    import vlc as _vlc
except Exception:  # pragma: no cover - dependency optional at import time
    _vlc = None


class VlcAudioBackend:
    """Audio-only libVLC player implementing ``PlaybackBackendPort``."""

    def __init__(self, *, vlc_module=None, platform_name: str | None = None, logger=None) -> None:
        self._vlc = vlc_module if vlc_module is not None else _vlc
        if self._vlc is None:
            raise RuntimeError("python-vlc is not available")
        platform_value = platform_name if platform_name is not None else sys.platform
        args = ["--no-xlib", "--no-video"] if str(platform_value).startswith("linux") else ["--no-video"]
        self.instance = self._vlc.Instance(args)
        self.player = self.instance.media_player_new()
        self.media = None
        self.logger = logger

    def _release_media(self) -> None:
        if self.media is None:
            return
        try:
            self.media.release()
        except Exception:
            if self.logger is not None:
                self.logger.exception("Failed to release VLC media")
        self.media = None

    def load(self, path: str) -> None:
        if not os.path.isfile(path):
            raise FileNotFoundError(path)
        self._release_media()
        media = self.instance.media_new(os.path.abspath(path))
        self.player.set_media(media)
        self.media = media

    def play(self) -> None:
        if int(self.player.play()) == -1:
            raise RuntimeError("VLC failed to start playback.")

    def set_pause(self, on: bool) -> None:
        self.player.set_pause(1 if on else 0)

    def stop(self) -> None:
        self.player.stop()

    def set_volume(self, vol_0_100: int) -> None:
        self.player.audio_set_volume(max(0, min(100, int(vol_0_100))))

    def get_time_ms(self) -> int:
        return max(0, int(self.player.get_time() or 0))

    def get_length_ms(self) -> int:
        return max(0, int(self.player.get_length() or 0))

    def set_time_ms(self, ms: int) -> None:
        self.player.set_time(max(0, int(ms)))

    def is_ended(self) -> bool:
        return self.player.get_state() == self._vlc.State.Ended

    def read_track_info(self, path: str) -> TrackInfo:
        """Parse tags synchronously; a file without tags yields only its path."""
        media = self.instance.media_new(os.path.abspath(path))
        try:
            media.parse()
            meta = self._vlc.Meta

            def _tag(key) -> str | None:
                value = media.get_meta(key)
                return str(value).strip() if value else None

            duration_ms = int(media.get_duration() or 0)
            return TrackInfo(
                path=path,
                title=_tag(meta.Title),
                artists=split_artists(_tag(meta.Artist)),
                album=_tag(meta.Album),
                length_us=max(0, duration_ms) * 1000,
                art_url=_tag(meta.ArtworkURL),
            )
        finally:
            media.release()

    def release(self) -> None:
        try:
            self.player.stop()
        except Exception:
            if self.logger is not None:
                self.logger.exception("Failed to stop VLC player")
        self._release_media()
        try:
            self.player.release()
        except Exception:
            if self.logger is not None:
                self.logger.exception("Failed to release VLC player")
        try:
            self.instance.release()
        except Exception:
            if self.logger is not None:
                self.logger.exception("Failed to release VLC instance")
