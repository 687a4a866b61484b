"""Fixed names and values of the MPRIS D-Bus interface."""
from __future__ import annotations

MPRIS_OBJECT_PATH = "/org/mpris/MediaPlayer2"
MPRIS_BUS_NAME_PREFIX = "org.mpris.MediaPlayer2."
ROOT_INTERFACE = "org.mpris.MediaPlayer2"
PLAYER_INTERFACE = "org.mpris.MediaPlayer2.Player"

PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"
INTROSPECTABLE_INTERFACE = "org.freedesktop.DBus.Introspectable"

DEFAULT_IDENTITY = "Ethereal Waves"
DEFAULT_DESKTOP_ENTRY = "com.github.LotusPetal392.ethereal-waves"
DEFAULT_PLAYER_NAME = "ethereal_waves"

SUPPORTED_URI_SCHEMES = ("file",)
SUPPORTED_MIME_TYPES = (
    "audio/mpeg",
    "audio/mp4",
    "audio/ogg",
    "audio/opus",
    "audio/flac",
    "audio/wav",
)

TRACK_PATH_PREFIX = "/org/mpris/MediaPlayer2/Track/"

# Seconds into a track after which Previous restarts the current track.
PREVIOUS_RESTART_THRESHOLD_US = 3_000_000
