"""Integrations for external services and libraries."""

from .dbus_service import MprisDBusService, to_variant
from .vlc_backend import VlcAudioBackend

__all__ = [
    "MprisDBusService",
    "VlcAudioBackend",
    "to_variant",
]
