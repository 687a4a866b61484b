"""Configuration loading from environment variables."""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .constants import DEFAULT_DESKTOP_ENTRY, DEFAULT_IDENTITY, DEFAULT_PLAYER_NAME
from .utils import env_flag, parse_float_env, parse_int_env, resolve_path

BUS_TYPES = ("session", "system")


@dataclass(frozen=True)
class AppConfig:
    log_level: str
    file_log_level: str
    log_dir: str
    log_file: str
    player_name: str
    identity: str
    desktop_entry: str
    bus_type: str
    engine_tick_ms: int
    initial_volume: float
    skip_bus: bool = False

    @property
    def engine_tick_seconds(self) -> float:
        return self.engine_tick_ms / 1000.0


def _sanitize_player_name(value: str) -> str:
    # Bus name elements allow [A-Za-z0-9_] and must not start with a digit.
    cleaned = "".join(ch if ch.isalnum() or ch == "_" else "_" for ch in value.strip())
    if not cleaned:
        return DEFAULT_PLAYER_NAME
    if cleaned[0].isdigit():
        cleaned = f"_{cleaned}"
    return cleaned


def load_config() -> AppConfig:
    base_dir = str(Path(__file__).resolve().parents[1])
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    file_log_level = os.getenv("FILE_LOG_LEVEL", "DEBUG").upper()
    log_dir = resolve_path(os.getenv("LOG_DIR", "logs"), base_dir)
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(
        log_dir, f"mpris_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}.log"
    )
    player_name = _sanitize_player_name(os.getenv("MPRIS_PLAYER_NAME", DEFAULT_PLAYER_NAME))
    identity = os.getenv("MPRIS_IDENTITY", "").strip() or DEFAULT_IDENTITY
    desktop_entry = os.getenv("MPRIS_DESKTOP_ENTRY", "").strip() or DEFAULT_DESKTOP_ENTRY
    bus_type = os.getenv("MPRIS_BUS", "session").strip().lower()
    if bus_type not in BUS_TYPES:
        bus_type = "session"
    engine_tick_ms = parse_int_env("ENGINE_TICK_MS", 250, min_value=20, max_value=5000)
    initial_volume = parse_float_env("INITIAL_VOLUME", 1.0, min_value=0.0, max_value=1.0)
    return AppConfig(
        log_level=log_level,
        file_log_level=file_log_level,
        log_dir=log_dir,
        log_file=log_file,
        player_name=player_name,
        identity=identity,
        desktop_entry=desktop_entry,
        bus_type=bus_type,
        engine_tick_ms=engine_tick_ms,
        initial_volume=initial_volume,
        skip_bus=env_flag("MPRIS_SKIP_BUS", "0"),
    )
