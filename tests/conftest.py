"""Shared fakes for the MPRIS bridge tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from mpris_bridge.config import AppConfig


class RecordingLogger:
    def __init__(self):
        self.debugs = []
        self.infos = []
        self.warnings = []
        self.exceptions = []
        self.criticals = []

    @staticmethod
    def _format(message, args):
        return message % args if args else message

    def debug(self, message, *args):
        self.debugs.append(self._format(message, args))

    def info(self, message, *args):
        self.infos.append(self._format(message, args))

    def warning(self, message, *args):
        self.warnings.append(self._format(message, args))

    def exception(self, message, *args):
        self.exceptions.append(self._format(message, args))

    def critical(self, message, *args):
        self.criticals.append(self._format(message, args))


@pytest.fixture
def logger():
    return RecordingLogger()


def build_config(tmp_path: Path, **overrides) -> AppConfig:
    log_dir = tmp_path / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    values = dict(
        log_level="INFO",
        file_log_level="DEBUG",
        log_dir=str(log_dir),
        log_file=str(log_dir / "mpris.log"),
        player_name="test_player",
        identity="Test Player",
        desktop_entry="org.example.test",
        bus_type="session",
        engine_tick_ms=20,
        initial_volume=0.8,
        skip_bus=False,
    )
    values.update(overrides)
    return AppConfig(**values)


@pytest.fixture
def make_config(tmp_path):
    def _make(**overrides) -> AppConfig:
        return build_config(tmp_path, **overrides)

    return _make
