"""Command-line entrypoint for the MPRIS bridge."""

from __future__ import annotations

import argparse
import os
import signal
import threading
from dataclasses import replace
from typing import Sequence

from mpris_bridge.application import AppServices, initialize_app_services
from mpris_bridge.config import AppConfig, load_config
from mpris_bridge.domain.playback import LoopStatus
from mpris_bridge.integrations import MprisDBusService, VlcAudioBackend
from mpris_bridge.logging_config import setup_logging
from mpris_bridge.utils import clamp

AUDIO_EXTENSIONS = (".mp3", ".m4a", ".mp4", ".ogg", ".opus", ".flac", ".wav")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mpris-bridge",
        description="Play audio files and expose transport controls over MPRIS.",
    )
    parser.add_argument("paths", nargs="*", help="Audio files or directories to queue.")
    parser.add_argument(
        "--loop",
        choices=LoopStatus.ALL,
        default=LoopStatus.NONE,
        help="Initial loop status.",
    )
    parser.add_argument(
        "--volume",
        type=float,
        default=None,
        help="Initial volume between 0.0 and 1.0 (overrides INITIAL_VOLUME).",
    )
    parser.add_argument("--shuffle", action="store_true", help="Start with shuffle enabled.")
    parser.add_argument(
        "--autoplay",
        action="store_true",
        help="Start playing the first track right away.",
    )
    return parser


def collect_playlist(paths: Sequence[str], logger) -> list[str]:
    """Expand directories (sorted, recursive) and keep supported audio files."""
    playlist: list[str] = []
    for raw in paths:
        path = os.path.abspath(os.path.expanduser(raw))
        if os.path.isdir(path):
            for root, dirs, files in os.walk(path):
                dirs.sort()
                for name in sorted(files):
                    if name.lower().endswith(AUDIO_EXTENSIONS):
                        playlist.append(os.path.join(root, name))
        elif os.path.isfile(path):
            playlist.append(path)
        else:
            logger.warning("Skipping missing path: %s", raw)
    return playlist


def start_services(services: AppServices, logger) -> None:
    services.engine.start()
    if services.dbus_service is not None:
        services.dbus_service.run_in_thread()
    else:
        logger.info("Running without a D-Bus service")


def stop_services(services: AppServices, logger) -> None:
    if services.dbus_service is not None:
        services.dbus_service.stop()
    services.engine.stop()
    logger.info("Shutdown complete")


def launch(argv: Sequence[str] | None = None, *, config: AppConfig | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    config = config or load_config()
    if args.volume is not None:
        config = replace(config, initial_volume=clamp(args.volume, 0.0, 1.0))
    logger = setup_logging(config)
    logger.info("Starting MPRIS bridge")
    logger.info("Log file: %s", config.log_file)

    playlist = collect_playlist(args.paths, logger)
    stop_requested = threading.Event()
    fatal: list[BaseException] = []

    def _on_fatal(exc: BaseException) -> None:
        fatal.append(exc)
        stop_requested.set()

    def _service_factory(bindings, store, service_logger, **kwargs):
        return MprisDBusService(bindings, store, service_logger, on_fatal=_on_fatal, **kwargs)

    services = initialize_app_services(
        config=config,
        logger=logger,
        backend_factory=lambda: VlcAudioBackend(logger=logger),
        playlist=playlist,
        loop_status=args.loop,
        shuffle=args.shuffle,
        service_factory=_service_factory,
        on_fatal=_on_fatal,
    )

    for signum in (signal.SIGINT, signal.SIGTERM):
        signal.signal(signum, lambda *_: stop_requested.set())

    try:
        start_services(services, logger)
        if args.autoplay and playlist:
            services.player.play()
        stop_requested.wait()
    finally:
        stop_services(services, logger)
    if fatal:
        logger.critical("Exiting after fatal state error: %s", fatal[0])
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(launch())
