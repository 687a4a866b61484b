"""Application bootstrap assembly for state, adapters, engine and bus."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

from ..config import AppConfig
from ..domain.playback import LoopStatus, MprisState
from .bindings import InterfaceBinding, build_player_binding, build_root_binding
from .command_channel import CommandChannel
from .engine import PlaybackEngine
from .player_adapter import MediaPlayer2Player
from .ports import PlaybackBackendPort
from .root_adapter import MediaPlayer2Root
from .state_store import MprisStateStore

BackendFactory = Callable[[], PlaybackBackendPort]
ServiceFactory = Callable[..., object]


@dataclass(frozen=True)
class AppServices:
    store: MprisStateStore
    channel: CommandChannel
    root: MediaPlayer2Root
    player: MediaPlayer2Player
    bindings: list[InterfaceBinding]
    engine: PlaybackEngine
    dbus_service: object | None


def initialize_app_services(
    *,
    config: AppConfig,
    logger,
    backend_factory: BackendFactory,
    playlist: Sequence[str] = (),
    loop_status: str = LoopStatus.NONE,
    shuffle: bool = False,
    service_factory: ServiceFactory | None = None,
    on_fatal: Callable[[BaseException], None] | None = None,
) -> AppServices:
    """Wire the shared state, command channel, adapters and engine together."""
    store = MprisStateStore(MprisState(volume=config.initial_volume), logger=logger)
    channel = CommandChannel()

    root = MediaPlayer2Root(identity=config.identity, desktop_entry=config.desktop_entry)
    player = MediaPlayer2Player(store, channel.sender(), logger)
    bindings = [build_root_binding(root), build_player_binding(player)]

    engine = PlaybackEngine(
        backend_factory(),
        channel.receiver,
        store.writer(),
        logger,
        playlist=playlist,
        tick_seconds=config.engine_tick_seconds,
        initial_volume=config.initial_volume,
        loop_status=loop_status,
        shuffle=shuffle,
        on_fatal=on_fatal,
    )
    logger.info(
        "Player state ready: tracks=%s volume=%.2f loop=%s shuffle=%s",
        len(playlist),
        config.initial_volume,
        loop_status,
        shuffle,
    )

    dbus_service = None
    if config.skip_bus:
        logger.info("MPRIS_SKIP_BUS enabled; the D-Bus service is not created")
    elif service_factory is not None:
        dbus_service = service_factory(
            bindings,
            store,
            logger,
            player_name=config.player_name,
            bus_type=config.bus_type,
        )

    return AppServices(
        store=store,
        channel=channel,
        root=root,
        player=player,
        bindings=bindings,
        engine=engine,
        dbus_service=dbus_service,
    )
