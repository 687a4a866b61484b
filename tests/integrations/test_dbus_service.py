import asyncio
import xml.etree.ElementTree as ET

import pytest
from dbus_fast import Message, Variant
from dbus_fast.constants import BusType, ErrorType, MessageType, RequestNameReply
from dbus_fast.errors import DBusError

from mpris_bridge.application.bindings import build_player_binding, build_root_binding
from mpris_bridge.application.command_channel import CommandChannel
from mpris_bridge.application.player_adapter import MediaPlayer2Player
from mpris_bridge.application.root_adapter import MediaPlayer2Root
from mpris_bridge.application.state_store import MprisStateStore, StatePoisonedError
from mpris_bridge.domain.commands import PlayPause, Seek, SetShuffle, SetVolume
from mpris_bridge.domain.playback import MprisState, PlaybackStatus
from mpris_bridge.integrations import dbus_service
from mpris_bridge.integrations.dbus_service import MprisDBusService, to_variant

PATH = "/org/mpris/MediaPlayer2"
ROOT = "org.mpris.MediaPlayer2"
PLAYER = "org.mpris.MediaPlayer2.Player"
PROPS = "org.freedesktop.DBus.Properties"


class _Loop:
    def __init__(self):
        self.calls = []

    def is_closed(self):
        return False

    def call_soon_threadsafe(self, callback, *args):
        self.calls.append((callback, args))


class _Bus:
    reply = RequestNameReply.PRIMARY_OWNER

    def __init__(self, bus_type=None):
        self.bus_type = bus_type
        self.handlers = []
        self.sent = []
        self.requested = None
        self.disconnected = False

    async def connect(self):
        return self

    def add_message_handler(self, handler):
        self.handlers.append(handler)

    async def request_name(self, name, flags):
        self.requested = (name, flags)
        return self.reply

    def disconnect(self):
        self.disconnected = True

    async def wait_for_disconnect(self):
        return None

    def send(self, message):
        self.sent.append(message)


def _call(interface, member, signature="", body=None, path=PATH):
    return Message(
        path=path,
        interface=interface,
        member=member,
        signature=signature,
        body=body or [],
        serial=1,
    )


@pytest.fixture
def bridge(logger):
    store = MprisStateStore(MprisState(volume=0.4), logger=logger)
    channel = CommandChannel()
    player = MediaPlayer2Player(store, channel.sender(), logger)
    bindings = [build_root_binding(MediaPlayer2Root()), build_player_binding(player)]
    fatal = []
    service = MprisDBusService(
        bindings, store, logger, player_name="test_player", on_fatal=fatal.append
    )
    return service, store, channel, fatal


def _error_type(service, message):
    with pytest.raises(DBusError) as excinfo:
        service.handle_message(message)
    return excinfo.value.type


def test_to_variant_coerces_basic_types():
    assert to_variant("s", PlaybackStatus.PAUSED) == Variant("s", "Paused")
    assert to_variant("d", 1) == Variant("d", 1.0)
    assert to_variant("x", 7.0).value == 7
    assert to_variant("as", ["file"]) == Variant("as", ["file"])


def test_bus_name_and_type(bridge, logger):
    service, *_ = bridge
    system = MprisDBusService([], MprisStateStore(), logger, player_name="x", bus_type="system")

    assert service.bus_name == "org.mpris.MediaPlayer2.test_player"
    assert service.bus_type is BusType.SESSION
    assert system.bus_type is BusType.SYSTEM


def test_foreign_messages_are_left_alone(bridge):
    service, *_ = bridge

    assert service.handle_message(_call(PLAYER, "Play", path="/other")) is None
    signal = Message.new_signal(PATH, PLAYER, "Seeked", "x", [1])
    assert service.handle_message(signal) is None


def test_get_reads_current_state(bridge):
    service, store, _channel, _fatal = bridge
    store.writer().update(playback_status=PlaybackStatus.PLAYING)

    reply = service.handle_message(_call(PROPS, "Get", "ss", [PLAYER, "PlaybackStatus"]))
    assert reply.message_type is MessageType.METHOD_RETURN
    assert reply.body[0] == Variant("s", "Playing")

    reply = service.handle_message(_call(PROPS, "Get", "ss", [ROOT, "SupportedMimeTypes"]))
    assert reply.body[0].signature == "as"
    assert "audio/flac" in reply.body[0].value


def test_get_all_returns_every_property(bridge):
    service, *_ = bridge

    reply = service.handle_message(_call(PROPS, "GetAll", "s", [PLAYER]))
    values = reply.body[0]

    assert values["Volume"] == Variant("d", 0.4)
    assert values["Rate"] == Variant("d", 1.0)
    assert values["Metadata"].signature == "a{sv}"
    assert values["CanGoPrevious"] == Variant("b", True)
    assert len(values) == 15
    assert service.get_all(ROOT)["Identity"] == Variant("s", "Ethereal Waves")


def test_property_errors(bridge):
    service, *_ = bridge

    assert _error_type(service, _call(PROPS, "Get", "ss", [PLAYER, "Bogus"])) == (
        ErrorType.UNKNOWN_PROPERTY.value
    )
    assert _error_type(service, _call(PROPS, "GetAll", "s", ["org.example.Nope"])) == (
        ErrorType.UNKNOWN_INTERFACE.value
    )
    assert _error_type(
        service, _call(PROPS, "Set", "ssv", [PLAYER, "PlaybackStatus", Variant("s", "Playing")])
    ) == ErrorType.PROPERTY_READ_ONLY.value
    assert _error_type(
        service, _call(PROPS, "Set", "ssv", [PLAYER, "Volume", Variant("s", "loud")])
    ) == ErrorType.INVALID_ARGS.value
    assert _error_type(service, _call(PROPS, "Get", "s", [PLAYER])) == ErrorType.INVALID_ARGS.value
    assert _error_type(service, _call(PROPS, "Drop", "s", [PLAYER])) == ErrorType.UNKNOWN_METHOD.value


def test_set_enqueues_without_touching_state(bridge):
    service, store, channel, _fatal = bridge

    service.handle_message(_call(PROPS, "Set", "ssv", [PLAYER, "Volume", Variant("d", 0.5)]))
    service.handle_message(_call(PROPS, "Set", "ssv", [PLAYER, "Shuffle", Variant("b", True)]))
    service.handle_message(_call(PROPS, "Set", "ssv", [PLAYER, "Rate", Variant("d", 2.0)]))

    assert store.read().volume == 0.4
    assert channel.receiver.drain() == [SetVolume(0.5), SetShuffle(True)]


def test_method_calls_dispatch_through_bindings(bridge):
    service, _store, channel, _fatal = bridge

    reply = service.handle_message(_call(PLAYER, "Seek", "x", [-5_000_000]))
    service.handle_message(_call(None, "PlayPause"))
    service.handle_message(_call(ROOT, "Raise"))

    assert reply.message_type is MessageType.METHOD_RETURN
    assert channel.receiver.drain() == [Seek(-5_000_000), PlayPause()]


def test_method_errors(bridge):
    service, _store, channel, _fatal = bridge

    assert _error_type(service, _call(PLAYER, "Seek", "s", ["far"])) == ErrorType.INVALID_ARGS.value
    assert _error_type(service, _call(PLAYER, "Rewind")) == ErrorType.UNKNOWN_METHOD.value
    assert _error_type(service, _call(None, "Rewind")) == ErrorType.UNKNOWN_METHOD.value
    assert channel.receiver.drain() == []


def test_introspection_lists_registered_members(bridge):
    service, *_ = bridge

    reply = service.handle_message(
        _call("org.freedesktop.DBus.Introspectable", "Introspect")
    )
    xml = reply.body[0]

    assert f'name="{PLAYER}"' in xml
    assert f'name="{ROOT}"' in xml
    for member in ("SetPosition", "TrackId", "Seeked", "SupportedUriSchemes", "LoopStatus"):
        assert f'name="{member}"' in xml
    assert 'access="readwrite"' in xml


def test_poisoned_state_is_fatal(bridge, logger):
    service, store, _channel, fatal = bridge
    writer = store.writer()
    with pytest.raises(ValueError):
        with writer.edit() as state:
            state.volume = 0.9
            raise ValueError("half-written")

    with pytest.raises(StatePoisonedError):
        service.handle_message(_call(PROPS, "Get", "ss", [PLAYER, "Volume"]))

    assert len(fatal) == 1
    assert isinstance(fatal[0], StatePoisonedError)
    assert logger.criticals


def test_state_changes_are_scheduled_on_the_loop(bridge):
    service, store, _channel, _fatal = bridge
    loop = _Loop()
    service.loop = loop
    store.add_listener(service._on_state_change)
    writer = store.writer()

    writer.update(volume=0.3, position=5)
    writer.update(position=6)
    writer.seeked(42)
    writer.update(playback_status=PlaybackStatus.PLAYING)

    assert [args for _callback, args in loop.calls] == [
        ({"Volume": Variant("d", 0.3)}, None),
        ({}, 42),
        ({"PlaybackStatus": Variant("s", "Playing")}, None),
    ]
    assert all(callback == service.emit_changes for callback, _args in loop.calls)


def test_emit_changes_sends_signals(bridge):
    service, *_ = bridge
    bus = _Bus()
    service.bus = bus

    service.emit_changes({"Shuffle": Variant("b", True)}, 42)

    changed, seeked = bus.sent
    assert changed.message_type is MessageType.SIGNAL
    assert (changed.interface, changed.member) == (PROPS, "PropertiesChanged")
    assert changed.body == [PLAYER, {"Shuffle": Variant("b", True)}, []]
    assert (seeked.interface, seeked.member, seeked.body) == (PLAYER, "Seeked", [42])


def test_emit_changes_without_bus_is_noop(bridge):
    service, *_ = bridge
    service.emit_changes({"Shuffle": Variant("b", True)}, None)


def test_connect_registers_handler_name_and_listener(bridge, monkeypatch, logger):
    service, store, _channel, _fatal = bridge
    monkeypatch.setattr(dbus_service, "MessageBus", _Bus)

    async def _lifecycle():
        await service.connect()
        bus = service.bus
        assert bus.handlers == [service.handle_message]
        assert bus.requested[0] == "org.mpris.MediaPlayer2.test_player"
        store.writer().update(shuffle=True)
        await asyncio.sleep(0)
        assert bus.sent[0].member == "PropertiesChanged"
        await service.close()
        return bus

    bus = asyncio.run(_lifecycle())

    assert bus.disconnected is True
    assert service.bus is None
    assert any("registered" in line for line in logger.infos)


def test_connect_fails_when_name_is_taken(bridge, monkeypatch):
    service, *_ = bridge

    class _TakenBus(_Bus):
        reply = RequestNameReply.EXISTS

    monkeypatch.setattr(dbus_service, "MessageBus", _TakenBus)

    with pytest.raises(RuntimeError, match="is taken"):
        asyncio.run(service.connect())
    assert service.bus is None


def test_unclaimed_interfaces_fall_through_to_library_defaults(bridge):
    service, _store, channel, _fatal = bridge

    assert service.handle_message(_call("org.freedesktop.DBus.Peer", "Ping")) is None
    assert service.handle_message(_call("org.freedesktop.DBus.Peer", "GetMachineId")) is None
    assert service.handle_message(_call("org.example.Nope", "Play")) is None
    assert channel.receiver.drain() == []


def test_get_all_reads_one_snapshot(bridge, monkeypatch):
    service, store, _channel, _fatal = bridge
    store.writer().update(playback_status=PlaybackStatus.PLAYING, position=7)
    reads = []
    real_read = store.read

    def _counting_read():
        reads.append(1)
        return real_read()

    monkeypatch.setattr(store, "read", _counting_read)

    values = service.get_all(PLAYER)

    assert len(reads) == 1
    assert values["PlaybackStatus"] == Variant("s", "Playing")
    assert values["Position"] == Variant("x", 7)
    assert values["Volume"] == Variant("d", 0.4)

    service.get_all(ROOT)
    assert len(reads) == 1


def test_introspection_marks_properties_without_change_signals(bridge):
    service, *_ = bridge

    root = ET.fromstring(service.introspect())
    player = next(el for el in root.findall("interface") if el.get("name") == PLAYER)
    annotations = {
        prop.get("name"): [a.get("value") for a in prop.findall("annotation")]
        for prop in player.findall("property")
    }

    assert annotations["Position"] == ["false"]
    assert annotations["Rate"] == ["false"]
    assert annotations["PlaybackStatus"] == []
    assert annotations["Volume"] == []
    names = {el.get("name") for el in root.findall("interface")}
    assert "org.freedesktop.DBus.Peer" in names
