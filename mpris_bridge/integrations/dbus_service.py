"""Serve the MPRIS bindings on the session bus with dbus-fast."""

from __future__ import annotations

import asyncio
import threading
import xml.etree.ElementTree as ET
from typing import Any, Callable

from dbus_fast import Message, Variant
from dbus_fast import introspection as intr
from dbus_fast.aio import MessageBus
from dbus_fast.constants import (
    ArgDirection,
    BusType,
    ErrorType,
    MessageType,
    NameFlag,
    PropertyAccess,
    RequestNameReply,
)
from dbus_fast.errors import DBusError

from ..application.bindings import STATE_FIELD_PROPERTIES, InterfaceBinding, in_signature_args
from ..application.state_store import MprisStateStore, StateChange, StatePoisonedError
from ..constants import (
    INTROSPECTABLE_INTERFACE,
    MPRIS_BUS_NAME_PREFIX,
    MPRIS_OBJECT_PATH,
    PLAYER_INTERFACE,
    PROPERTIES_INTERFACE,
)
from ..domain.playback import PlaybackStatus

EMITS_CHANGED_ANNOTATION = "org.freedesktop.DBus.Property.EmitsChangedSignal"
INTROSPECTION_DOCTYPE = (
    '<!DOCTYPE node PUBLIC "-//freedesktop//DTD D-BUS Object Introspection 1.0//EN"\n'
    '"http://www.freedesktop.org/standards/dbus/1.0/introspect.dtd">\n'
)

_COERCE: dict[str, Callable[[Any], Any]] = {
    "b": bool,
    "d": float,
    "x": int,
    "s": str,
}


def to_variant(signature: str, value: Any) -> Variant:
    if isinstance(value, PlaybackStatus):
        value = value.value
    coerce = _COERCE.get(signature)
    if coerce is not None:
        value = coerce(value)
    return Variant(signature, value)


class MprisDBusService:
    """Low-level message handler dispatching through explicit bindings.

    Calls arrive on the event-loop thread. State changes arrive on the
    engine thread and are handed to the loop with ``call_soon_threadsafe``.
    """

    def __init__(
        self,
        bindings: list[InterfaceBinding],
        store: MprisStateStore,
        logger,
        *,
        player_name: str,
        bus_type: str = "session",
        on_fatal: Callable[[BaseException], None] | None = None,
    ) -> None:
        self.bindings = {binding.name: binding for binding in bindings}
        self.store = store
        self.logger = logger
        self.bus_name = f"{MPRIS_BUS_NAME_PREFIX}{player_name}"
        self.bus_type = BusType.SYSTEM if bus_type == "system" else BusType.SESSION
        self.on_fatal = on_fatal
        self.bus: MessageBus | None = None
        self.loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._ready = threading.Event()
        self._startup_error: BaseException | None = None

    # Lifecycle

    async def connect(self) -> None:
        self.loop = asyncio.get_running_loop()
        bus = await MessageBus(bus_type=self.bus_type).connect()
        bus.add_message_handler(self.handle_message)
        reply = await bus.request_name(self.bus_name, NameFlag.DO_NOT_QUEUE)
        if reply not in (RequestNameReply.PRIMARY_OWNER, RequestNameReply.ALREADY_OWNER):
            bus.disconnect()
            raise RuntimeError(f"Bus name {self.bus_name} is taken ({reply.name})")
        self.bus = bus
        self.store.add_listener(self._on_state_change)
        self.logger.info("MPRIS service registered as %s", self.bus_name)

    async def close(self) -> None:
        self.store.remove_listener(self._on_state_change)
        if self.bus is not None:
            self.bus.disconnect()
            await self.bus.wait_for_disconnect()
            self.bus = None
        self.logger.info("MPRIS service closed")

    def run_in_thread(self, timeout: float = 10.0) -> None:
        """Start a private event loop on a daemon thread and connect on it."""
        self._thread = threading.Thread(target=self._run_loop, name="mpris-dbus", daemon=True)
        self._thread.start()
        if not self._ready.wait(timeout):
            raise TimeoutError("Timed out connecting to D-Bus")
        if self._startup_error is not None:
            raise self._startup_error

    def _run_loop(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            loop.run_until_complete(self.connect())
        except Exception as exc:
            self.logger.exception("Failed to connect to D-Bus")
            self._startup_error = exc
            self._ready.set()
            loop.close()
            return
        self._ready.set()
        try:
            loop.run_forever()
        finally:
            loop.close()

    def stop(self, timeout: float = 2.0) -> None:
        loop = self.loop
        if loop is None or self._thread is None or loop.is_closed():
            return
        future = asyncio.run_coroutine_threadsafe(self.close(), loop)
        try:
            future.result(timeout)
        except Exception:
            self.logger.exception("Failed to close D-Bus connection")
        loop.call_soon_threadsafe(loop.stop)
        self._thread.join(timeout)
        self._thread = None

    # Incoming messages

    def handle_message(self, msg: Message) -> Message | None:
        if msg.message_type is not MessageType.METHOD_CALL or msg.path != MPRIS_OBJECT_PATH:
            return None
        # Peer and anything else unclaimed fall through to dbus-fast's defaults.
        if msg.interface and msg.interface not in self.bindings and msg.interface not in (
            PROPERTIES_INTERFACE,
            INTROSPECTABLE_INTERFACE,
        ):
            return None
        try:
            if msg.interface == PROPERTIES_INTERFACE:
                return self._handle_properties(msg)
            if msg.interface == INTROSPECTABLE_INTERFACE:
                if msg.member != "Introspect":
                    raise DBusError(ErrorType.UNKNOWN_METHOD, f"Unknown method {msg.member}")
                return Message.new_method_return(msg, "s", [self.introspect()])
            return self._handle_method(msg)
        except StatePoisonedError as exc:
            self.logger.critical("Refusing to serve poisoned MPRIS state: %s", exc)
            if self.on_fatal is not None:
                self.on_fatal(exc)
            raise

    def _handle_method(self, msg: Message) -> Message:
        binding = self._binding_for_member(msg.interface, msg.member)
        method = binding.methods[msg.member]
        if msg.signature != method.in_signature:
            raise DBusError(
                ErrorType.INVALID_ARGS,
                f"{msg.member} expects '{method.in_signature}', got '{msg.signature}'",
            )
        method.handler(*msg.body)
        return Message.new_method_return(msg)

    def _binding_for_member(self, interface: str | None, member: str) -> InterfaceBinding:
        if interface:
            binding = self._interface(interface)
            if member not in binding.methods:
                raise DBusError(ErrorType.UNKNOWN_METHOD, f"Unknown method {interface}.{member}")
            return binding
        # The interface field is optional on method calls.
        for binding in self.bindings.values():
            if member in binding.methods:
                return binding
        raise DBusError(ErrorType.UNKNOWN_METHOD, f"Unknown method {member}")

    def _interface(self, name: str) -> InterfaceBinding:
        binding = self.bindings.get(name)
        if binding is None:
            raise DBusError(ErrorType.UNKNOWN_INTERFACE, f"Unknown interface {name}")
        return binding

    def _handle_properties(self, msg: Message) -> Message:
        member = msg.member
        if member == "Get" and msg.signature == "ss":
            interface_name, prop_name = msg.body
            prop = self._interface(interface_name).properties.get(prop_name)
            if prop is None:
                raise DBusError(ErrorType.UNKNOWN_PROPERTY, f"Unknown property {prop_name}")
            return Message.new_method_return(msg, "v", [to_variant(prop.signature, prop.getter())])
        if member == "GetAll" and msg.signature == "s":
            return Message.new_method_return(msg, "a{sv}", [self.get_all(msg.body[0])])
        if member == "Set" and msg.signature == "ssv":
            interface_name, prop_name, value = msg.body
            prop = self._interface(interface_name).properties.get(prop_name)
            if prop is None:
                raise DBusError(ErrorType.UNKNOWN_PROPERTY, f"Unknown property {prop_name}")
            if prop.setter is None:
                raise DBusError(ErrorType.PROPERTY_READ_ONLY, f"{prop_name} is read-only")
            if value.signature != prop.signature:
                raise DBusError(
                    ErrorType.INVALID_ARGS,
                    f"{prop_name} expects '{prop.signature}', got '{value.signature}'",
                )
            prop.setter(value.value)
            return Message.new_method_return(msg)
        if member in ("Get", "GetAll", "Set"):
            raise DBusError(ErrorType.INVALID_ARGS, f"Bad signature '{msg.signature}' for {member}")
        raise DBusError(ErrorType.UNKNOWN_METHOD, f"Unknown method {member}")

    def get_all(self, interface_name: str) -> dict[str, Variant]:
        binding = self._interface(interface_name)
        snapshot = None
        if any(prop.state_field for prop in binding.properties.values()):
            snapshot = self.store.read()
        values: dict[str, Variant] = {}
        for name, prop in binding.properties.items():
            if snapshot is not None and prop.state_field:
                value = getattr(snapshot, prop.state_field)
            else:
                value = prop.getter()
            values[name] = to_variant(prop.signature, value)
        return values

    def introspect(self) -> str:
        node = intr.Node.default(MPRIS_OBJECT_PATH)
        for binding in self.bindings.values():
            interface = intr.Interface(binding.name)
            for method in binding.methods.values():
                codes = in_signature_args(method.in_signature)
                names = method.arg_names or tuple(None for _ in codes)
                interface.methods.append(
                    intr.Method(
                        method.name,
                        in_args=[
                            intr.Arg(code, ArgDirection.IN, name)
                            for code, name in zip(codes, names)
                        ],
                    )
                )
            for prop in binding.properties.values():
                access = PropertyAccess.READWRITE if prop.writable else PropertyAccess.READ
                interface.properties.append(intr.Property(prop.name, prop.signature, access))
            for signal in binding.signals.values():
                interface.signals.append(
                    intr.Signal(
                        signal.name,
                        [intr.Arg(code, None, name) for code, name in zip(signal.signature, signal.arg_names)],
                    )
                )
            node.interfaces.append(interface)
        root = node.to_xml()
        for element in root.findall("interface"):
            binding = self.bindings.get(element.get("name"))
            if binding is None:
                continue
            for prop_element in element.findall("property"):
                prop = binding.properties.get(prop_element.get("name"))
                if prop is not None and not prop.emits_change:
                    ET.SubElement(
                        prop_element, "annotation", name=EMITS_CHANGED_ANNOTATION, value="false"
                    )
        return INTROSPECTION_DOCTYPE + ET.tostring(root, encoding="unicode")

    # Outgoing signals

    def _on_state_change(self, change: StateChange) -> None:
        player = self.bindings.get(PLAYER_INTERFACE)
        if player is None:
            return
        changed: dict[str, Variant] = {}
        for field_name in change.changed:
            prop = player.properties.get(STATE_FIELD_PROPERTIES.get(field_name, ""))
            if prop is None or not prop.emits_change:
                continue
            changed[prop.name] = to_variant(prop.signature, getattr(change.snapshot, field_name))
        seeked_to = change.snapshot.position if change.seeked else None
        if not changed and seeked_to is None:
            return
        loop = self.loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self.emit_changes, changed, seeked_to)

    def emit_changes(self, changed: dict[str, Variant], seeked_to: int | None) -> None:
        if self.bus is None:
            return
        if changed:
            self.bus.send(
                Message.new_signal(
                    MPRIS_OBJECT_PATH,
                    PROPERTIES_INTERFACE,
                    "PropertiesChanged",
                    "sa{sv}as",
                    [PLAYER_INTERFACE, changed, []],
                )
            )
        if seeked_to is not None:
            self.bus.send(
                Message.new_signal(MPRIS_OBJECT_PATH, PLAYER_INTERFACE, "Seeked", "x", [int(seeked_to)])
            )
