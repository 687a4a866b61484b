"""Unbounded FIFO channel carrying commands to the playback engine."""

from __future__ import annotations

import queue
import threading
import time

from ..domain.commands import MprisCommand


class CommandChannel:
    """Many senders, one receiver.

    The queue has no size limit so a burst of bus requests never blocks the
    dispatching thread.
    """

    def __init__(self) -> None:
        self._queue: "queue.SimpleQueue[MprisCommand]" = queue.SimpleQueue()
        self._closed = threading.Event()
        # Held while enqueuing so close() can't race with an in-flight put.
        self._send_lock = threading.Lock()
        self.receiver = CommandReceiver(self)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def sender(self) -> "CommandSender":
        return CommandSender(self)

    def _put(self, command: MprisCommand) -> bool:
        with self._send_lock:
            if self._closed.is_set():
                return False
            self._queue.put_nowait(command)
            return True

    def _close(self) -> None:
        with self._send_lock:
            self._closed.set()
            while True:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    break


class CommandSender:
    def __init__(self, channel: CommandChannel) -> None:
        self._channel = channel

    def send(self, command: MprisCommand) -> bool:
        """Enqueue without blocking; ``False`` once the receiver is gone."""
        return self._channel._put(command)

    @property
    def closed(self) -> bool:
        return self._channel.closed


class CommandReceiver:
    def __init__(self, channel: CommandChannel) -> None:
        self._channel = channel

    def recv(self, timeout: float | None = None) -> MprisCommand | None:
        """Next command, or ``None`` on timeout or after ``close()``."""
        if self._channel.closed:
            return None
        if timeout is None:
            # Poll in slices so a close() from another thread is noticed.
            while not self._channel.closed:
                command = self._get(0.1)
                if command is not None:
                    return command
            return None
        deadline = time.monotonic() + max(0.0, timeout)
        while not self._channel.closed:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return self._get(None)
            command = self._get(min(remaining, 0.1))
            if command is not None:
                return command
        return None

    def drain(self, limit: int = 100) -> list[MprisCommand]:
        commands: list[MprisCommand] = []
        while len(commands) < limit:
            command = self._get(None)
            if command is None:
                break
            commands.append(command)
        return commands

    def close(self) -> None:
        self._channel._close()

    @property
    def closed(self) -> bool:
        return self._channel.closed

    def _get(self, timeout: float | None) -> MprisCommand | None:
        try:
            if timeout is None:
                return self._channel._queue.get_nowait()
            return self._channel._queue.get(timeout=timeout)
        except queue.Empty:
            return None
