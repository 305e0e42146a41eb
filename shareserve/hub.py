"""Websocket hub: keeps connected browser clients in sync."""

from __future__ import annotations

import queue
import threading
from collections import deque
from typing import Any, Callable, Iterator, Optional

_STOP = "stop"
_REGISTER = "register"
_UNREGISTER = "unregister"
_BROADCAST = "broadcast"


class _Outbox:
    """Bounded, closable FIFO of outgoing messages for one client."""

    def __init__(self, capacity: int) -> None:
        self._items: deque = deque()
        self._capacity = capacity
        self._cond = threading.Condition()
        self._closed = False

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    def put_nowait(self, item) -> None:
        """Queue ``item``; raise queue.Full when no room is left."""
        with self._cond:
            if self._closed:
                raise RuntimeError("send on closed outbox")
            if len(self._items) >= self._capacity:
                raise queue.Full
            self._items.append(item)
            self._cond.notify()

    def close(self) -> None:
        """Accept no more items; readers drain what is left and then stop."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def get(self, timeout: Optional[float] = None):
        """Return the next item; EOFError once closed and drained."""
        with self._cond:
            ready = self._cond.wait_for(lambda: self._items or self._closed, timeout)
            if self._items:
                return self._items.popleft()
            if ready:
                raise EOFError("outbox closed")
            raise queue.Empty

    def __iter__(self) -> Iterator:
        while True:
            try:
                yield self.get()
            except EOFError:
                return


class Hub:
    """Holds the active clients and fans broadcast messages out to them."""

    def __init__(
        self,
        clipboard: Any,
        cli_enabled: bool = False,
        command_runner: Optional[Callable[[str], str]] = None,
    ) -> None:
        self.clipboard = clipboard
        self.cli_enabled = cli_enabled
        self.command_runner = command_runner
        self.clients: set = set()
        self._events: queue.Queue = queue.Queue()

    def register(self, client) -> None:
        """Ask the hub to start delivering broadcasts to ``client``."""
        self._events.put((_REGISTER, client))

    def unregister(self, client) -> None:
        """Ask the hub to drop ``client`` and close its outbox."""
        self._events.put((_UNREGISTER, client))

    def broadcast(self, message) -> None:
        """Ask the hub to deliver ``message`` to every client."""
        self._events.put((_BROADCAST, message))

    def stop(self) -> None:
        """Make ``run`` return once the events queued before it are handled."""
        self._events.put((_STOP, None))

    def run(self) -> None:
        """Handle register, unregister and broadcast events until stopped."""
        while True:
            kind, value = self._events.get()
            if kind == _STOP:
                return
            if kind == _REGISTER:
                self.clients.add(value)
            elif kind == _UNREGISTER:
                if value in self.clients:
                    self.clients.discard(value)
                    value.send.close()
            elif kind == _BROADCAST:
                for client in list(self.clients):
                    try:
                        client.send.put_nowait(value)
                    except queue.Full:
                        client.send.close()
                        self.clients.discard(client)