import threading

import pytest

from shareserve.client import Client
from shareserve.hub import Hub


class _Clipboard:
    def __init__(self):
        self.entries = []

    def add_entry(self, text):
        self.entries.append(text)

    def delete_entry(self, entry_id):
        del self.entries[entry_id]

    def clear_clipboard(self):
        self.entries.clear()


def _finish(hub):
    hub.stop()
    hub.run()


def test_register_and_broadcast():
    hub = Hub(_Clipboard(), False)
    client1 = Client(hub, None, send_capacity=1)
    client2 = Client(hub, None, send_capacity=1)
    hub.register(client1)
    hub.register(client2)
    hub.broadcast(b"hello")
    _finish(hub)
    assert hub.clients == {client1, client2}
    assert client1.send.get(timeout=1) == b"hello"
    assert client2.send.get(timeout=1) == b"hello"


def test_unregister_removes_and_closes():
    hub = Hub(_Clipboard(), False)
    client1 = Client(hub, None, send_capacity=1)
    client2 = Client(hub, None, send_capacity=1)
    hub.register(client1)
    hub.register(client2)
    hub.broadcast(b"hello")
    hub.unregister(client1)
    _finish(hub)
    assert client1 not in hub.clients
    assert client2 in hub.clients
    assert client1.send.closed
    assert list(client1.send) == [b"hello"]
    assert not client2.send.closed


def test_unregister_unknown_client_is_ignored():
    hub = Hub(_Clipboard(), False)
    stranger = Client(hub, None, send_capacity=1)
    hub.unregister(stranger)
    _finish(hub)
    assert hub.clients == set()
    assert not stranger.send.closed


def test_broadcast_to_full_client_drops_it():
    hub = Hub(_Clipboard(), False)
    client = Client(hub, None, send_capacity=1)
    client.send.put_nowait(b"dummy")
    hub.register(client)
    hub.broadcast(b"message")
    _finish(hub)
    assert client not in hub.clients
    assert client.send.closed
    assert list(client.send) == [b"dummy"]


def test_run_in_thread_stops():
    hub = Hub(_Clipboard(), False)
    client = Client(hub, None, send_capacity=4)
    worker = threading.Thread(target=hub.run, daemon=True)
    worker.start()
    hub.register(client)
    hub.broadcast(b"one")
    hub.broadcast(b"two")
    hub.stop()
    worker.join(timeout=2)
    assert not worker.is_alive()
    assert client.send.get(timeout=1) == b"one"
    assert client.send.get(timeout=1) == b"two"


def test_closed_outbox_rejects_items():
    hub = Hub(_Clipboard(), False)
    client = Client(hub, None, send_capacity=2)
    client.send.close()
    with pytest.raises(RuntimeError):
        client.send.put_nowait(b"late")
    with pytest.raises(EOFError):
        client.send.get(timeout=0.1)