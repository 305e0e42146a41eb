"""One websocket peer: reads browser events and writes hub broadcasts."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from .hub import Hub, _Outbox

_log = logging.getLogger("shareserve")
SEND_CAPACITY = 1024


@dataclass
class Packet:
    """An event received from a browser."""

    type: str
    content: Any = None

    @staticmethod
    def from_json(data) -> "Packet":
        """Decode a packet; raise ValueError if ``data`` is not a packet object."""
        try:
            obj = json.loads(data)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"invalid packet: {exc}") from exc
        if not isinstance(obj, dict):
            raise ValueError("invalid packet: not a JSON object")
        packet_type = ""
        content = None
        for key, value in obj.items():
            lowered = key.lower()
            if lowered == "type":
                if value is not None and not isinstance(value, str):
                    raise ValueError("invalid packet: type must be a string")
                packet_type = value or ""
            elif lowered == "content":
                content = value
        return Packet(packet_type, content)


@dataclass
class SendPacket:
    """A message from the server to every browser."""

    type: str
    content: str = ""

    def to_json(self) -> bytes:
        return json.dumps(
            {"type": self.type, "content": self.content}, separators=(",", ":")
        ).encode("utf-8")


class Client:
    """Mediates between one websocket connection and the hub."""

    def __init__(self, hub: Hub, conn, send_capacity: int = SEND_CAPACITY) -> None:
        self.hub = hub
        self.conn = conn
        self.send = _Outbox(send_capacity)

    def read_pump(self) -> None:
        """Dispatch incoming packets until the connection fails, then unregister."""
        try:
            while True:
                try:
                    data = self.conn.read()
                except (OSError, EOFError, ConnectionError):
                    break
                if data is None:
                    break
                try:
                    packet = Packet.from_json(data)
                except ValueError:
                    continue
                self.dispatch(packet)
        finally:
            self.hub.unregister(self)
            try:
                self.conn.close()
            except OSError:
                pass

    def write_pump(self) -> None:
        """Write queued messages to the connection until the outbox is closed."""
        for message in self.send:
            try:
                self.conn.write(message)
            except OSError as exc:
                _log.debug("websocket write failed: %s", exc)

    @staticmethod
    def _as_string(content) -> str:
        if isinstance(content, str):
            return content
        _log.error("Error reading json packet: expected a string, got %r", content)
        return ""

    def dispatch(self, packet: Packet) -> None:
        """Act on one packet from the browser."""
        clipboard = self.hub.clipboard
        if packet.type == "newEntry":
            entry = self._as_string(packet.content)
            try:
                clipboard.add_entry(entry)
            except Exception as exc:  # noqa: BLE001 - reported, not fatal
                _log.error("Error creating Clipboard entry: %s", exc)
            self.refresh_clipboard()

        elif packet.type == "delEntry":
            raw_id = self._as_string(packet.content)
            try:
                entry_id = int(raw_id)
            except ValueError as exc:
                _log.error("Error reading json packet: %s", exc)
                entry_id = 0
            try:
                clipboard.delete_entry(entry_id)
            except Exception as exc:  # noqa: BLE001 - reported, not fatal
                _log.error(
                    "Error to delete Clipboard entry with id: %s: %s",
                    json.dumps(packet.content), exc,
                )
            self.refresh_clipboard()

        elif packet.type == "clearClipboard":
            try:
                clipboard.clear_clipboard()
            except Exception as exc:  # noqa: BLE001 - reported, not fatal
                _log.error("Error clearing clipboard: %s", exc)
            self.refresh_clipboard()

        elif packet.type == "command":
            if self.hub.cli_enabled:
                command = self._as_string(packet.content)
                _log.debug("Command was: %s", command)
                output = ""
                runner = self.hub.command_runner
                if runner is None:
                    _log.error("Error running command: no command runner configured")
                else:
                    try:
                        output = runner(command)
                    except Exception as exc:  # noqa: BLE001 - reported, not fatal
                        _log.error("Error running command: %s", exc)
                _log.debug("Output: %s", output)
                self.update_cli(output)

        else:
            _log.warning("The event sent via websocket cannot be handeled: %s", packet.type)

    def refresh_clipboard(self) -> None:
        """Tell every browser to reload the clipboard."""
        self.hub.broadcast(SendPacket("refreshClipboard").to_json())

    def update_cli(self, output: str) -> None:
        """Send command output to every browser."""
        self.hub.broadcast(SendPacket("updateCLI", output).to_json())