"""SSH server that offers only the SFTP subsystem."""

from __future__ import annotations

import logging
import os
import posixpath
import socket
import threading
from dataclasses import dataclass, field
from typing import Any

import paramiko

from . import logger
from .sftphandlers import DefaultHandler, ReadOnlyHandler, UploadOnlyHandler
from .sftphelpers import SftpRequest, is_allowed_ip, load_authorized_keys
from .webhook import DiscordWebhook, Webhook

_log = logging.getLogger("shareserve")
_KEY_CLASSES = (paramiko.Ed25519Key, paramiko.ECDSAKey, paramiko.RSAKey)


def _load_host_key(path: str) -> paramiko.PKey:
    with open(path, "rb"):
        pass
    last: Exception | None = None
    for cls in _KEY_CLASSES:
        try:
            return cls.from_private_key_file(path)
        except (paramiko.SSHException, ValueError) as exc:
            last = exc
    raise ValueError(f"cannot parse host key {path}: {last}")


@dataclass
class SFTPServer:
    """Configuration and runtime of the SFTP server."""

    ip: str = "0.0.0.0"
    port: int = 2022
    key_file: str = ""
    username: str = ""
    password: str = ""
    root: str = "."
    read_only: bool = False
    upload_only: bool = False
    host_key_file: str = ""
    webhook: Webhook = field(default_factory=DiscordWebhook)
    whitelist: Any = None
    _authorized_keys: set[bytes] = field(default_factory=set, repr=False)

    def handler_for(self, client_ip: str):
        """Return the handler matching the configured mode."""
        if self.read_only:
            return ReadOnlyHandler(self.root, client_ip, self)
        if self.upload_only:
            return UploadOnlyHandler(self.root, client_ip, self)
        return DefaultHandler(self.root, client_ip, self)

    def check_password(self, username: str, password: str) -> bool:
        """Password auth is only on when both username and password are set."""
        if not (self.username and self.password):
            return False
        return username == self.username and password == self.password

    def check_public_key(self, key) -> bool:
        """Return whether ``key`` is in the loaded authorized keys."""
        return key.asbytes() in self._authorized_keys

    def start(self) -> None:
        """Load keys, listen and serve connections until the socket fails."""
        if self.host_key_file:
            host_key = _load_host_key(self.host_key_file)
        else:
            host_key = paramiko.RSAKey.generate(2048)
        if self.key_file:
            self._authorized_keys = load_authorized_keys(self.key_file)

        _log.info("Starting SFTP server on port %s:%d", self.ip, self.port)
        with socket.create_server((self.ip, self.port)) as listener:
            while True:
                conn, addr = listener.accept()
                threading.Thread(
                    target=self._serve, args=(conn, addr, host_key), daemon=True
                ).start()

    def _serve(self, conn: socket.socket, addr, host_key: paramiko.PKey) -> None:
        client_ip = f"{addr[0]}:{addr[1]}"
        if not is_allowed_ip(client_ip, self.whitelist):
            _log.warning("[WHITELIST] SFTP access denied for IP: %s", client_ip)
            conn.close()
            return
        transport = paramiko.Transport(conn)
        try:
            transport.add_server_key(host_key)
            transport.set_subsystem_handler("sftp", paramiko.SFTPServer, _SFTPInterface)
            transport.start_server(server=_SSHInterface(self, client_ip))
            transport.join()
        except (paramiko.SSHException, OSError, EOFError) as exc:
            _log.error("SFTP server error: %s", exc)
        finally:
            transport.close()

    def handle_webhook_send(self, event: str, request: SftpRequest, ip: str, blocked: bool) -> None:
        """Forward a description of ``request`` to the webhook."""
        prefix = "[SFTP] BLOCKED" if blocked else "[SFTP]"
        if request.method == "Rename":
            message = f'{prefix} {ip} - [{request.method}] - "{request.filepath} to {request.target}"'
        else:
            message = f'{prefix} {ip} - [{request.method}] - "{request.filepath}"'
        logger.handle_webhook_send(message, "sftp", self.webhook)


class _SSHInterface(paramiko.ServerInterface):
    def __init__(self, server: SFTPServer, client_ip: str):
        self.server = server
        self.handler = server.handler_for(client_ip)

    def get_allowed_auths(self, username):
        methods = []
        if self.server.username and self.server.password:
            methods.append("password")
        if self.server.key_file:
            methods.append("publickey")
        return ",".join(methods) or "none"

    def check_auth_password(self, username, password):
        if self.server.check_password(username, password):
            return paramiko.AUTH_SUCCESSFUL
        return paramiko.AUTH_FAILED

    def check_auth_publickey(self, username, key):
        if self.server.key_file and self.server.check_public_key(key):
            return paramiko.AUTH_SUCCESSFUL
        return paramiko.AUTH_FAILED

    def check_channel_request(self, kind, chanid):
        if kind == "session":
            return paramiko.OPEN_SUCCEEDED
        return paramiko.OPEN_FAILED_ADMINISTRATIVELY_PROHIBITED

    def check_channel_pty_request(self, channel, term, width, height, pixelwidth, pixelheight, modes):
        return True

    def check_channel_shell_request(self, channel):
        threading.Thread(target=self._reject, args=(channel,), daemon=True).start()
        return True

    def check_channel_exec_request(self, channel, command):
        return self.check_channel_shell_request(channel)

    @staticmethod
    def _reject(channel) -> None:
        try:
            channel.sendall(b"This server only supports SFTP.\n")
            channel.send_exit_status(1)
        finally:
            channel.close()


class _SFTPInterface(paramiko.SFTPServerInterface):
    def __init__(self, ssh_server: _SSHInterface, *args, **kwargs):
        super().__init__(ssh_server, *args, **kwargs)
        self._handler = ssh_server.handler
        self._root = ssh_server.server.root

    @staticmethod
    def _guard(action):
        try:
            return action()
        except PermissionError:
            return paramiko.SFTP_PERMISSION_DENIED
        except OSError as exc:
            return paramiko.SFTPServer.convert_errno(exc.errno)
        except Exception:  # noqa: BLE001 - any failure becomes a protocol error
            return paramiko.SFTP_FAILURE

    def canonicalize(self, path):
        if path in ("", "."):
            return self._root
        return posixpath.normpath("/" + path.lstrip("/"))

    def list_folder(self, path):
        def action():
            entries = self._handler.file_list(SftpRequest("List", path))
            return [paramiko.SFTPAttributes.from_stat(p.lstat(), p.name) for p in entries]

        return self._guard(action)

    def stat(self, path):
        def action():
            entry = self._handler.file_list(SftpRequest("Stat", path))[0]
            return paramiko.SFTPAttributes.from_stat(entry.stat(), entry.name)

        return self._guard(action)

    lstat = stat

    def open(self, path, flags, attr):
        def action():
            handle = paramiko.SFTPHandle(flags)
            handle.filename = path
            if flags & (os.O_WRONLY | os.O_RDWR):
                handle.writefile = self._handler.file_write(SftpRequest("Put", path))
            else:
                handle.readfile = self._handler.file_read(SftpRequest("Get", path))
            return handle

        return self._guard(action)

    def _command(self, request: SftpRequest):
        def action():
            self._handler.file_cmd(request)
            return paramiko.SFTP_OK

        return self._guard(action)

    def remove(self, path):
        return self._command(SftpRequest("Remove", path))

    def rename(self, oldpath, newpath):
        return self._command(SftpRequest("Rename", oldpath, target=newpath))

    def mkdir(self, path, attr):
        return self._command(SftpRequest("Mkdir", path))

    def rmdir(self, path):
        return self._command(SftpRequest("Rmdir", path))

    def chattr(self, path, attr):
        mode = (attr.st_mode or 0) & 0o7777
        return self._command(SftpRequest("Setstat", path, mode=mode))