"""Filesystem operations behind the SFTP handlers, confined to a root."""

from __future__ import annotations

import base64
import binascii
import ipaddress
import logging
import os
import posixpath
import shutil
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from . import logger

_log = logging.getLogger("shareserve")


class AccessDenied(PermissionError):
    """Raised when a client path resolves outside the served root."""


@dataclass
class SftpRequest:
    """One SFTP operation as seen by the handlers."""

    method: str
    filepath: str
    target: str = ""
    mode: int = 0


def _key_type(blob: bytes) -> str:
    if len(blob) < 4:
        raise ValueError("key blob too short")
    (length,) = struct.unpack(">I", blob[:4])
    if len(blob) < 4 + length:
        raise ValueError("key blob truncated")
    return blob[4 : 4 + length].decode("ascii")


def _parse_authorized_key(line: str) -> bytes:
    fields = line.split()
    for key_type, encoded in zip(fields, fields[1:]):
        try:
            blob = base64.b64decode(encoded, validate=True)
            if _key_type(blob) == key_type:
                return blob
        except (binascii.Error, ValueError, UnicodeDecodeError):
            continue
    raise ValueError(f"no key found in line: {line.strip()!r}")


def load_authorized_keys(path) -> set[bytes]:
    """Return the wire-format public key blobs listed in an authorized_keys file."""
    keys: set[bytes] = set()
    with open(path, encoding="utf-8", errors="replace") as handle:
        for line in handle:
            try:
                keys.add(_parse_authorized_key(line))
            except ValueError as exc:
                _log.warning("Skipping invalid key: %s", exc)
    return keys


def rewrite_path_windows(path: str) -> str:
    """Turn a slash path from a client into a Windows path."""
    return path.removeprefix("/").replace("/", "\\")


def sanitize_path(client_path: str, root: str) -> str:
    """Return the cleaned path, or raise AccessDenied if it leaves ``root``."""
    if os.name == "nt":
        clean = rewrite_path_windows(client_path)
        root = rewrite_path_windows(root)
    else:
        clean = posixpath.normpath("/" + client_path.lstrip("/"))
    if not clean.startswith(root):
        raise AccessDenied("access denied: outside of webroot")
    return clean


def _report(request: SftpRequest, ip: str, server, error: Exception | None = None) -> None:
    if error is None:
        logger.log_sftp_request(request, ip)
        server.handle_webhook_send("sftp", request, ip, False)
    else:
        logger.log_sftp_request_blocked(request, ip, error)
        server.handle_webhook_send("sftp", request, ip, True)


def _checked_path(root: str, request: SftpRequest, ip: str, server) -> str:
    if os.name == "nt":
        request.filepath = rewrite_path_windows(request.filepath)
        request.target = rewrite_path_windows(request.target)
    try:
        return sanitize_path(request.filepath, root)
    except AccessDenied as exc:
        _report(request, ip, server, exc)
        raise


def read_file(root: str, request: SftpRequest, ip: str, server) -> IO[bytes]:
    """Open the requested file for reading."""
    full = _checked_path(root, request, ip, server)
    _report(request, ip, server)
    return open(full, "rb")


def write_file(root: str, request: SftpRequest, ip: str, server) -> IO[bytes]:
    """Create or truncate the requested file and open it for writing."""
    full = _checked_path(root, request, ip, server)
    _report(request, ip, server)
    return open(full, "wb")


def list_file(root: str, request: SftpRequest, ip: str, server) -> list[Path]:
    """Return the entry itself for ``Stat``, otherwise the directory's entries."""
    full = _checked_path(root, request, ip, server)
    try:
        if request.method == "Stat":
            os.stat(full)
            _report(request, ip, server)
            return [Path(full)]
        return [Path(entry.path) for entry in os.scandir(full)]
    except OSError as exc:
        _report(request, ip, server, exc)
        raise


def _remove_all(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    elif os.path.lexists(path):
        os.remove(path)


def _remove(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        os.rmdir(path)
    else:
        os.remove(path)


def cmd_file(root: str, request: SftpRequest, ip: str, server) -> None:
    """Run a file command: Stat, Lstat, Setstat, Rename, Rmdir, Mkdir or Remove."""
    full = _checked_path(root, request, ip, server)

    if request.method == "Setstat":
        if request.mode:
            try:
                os.chmod(full, request.mode)
            except OSError as exc:
                _report(request, ip, server, OSError(f"chmod failed: {exc}"))
                raise
            return
        _report(request, ip, server)
        operation = lambda: os.chmod(full, 0)  # noqa: E731
    else:
        operations = {
            "Stat": lambda: os.stat(full),
            "Lstat": lambda: os.lstat(full),
            "Rename": lambda: os.rename(full, request.target),
            "Rmdir": lambda: _remove_all(full),
            "Mkdir": lambda: os.mkdir(full, 0o775),
            "Remove": lambda: _remove(full),
        }
        operation = operations.get(request.method)
        if operation is None:
            _report(request, ip, server, ValueError(f"unsupported command: {request.method}"))
            raise ValueError("unsupported command")

    try:
        operation()
    except OSError as exc:
        _report(request, ip, server, exc)
        raise
    _report(request, ip, server)


def _host_of(addr) -> str:
    if isinstance(addr, tuple):
        return str(addr[0])
    text = str(addr)
    if text.startswith("[") and "]" in text:
        return text[1 : text.index("]")]
    if text.count(":") == 1:
        return text.split(":", 1)[0]
    return text


def is_allowed_ip(addr, whitelist) -> bool:
    """Return whether ``addr`` may connect under ``whitelist``."""
    if whitelist is None or not whitelist.enabled:
        return True
    try:
        ip = ipaddress.ip_address(_host_of(addr))
    except ValueError:
        return False
    return any(ip in network for network in whitelist.networks)