"""General helpers: sizes, MIME types, interfaces and password hashing."""

from __future__ import annotations

import mimetypes
import secrets
import socket

import bcrypt
import psutil

_BUILTIN_TYPES = {
    ".avif": "image/avif",
    ".css": "text/css; charset=utf-8",
    ".gif": "image/gif",
    ".htm": "text/html; charset=utf-8",
    ".html": "text/html; charset=utf-8",
    ".jpeg": "image/jpeg",
    ".jpg": "image/jpeg",
    ".js": "text/javascript; charset=utf-8",
    ".json": "application/json",
    ".mjs": "text/javascript; charset=utf-8",
    ".pdf": "application/pdf",
    ".png": "image/png",
    ".svg": "image/svg+xml",
    ".wasm": "application/wasm",
    ".webp": "image/webp",
    ".xml": "text/xml; charset=utf-8",
    ".txt": "text/plain; charset=utf-8",
    ".zip": "application/zip",
}


def byte_count_decimal(size: int) -> str:
    """Return a human readable size using decimal units."""
    unit = 1000
    if size < unit:
        return f"{size} B"
    div, exp = unit, 0
    n = size // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{size / div:.1f} {'kMGTPE'[exp]}B"


def return_ext(name: str) -> str:
    """Return the text after the last dot of ``name``, with a leading dot."""
    return "." + name.split(".")[-1]


def _system_type(ext: str) -> str:
    if not mimetypes.inited:
        mimetypes.init()
    found = mimetypes.types_map.get(ext) or mimetypes.common_types.get(ext)
    if not found:
        return ""
    if found.startswith("text/") and "charset" not in found:
        found += "; charset=utf-8"
    return found


def mime_by_extension(name: str) -> str:
    """Return the MIME type for the extension of ``name``, or an empty string."""
    ext = return_ext(name)
    for candidate in (ext, ext.lower()):
        if candidate in _BUILTIN_TYPES:
            return _BUILTIN_TYPES[candidate]
    return _system_type(ext) or _system_type(ext.lower())


def random_number() -> int:
    """Return a cryptographically random integer in ``[0, 1000)``."""
    return secrets.randbelow(1000)


def get_interface_ipv4_addr(interface_name: str) -> str:
    """Return the first IPv4 address of the named interface."""
    interfaces = psutil.net_if_addrs()
    if interface_name not in interfaces:
        raise OSError(f"no such network interface: {interface_name}")
    for address in interfaces[interface_name]:
        if address.family == socket.AF_INET:
            return address.address
    raise OSError(f"interface {interface_name} doesn't have an ipv4 address")


def get_all_ip_addresses() -> dict[str, str]:
    """Map each interface that has an IPv4 address to that address."""
    result = {}
    for name in psutil.net_if_addrs():
        try:
            result[name] = get_interface_ipv4_addr(name)
        except OSError:
            continue
    return result


def generate_hashed_password(password) -> str:
    """Print and return a bcrypt hash (cost 14) of ``password``."""
    raw = password.encode("utf-8") if isinstance(password, str) else bytes(password)
    hashed = bcrypt.hashpw(raw, bcrypt.gensalt(rounds=14, prefix=b"2a")).decode("ascii")
    print(f"Hash: {hashed}")
    return hashed