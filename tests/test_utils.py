import socket
from types import SimpleNamespace
from unittest import mock

import bcrypt
import pytest

from shareserve.utils import (
    byte_count_decimal,
    generate_hashed_password,
    get_all_ip_addresses,
    get_interface_ipv4_addr,
    mime_by_extension,
    random_number,
    return_ext,
)


def _addr(family, address):
    return SimpleNamespace(family=family, address=address)


FAKE_INTERFACES = {
    "lo": [_addr(socket.AF_INET6, "::1"), _addr(socket.AF_INET, "127.0.0.1")],
    "eth0": [_addr(socket.AF_INET, "192.168.1.10")],
    "tun0": [_addr(socket.AF_INET6, "fe80::1")],
}


@pytest.mark.parametrize(
    "size, expected",
    [
        (100, "100 B"),
        (1024, "1.0 kB"),
        (1024000, "1.0 MB"),
        (1024000000, "1.0 GB"),
    ],
)
def test_byte_count_decimal(size, expected):
    assert byte_count_decimal(size) == expected


@pytest.mark.parametrize(
    "name, expected",
    [
        ("file.txt", "text/plain; charset=utf-8"),
        ("index.html", "text/html; charset=utf-8"),
        ("style.css", "text/css; charset=utf-8"),
        ("script.js", "text/javascript; charset=utf-8"),
        ("image.jpg", "image/jpeg"),
        ("archive.zip", "application/zip"),
        ("unknownfile", ""),
        ("", ""),
    ],
)
def test_mime_by_extension(name, expected):
    assert mime_by_extension(name) == expected


def test_mime_by_extension_uppercase():
    assert mime_by_extension("PHOTO.JPG") == "image/jpeg"


def test_return_ext():
    assert return_ext("test.csv.txt") == ".txt"


def test_random_number_range():
    values = [random_number() for _ in range(50)]
    assert all(0 <= v < 1000 for v in values)


@mock.patch("psutil.net_if_addrs", return_value=FAKE_INTERFACES)
def test_get_interface_ipv4_addr(_patched):
    assert get_interface_ipv4_addr("lo") == "127.0.0.1"


@mock.patch("psutil.net_if_addrs", return_value=FAKE_INTERFACES)
def test_get_interface_ipv4_addr_unknown(_patched):
    with pytest.raises(OSError):
        get_interface_ipv4_addr("foobar0")


@mock.patch("psutil.net_if_addrs", return_value=FAKE_INTERFACES)
def test_get_interface_ipv4_addr_without_ipv4(_patched):
    with pytest.raises(OSError, match="doesn't have an ipv4 address"):
        get_interface_ipv4_addr("tun0")


@mock.patch("psutil.net_if_addrs", return_value=FAKE_INTERFACES)
def test_get_all_ip_addresses(_patched):
    assert get_all_ip_addresses() == {"lo": "127.0.0.1", "eth0": "192.168.1.10"}


def test_generate_hashed_password(capsys):
    result = generate_hashed_password(b"test1234")
    assert result.startswith("$2a$14$")
    assert len(result) == 60
    assert bcrypt.checkpw(b"test1234", result.encode("ascii"))
    assert capsys.readouterr().out == f"Hash: {result}\n"