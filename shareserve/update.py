"""Check for and install newer releases."""

from __future__ import annotations

import io
import os
import platform
import sys
import tarfile
import tempfile
from pathlib import Path
from typing import IO, Any

import requests

from .logger import get_logger

OWNER = "shareserve"
REPO = "shareserve"
BINARY_NAME = "shareserve"
API_URL = "https://api.github.com/repos/{owner}/{repo}/releases/latest"
ASSET_NAMES = {
    ("windows", "amd64"): "shareserve_windows_x86_64.tar.gz",
    ("windows", "386"): "shareserve_windows_386.tar.gz",
    ("windows", "arm64"): "shareserve_windows_arm64.tar.gz",
    ("linux", "amd64"): "shareserve_linux_x86_64.tar.gz",
    ("linux", "386"): "shareserve_linux_386.tar.gz",
    ("linux", "arm64"): "shareserve_linux_arm64.tar.gz",
    ("darwin", "amd64"): "shareserve_darwin_x86_64.tar.gz",
    ("darwin", "arm64"): "shareserve_darwin_arm64.tar.gz",
}
_ARCHES = {
    "x86_64": "amd64", "amd64": "amd64",
    "i386": "386", "i686": "386", "x86": "386",
    "aarch64": "arm64", "arm64": "arm64",
}
_TIMEOUT = 10


class UpdateError(Exception):
    """Raised when checking for or applying an update fails."""


def _platform() -> tuple[str, str]:
    machine = platform.machine().lower()
    return platform.system().lower(), _ARCHES.get(machine, machine)


def get_latest_release(owner: str, repo: str) -> dict[str, Any]:
    """Fetch the latest release description."""
    try:
        response = requests.get(
            API_URL.format(owner=owner, repo=repo),
            headers={"Accept": "application/vnd.github+json"},
            timeout=_TIMEOUT,
        )
        response.raise_for_status()
        return response.json()
    except (requests.RequestException, ValueError) as exc:
        raise UpdateError(f"failed to fetch latest release: {exc}") from exc


def check_for_updates(version: str) -> tuple[bool, str]:
    """Return ``(True, tag)`` if a different release exists, else ``(False, error or "")``."""
    try:
        release = get_latest_release(OWNER, REPO)
    except UpdateError as exc:
        return False, str(exc)
    tag = release.get("tag_name") or ""
    if tag != version:
        return True, tag
    return False, ""


def asset_matches_platform(asset_name: str) -> bool:
    """Return whether ``asset_name`` is the archive for this OS and architecture."""
    return ASSET_NAMES.get(_platform()) == asset_name


def get_asset_url(release: dict[str, Any]) -> str:
    """Return the download URL of this platform's asset."""
    for asset in release.get("assets") or []:
        if asset_matches_platform(asset.get("name") or ""):
            return asset.get("browser_download_url") or ""
    system, arch = _platform()
    raise UpdateError(f"no suitable release asset found for OS: {system}, ARCH: {arch}")


def extract_binary(stream: IO[bytes]) -> bytes:
    """Return the contents of the first program entry of a gzipped tar stream."""
    try:
        with tarfile.open(fileobj=stream, mode="r:gz") as archive:
            for member in archive:
                if BINARY_NAME in member.name:
                    content = archive.extractfile(member)
                    return content.read() if content is not None else b""
    except (tarfile.TarError, OSError, EOFError) as exc:
        raise UpdateError(f"failed to decompress the downloaded file: {exc}") from exc
    raise UpdateError("archive holds no program entry")


def _replace_program(data: bytes) -> None:
    target = Path(sys.argv[0]).resolve()
    fd, tmp = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.chmod(tmp, 0o755)
        os.replace(tmp, target)
    except OSError:
        Path(tmp).unlink(missing_ok=True)
        raise


def apply_update(asset_url: str) -> None:
    """Download the asset and replace the running program with it."""
    try:
        response = requests.get(asset_url, timeout=60)
    except (requests.RequestException, ValueError) as exc:
        raise UpdateError(f"failed to download update: {exc}") from exc
    data = extract_binary(io.BytesIO(response.content))
    try:
        _replace_program(data)
    except OSError as exc:
        raise UpdateError(f"failed to apply update: {exc}") from exc


def update_tool(version: str) -> None:
    """Install the latest release unless ``version`` already is it."""
    log = get_logger()
    release = get_latest_release(OWNER, REPO)
    tag = release.get("tag_name") or ""
    if tag == version:
        log.info("You are already running the newest version (%s)", version)
        return
    log.info("Updating to version %s...", tag)
    apply_update(get_asset_url(release))
    log.info("Update was applied successfully")