"""SFTP handlers for the default, read-only and upload-only modes."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any

from . import logger
from .sftphelpers import SftpRequest, cmd_file, list_file, read_file, write_file


@dataclass
class _Handler:
    root: str
    client_ip: str
    server: Any

    def _refuse(self, request: SftpRequest, reason: str) -> PermissionError:
        error = PermissionError(reason)
        logger.log_sftp_request_blocked(request, self.client_ip, error)
        self.server.handle_webhook_send("sftp", request, self.client_ip, True)
        return error

    def file_list(self, request: SftpRequest) -> list[Path]:
        return list_file(self.root, request, self.client_ip, self.server)


class DefaultHandler(_Handler):
    """Allows every operation."""

    def file_read(self, request: SftpRequest) -> IO[bytes]:
        return read_file(self.root, request, self.client_ip, self.server)

    def file_write(self, request: SftpRequest) -> IO[bytes]:
        return write_file(self.root, request, self.client_ip, self.server)

    def file_list(self, request: SftpRequest) -> list[Path]:
        return super().file_list(request)

    def file_cmd(self, request: SftpRequest) -> None:
        cmd_file(self.root, request, self.client_ip, self.server)


class ReadOnlyHandler(_Handler):
    """Allows reading and listing only."""

    def file_read(self, request: SftpRequest) -> IO[bytes]:
        return read_file(self.root, request, self.client_ip, self.server)

    def file_write(self, request: SftpRequest) -> IO[bytes]:
        raise self._refuse(request, "upload not allowed in read-only mode")

    def file_list(self, request: SftpRequest) -> list[Path]:
        return super().file_list(request)

    def file_cmd(self, request: SftpRequest) -> None:
        raise self._refuse(request, "file commands are not allowed in read-only mode")


class UploadOnlyHandler(_Handler):
    """Allows uploading and listing only."""

    def file_read(self, request: SftpRequest) -> IO[bytes]:
        raise self._refuse(request, "download not allowed in upload-only mode")

    def file_write(self, request: SftpRequest) -> IO[bytes]:
        return write_file(self.root, request, self.client_ip, self.server)

    def file_list(self, request: SftpRequest) -> list[Path]:
        return super().file_list(request)

    def file_cmd(self, request: SftpRequest) -> None:
        raise self._refuse(request, "file commands are not allowed in upload-only mode")