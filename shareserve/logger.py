"""Logging setup and request logging with optional webhook forwarding."""

from __future__ import annotations

import base64
import binascii
import json
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qs, unquote_plus, urlsplit

from .webhook import Webhook, WebhookError

_LOGGER_NAME = "shareserve"
_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
_RESET = "\x1b[0m"
_LEVEL_COLORS = {
    "DEBUG": "\x1b[37m",
    "INFO": "\x1b[36m",
    "WARNING": "\x1b[33m",
    "ERROR": "\x1b[31m",
    "CRITICAL": "\x1b[31m",
}
_ERROR_STATUSES = {500, 404, 401, 403, 400}
_REDIRECT_STATUSES = {303, 301, 307, 308}
_PLAIN_HEADERS = {"Content-Type", "Accept", "Accept-Encoding"}


class VerboseFormatter(logging.Formatter):
    """Coloured text formatter with a distinct style for verbose records."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = self.formatTime(record, _TIMESTAMP_FORMAT)
        message = record.getMessage()
        if getattr(record, "verbose", False) is True:
            return f"\x1b[1;35mVERB{_RESET}   [{timestamp}] {message}"
        color = _LEVEL_COLORS.get(record.levelname, "")
        text = f"{color}{record.levelname:<7}{_RESET}[{timestamp}] {message}"
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text


def _build_logger() -> logging.Logger:
    log = logging.getLogger(_LOGGER_NAME)
    if not log.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(VerboseFormatter())
        log.addHandler(handler)
    log.setLevel(logging.DEBUG if os.environ.get("DEBUG") == "TRUE" else logging.INFO)
    log.propagate = False
    return log


_logger = _build_logger()


def get_logger() -> logging.Logger:
    """Return the application logger."""
    return _logger


def verbose(message: str) -> None:
    """Log ``message`` in the verbose style."""
    _logger.info(message, extra={"verbose": True})


def log_to_file(path) -> None:
    """Send log output to stdout and append it to the file at ``path``."""
    fd = os.open(path, os.O_CREAT | os.O_WRONLY | os.O_APPEND, 0o600)
    os.close(fd)
    for handler in list(_logger.handlers):
        _logger.removeHandler(handler)
    formatter = VerboseFormatter()
    for handler in (logging.StreamHandler(sys.stdout), logging.FileHandler(path, mode="a")):
        handler.setFormatter(formatter)
        _logger.addHandler(handler)


def _b64decode(text: str) -> bytes:
    return base64.b64decode(text, validate=True)


def is_base64(text: str) -> bool:
    """Return whether ``text`` is valid standard base64."""
    try:
        _b64decode(text)
    except (binascii.Error, ValueError):
        return False
    return True


def validate_and_parse_json(data) -> tuple[bool, Any]:
    """Return ``(True, value)`` if ``data`` is JSON, else ``(False, None)``."""
    try:
        return True, json.loads(data)
    except (ValueError, TypeError):
        return False, None


@dataclass
class HttpRequestInfo:
    """The parts of an HTTP request that get logged."""

    remote_addr: str
    method: str
    url: str
    proto: str = "HTTP/1.1"
    headers: dict[str, list[str]] = field(default_factory=dict)
    body: bytes = b""

    @property
    def query(self) -> dict[str, list[str]]:
        return parse_qs(urlsplit(self.url).query, keep_blank_values=True)

    def header(self, name: str) -> str:
        """Return the first value of header ``name``, or an empty string."""
        wanted = name.lower()
        for key, values in self.headers.items():
            if key.lower() == wanted and values:
                return values[0]
        return ""


def _magenta(text: str) -> str:
    return f"\x1b[1;35m{text}{_RESET}"


def _bracketed(values: list[str]) -> str:
    return "[" + " ".join(values) + "]"


def _as_text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def _indent_json(text: str) -> str:
    try:
        return json.dumps(json.loads(text), indent=2, ensure_ascii=False)
    except ValueError:
        return ""


def handle_webhook_send(message: str, event: str, webhook: Webhook) -> None:
    """Forward ``message`` to ``webhook`` if it is subscribed to ``event``."""
    if not webhook.enabled:
        return
    wanted = (
        (webhook.contains("all") and event != "verbose")
        or webhook.contains(event)
        or (webhook.contains("verbose") and event == "verbose")
    )
    if wanted:
        try:
            webhook.send(message)
        except WebhookError as exc:
            _logger.debug("webhook delivery failed: %s", exc)


def log_request(
    request: HttpRequestInfo, status: int, verbose_logging: bool, webhook: Webhook
) -> None:
    """Log an HTTP request with a colour that reflects its status."""
    _logger.debug("We are about to log a request")
    line = '%s - [\x1b[1;%sm%d\x1b[0m] - "%s %s %s"'
    args = (request.method, request.url, request.proto)
    if status in _ERROR_STATUSES:
        _logger.error(line, request.remote_addr, "31", status, *args)
    elif status in _REDIRECT_STATUSES:
        _logger.info(line, request.remote_addr, "34", status, *args)
    elif status == 205:
        _logger.info(line, request.remote_addr, "31", status, *args)
    else:
        _logger.info(line, request.remote_addr, "32", status, *args)

    for name, values in request.query.items():
        _logger.debug("Parameter %s is %s", name, _bracketed(values))

    if verbose_logging:
        _logger.debug("We are using verbose logging")
        _log_verbose(request, webhook)


def _log_verbose(request: HttpRequestInfo, webhook: Webhook) -> None:
    def report(message: str) -> None:
        handle_webhook_send(message, "verbose", webhook)

    for name, values in request.headers.items():
        first = values[0] if values else ""
        if name == "Authorization":
            verbose(f"Authorization Header: {_magenta(first)}")
            report(f"[VERBOSE] Authorization Header: {first}")
            if "basic" in first.lower():
                try:
                    decoded = _as_text(_b64decode(first[6:]))
                except (binascii.Error, ValueError) as exc:
                    _logger.warning("error decoding basic auth: %s", exc)
                    report(f"[VERBOSE] error decoding basic auth: {exc}")
                    return
                verbose(f"Decoded Authorization is: '{_magenta(decoded)}'")
                report(f"[VERBOSE] Decoded Authorization is: `{decoded}`")
            continue

        if is_base64(first) and name not in _PLAIN_HEADERS:
            decoded = _as_text(_b64decode(first))
            verbose(
                f"Header {_magenta(name)} is base64 and decodes to '{_magenta(decoded)}'"
            )
            report(f"[VERBOSE] Header `{name}` is base64 and decodes to\n```{decoded}```\n")
        else:
            verbose(f"Header {_magenta(name)} is {_magenta(' '.join(values))}")
            report(f"[VERBOSE] Header `{name}` is `{_bracketed(values)}`")

    for name, values in request.query.items():
        value = values[0]
        valid, _ = validate_and_parse_json(unquote_plus(value))
        if valid:
            _logger.debug("JSON format detected")
            pretty = _indent_json(value)
            verbose(f"Parameter {_magenta(name)} is {_magenta(pretty)}\n")
            report(f"[VERBOSE] JSON detected, Parameter {name} is \n```{pretty}```")
            continue
        if is_base64(value):
            _logger.debug("Base64 detected")
            verbose("Decoding Base64 before printing")
            decoded = _as_text(_b64decode(value))
            verbose(f"Parameter {_magenta(name)} is {_magenta(decoded)}\n")
            report(f"[VERBOSE] Base64 detected, Parameter `{name}` is \n```{decoded}```")
            continue
        _logger.debug("Neither JSON nor Base64 parameter, so printing plain")
        verbose(f"Parameter {_magenta(name)} is {_magenta(value)}")
        report(f"[VERBOSE] Parameter `{name}` is `{value}`")

    body = request.body
    if not body:
        return
    _logger.debug("Body is actually not empty")
    text = _as_text(body)
    if request.header("Content-Type") == "application/json":
        pretty = _indent_json(text)
        if not pretty:
            _logger.warning("error printing pretty json body: invalid JSON")
            report("[VERBOSE] error printing pretty json body: invalid JSON")
        verbose(f"JSON Request Body: \n{_magenta(pretty)}\n")
        report(f"[VERBOSE] JSON Request Body: \n```{pretty}```\n")
        return
    if is_base64(text):
        decoded = _as_text(_b64decode(text))
        verbose(f"Base64 Request Body: \n{_magenta(decoded)}\n")
        report(f"[VERBOSE] Base64 Request Body: \n```{decoded}```\n")
        return
    verbose(f"Request Body: \n{_magenta(text)}\n")
    report(f"[VERBOSE] Request Body: \n```{text}```\n")


def log_sftp_request(request, ip: str) -> None:
    """Log a permitted SFTP request."""
    if request.method == "Rename":
        _logger.info(
            'SFTP: %s - [\x1b[1;32m%s\x1b[0m] - "%s to %s"',
            ip, request.method, request.filepath, request.target,
        )
    else:
        _logger.info(
            'SFTP: %s - [\x1b[1;32m%s\x1b[0m] - "%s"', ip, request.method, request.filepath
        )


def log_sftp_request_blocked(request, ip: str, error) -> None:
    """Log an SFTP request that was refused or failed."""
    if request.method == "Rename":
        _logger.error(
            'SFTP: %s - [\x1b[1;31m%s\x1b[0m] - "%s to %s" - %s',
            ip, request.method, request.filepath, request.target, error,
        )
    else:
        _logger.error(
            'SFTP: %s - [\x1b[1;31m%s\x1b[0m] - "%s": %s',
            ip, request.method, request.filepath, error,
        )