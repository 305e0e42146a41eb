import logging
from dataclasses import dataclass, field
from types import SimpleNamespace

import pytest

from shareserve.logger import (
    HttpRequestInfo,
    VerboseFormatter,
    get_logger,
    handle_webhook_send,
    is_base64,
    log_request,
    log_sftp_request,
    log_sftp_request_blocked,
    log_to_file,
    validate_and_parse_json,
    verbose,
)
from shareserve.webhook import Webhook


@dataclass
class RecordingWebhook(Webhook):
    sent: list = field(default_factory=list)

    def send(self, message):
        self.sent.append(message)


class _ListHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


@pytest.fixture
def records():
    handler = _ListHandler()
    log = get_logger()
    log.addHandler(handler)
    yield handler.records
    log.removeHandler(handler)


@pytest.fixture
def restore_handlers():
    log = get_logger()
    saved = list(log.handlers)
    yield
    for handler in list(log.handlers):
        if handler not in saved:
            handler.close()
    log.handlers[:] = saved


@pytest.mark.parametrize(
    "text, expected",
    [
        ("SGVsbG8gd29ybGQ=", True),
        ("U29tZSB0ZXh0", True),
        ("U29tZSB0ZXh0Cg==", True),
        ("NotBase64!", False),
        ("12345", False),
        ("SGVsbG8===", False),
        ("SGVsbG8#d29ybGQ=", False),
        ("", True),
        ("====", False),
    ],
)
def test_is_base64(text, expected):
    assert is_base64(text) is expected


@pytest.mark.parametrize(
    "data, ok, kind",
    [
        (b'{"key": "value"}', True, dict),
        (b"[1, 2, 3]", True, list),
        (b'"hello"', True, str),
        (b"123.45", True, float),
        (b"true", True, bool),
        (b"null", True, type(None)),
        (b"{key: value}", False, None),
        (b"", False, None),
    ],
)
def test_validate_and_parse_json(data, ok, kind):
    valid, value = validate_and_parse_json(data)
    assert valid is ok
    if kind is not None:
        assert type(value) is kind
    else:
        assert value is None


def test_validate_and_parse_json_value():
    assert validate_and_parse_json('{"a": [1, 2]}') == (True, {"a": [1, 2]})


def test_formatter_verbose_record():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "hello", None, None)
    record.verbose = True
    text = VerboseFormatter().format(record)
    assert text.startswith("\x1b[1;35mVERB\x1b[0m   [")
    assert text.endswith("] hello")


def test_formatter_plain_record():
    record = logging.LogRecord("x", logging.WARNING, __file__, 1, "careful %s", ("now",), None)
    text = VerboseFormatter().format(record)
    assert "WARNING" in text
    assert text.endswith("careful now")
    assert not text.startswith("\x1b[1;35mVERB")


def test_verbose_marks_record(records):
    verbose("detail")
    assert records[-1].getMessage() == "detail"
    assert records[-1].verbose is True


def test_log_request_error_status(records):
    req = HttpRequestInfo(remote_addr="10.0.0.1:5000", method="GET", url="/missing")
    log_request(req, 404, False, RecordingWebhook())
    record = records[-1]
    assert record.levelno == logging.ERROR
    assert record.getMessage() == '10.0.0.1:5000 - [\x1b[1;31m404\x1b[0m] - "GET /missing HTTP/1.1"'


def test_log_request_ok_status(records):
    req = HttpRequestInfo(remote_addr="10.0.0.1:5000", method="GET", url="/")
    log_request(req, 200, False, RecordingWebhook())
    assert records[-1].levelno == logging.INFO
    assert "\x1b[1;32m200\x1b[0m" in records[-1].getMessage()


def test_log_request_redirect_status(records):
    req = HttpRequestInfo(remote_addr="a", method="GET", url="/")
    log_request(req, 301, False, RecordingWebhook())
    assert "\x1b[1;34m301\x1b[0m" in records[-1].getMessage()


def test_verbose_base64_header():
    hook = RecordingWebhook(enabled=True, events=["verbose"])
    req = HttpRequestInfo(
        remote_addr="a", method="GET", url="/", headers={"X-Data": ["aGVsbG8="]}
    )
    log_request(req, 200, True, hook)
    assert hook.sent == ["[VERBOSE] Header `X-Data` is base64 and decodes to\n```hello```\n"]


def test_verbose_plain_header():
    hook = RecordingWebhook(enabled=True, events=["verbose"])
    req = HttpRequestInfo(
        remote_addr="a", method="GET", url="/", headers={"Accept": ["text/html"]}
    )
    log_request(req, 200, True, hook)
    assert hook.sent == ["[VERBOSE] Header `Accept` is `[text/html]`"]


def test_verbose_bad_basic_auth_stops(records):
    hook = RecordingWebhook(enabled=True, events=["verbose"])
    req = HttpRequestInfo(
        remote_addr="a",
        method="GET",
        url="/?q=plain",
        headers={"Authorization": ["Basic token"]},
    )
    log_request(req, 200, True, hook)
    assert hook.sent[0] == "[VERBOSE] Authorization Header: Basic token"
    assert hook.sent[1].startswith("[VERBOSE] error decoding basic auth:")
    assert len(hook.sent) == 2
    assert any(r.levelno == logging.WARNING for r in records)


def test_verbose_json_query_parameter():
    hook = RecordingWebhook(enabled=True, events=["verbose"])
    req = HttpRequestInfo(remote_addr="a", method="GET", url="/x?data=%7B%22a%22%3A1%7D")
    log_request(req, 200, True, hook)
    assert hook.sent == ['[VERBOSE] JSON detected, Parameter data is \n```{\n  "a": 1\n}```']


def test_verbose_plain_query_parameter():
    hook = RecordingWebhook(enabled=True, events=["verbose"])
    req = HttpRequestInfo(remote_addr="a", method="GET", url="/x?name=hi!")
    log_request(req, 200, True, hook)
    assert hook.sent == ["[VERBOSE] Parameter `name` is `hi!`"]


def test_verbose_json_body():
    hook = RecordingWebhook(enabled=True, events=["verbose"])
    req = HttpRequestInfo(
        remote_addr="a",
        method="POST",
        url="/",
        headers={"Content-Type": ["application/json"]},
        body=b'{"a":1}',
    )
    log_request(req, 200, True, hook)
    assert hook.sent[-1] == '[VERBOSE] JSON Request Body: \n```{\n  "a": 1\n}```\n'


def test_verbose_plain_body():
    hook = RecordingWebhook(enabled=True, events=["verbose"])
    req = HttpRequestInfo(remote_addr="a", method="POST", url="/", body=b"hi there!")
    log_request(req, 200, True, hook)
    assert hook.sent == ["[VERBOSE] Request Body: \n```hi there!```\n"]


@pytest.mark.parametrize(
    "enabled, events, event, delivered",
    [
        (True, ["all"], "upload", True),
        (True, ["all"], "verbose", False),
        (True, ["verbose"], "verbose", True),
        (True, ["upload"], "delete", False),
        (True, ["delete"], "delete", True),
        (False, ["all"], "upload", False),
    ],
)
def test_handle_webhook_send(enabled, events, event, delivered):
    hook = RecordingWebhook(enabled=enabled, events=events)
    handle_webhook_send("msg", event, hook)
    assert hook.sent == (["msg"] if delivered else [])


def test_log_sftp_request_rename(records):
    req = SimpleNamespace(method="Rename", filepath="/a", target="/b")
    log_sftp_request(req, "1.2.3.4")
    assert records[-1].getMessage() == 'SFTP: 1.2.3.4 - [\x1b[1;32mRename\x1b[0m] - "/a to /b"'


def test_log_sftp_request_blocked(records):
    req = SimpleNamespace(method="Get", filepath="/a", target="")
    log_sftp_request_blocked(req, "1.2.3.4", ValueError("denied"))
    assert records[-1].levelno == logging.ERROR
    assert records[-1].getMessage() == 'SFTP: 1.2.3.4 - [\x1b[1;31mGet\x1b[0m] - "/a": denied'


def test_log_to_file(tmp_path, restore_handlers):
    target = tmp_path / "out.log"
    log_to_file(str(target))
    get_logger().info("written to file")
    for handler in get_logger().handlers:
        handler.flush()
    assert "written to file" in target.read_text()