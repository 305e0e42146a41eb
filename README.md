# shareserve

Components for a small, self-hosted file sharing server:

- `shareserve.sftpserver` – an SSH server that offers only the SFTP
  subsystem, confined to one directory.
- `shareserve.sftphandlers` / `shareserve.sftphelpers` – the per-mode SFTP
  handlers (default, read-only, upload-only) and the filesystem operations
  behind them.
- `shareserve.webhook` – notifications to Discord, Slack or Mattermost.
- `shareserve.logger` – coloured request logging with an optional verbose
  mode and webhook forwarding.
- `shareserve.hub` / `shareserve.client` – a broadcast hub and per-connection
  clients that keep a shared clipboard in sync between browser windows.
- `shareserve.update` – checks for and installs newer release archives.
- `shareserve.utils` – human-readable sizes, MIME types, interface addresses
  and bcrypt password hashes.

Install with `pip install .`; the test suite runs with `pip install .[test]`
and `pytest`.

## SFTP server

```python
from shareserve.sftpserver import SFTPServer

password = "password"
server = SFTPServer(ip="0.0.0.0", port=2022, root="/srv/share",
                    username="alice", password=password)
server.start()   # blocks, serving each connection in its own thread
```

- Password login is offered only when both `username` and `password` are set.
- `key_file` names an `authorized_keys` file; its keys are accepted for
  public key login. Lines that hold no valid key are skipped with a warning.
- `host_key_file` names the server's private host key (Ed25519, ECDSA or
  RSA). Without it a fresh 2048-bit RSA key is generated at each start.
- `read_only=True` refuses uploads and file commands; `upload_only=True`
  refuses downloads and file commands. `read_only` wins if both are set.
- `whitelist` is any object with an `enabled` flag and a `networks`
  collection of `ipaddress` networks; when enabled, connections from other
  addresses are closed.
- Shell and exec requests are answered with
  "This server only supports SFTP." and exit status 1.
- Client paths are normalised and refused with
  `shareserve.sftphelpers.AccessDenied` unless they start with `root`, so
  `root` should be an absolute path.
- Every operation is logged and, if the webhook subscribes to `sftp`, sent
  to it, marked `BLOCKED` when refused or failed.

The handlers can be used on their own through `SFTPServer.handler_for(ip)`
with `shareserve.sftphelpers.SftpRequest(method, filepath, target, mode)`;
`cmd_file` understands `Stat`, `Lstat`, `Setstat`, `Rename`, `Rmdir`,
`Mkdir` and `Remove` and raises `ValueError` for anything else.

## Webhooks

```python
from shareserve.webhook import register

hook = register(True, "https://example.com/hook", "Discord", ["upload", "delete"])
if hook.contains("upload"):
    hook.send("report.pdf was uploaded")
```

The provider is matched case-insensitively (`discord`, `slack`,
`mattermost`); an unknown provider gives a disabled `DiscordWebhook`.
Discord and Mattermost messages are sent with the user name `shareserve`;
`MattermostWebhook` also sends `icon_url` when it is set. A failed delivery
(encoding error, connection error or a status other than 200) raises
`shareserve.webhook.WebhookError`.

## Logging

```python
from shareserve.logger import HttpRequestInfo, get_logger, handle_webhook_send, log_request, log_to_file

log_to_file("server.log")   # log to stdout and append to the file
get_logger().info("server started")

request = HttpRequestInfo(remote_addr="192.0.2.10:51234", method="GET", url="/?q=1")
log_request(request, 200, verbose_logging=True, webhook=hook)
handle_webhook_send("[UPLOAD] notes.txt", "upload", hook)
```

Output goes to stderr until `log_to_file` is called. Set `DEBUG=TRUE` in the
environment for debug output. With verbose logging, headers, query
parameters and the body are printed, decoding Basic authorization, Base64
and JSON where found, and each line is forwarded to webhooks subscribed to
`verbose`.

`handle_webhook_send` forwards a message when the webhook is enabled and
subscribes to the event; `all` covers every event except `verbose`, which
must be named. Delivery failures are logged at debug level, not raised.

## Clipboard sync

```python
import threading
from shareserve.hub import Hub
from shareserve.client import Client

hub = Hub(clipboard, cli_enabled=False)
threading.Thread(target=hub.run, daemon=True).start()

client = Client(hub, conn)
hub.register(client)
threading.Thread(target=client.write_pump, daemon=True).start()
client.read_pump()
```

- `clipboard` is any object with `add_entry(text)`, `delete_entry(id)` and
  `clear_clipboard()`.
- `conn` is any connection with `read()` (returning a message, or `None`
  when closed), `write(message)` and `close()`.
- Packets are JSON objects with `type` and `content`: `newEntry`,
  `delEntry`, `clearClipboard` each update the clipboard and broadcast a
  `refreshClipboard` message; `command` is run through the hub's
  `command_runner` only when `cli_enabled` is true, and its output is
  broadcast as `updateCLI`. Other types are logged and ignored.
- Each client queues up to 1024 outgoing messages; a client whose queue is
  full when a broadcast arrives is dropped. `Hub.stop()` ends `run`.

## Updates

```python
from shareserve.update import check_for_updates, update_tool

newer, detail = check_for_updates("v1.0.0")
```

`check_for_updates` returns `(True, tag)` when the latest release tag
differs from the given version, `(False, "")` when it matches, and
`(False, message)` when the release feed cannot be reached. `update_tool`
downloads the `.tar.gz` asset for this OS and architecture, extracts the
program from it and replaces the file named by `sys.argv[0]`, raising
`shareserve.update.UpdateError` on failure.

## Utilities

```python
from shareserve.utils import byte_count_decimal, generate_hashed_password, mime_by_extension

byte_count_decimal(1024000)        # '1.0 MB'
mime_by_extension("index.html")    # 'text/html; charset=utf-8'
hashed = generate_hashed_password(b"password")   # bcrypt $2a$, cost 14; also printed
```

`get_interface_ipv4_addr(name)` returns an interface's first IPv4 address
(raising `OSError` otherwise), and `get_all_ip_addresses()` maps every
interface that has one to it. `random_number()` returns a secure random
integer below 1000.

## What is not included

There is no command-line program, no HTTP or WebDAV file server, no TLS
certificate handling, no clipboard store, no websocket transport and no
command runner. The clipboard, connection, command runner and IP whitelist
are supplied by the application that uses these components.