"""File sharing server components: SFTP access, webhooks, logging, clipboard sync and updates."""

__version__ = "1.0.0"

__all__ = [
    "client",
    "hub",
    "logger",
    "sftphandlers",
    "sftphelpers",
    "sftpserver",
    "update",
    "utils",
    "webhook",
]