"""Webhook notification targets (Discord, Mattermost, Slack)."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import requests

DEFAULT_USERNAME = "shareserve"
_TIMEOUT = 10


class WebhookError(Exception):
    """Raised when a webhook message cannot be delivered."""


def post_json(url: str, payload: Any) -> None:
    """POST ``payload`` as JSON to ``url``; raise WebhookError on any failure."""
    try:
        data = json.dumps(payload)
    except (TypeError, ValueError) as exc:
        raise WebhookError(f"cannot encode webhook payload: {exc}") from exc

    try:
        response = requests.post(
            url,
            data=data.encode("utf-8"),
            headers={"Content-Type": "application/json"},
            timeout=_TIMEOUT,
        )
    except (requests.RequestException, ValueError) as exc:
        raise WebhookError(f"failed to send webhook: {exc}") from exc

    with response:
        if response.status_code != 200:
            raise WebhookError(
                f"failed to send webhook: {response.status_code} {response.reason}"
            )


@dataclass
class Webhook(ABC):
    """A notification target that receives event messages."""

    enabled: bool = False
    events: list[str] = field(default_factory=list)
    url: str = ""

    @abstractmethod
    def send(self, message: str) -> None:
        """Deliver ``message`` to the target."""

    def contains(self, event: str) -> bool:
        """Return whether ``event`` is among the subscribed events."""
        return event in self.events


@dataclass
class DiscordWebhook(Webhook):
    username: str = ""

    def send(self, message: str) -> None:
        post_json(self.url, {"content": message, "username": self.username})


@dataclass
class MattermostWebhook(Webhook):
    username: str = ""
    icon_url: str = ""

    def send(self, message: str) -> None:
        payload: dict[str, Any] = {"text": message, "username": self.username}
        if self.icon_url:
            payload["icon_url"] = self.icon_url
        post_json(self.url, payload)


@dataclass
class SlackWebhook(Webhook):
    def send(self, message: str) -> None:
        post_json(self.url, {"text": message})


def register(enabled: bool, url: str, provider: str, events) -> Webhook:
    """Build the webhook for ``provider``; unknown providers yield a disabled one."""
    event_list = list(events) if events is not None else []
    kind = provider.lower()
    if kind == "discord":
        return DiscordWebhook(
            enabled=enabled, events=event_list, url=url, username=DEFAULT_USERNAME
        )
    if kind == "slack":
        return SlackWebhook(enabled=enabled, events=event_list, url=url)
    if kind == "mattermost":
        return MattermostWebhook(
            enabled=enabled, events=event_list, url=url, username=DEFAULT_USERNAME
        )
    return DiscordWebhook(enabled=False)