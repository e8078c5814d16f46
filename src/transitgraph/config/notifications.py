"""Settings for post-commit changeset notifications."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import env_flag, env_number

DEFAULT_SMTP_HOST = "localhost"
DEFAULT_SMTP_PORT = 25
DEFAULT_SENDER = "transitgraph@localhost"


@dataclass(frozen=True, slots=True)
class NotificationConfig:
    send_changeset_emails_to_users: bool = False
    auto_conflate_stops_with_osm: bool = False
    smtp_host: str = DEFAULT_SMTP_HOST
    smtp_port: int = DEFAULT_SMTP_PORT
    sender: str = DEFAULT_SENDER
    conflation_url: str | None = None


def get_notification_config() -> NotificationConfig:
    return NotificationConfig(
        send_changeset_emails_to_users=env_flag("TRANSITGRAPH_SEND_CHANGESET_EMAILS"),
        auto_conflate_stops_with_osm=env_flag("TRANSITGRAPH_AUTO_CONFLATE_STOPS"),
        smtp_host=os.getenv("TRANSITGRAPH_SMTP_HOST", DEFAULT_SMTP_HOST),
        smtp_port=env_number("TRANSITGRAPH_SMTP_PORT", DEFAULT_SMTP_PORT, convert=int),
        sender=os.getenv("TRANSITGRAPH_EMAIL_SENDER", DEFAULT_SENDER),
        conflation_url=os.getenv("TRANSITGRAPH_CONFLATION_URL") or None,
    )
