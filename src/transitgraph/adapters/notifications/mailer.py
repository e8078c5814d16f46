"""SMTP delivery of changeset notification e-mails."""

from __future__ import annotations

import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from logging import getLogger
from typing import TYPE_CHECKING

from transitgraph.config.notifications import NotificationConfig, get_notification_config

if TYPE_CHECKING:
    from collections.abc import Callable

log = getLogger(__name__)

_TIMEOUT_SECONDS = 10.0


def _default_smtp_factory(host: str, port: int) -> smtplib.SMTP:
    return smtplib.SMTP(host, port, timeout=_TIMEOUT_SECONDS)


@dataclass(slots=True)
class SmtpChangesetMailer:
    config: NotificationConfig = field(default_factory=get_notification_config)
    smtp_factory: Callable[[str, int], smtplib.SMTP] = field(default=_default_smtp_factory)

    def send_creation(self, changeset_id: int, recipient: str) -> None:
        self._send(
            recipient,
            subject=f"Changeset {changeset_id} created",
            body=(
                f"Your changeset {changeset_id} was received and is waiting to be applied.\n"
            ),
        )

    def send_application(self, changeset_id: int, recipient: str) -> None:
        self._send(
            recipient,
            subject=f"Changeset {changeset_id} applied",
            body=f"Your changeset {changeset_id} was applied to the registry.\n",
        )

    def _send(self, recipient: str, *, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self.config.sender
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)
        log.info("Sending '%s' to %s", subject, recipient)
        with self.smtp_factory(self.config.smtp_host, self.config.smtp_port) as smtp:
            smtp.send_message(message)
