"""Post-commit notification adapters."""

from __future__ import annotations

from .conflation import ConflationDispatchError, HttpStopConflationDispatcher
from .mailer import SmtpChangesetMailer

__all__ = [
    "ConflationDispatchError",
    "HttpStopConflationDispatcher",
    "SmtpChangesetMailer",
]
