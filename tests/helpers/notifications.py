"""Recording fakes for post-commit side effects."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID


@dataclass(slots=True)
class RecordingMailer:
    sent: list[tuple[str, int, str]] = field(default_factory=list[tuple[str, int, str]])
    fail: bool = False

    def send_creation(self, changeset_id: int, recipient: str) -> None:
        self._record("creation", changeset_id, recipient)

    def send_application(self, changeset_id: int, recipient: str) -> None:
        self._record("application", changeset_id, recipient)

    def _record(self, kind: str, changeset_id: int, recipient: str) -> None:
        if self.fail:
            raise ConnectionError("smtp unavailable")
        self.sent.append((kind, changeset_id, recipient))


@dataclass(slots=True)
class RecordingDispatcher:
    batches: list[tuple[UUID, ...]] = field(default_factory=list[tuple["UUID", ...]])

    def dispatch(self, stop_ids: Sequence[UUID]) -> None:
        self.batches.append(tuple(stop_ids))
