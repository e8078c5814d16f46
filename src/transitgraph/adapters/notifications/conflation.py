"""HTTP hand-off of touched stops to the external conflation worker."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

log = getLogger(__name__)

_DEFAULT_TIMEOUT_SECONDS = 10.0


class ConflationDispatchError(RuntimeError):
    """Raised when the conflation endpoint rejects a batch of stops."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class HttpStopConflationDispatcher:
    url: str
    client: httpx.Client = field(
        default_factory=lambda: httpx.Client(timeout=_DEFAULT_TIMEOUT_SECONDS)
    )

    def dispatch(self, stop_ids: Sequence[UUID]) -> None:
        if not stop_ids:
            return
        payload = {"stop_ids": [str(stop_id) for stop_id in stop_ids]}
        log.info("Dispatching %s stop(s) for conflation", len(stop_ids))
        try:
            response = self.client.post(self.url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ConflationDispatchError(
                f"Conflation endpoint returned {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ConflationDispatchError(f"Conflation request failed: {exc}") from exc

    def close(self) -> None:
        self.client.close()
