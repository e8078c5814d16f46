"""Builders for change payloads and stored changesets."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from transitgraph.adapters.payloads import decode_payload
from transitgraph.app import apply_changeset
from transitgraph.config import ImportConfig, NotificationConfig
from transitgraph.domain.model import Changeset

if TYPE_CHECKING:
    from collections.abc import Callable

    from transitgraph.adapters.sqlalchemy import SqlAlchemyTransitUnitOfWork
    from transitgraph.domain.changesets import ApplyOutcome
    from transitgraph.domain.model import User

    UnitOfWorkFactory = Callable[[], SqlAlchemyTransitUnitOfWork]


def point(lon: float, lat: float) -> dict[str, Any]:
    return {"type": "Point", "coordinates": [lon, lat]}


def line(*coordinates: tuple[float, float]) -> dict[str, Any]:
    return {"type": "LineString", "coordinates": [list(item) for item in coordinates]}


def create_update(
    kind: str, issues_resolved: list[int] | None = None, **fields: Any
) -> dict[str, Any]:
    entry: dict[str, Any] = {"action": "createUpdate", kind: fields}
    if issues_resolved:
        entry["issuesResolved"] = issues_resolved
    return entry


def destroy(kind: str, **fields: Any) -> dict[str, Any]:
    return {"action": "destroy", kind: fields}


def store_changeset(
    factory: UnitOfWorkFactory,
    *entries: dict[str, Any],
    imported_from: str | None = None,
    user: User | None = None,
) -> int:
    changes = decode_payload({"changes": list(entries)})
    now = datetime.now(UTC)
    with factory() as uow:
        if user is not None:
            uow.repositories.users.add(user)
        changeset = Changeset(
            imported_from_feed_onestop_id=imported_from, user=user, created_at=now
        )
        changeset.add_payload(changes, created_at=now)
        uow.repositories.changesets.add(changeset)
        uow.commit()
        assert changeset.id is not None
        return changeset.id


def apply_entries(
    factory: UnitOfWorkFactory,
    *entries: dict[str, Any],
    imported_from: str | None = None,
) -> ApplyOutcome:
    changeset_id = store_changeset(factory, *entries, imported_from=imported_from)
    return apply_changeset(
        changeset_id,
        unit_of_work_factory=factory,
        config=ImportConfig(),
        notifications=NotificationConfig(),
    )
