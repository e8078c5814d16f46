"""Users who author changesets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import UUID

from transitgraph.domain.model.entity import new_id

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(eq=False, kw_only=True)
class User:
    email: str
    name: str | None = None
    # admins edit without notification e-mails
    admin: bool = False
    created_at: datetime | None = None
    id: UUID = field(default_factory=new_id)
