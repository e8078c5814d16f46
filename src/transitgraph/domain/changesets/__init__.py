"""Emit and apply changesets."""

from __future__ import annotations

from .apply import ApplyOutcome, ChangesetApplier, TrialResult
from .computed import (
    ComputedAttributes,
    ComputedAttributeUpdater,
    PendingRecomputation,
    operator_geometry,
    route_geometry,
    stop_distances,
    trip_distances,
)
from .emit import ChangesetEmitter
from .errors import (
    ChangesetAlreadyAppliedError,
    ChangesetError,
    ChangesetNotFoundError,
    ConcurrentModificationError,
    EntityNotFoundError,
    InvalidChangeError,
    ReferentialIntegrityError,
    StillReferencedError,
    UntruthfulResolutionError,
)
from .hooks import PostCommitTask, email_recipient, run_post_commit_tasks

__all__ = [
    "ApplyOutcome",
    "ChangesetAlreadyAppliedError",
    "ChangesetApplier",
    "ChangesetEmitter",
    "ChangesetError",
    "ChangesetNotFoundError",
    "ComputedAttributeUpdater",
    "ComputedAttributes",
    "ConcurrentModificationError",
    "EntityNotFoundError",
    "InvalidChangeError",
    "PendingRecomputation",
    "PostCommitTask",
    "ReferentialIntegrityError",
    "StillReferencedError",
    "TrialResult",
    "UntruthfulResolutionError",
    "email_recipient",
    "operator_geometry",
    "route_geometry",
    "run_post_commit_tasks",
    "stop_distances",
    "trip_distances",
]
