"""Domain ports (protocols implemented by adapters)."""

from __future__ import annotations

from .feed_source import FeedSource
from .notifications import ChangesetMailer, StopConflationDispatcher
from .persistence import (
    CanonicalEntityRepository,
    ChangesetRepository,
    HistoryRepository,
    IssueRepository,
    OperatorRepository,
    Repository,
    RouteRepository,
    RouteStopPatternRepository,
    ScheduleStopPairRepository,
    ServesRepository,
    StopRepository,
    UserRepository,
)
from .unit_of_work import RepositoryCollection, TransitRepositories, TransitUnitOfWork, UnitOfWork

__all__ = [
    "CanonicalEntityRepository",
    "ChangesetMailer",
    "ChangesetRepository",
    "FeedSource",
    "HistoryRepository",
    "IssueRepository",
    "OperatorRepository",
    "Repository",
    "RepositoryCollection",
    "RouteRepository",
    "RouteStopPatternRepository",
    "ScheduleStopPairRepository",
    "ServesRepository",
    "StopConflationDispatcher",
    "StopRepository",
    "TransitRepositories",
    "TransitUnitOfWork",
    "UnitOfWork",
    "UserRepository",
]
