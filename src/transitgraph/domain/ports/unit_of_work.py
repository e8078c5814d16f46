"""Unit-of-work abstractions for coordinating repositories."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from transitgraph.domain.ports.persistence import (
        ChangesetRepository,
        HistoryRepository,
        IssueRepository,
        OperatorRepository,
        RouteRepository,
        RouteStopPatternRepository,
        ScheduleStopPairRepository,
        ServesRepository,
        StopRepository,
        UserRepository,
    )


@runtime_checkable
class RepositoryCollection(Protocol):
    """Marker protocol for groups of repositories managed together."""


@runtime_checkable
class UnitOfWork[TRepositories: RepositoryCollection](Protocol):
    """Generic unit-of-work boundary around a repository collection."""

    @property
    def repositories(self) -> TRepositories: ...

    def __enter__(self) -> UnitOfWork[TRepositories]: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def flush(self) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...


@dataclass(slots=True)
class TransitRepositories(RepositoryCollection):
    """Repositories required to resolve feeds and apply changesets."""

    operators: OperatorRepository
    routes: RouteRepository
    stops: StopRepository
    route_stop_patterns: RouteStopPatternRepository
    schedule_stop_pairs: ScheduleStopPairRepository
    serves: ServesRepository
    history: HistoryRepository
    changesets: ChangesetRepository
    issues: IssueRepository
    users: UserRepository


type TransitUnitOfWork = UnitOfWork[TransitRepositories]
