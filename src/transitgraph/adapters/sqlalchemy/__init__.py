"""SQLAlchemy adapter package for transitgraph."""

from __future__ import annotations

from .mappings import TABLE_BY_ENTITY_TYPE, create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyChangesetRepository,
    SqlAlchemyHistoryRepository,
    SqlAlchemyIssueRepository,
    SqlAlchemyOperatorRepository,
    SqlAlchemyRouteRepository,
    SqlAlchemyRouteStopPatternRepository,
    SqlAlchemyScheduleStopPairRepository,
    SqlAlchemyServesRepository,
    SqlAlchemyStopRepository,
    SqlAlchemyUserRepository,
)
from .unit_of_work import (
    SqlAlchemyTransitUnitOfWork,
    StartupError,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "TABLE_BY_ENTITY_TYPE",
    "SqlAlchemyChangesetRepository",
    "SqlAlchemyHistoryRepository",
    "SqlAlchemyIssueRepository",
    "SqlAlchemyOperatorRepository",
    "SqlAlchemyRouteRepository",
    "SqlAlchemyRouteStopPatternRepository",
    "SqlAlchemyScheduleStopPairRepository",
    "SqlAlchemyServesRepository",
    "SqlAlchemyStopRepository",
    "SqlAlchemyTransitUnitOfWork",
    "SqlAlchemyUserRepository",
    "StartupError",
    "create_all_tables",
    "is_started",
    "shutdown",
    "startup",
]
