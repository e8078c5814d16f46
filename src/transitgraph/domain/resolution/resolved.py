"""Result of resolving one feed: canonical entities and their in-run relations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from transitgraph.domain.feed import AdjacencyMap, FeedRoute, FeedStop
from transitgraph.domain.model import CanonicalEntity, Operator, Route, Stop

if TYPE_CHECKING:
    from transitgraph.domain.feed import FeedNode


@dataclass(slots=True)
class ResolvedFeed:
    """Canonical operators of a feed; routes and stops hang off the serves relation."""

    feed_onestop_id: str
    operators: list[Operator] = field(default_factory=list[Operator])

    _serves: AdjacencyMap[CanonicalEntity] = field(default_factory=AdjacencyMap[CanonicalEntity])
    _served_by: AdjacencyMap[CanonicalEntity] = field(
        default_factory=AdjacencyMap[CanonicalEntity]
    )
    _entity_by_raw: dict[FeedNode, CanonicalEntity] = field(
        default_factory=dict["FeedNode", CanonicalEntity]
    )
    _raw_by_entity: dict[CanonicalEntity, list[FeedNode]] = field(
        default_factory=dict[CanonicalEntity, "list[FeedNode]"]
    )

    # Building -----------------------------------------------------------------

    def add_operator(self, operator: Operator) -> None:
        if all(existing is not operator for existing in self.operators):
            self.operators.append(operator)

    def link_serves(self, server: CanonicalEntity, served: CanonicalEntity) -> None:
        self._serves.link(server, served)
        self._served_by.link(served, server)

    def record(self, raw: FeedNode, entity: CanonicalEntity) -> None:
        self._entity_by_raw[raw] = entity
        records = self._raw_by_entity.setdefault(entity, [])
        if raw not in records:
            records.append(raw)

    # Queries ------------------------------------------------------------------

    def serves(self, entity: CanonicalEntity) -> list[CanonicalEntity]:
        return list(self._serves.neighbours(entity))

    def served_by(self, entity: CanonicalEntity) -> list[CanonicalEntity]:
        return list(self._served_by.neighbours(entity))

    def operators_of(self, route: Route) -> list[Operator]:
        return [item for item in self.served_by(route) if isinstance(item, Operator)]

    def stops_of(self, entity: CanonicalEntity) -> list[Stop]:
        return [item for item in self.serves(entity) if isinstance(item, Stop)]

    def routes(self) -> list[Route]:
        """Routes served by the resolved operators, in discovery order."""
        seen: dict[Route, None] = {}
        for operator in self.operators:
            for item in self.serves(operator):
                if isinstance(item, Route):
                    seen.setdefault(item)
        return list(seen)

    def stops(self) -> list[Stop]:
        """Stops served by the resolved routes, in discovery order."""
        seen: dict[Stop, None] = {}
        for route in self.routes():
            for stop in self.stops_of(route):
                seen.setdefault(stop)
        return list(seen)

    def entity_for(self, raw: FeedNode) -> CanonicalEntity | None:
        return self._entity_by_raw.get(raw)

    def stop_for(self, raw: FeedStop) -> Stop | None:
        entity = self._entity_by_raw.get(raw)
        return entity if isinstance(entity, Stop) else None

    def route_for(self, raw: FeedRoute) -> Route | None:
        entity = self._entity_by_raw.get(raw)
        return entity if isinstance(entity, Route) else None

    def raw_records(self, entity: CanonicalEntity) -> list[FeedNode]:
        return list(self._raw_by_entity.get(entity, ()))

    def raw_routes(self, route: Route) -> list[FeedRoute]:
        return [item for item in self.raw_records(route) if isinstance(item, FeedRoute)]
