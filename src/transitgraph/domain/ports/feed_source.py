"""Port for sources of raw feed records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable

    from transitgraph.domain.feed.records import (
        Agency,
        Calendar,
        CalendarDate,
        FeedRoute,
        FeedStop,
        ShapePoint,
        StopTime,
        Trip,
    )


@runtime_checkable
class FeedSource(Protocol):
    """Enumerable collections of typed feed records (parsing happens elsewhere)."""

    def agencies(self) -> Iterable[Agency]: ...

    def routes(self) -> Iterable[FeedRoute]: ...

    def stops(self) -> Iterable[FeedStop]: ...

    def trips(self) -> Iterable[Trip]: ...

    def shape_points(self) -> Iterable[ShapePoint]: ...

    def stop_times(self) -> Iterable[StopTime]: ...

    def calendars(self) -> Iterable[Calendar]: ...

    def calendar_dates(self) -> Iterable[CalendarDate]: ...
