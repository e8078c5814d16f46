"""Raw feed records and the in-memory feed graph."""

from __future__ import annotations

from .adjacency import AdjacencyMap
from .graph import FeedGraph, FeedGraphError, ServiceDescriptor
from .records import (
    Agency,
    Calendar,
    CalendarDate,
    FeedNode,
    FeedRoute,
    FeedStop,
    OperatorInFeed,
    ShapePoint,
    StopTime,
    Trip,
)

__all__ = [
    "AdjacencyMap",
    "Agency",
    "Calendar",
    "CalendarDate",
    "FeedGraph",
    "FeedGraphError",
    "FeedNode",
    "FeedRoute",
    "FeedStop",
    "OperatorInFeed",
    "ServiceDescriptor",
    "ShapePoint",
    "StopTime",
    "Trip",
]
