"""Resolve raw feed records into canonical entities."""

from __future__ import annotations

from .resolved import ResolvedFeed
from .resolver import EntityResolver
from .similarity import best_match, name_similarity, normalize_name
from .translator import operator_from_feed, route_from_feed, stop_from_feed

__all__ = [
    "EntityResolver",
    "ResolvedFeed",
    "best_match",
    "name_similarity",
    "normalize_name",
    "operator_from_feed",
    "route_from_feed",
    "stop_from_feed",
]
