"""Name and distance similarity used to match feed stops against stored stops."""

from __future__ import annotations

import re
import unicodedata
from difflib import SequenceMatcher
from typing import TYPE_CHECKING

from transitgraph.domain.geometry import distance_m

if TYPE_CHECKING:
    from collections.abc import Iterable

    from shapely.geometry import Point

    from transitgraph.domain.model import Stop

_NON_WORD = re.compile(r"[\W_]+")


def normalize_name(name: str | None) -> str:
    text = unicodedata.normalize("NFKC", name or "").casefold()
    return _NON_WORD.sub(" ", text).strip()


def name_similarity(left: str | None, right: str | None) -> float:
    a, b = normalize_name(left), normalize_name(right)
    if not a or not b:
        return 0.0
    return SequenceMatcher(None, a, b).ratio()


def best_match(
    candidates: Iterable[Stop],
    location: Point,
    name: str | None,
    *,
    radius_m: float,
    threshold: float,
) -> tuple[Stop | None, float]:
    """Pick the stop within ``radius_m`` whose name is most similar to ``name``.

    Only names scoring above ``threshold`` qualify; ties go to the nearer stop.
    Returns ``(None, best_score_seen)`` when nothing qualifies.
    """

    best: Stop | None = None
    best_key = (-1.0, 0.0)
    best_score = 0.0
    for candidate in candidates:
        if candidate.geometry is None:
            continue
        distance = distance_m(location, candidate.geometry.centroid)
        if distance > radius_m:
            continue
        score = name_similarity(name, candidate.name)
        best_score = max(best_score, score)
        if score <= threshold:
            continue
        key = (score, -distance)
        if key > best_key:
            best, best_key = candidate, key
    if best is None:
        return None, best_score
    return best, best_key[0]
