"""Defaults for feed imports and changeset application."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_number

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_STOP_TIME_BATCH_SIZE = 1000
DEFAULT_SIMILARITY_RADIUS_M = 1000.0
DEFAULT_SIMILARITY_THRESHOLD = 0.6
DEFAULT_STOP_DISTANCE_GAP_THRESHOLD_M = 1000.0


@dataclass(frozen=True, slots=True)
class ImportConfig:
    chunk_size: int = DEFAULT_CHUNK_SIZE
    stop_time_batch_size: int = DEFAULT_STOP_TIME_BATCH_SIZE
    similarity_radius_m: float = DEFAULT_SIMILARITY_RADIUS_M
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    stop_distance_gap_threshold_m: float = DEFAULT_STOP_DISTANCE_GAP_THRESHOLD_M


def get_import_config() -> ImportConfig:
    return ImportConfig(
        chunk_size=env_number("TRANSITGRAPH_CHUNK_SIZE", DEFAULT_CHUNK_SIZE, convert=int),
        stop_time_batch_size=env_number(
            "TRANSITGRAPH_STOP_TIME_BATCH_SIZE", DEFAULT_STOP_TIME_BATCH_SIZE, convert=int
        ),
        similarity_radius_m=env_number(
            "TRANSITGRAPH_SIMILARITY_RADIUS_M", DEFAULT_SIMILARITY_RADIUS_M, convert=float
        ),
        similarity_threshold=env_number(
            "TRANSITGRAPH_SIMILARITY_THRESHOLD", DEFAULT_SIMILARITY_THRESHOLD, convert=float
        ),
        stop_distance_gap_threshold_m=env_number(
            "TRANSITGRAPH_STOP_DISTANCE_GAP_THRESHOLD_M",
            DEFAULT_STOP_DISTANCE_GAP_THRESHOLD_M,
            convert=float,
        ),
    )
