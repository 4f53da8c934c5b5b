import logging

from dataclasses import dataclass, field
from typing import Iterable, Sequence

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class InstantSample:
    time_in_seconds: int = 0
    distance_in_meters: int = 0
    seconds_per_500m: int = 0
    stroke_count: int = 0
    strokes_per_minute: int = 0
    stroke_ratio: float = 0.0
    heart_rate: int = 0

@dataclass
class WorkoutMeta:
    date_time_start: str = ""
    date_time_end: str = ""
    model: str = ""
    fw_version: str = ""

@dataclass(frozen=True)
class FieldStats:
    min: int | float = 0
    avg: float = 0.0
    max: int | float = 0

@dataclass(frozen=True)
class WorkoutSummary:
    meta: WorkoutMeta = field(default_factory=WorkoutMeta)
    datapoints: int = 0
    total_time_in_seconds: int = 0
    total_distance_in_meters: int = 0
    total_stroke_count: int = 0
    seconds_per_500m: FieldStats = field(default_factory=FieldStats)
    strokes_per_minute: FieldStats = field(default_factory=FieldStats)
    stroke_ratio: FieldStats = field(default_factory=FieldStats)
    heart_rate: FieldStats = field(default_factory=FieldStats)


def field_stats(values: Iterable[int | float]) -> FieldStats:
    '''
    Min, mean and max over the strictly positive values. A value of 0 means the S4 had no
    reading for that cycle, so it is not a real measurement and is left out.
    '''
    valid = [value for value in values if value > 0]
    if not valid:
        return FieldStats()
    return FieldStats(min=min(valid), avg=sum(valid) / len(valid), max=max(valid))


def summarise(samples: Sequence[InstantSample], meta: WorkoutMeta | None = None) -> WorkoutSummary:
    """Fold the recorded samples into the workout summary. Totals are those of the latest sample."""
    latest = samples[-1] if samples else InstantSample()
    return WorkoutSummary(
        meta=meta if meta is not None else WorkoutMeta(),
        datapoints=len(samples),
        total_time_in_seconds=latest.time_in_seconds,
        total_distance_in_meters=latest.distance_in_meters,
        total_stroke_count=latest.stroke_count,
        seconds_per_500m=field_stats(s.seconds_per_500m for s in samples),
        strokes_per_minute=field_stats(s.strokes_per_minute for s in samples),
        stroke_ratio=field_stats(s.stroke_ratio for s in samples),
        heart_rate=field_stats(s.heart_rate for s in samples),
    )
