"""In-memory hourly sample store feeding the rollup job.

``scada_readings`` keeps only the latest row per tag, so the statistics for an
hour are accumulated here as readings are produced and drained once the hour
has closed.  Only running sums are kept per tag; memory does not grow with the
polling rate.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Tuple

from scada_gateway.models.readings import Reading
from scada_gateway.models.rollups import HourlyRollup

BucketKey = Tuple[date, int]


def bucket_of(moment: datetime) -> BucketKey:
    """Local (date, hour) bucket for ``moment``."""

    local = moment.astimezone() if moment.tzinfo else moment
    return local.date(), local.hour


@dataclass
class TagSamples:
    sample_count: int = 0
    good_count: int = 0
    total: float = 0.0
    min_value: Optional[float] = None
    max_value: Optional[float] = None

    def add(self, reading: Reading) -> None:
        self.sample_count += 1
        if not reading.is_good:
            return
        value = float(reading.scaled_value)
        self.good_count += 1
        self.total += value
        self.min_value = value if self.min_value is None else min(self.min_value, value)
        self.max_value = value if self.max_value is None else max(self.max_value, value)

    @property
    def average(self) -> Optional[float]:
        return self.total / self.good_count if self.good_count else None

    @property
    def quality_ratio(self) -> float:
        return self.good_count / self.sample_count if self.sample_count else 0.0


class HourlySampleBuffer:
    def __init__(self, *, retention_hours: int = 3) -> None:
        self.retention = timedelta(hours=retention_hours)
        self._buckets: Dict[BucketKey, Dict[Any, TagSamples]] = {}

    def __len__(self) -> int:
        return len(self._buckets)

    def record(self, reading: Reading) -> None:
        bucket = self._buckets.setdefault(bucket_of(reading.timestamp), {})
        samples = bucket.get(reading.tag_mapping_id)
        if samples is None:
            samples = bucket[reading.tag_mapping_id] = TagSamples()
        samples.add(reading)

    def peek(self, day: date, hour: int) -> Dict[Any, TagSamples]:
        """Samples of one hour, left in place."""

        return dict(self._buckets.get((day, hour), {}))

    def closed_hours(self, day: date, hour: int) -> List[BucketKey]:
        """Buckets up to and including ``(day, hour)``, oldest first."""

        limit = datetime.combine(day, time(hour))
        return sorted(k for k in self._buckets if datetime.combine(k[0], time(k[1])) <= limit)

    def expire(self, day: date, hour: int) -> None:
        cutoff = datetime.combine(day, time(hour)) - self.retention
        for key in [k for k in self._buckets if datetime.combine(k[0], time(k[1])) < cutoff]:
            del self._buckets[key]

    def drain(self, day: date, hour: int) -> Dict[Any, TagSamples]:
        """Remove and return the samples of one hour.

        Buckets older than the retention window are discarded as well.
        """

        drained = self._buckets.pop((day, hour), {})
        self.expire(day, hour)
        return drained


def compute_rollups(
    day: date,
    hour: int,
    samples: Dict[Any, TagSamples],
    computed_at: datetime,
) -> List[HourlyRollup]:
    rollups: List[HourlyRollup] = []
    for tag_id, stats in samples.items():
        if stats.sample_count == 0:
            continue
        rollups.append(
            HourlyRollup(
                tag_mapping_id=tag_id,
                date=day,
                hour=hour,
                sample_count=stats.sample_count,
                good_count=stats.good_count,
                min_value=stats.min_value,
                max_value=stats.max_value,
                avg_value=stats.average,
                quality_ratio=stats.quality_ratio,
                computed_at=computed_at,
            )
        )
    return rollups


__all__ = ["HourlySampleBuffer", "TagSamples", "bucket_of", "compute_rollups"]
