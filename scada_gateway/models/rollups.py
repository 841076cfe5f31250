# scada_gateway/models/rollups.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class HourlyRollup:
    """Aggregate of one tag's readings over one completed hour."""

    tag_mapping_id: Any
    date: date
    hour: int
    sample_count: int
    good_count: int
    min_value: Optional[float]
    max_value: Optional[float]
    avg_value: Optional[float]
    quality_ratio: float
    computed_at: datetime

    def to_row(self) -> Dict[str, Any]:
        return {
            "tag_mapping_id": self.tag_mapping_id,
            "date": self.date.isoformat(),
            "hour": self.hour,
            "sample_count": self.sample_count,
            "good_count": self.good_count,
            "min_value": self.min_value,
            "max_value": self.max_value,
            "avg_value": self.avg_value,
            "quality_ratio": self.quality_ratio,
            "computed_at": self.computed_at.isoformat(),
        }


__all__ = ["HourlyRollup"]
