"""Growth-curve data: sample points, series and the assembled dataset."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

ANCHOR_OFFSET = timedelta(seconds=1)


@dataclass(frozen=True, slots=True)
class SamplePoint:
    """A reconstructed point on a cumulative star curve."""

    time: datetime
    stars: int


@dataclass(frozen=True, slots=True)
class Series:
    """Ordered, named growth curve. Time and stars never decrease along ``points``."""

    label: str
    points: tuple[SamplePoint, ...] = ()
    color: str = ""
    as_of: Optional[datetime] = None
    """Instant the right edge was observed; the last value holds until then."""

    @property
    def is_empty(self) -> bool:
        return not self.points

    @property
    def first_time(self) -> Optional[datetime]:
        return self.points[0].time if self.points else None

    @property
    def last_time(self) -> Optional[datetime]:
        return self.points[-1].time if self.points else None

    @property
    def final_stars(self) -> int:
        return self.points[-1].stars if self.points else 0

    def to_payload(self) -> dict[str, Any]:
        """
        Renderer form of the curve

        A zero point one second before the first star anchors the curve at
        the axis, and the last value is held until ``as_of``. ``points``
        itself is left untouched.
        """
        values = [(point.time, point.stars) for point in self.points]
        if values:
            values.insert(0, (values[0][0] - ANCHOR_OFFSET, 0))
        if self.as_of is not None and (not values or values[-1][0] < self.as_of):
            values.append((self.as_of, self.final_stars))
        return {
            "label": self.label,
            "color": self.color,
            "values": [{"time": int(time.timestamp()), "stars": stars} for time, stars in values],
        }


@dataclass(frozen=True, slots=True)
class Dataset:
    """All series of one invocation, in argument order, plus axis bounds."""

    series: tuple[Series, ...]
    generated_at: datetime
    min_time: Optional[datetime] = None
    max_time: Optional[datetime] = None
    max_stars: int = 0

    def to_payload(self) -> list[dict[str, Any]]:
        """Renderer contract: ``[{label, color, values: [{time, stars}]}]``."""
        return [series.to_payload() for series in self.series]
