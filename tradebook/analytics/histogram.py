"""P&L distribution histogram.

Buckets are 2 % wide from −40 % up to 40 %, plus an open-ended ``40%+``
bucket.  Lower bounds are inclusive and upper bounds exclusive.  Results
below −40 % fall outside every bucket and are reported only in the totals.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Optional

from tradebook.analytics.models import TradeAnalysis

_LOWEST = -40
_HIGHEST = 40
_WIDTH = 2


@dataclass
class HistogramBucket:
    """One P&L-percent range."""

    range: str
    lower_bound: float
    upper_bound: float
    count: int = 0

    @property
    def is_negative(self) -> bool:
        return self.upper_bound <= 0


@dataclass(frozen=True)
class Histogram:
    """Bucketed P&L percentages plus coverage totals."""

    buckets: tuple[HistogramBucket, ...]
    total_fetched: int
    total_with_pl_data: int
    total_in_histogram: int

    def to_dict(self) -> dict:
        return {
            "buckets": [
                {
                    "range": b.range,
                    "lower_bound": b.lower_bound,
                    "upper_bound": None if math.isinf(b.upper_bound) else b.upper_bound,
                    "count": b.count,
                    "is_negative": b.is_negative,
                }
                for b in self.buckets
            ],
            "total_fetched": self.total_fetched,
            "total_with_pl_data": self.total_with_pl_data,
            "total_in_histogram": self.total_in_histogram,
        }


def create_buckets() -> list[HistogramBucket]:
    buckets = [
        HistogramBucket(range=f"{lo}% to {lo + _WIDTH}%", lower_bound=lo, upper_bound=lo + _WIDTH)
        for lo in range(_LOWEST, _HIGHEST, _WIDTH)
    ]
    buckets.append(
        HistogramBucket(range=f"{_HIGHEST}%+", lower_bound=_HIGHEST, upper_bound=math.inf)
    )
    return buckets


def pnl_histogram(
    entries: Iterable[TradeAnalysis], normalized: bool = False,
) -> Histogram:
    """Distribute each entry's P&L percent across the histogram buckets.

    Args:
        entries: Trades to plot (already filtered by the caller).
        normalized: Read the normalized P&L percent where available.
    """
    entries = list(entries)
    buckets = create_buckets()
    with_data = 0
    placed = 0

    for entry in entries:
        value = _pnl_percent(entry, normalized)
        if value is None:
            continue
        with_data += 1
        bucket = _find_bucket(buckets, value)
        if bucket is not None:
            bucket.count += 1
            placed += 1

    return Histogram(
        buckets=tuple(buckets),
        total_fetched=len(entries),
        total_with_pl_data=with_data,
        total_in_histogram=placed,
    )


def _pnl_percent(entry: TradeAnalysis, normalized: bool) -> Optional[float]:
    # Falls back to the raw value when the entry has no usable normalization.
    if normalized and entry.normalized is not None and not entry.normalized.excluded:
        return entry.normalized.profit_loss_percent
    return entry.metrics.profit_loss_percent


def _find_bucket(
    buckets: list[HistogramBucket], value: float,
) -> Optional[HistogramBucket]:
    if value < _LOWEST:
        return None
    if value >= _HIGHEST:
        return buckets[-1]
    return buckets[int((value - _LOWEST) // _WIDTH)]
