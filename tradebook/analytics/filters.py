"""Statistics filters and calendar-period breakdowns.

A trade is dated by its completion date: the entry date while open, the
latest exit date once any shares have been sold.
"""

import calendar
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional

from tradebook.analytics.models import TradeAnalysis
from tradebook.analytics.stats import TradeStats, calculate_stats
from tradebook.models.trade import Trade

TIME_PERIODS = ("all", "year", "month", "week", "custom")
STATUS_FILTERS = ("closed-and-partial", "closed-only")


@dataclass(frozen=True)
class StatsFilter:
    """Selection applied before computing statistics."""

    time_period: str = "all"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status_filter: str = "closed-and-partial"
    ticker_ids: tuple[str, ...] = field(default_factory=tuple)
    trade_type: Optional[str] = None  # "long", "short" or None for both

    def __post_init__(self) -> None:
        if self.time_period not in TIME_PERIODS:
            raise ValueError(f"time_period must be one of {TIME_PERIODS}, got {self.time_period!r}")
        if self.status_filter not in STATUS_FILTERS:
            raise ValueError(
                f"status_filter must be one of {STATUS_FILTERS}, got {self.status_filter!r}"
            )
        if self.trade_type not in (None, "long", "short"):
            raise ValueError(f"trade_type must be 'long' or 'short', got {self.trade_type!r}")


@dataclass(frozen=True)
class PeriodStats:
    """Statistics for one calendar period."""

    period: str
    start: date
    end: date
    stats: TradeStats


def completion_date(trade: Trade) -> date:
    """Entry date for open trades, otherwise the latest exit date."""
    if trade.status == "open" or not trade.exits:
        return trade.entry_date
    return trade.last_exit_date


def period_range(
    filters: StatsFilter, today: Optional[date] = None,
) -> tuple[Optional[date], Optional[date]]:
    """Inclusive ``(start, end)`` dates selected by *filters*.

    ``year``, ``month`` and ``week`` run from the start of the current period
    to *today*; weeks start on Monday.  ``all`` is unbounded, and ``custom``
    uses the filter's own dates.
    """
    today = today or date.today()
    if filters.time_period == "custom":
        return filters.start_date, filters.end_date
    if filters.time_period == "year":
        return date(today.year, 1, 1), today
    if filters.time_period == "month":
        return date(today.year, today.month, 1), today
    if filters.time_period == "week":
        return today - timedelta(days=today.weekday()), today
    return None, None


def matches(
    trade: Trade, filters: StatsFilter, today: Optional[date] = None,
) -> bool:
    """``True`` when *trade* passes every criterion in *filters*."""
    if filters.status_filter == "closed-only":
        if trade.status != "closed":
            return False
    elif trade.status not in ("closed", "partial"):
        return False

    if filters.ticker_ids and trade.ticker_id not in filters.ticker_ids:
        return False
    if filters.trade_type and trade.type != filters.trade_type:
        return False

    start, end = period_range(filters, today)
    completed = completion_date(trade)
    if start is not None and completed < start:
        return False
    if end is not None and completed > end:
        return False
    return True


def filter_trades(
    trades: Iterable[Trade], filters: StatsFilter, today: Optional[date] = None,
) -> list[Trade]:
    return [t for t in trades if matches(t, filters, today)]


def filter_entries(
    entries: Iterable[TradeAnalysis],
    filters: StatsFilter,
    today: Optional[date] = None,
) -> list[TradeAnalysis]:
    return [e for e in entries if matches(e.trade, filters, today)]


# ── Period breakdowns ────────────────────────────────────────────────────


def stats_for_range(
    entries: Iterable[TradeAnalysis],
    start: date,
    end: date,
    include_normalized: bool = True,
) -> TradeStats:
    """Statistics over entries completed between *start* and *end* inclusive."""
    selected = [e for e in entries if start <= completion_date(e.trade) <= end]
    return calculate_stats(selected, include_normalized=include_normalized)


def stats_by_year(
    entries: Iterable[TradeAnalysis],
    year: int,
    years: int = 3,
    include_normalized: bool = True,
) -> list[PeriodStats]:
    """Yearly statistics for *year* and the ``years - 1`` years before it."""
    entries = list(entries)
    rows = []
    for y in range(year, year - years, -1):
        start, end = date(y, 1, 1), date(y, 12, 31)
        rows.append(
            PeriodStats(
                period=str(y),
                start=start,
                end=end,
                stats=stats_for_range(entries, start, end, include_normalized),
            )
        )
    return rows


def stats_by_month(
    entries: Iterable[TradeAnalysis],
    year: int,
    include_normalized: bool = True,
) -> list[PeriodStats]:
    """Monthly statistics for each month of *year*, January first."""
    entries = list(entries)
    rows = []
    for month in range(1, 13):
        last_day = calendar.monthrange(year, month)[1]
        start, end = date(year, month, 1), date(year, month, last_day)
        rows.append(
            PeriodStats(
                period=f"{year}-{month:02d}",
                start=start,
                end=end,
                stats=stats_for_range(entries, start, end, include_normalized),
            )
        )
    return rows
