"""Portfolio statistics — pure functions for trade-set analysis.

Folds per-trade metrics into a :class:`TradeStats` summary.  The same
aggregation runs twice: once over raw realized P&L and once over the
risk-normalized values, which populate ``TradeStats.normalized``.

Only closed and partially closed trades are classified; open trades have no
realized outcome yet.  Outcomes are the *realized* P&L so the unrealized
remainder of a partial trade is never counted as a result.

Undefined ratios (nothing to average, no losses, zero denominator) are
``None`` rather than ``inf`` so the result always serializes to JSON.
"""

from dataclasses import asdict, dataclass
from typing import Iterable, Optional

from tradebook.analytics.models import TradeAnalysis

_QUALIFYING_STATUSES = ("closed", "partial")


@dataclass(frozen=True)
class TradeStats:
    """Aggregate performance statistics for a set of trades.

    Formulas::

        batting_average         = winners / (winners + losers + break_even)
        win_loss_ratio          = avg_win% / |avg_loss%|
        adjusted_win_loss_ratio = (BA × avg_win%) / ((1 − BA) × |avg_loss%|)
        profit_factor           = Σ gains / |Σ losses|
        expectancy              = BA × avg_win% − (1 − BA) × |avg_loss%|
        max_gain_loss_ratio     = max_gain% / |max_loss%|
    """

    total_trades: int
    winning_trades: int
    losing_trades: int
    break_even_trades: int
    batting_average: float
    average_win_percent: Optional[float]
    average_loss_percent: Optional[float]
    win_loss_ratio: Optional[float]
    adjusted_win_loss_ratio: Optional[float]
    average_r_ratio: Optional[float]
    profit_factor: Optional[float]
    expectancy: Optional[float]
    average_days_held_winners: Optional[float]
    average_days_held_losers: Optional[float]
    max_gain_percent: Optional[float]
    max_loss_percent: Optional[float]
    max_gain_loss_ratio: Optional[float]
    total_profit_loss: float
    total_profit_loss_percent: float
    normalized: Optional["TradeStats"] = None


@dataclass(frozen=True)
class _Outcome:
    amount: float
    percent: float
    r_ratio: Optional[float]
    days_held: int


def calculate_stats(
    entries: Iterable[TradeAnalysis],
    include_normalized: bool = True,
) -> TradeStats:
    """Compute raw statistics and, when available, the normalized view.

    The normalized sub-object is built only if every qualifying entry carries
    normalized metrics (i.e. normalization was configured for the pass);
    entries flagged ``excluded`` are left out of it.

    Returns:
        A :class:`TradeStats`; for no qualifying trades every count is 0,
        ``batting_average`` is 0.0, totals are 0.0 and ratios are ``None``.
    """
    qualifying = [
        e for e in entries
        if e.metrics.status in _QUALIFYING_STATUSES
        and e.metrics.realized_pnl_amount is not None
    ]

    raw = _aggregate([
        _Outcome(
            amount=e.metrics.realized_pnl_amount,
            percent=e.metrics.realized_pnl_percent,
            r_ratio=e.metrics.realized_r_ratio,
            days_held=e.metrics.days_held,
        )
        for e in qualifying
    ])

    if not include_normalized or any(e.normalized is None for e in qualifying):
        return raw

    normalized = _aggregate([
        _Outcome(
            amount=e.normalized.realized_pnl_amount,
            percent=e.normalized.realized_pnl_percent,
            r_ratio=e.normalized.realized_r_ratio,
            days_held=e.metrics.days_held,
        )
        for e in qualifying
        if not e.normalized.excluded
    ])
    return _with_normalized(raw, normalized)


def stats_to_dict(stats: TradeStats) -> dict:
    """Serialize *stats* to a JSON-safe dict (nested ``normalized`` included)."""
    return asdict(stats)


# ── Aggregation ──────────────────────────────────────────────────────────


def _aggregate(outcomes: list[_Outcome]) -> TradeStats:
    total = len(outcomes)
    winners = [o for o in outcomes if o.amount > 0]
    losers = [o for o in outcomes if o.amount < 0]
    break_even = total - len(winners) - len(losers)

    batting_average = len(winners) / total if total else 0.0

    avg_win = _mean([o.percent for o in winners])
    avg_loss = _mean([o.percent for o in losers])

    win_loss_ratio = _ratio(avg_win, avg_loss)
    adjusted = None
    if avg_win is not None and avg_loss is not None:
        adjusted = _divide(
            batting_average * avg_win,
            (1.0 - batting_average) * abs(avg_loss),
        )

    gross_profit = sum(o.amount for o in winners)
    gross_loss = abs(sum(o.amount for o in losers))
    profit_factor = _divide(gross_profit, gross_loss)

    expectancy = None
    if total:
        expectancy = (
            batting_average * (avg_win or 0.0)
            - (1.0 - batting_average) * abs(avg_loss or 0.0)
        )

    max_gain = max((o.percent for o in winners), default=None)
    max_loss = min((o.percent for o in losers), default=None)

    return TradeStats(
        total_trades=total,
        winning_trades=len(winners),
        losing_trades=len(losers),
        break_even_trades=break_even,
        batting_average=batting_average,
        average_win_percent=avg_win,
        average_loss_percent=avg_loss,
        win_loss_ratio=win_loss_ratio,
        adjusted_win_loss_ratio=adjusted,
        average_r_ratio=_mean([o.r_ratio for o in outcomes if o.r_ratio is not None]),
        profit_factor=profit_factor,
        expectancy=expectancy,
        average_days_held_winners=_mean([o.days_held for o in winners]),
        average_days_held_losers=_mean([o.days_held for o in losers]),
        max_gain_percent=max_gain,
        max_loss_percent=max_loss,
        max_gain_loss_ratio=_ratio(max_gain, max_loss),
        total_profit_loss=sum(o.amount for o in outcomes),
        total_profit_loss_percent=sum(o.percent for o in outcomes),
    )


def _with_normalized(raw: TradeStats, normalized: TradeStats) -> TradeStats:
    fields = asdict(raw)
    fields.pop("normalized")
    return TradeStats(**fields, normalized=normalized)


# ── Helpers ──────────────────────────────────────────────────────────────


def _mean(values: list[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


def _divide(numerator: float, denominator: float) -> Optional[float]:
    if denominator == 0:
        return None
    return numerator / denominator


def _ratio(gain: Optional[float], loss: Optional[float]) -> Optional[float]:
    """``gain / |loss|``, or ``None`` when either side is undefined or zero."""
    if gain is None or loss is None:
        return None
    return _divide(gain, abs(loss))
