"""Analysis pass — runs the metrics → normalization → statistics pipeline.

One pass reads an immutable trade snapshot and returns a
:class:`PortfolioAnalysis`.  Failures are contained:

  - A trade that violates the journal invariants is rejected and reported;
    the rest of the portfolio is still analysed.
  - Missing equity / target-risk configuration withholds normalization and
    exposure (reported under ``unavailable``); raw metrics and statistics
    are still produced.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

from tradebook.analytics.errors import ConfigurationError, DataIntegrityError
from tradebook.analytics.exposure import ExposureAllocation, allocate_buckets
from tradebook.analytics.metrics import calculate_metrics
from tradebook.analytics.models import AnalyticsSettings, RejectedTrade, TradeAnalysis
from tradebook.analytics.normalization import normalize, target_risk_amount
from tradebook.analytics.stats import TradeStats, calculate_stats
from tradebook.models.trade import Trade

logger = logging.getLogger("tradebook.analytics")


@dataclass(frozen=True)
class PortfolioAnalysis:
    """Everything one analysis pass produces."""

    entries: tuple[TradeAnalysis, ...]
    rejected: tuple[RejectedTrade, ...]
    stats: TradeStats
    exposure: Optional[ExposureAllocation] = None
    unavailable: dict[str, str] = field(default_factory=dict)

    @property
    def normalization_available(self) -> bool:
        return "normalization" not in self.unavailable


def analyze_trades(
    trades: Iterable[Trade],
    settings: AnalyticsSettings,
    as_of: Optional[date] = None,
) -> tuple[list[TradeAnalysis], list[RejectedTrade], dict[str, str]]:
    """Compute per-trade metrics and normalization for a snapshot.

    Returns:
        ``(entries, rejected, unavailable)`` where *unavailable* maps a
        feature name to the reason it was withheld.
    """
    unavailable: dict[str, str] = {}
    target_risk: Optional[float] = None
    try:
        target_risk = target_risk_amount(settings.equity, settings.target_risk_pct)
    except ConfigurationError as exc:
        unavailable["normalization"] = str(exc)
        logger.warning("Normalization unavailable: %s", exc)

    entries: list[TradeAnalysis] = []
    rejected: list[RejectedTrade] = []
    for trade in trades:
        try:
            metrics = calculate_metrics(trade, as_of=as_of)
        except DataIntegrityError as exc:
            logger.warning("Rejected trade %s: %s", trade.id, exc)
            rejected.append(RejectedTrade(trade_id=trade.id, reason=str(exc)))
            continue

        normalized = None
        if target_risk is not None:
            normalized = normalize(metrics, target_risk, settings.min_risk_amount)
        entries.append(TradeAnalysis(trade=trade, metrics=metrics, normalized=normalized))

    return entries, rejected, unavailable


def analyze_portfolio(
    trades: Iterable[Trade],
    settings: AnalyticsSettings,
    as_of: Optional[date] = None,
) -> PortfolioAnalysis:
    """Run a full analysis pass over *trades*.

    Args:
        trades: Trade snapshot (order irrelevant).
        settings: Equity, target risk and bucket configuration.
        as_of: Reference date for open trades; defaults to today.
    """
    entries, rejected, unavailable = analyze_trades(trades, settings, as_of)

    stats = calculate_stats(
        entries, include_normalized="normalization" not in unavailable,
    )

    exposure: Optional[ExposureAllocation] = None
    try:
        exposure = allocate_buckets(
            (e.trade for e in entries),
            equity=settings.equity,
            bucket_count=settings.bucket_count,
            target_exposure_pct=settings.target_exposure_pct,
        )
    except ConfigurationError as exc:
        unavailable["exposure"] = str(exc)
        logger.warning("Exposure allocation unavailable: %s", exc)

    logger.info(
        "Analysed %d trade(s): %d valid, %d rejected",
        len(entries) + len(rejected), len(entries), len(rejected),
    )
    return PortfolioAnalysis(
        entries=tuple(entries),
        rejected=tuple(rejected),
        stats=stats,
        exposure=exposure,
        unavailable=unavailable,
    )
