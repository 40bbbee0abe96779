"""Analytics data models — typed results of an analysis pass."""

from dataclasses import dataclass
from typing import Optional

from tradebook.analytics.metrics import TradeMetrics
from tradebook.analytics.normalization import NormalizedMetrics
from tradebook.models.trade import Trade


@dataclass(frozen=True)
class TradeAnalysis:
    """A valid trade with its raw and (when configured) normalized metrics."""

    trade: Trade
    metrics: TradeMetrics
    normalized: Optional[NormalizedMetrics] = None


@dataclass(frozen=True)
class RejectedTrade:
    """A trade skipped by an analysis pass, with the reason."""

    trade_id: str
    reason: str


@dataclass(frozen=True)
class AnalyticsSettings:
    """Inputs for normalization and exposure allocation."""

    equity: Optional[float] = None
    target_risk_pct: Optional[float] = None
    bucket_count: int = 4
    target_exposure_pct: float = 400.0
    min_risk_amount: float = 0.01
