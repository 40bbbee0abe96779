"""Exposure tracking and bucket allocation — pure math, no I/O.

Open and partially closed positions are spread across a fixed number of
capacity buckets.  With the defaults (4 buckets, 400 % gross target) each
bucket holds 100 % of account equity.

Placement policy:
  - Trades are ordered by ``(entry_date, id)``; all-digit ids compare
    numerically and sort before other ids.
  - Each trade goes into the least-loaded bucket; ties go to the lowest id.
  - A placement that pushes a bucket past capacity is kept and the bucket
    is flagged ``overflow``.

Because placement depends only on trades that sort earlier, a newly entered
trade never moves an existing one.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from tradebook.analytics.errors import ConfigurationError
from tradebook.models.trade import Trade

DEFAULT_BUCKET_COUNT = 4
DEFAULT_TARGET_EXPOSURE_PCT = 400.0

_OPEN_STATUSES = ("open", "partial")
_TOLERANCE = 1e-9


@dataclass(frozen=True)
class TradeExposure:
    """Position value at entry versus what is still held."""

    trade_id: str
    original_exposure: float
    current_exposure: float
    remaining_shares: float
    exited_shares: float
    exposure_reduction: float
    exposure_reduction_percent: float


@dataclass(frozen=True)
class PortfolioExposure:
    """Exposure totals across a set of trades."""

    total_original_exposure: float
    total_current_exposure: float
    total_reduction: float
    total_reduction_percent: float
    trade_count: int
    open_trade_count: int
    partial_trade_count: int
    trades: tuple[TradeExposure, ...]


@dataclass(frozen=True)
class ExposureRisk:
    """Qualitative reading of total exposure against the target."""

    level: str  # "low", "moderate", "high" or "critical"
    message: str
    percentage: float


@dataclass
class Bucket:
    """One capacity slot."""

    id: int
    capacity_percent: float
    trade_ids: list[str] = field(default_factory=list)
    exposure_percent: float = 0.0
    overflow: bool = False
    overflow_trade_ids: list[str] = field(default_factory=list)

    @property
    def occupied_percent(self) -> float:
        """Exposure as a percentage of this bucket's capacity."""
        if self.capacity_percent == 0:
            return 0.0
        return self.exposure_percent / self.capacity_percent * 100.0


@dataclass(frozen=True)
class ExposureAllocation:
    """Result of a bucket allocation pass."""

    buckets: tuple[Bucket, ...]
    equity: float
    total_exposure_percent: float
    target_exposure_percent: float
    utilization_percent: float
    risk: ExposureRisk
    position_percents: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "buckets": [
                {
                    "id": b.id,
                    "trade_ids": list(b.trade_ids),
                    "exposure_percent": b.exposure_percent,
                    "capacity_percent": b.capacity_percent,
                    "occupied_percent": b.occupied_percent,
                    "overflow": b.overflow,
                    "overflow_trade_ids": list(b.overflow_trade_ids),
                }
                for b in self.buckets
            ],
            "equity": self.equity,
            "total_exposure_percent": self.total_exposure_percent,
            "target_exposure_percent": self.target_exposure_percent,
            "utilization_percent": self.utilization_percent,
            "risk": {
                "level": self.risk.level,
                "message": self.risk.message,
                "percentage": self.risk.percentage,
            },
            "position_percents": dict(self.position_percents),
        }


# ── Per-trade and portfolio exposure ─────────────────────────────────────


def calculate_trade_exposure(trade: Trade) -> TradeExposure:
    """Exposure of *trade* at entry price, before and after its exits."""
    original = trade.shares * trade.entry_price
    current = trade.remaining_shares * trade.entry_price
    reduction = original - current
    return TradeExposure(
        trade_id=trade.id,
        original_exposure=original,
        current_exposure=current,
        remaining_shares=trade.remaining_shares,
        exited_shares=trade.exited_shares,
        exposure_reduction=reduction,
        exposure_reduction_percent=(
            reduction / original * 100.0 if original > 0 else 0.0
        ),
    )


def calculate_portfolio_exposure(trades: Iterable[Trade]) -> PortfolioExposure:
    """Sum per-trade exposure across *trades*."""
    trades = list(trades)
    exposures = tuple(calculate_trade_exposure(t) for t in trades)
    total_original = sum(e.original_exposure for e in exposures)
    total_current = sum(e.current_exposure for e in exposures)
    reduction = total_original - total_current
    return PortfolioExposure(
        total_original_exposure=total_original,
        total_current_exposure=total_current,
        total_reduction=reduction,
        total_reduction_percent=(
            reduction / total_original * 100.0 if total_original > 0 else 0.0
        ),
        trade_count=len(trades),
        open_trade_count=sum(1 for t in trades if t.status == "open"),
        partial_trade_count=sum(1 for t in trades if t.status == "partial"),
        trades=exposures,
    )


def assess_exposure_risk(
    total_exposure_percent: float,
    target_exposure_percent: float = DEFAULT_TARGET_EXPOSURE_PCT,
) -> ExposureRisk:
    """Classify total exposure relative to the target.

    ``low`` below 50 % of target, ``moderate`` below 80 %, ``high`` below
    100 %, ``critical`` at or above the target.
    """
    if target_exposure_percent <= 0:
        raise ConfigurationError(
            f"target_exposure_percent must be positive, got {target_exposure_percent}"
        )
    percentage = total_exposure_percent / target_exposure_percent * 100.0

    if percentage < 50:
        return ExposureRisk("low", "Low exposure - room for additional positions", percentage)
    if percentage < 80:
        return ExposureRisk("moderate", "Moderate exposure - monitor closely", percentage)
    if percentage < 100:
        return ExposureRisk("high", "High exposure - approaching target limit", percentage)
    return ExposureRisk("critical", "Critical exposure - exceeds recommended target", percentage)


# ── Bucket allocation ────────────────────────────────────────────────────


def allocate_buckets(
    trades: Iterable[Trade],
    equity: Optional[float],
    bucket_count: int = DEFAULT_BUCKET_COUNT,
    target_exposure_pct: float = DEFAULT_TARGET_EXPOSURE_PCT,
) -> ExposureAllocation:
    """Place open and partial positions into capacity buckets.

    Args:
        trades: Any trades; closed ones are ignored.
        equity: Account equity the percentages are measured against.
        bucket_count: Number of buckets.
        target_exposure_pct: Gross exposure target across all buckets, as a
            percentage of equity (e.g. 400.0).

    Raises:
        ConfigurationError: If equity, bucket count or target is missing or
            non-positive.
    """
    if equity is None or equity <= 0:
        raise ConfigurationError(f"equity must be positive, got {equity}")
    if bucket_count <= 0:
        raise ConfigurationError(f"bucket_count must be positive, got {bucket_count}")
    if target_exposure_pct <= 0:
        raise ConfigurationError(
            f"target_exposure_pct must be positive, got {target_exposure_pct}"
        )

    capacity = target_exposure_pct / bucket_count
    buckets = [Bucket(id=i + 1, capacity_percent=capacity) for i in range(bucket_count)]

    positions = sorted(
        (t for t in trades if t.status in _OPEN_STATUSES),
        key=_placement_key,
    )

    position_percents: dict[str, float] = {}
    for trade in positions:
        pct = position_percent(trade, equity)
        position_percents[trade.id] = pct

        target = min(buckets, key=lambda b: (b.exposure_percent, b.id))
        target.trade_ids.append(trade.id)
        target.exposure_percent += pct
        if target.exposure_percent > capacity + _TOLERANCE:
            target.overflow = True
            target.overflow_trade_ids.append(trade.id)

    total = sum(b.exposure_percent for b in buckets)
    return ExposureAllocation(
        buckets=tuple(buckets),
        equity=equity,
        total_exposure_percent=total,
        target_exposure_percent=target_exposure_pct,
        utilization_percent=total / target_exposure_pct * 100.0,
        risk=assess_exposure_risk(total, target_exposure_pct),
        position_percents=position_percents,
    )


def position_percent(trade: Trade, equity: float) -> float:
    """Value of the shares still held, at entry price, as a percent of equity."""
    return trade.remaining_shares * trade.entry_price / equity * 100.0


def _placement_key(trade: Trade) -> tuple:
    # Numeric ids compare as integers so "10" follows "9".
    if trade.id.isdigit():
        return (trade.entry_date, 0, int(trade.id), "")
    return (trade.entry_date, 1, 0, trade.id)
