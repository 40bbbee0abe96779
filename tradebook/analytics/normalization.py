"""Risk normalization — pure math, no I/O.

Rescales a trade's outcome to a common risk unit so that trades of
different size are comparable::

    target_risk   = equity × (target_risk_pct / 100)
    factor        = target_risk / initial_risk_amount
    normalized    = raw × factor

The R-ratio already divides out risk, so it is passed through unchanged.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from tradebook.analytics.errors import ConfigurationError
from tradebook.analytics.metrics import TradeMetrics

logger = logging.getLogger("tradebook.analytics")

DEFAULT_MIN_RISK_AMOUNT = 0.01


@dataclass(frozen=True)
class NormalizedMetrics:
    """A trade's P&L rescaled to the target risk unit.

    ``excluded`` is set when the trade's actual risk is too small to divide
    by; the factor is then 1.0 and the trade is left out of normalized
    aggregates.
    """

    trade_id: str
    normalization_factor: float
    profit_loss_amount: Optional[float]
    profit_loss_percent: Optional[float]
    realized_pnl_amount: Optional[float]
    realized_pnl_percent: Optional[float]
    r_ratio: Optional[float]
    realized_r_ratio: Optional[float]
    excluded: bool = False


def target_risk_amount(
    equity: Optional[float], target_risk_pct: Optional[float],
) -> float:
    """Dollar risk per trade implied by the configuration.

    Raises:
        ConfigurationError: If *equity* or *target_risk_pct* is missing or
            non-positive.
    """
    if equity is None or equity <= 0:
        raise ConfigurationError(f"equity must be positive, got {equity}")
    if target_risk_pct is None or target_risk_pct <= 0:
        raise ConfigurationError(
            f"target_risk_pct must be positive, got {target_risk_pct}"
        )
    return equity * (target_risk_pct / 100.0)


def normalize(
    metrics: TradeMetrics,
    target_risk: float,
    min_risk_amount: float = DEFAULT_MIN_RISK_AMOUNT,
) -> NormalizedMetrics:
    """Rescale *metrics* to *target_risk* dollars of initial risk."""
    if target_risk <= 0:
        raise ConfigurationError(f"target_risk must be positive, got {target_risk}")

    actual = metrics.initial_risk_amount
    if actual < min_risk_amount:
        logger.debug(
            "Trade %s risk %.4f below %.4f — excluded from normalized stats",
            metrics.trade_id, actual, min_risk_amount,
        )
        factor = 1.0
        excluded = True
    else:
        factor = target_risk / actual
        excluded = False

    return NormalizedMetrics(
        trade_id=metrics.trade_id,
        normalization_factor=factor,
        profit_loss_amount=_scale(metrics.profit_loss_amount, factor),
        profit_loss_percent=_scale(metrics.profit_loss_percent, factor),
        realized_pnl_amount=_scale(metrics.realized_pnl_amount, factor),
        realized_pnl_percent=_scale(metrics.realized_pnl_percent, factor),
        r_ratio=metrics.r_ratio,
        realized_r_ratio=metrics.realized_r_ratio,
        excluded=excluded,
    )


def _scale(value: Optional[float], factor: float) -> Optional[float]:
    if value is None:
        return None
    return value * factor
